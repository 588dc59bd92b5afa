"""Connector protocol, explicit registry and guarded record retrieval."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from trustmatch.concurrency import ConcurrencyGate
from trustmatch.connectors.filters import QueryFilter
from trustmatch.errors import ConnectorError, ConnectorErrorCode, wrap_error
from trustmatch.models.records import Record, Schema
from trustmatch.telemetry import TraceContext

__all__ = [
    "ConnectionState",
    "Connector",
    "ConnectorRegistry",
    "fetch_records",
]


class ConnectionState(StrEnum):
    """Lifecycle of a connector's connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@runtime_checkable
class Connector(Protocol):
    """Source of records.

    Implementations raise :class:`~trustmatch.errors.ConnectorError` on
    failure. They do not retry; retry policy belongs to the caller.
    """

    connector_id: str

    @property
    def state(self) -> ConnectionState: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def get_schema(self) -> Schema: ...

    async def query(self, query_filter: QueryFilter | None = None) -> list[Record]: ...


class ConnectorRegistry:
    """Connectors addressable by id.

    Built and owned by the composition layer and passed to whoever needs
    it; there is no module-level instance.
    """

    def __init__(self) -> None:
        self._connectors: dict[str, Connector] = {}

    def register(self, connector: Connector) -> None:
        """Add *connector*.

        Raises
        ------
        ConnectorError
            ``CONFIGURATION_ERROR`` if the id is already registered.
        """
        if connector.connector_id in self._connectors:
            raise ConnectorError(
                ConnectorErrorCode.CONFIGURATION_ERROR,
                f"Connector already registered: {connector.connector_id!r}",
                connector_id=connector.connector_id,
                suggestion="Use a unique connector id.",
            )
        self._connectors[connector.connector_id] = connector

    def unregister(self, connector_id: str) -> Connector:
        """Remove and return a connector."""
        connector = self.get(connector_id)
        del self._connectors[connector_id]
        return connector

    def get(self, connector_id: str) -> Connector:
        """Look up a connector.

        Raises
        ------
        ConnectorError
            ``NOT_FOUND`` for an unknown id.
        """
        try:
            return self._connectors[connector_id]
        except KeyError:
            valid = ", ".join(sorted(self._connectors)) or "none"
            raise ConnectorError(
                ConnectorErrorCode.NOT_FOUND,
                f"Unknown connector: {connector_id!r}. Registered connectors: {valid}",
                connector_id=connector_id,
            ) from None

    @property
    def connector_ids(self) -> list[str]:
        return sorted(self._connectors)

    def __contains__(self, connector_id: object) -> bool:
        return connector_id in self._connectors

    def __len__(self) -> int:
        return len(self._connectors)

    async def disconnect_all(self) -> None:
        """Disconnect every connected connector."""
        for connector in self._connectors.values():
            if connector.state is ConnectionState.CONNECTED:
                await connector.disconnect()


async def fetch_records(
    connector: Connector,
    query_filter: QueryFilter | None = None,
    *,
    gate: ConcurrencyGate | None = None,
    trace: TraceContext | None = None,
    auto_connect: bool = True,
) -> list[Record]:
    """Retrieve a complete record set from *connector*.

    Parameters
    ----------
    connector : Connector
        Record source.
    query_filter : QueryFilter | None, optional
        Selection passed to ``query``.
    gate : ConcurrencyGate | None, optional
        Admission gate held while the connector is busy.
    trace : TraceContext | None, optional
        Trace attached to any raised error.
    auto_connect : bool, optional
        Connect first when the connector is not connected (default: True).

    Returns
    -------
    list[Record]
        All selected records.

    Raises
    ------
    ConnectorError
        Any connector failure, with the connector id and trace attached.
    """
    async def _fetch() -> list[Record]:
        if auto_connect and connector.state is not ConnectionState.CONNECTED:
            await connector.connect()
        return list(await connector.query(query_filter))

    try:
        if gate is None:
            return await _fetch()
        async with gate.slot():
            return await _fetch()
    except Exception as exc:
        error = wrap_error(exc, connector.connector_id, trace=trace)
        if error is exc:
            raise
        raise error from exc
