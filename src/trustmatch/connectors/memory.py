"""Connector over records held in memory."""

from __future__ import annotations

from collections.abc import Iterable

from trustmatch.connectors.base import ConnectionState
from trustmatch.connectors.filters import QueryFilter, apply_filter
from trustmatch.errors import ConnectorError, ConnectorErrorCode
from trustmatch.models.records import Record, Schema

__all__ = ["InMemoryConnector"]


class InMemoryConnector:
    """Serve a fixed list of records.

    Parameters
    ----------
    connector_id : str
        Unique connector id.
    records : Iterable[Record]
        Records to serve; copied on construction.
    """

    def __init__(self, connector_id: str, records: Iterable[Record]) -> None:
        self.connector_id = connector_id
        self._records: list[Record] = [dict(r) for r in records]
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> None:
        self._state = ConnectionState.CONNECTED

    async def disconnect(self) -> None:
        self._state = ConnectionState.DISCONNECTED

    def _ensure_connected(self) -> None:
        if self._state is not ConnectionState.CONNECTED:
            raise ConnectorError(
                ConnectorErrorCode.CONNECTION_FAILED,
                f"Connector {self.connector_id!r} is not connected",
                connector_id=self.connector_id,
                suggestion="Call connect() before querying.",
            )

    async def get_schema(self) -> Schema:
        self._ensure_connected()
        return Schema.infer(self._records)

    async def query(self, query_filter: QueryFilter | None = None) -> list[Record]:
        self._ensure_connected()
        return apply_filter(self._records, query_filter)
