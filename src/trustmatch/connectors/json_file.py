"""Connector reading records from JSON or JSON Lines files."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from trustmatch.connectors.base import ConnectionState
from trustmatch.connectors.filters import QueryFilter, apply_filter
from trustmatch.errors import ConnectorError, ConnectorErrorCode
from trustmatch.models.records import Record, Schema

__all__ = ["JsonFileConnector", "load_json_records", "JSON_LINES_SUFFIXES"]

JSON_LINES_SUFFIXES = frozenset({".jsonl", ".ndjson"})


def _resolve_path(data: Any, records_path: str) -> Any:
    current = data
    for part in records_path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def load_json_records(
    path: Path,
    records_path: str | None = None,
    connector_id: str | None = None,
) -> list[Record]:
    """Read a record list from a JSON array file or a JSON Lines file.

    Parameters
    ----------
    path : Path
        Input file. ``.jsonl``/``.ndjson`` files hold one object per line.
    records_path : str | None, optional
        Dotted path to the record array inside a JSON document
        (e.g. ``"data.items"``).
    connector_id : str | None, optional
        Connector id reported in errors.

    Returns
    -------
    list[Record]
        Records in file order.

    Raises
    ------
    ConnectorError
        ``NOT_FOUND`` for a missing file, ``PERMISSION_DENIED`` when it
        cannot be opened, ``SCHEMA_MISMATCH`` for malformed JSON or a
        payload that is not a list of objects.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConnectorError(
            ConnectorErrorCode.NOT_FOUND,
            f"File not found: {path}",
            connector_id=connector_id,
            context={"path": str(path)},
        ) from exc
    except PermissionError as exc:
        raise ConnectorError(
            ConnectorErrorCode.PERMISSION_DENIED,
            f"Permission denied: {path}",
            connector_id=connector_id,
            context={"path": str(path)},
        ) from exc

    if path.suffix.lower() in JSON_LINES_SUFFIXES:
        records: Any = []
        for line_num, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ConnectorError(
                    ConnectorErrorCode.SCHEMA_MISMATCH,
                    f"Invalid JSON on line {line_num}: {exc.msg}",
                    connector_id=connector_id,
                    context={"path": str(path), "line": line_num},
                ) from exc
    else:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConnectorError(
                ConnectorErrorCode.SCHEMA_MISMATCH,
                f"Invalid JSON: {exc.msg}",
                connector_id=connector_id,
                context={"path": str(path)},
            ) from exc
        records = _resolve_path(document, records_path) if records_path else document

    if not isinstance(records, list):
        where = f"Path {records_path!r}" if records_path else "JSON root"
        raise ConnectorError(
            ConnectorErrorCode.SCHEMA_MISMATCH,
            f"{where} does not contain an array",
            connector_id=connector_id,
            context={"path": str(path)},
            suggestion="Provide a JSON array of objects, or set records_path to one.",
        )

    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ConnectorError(
                ConnectorErrorCode.SCHEMA_MISMATCH,
                f"Record {index} is not an object",
                connector_id=connector_id,
                context={"path": str(path), "index": index},
            )
    return records


class JsonFileConnector:
    """Read-only connector over a JSON or JSON Lines file.

    The file is read once on :meth:`connect`; queries filter the loaded
    records in memory.

    Parameters
    ----------
    connector_id : str
        Unique connector id.
    path : Path
        Input file.
    records_path : str | None, optional
        Dotted path to the record array inside a JSON document.
    """

    def __init__(self, connector_id: str, path: Path, records_path: str | None = None) -> None:
        self.connector_id = connector_id
        self.path = Path(path)
        self.records_path = records_path
        self._records: list[Record] = []
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> None:
        """Load the file.

        Raises
        ------
        ConnectorError
            If the file cannot be read or parsed; the state becomes ``error``.
        """
        self._state = ConnectionState.CONNECTING
        try:
            self._records = await asyncio.to_thread(
                load_json_records, self.path, self.records_path, self.connector_id
            )
        except ConnectorError:
            self._state = ConnectionState.ERROR
            raise
        self._state = ConnectionState.CONNECTED

    async def disconnect(self) -> None:
        self._records = []
        self._state = ConnectionState.DISCONNECTED

    def _ensure_connected(self) -> None:
        if self._state is not ConnectionState.CONNECTED:
            raise ConnectorError(
                ConnectorErrorCode.CONNECTION_FAILED,
                f"Connector {self.connector_id!r} is not connected (state: {self._state})",
                connector_id=self.connector_id,
                suggestion="Call connect() before querying.",
            )

    async def get_schema(self) -> Schema:
        """Schema inferred from the loaded records."""
        self._ensure_connected()
        return Schema.infer(self._records)

    async def query(self, query_filter: QueryFilter | None = None) -> list[Record]:
        """Return the loaded records selected by *query_filter*."""
        self._ensure_connected()
        return apply_filter(self._records, query_filter)
