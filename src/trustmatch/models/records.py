"""Record model and value stringification.

Records are plain field-name → value mappings supplied by the caller.
The engine never mutates them; every normalisation step works on the
text produced by :func:`stringify_value`.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

__all__ = [
    "Record",
    "FieldType",
    "FieldDefinition",
    "Schema",
    "stringify_value",
    "get_field",
]

Record = Mapping[str, Any]


def _format_datetime(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stringify_value(value: Any) -> str:
    """Convert any supported record value to text.

    Parameters
    ----------
    value : Any
        Text, number, boolean, timestamp or nested container.

    Returns
    -------
    str
        Text form. ``None`` becomes the empty string.

    Notes
    -----
    Booleans render as ``"true"``/``"false"``, integral floats drop the
    trailing ``.0``, naive datetimes are treated as UTC, and containers
    are serialised as JSON with sorted keys so the output is stable.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    try:
        return json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(value)


def get_field(record: Record, name: str) -> Any:
    """Look up *name* in *record*, following dotted paths into nested mappings."""
    if name in record:
        return record[name]
    current: Any = record
    for part in name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


# ============================================================================
# Schema
# ============================================================================


class FieldType(StrEnum):
    """Value kinds a field may carry."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    UNKNOWN = "unknown"


def _infer_type(value: Any) -> FieldType:
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, int | float):
        return FieldType.NUMBER
    if isinstance(value, str):
        return FieldType.STRING
    if isinstance(value, date):
        return FieldType.DATE
    if isinstance(value, Mapping):
        return FieldType.OBJECT
    if isinstance(value, list | tuple):
        return FieldType.ARRAY
    return FieldType.UNKNOWN


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    """Declared field of a record source.

    Attributes
    ----------
    name : str
        Field name as it appears in records.
    type : FieldType
        Expected value kind.
    required : bool
        Whether every record is expected to carry the field.
    """

    name: str
    type: FieldType = FieldType.STRING
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"name": self.name, "type": str(self.type), "required": self.required}


@dataclass(frozen=True)
class Schema:
    """Set of fields known for one record source.

    Attributes
    ----------
    fields : tuple[FieldDefinition, ...]
        Field definitions in declaration order.
    """

    fields: tuple[FieldDefinition, ...] = field(default_factory=tuple)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_field(name)

    @property
    def field_names(self) -> list[str]:
        """Field names in declaration order."""
        return [f.name for f in self.fields]

    def has_field(self, name: str) -> bool:
        """Return True when *name* (or the root of a dotted path) is declared."""
        names = set(self.field_names)
        return name in names or name.split(".", 1)[0] in names

    @classmethod
    def infer(cls, records: Iterable[Record]) -> Schema:
        """Derive a schema from sample records.

        A field is ``required`` when it is present and non-null in every
        sampled record. The type comes from the first non-null value seen.
        """
        order: list[str] = []
        types: dict[str, FieldType] = {}
        present: dict[str, int] = {}
        total = 0

        for record in records:
            total += 1
            for name, value in record.items():
                if name not in types:
                    order.append(name)
                    types[name] = FieldType.UNKNOWN
                    present[name] = 0
                if value is None:
                    continue
                present[name] += 1
                if types[name] is FieldType.UNKNOWN:
                    types[name] = _infer_type(value)

        return cls(
            fields=tuple(
                FieldDefinition(
                    name=name,
                    type=types[name],
                    required=total > 0 and present[name] == total,
                )
                for name in order
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"fields": [f.to_dict() for f in self.fields]}
