"""Record and schema models shared by every stage."""

from trustmatch.models.records import (
    FieldDefinition,
    FieldType,
    Record,
    Schema,
    get_field,
    stringify_value,
)

__all__ = [
    "Record",
    "FieldType",
    "FieldDefinition",
    "Schema",
    "get_field",
    "stringify_value",
]
