"""Shared hashing and timestamp helpers."""

from trustmatch.utils.hashing import (
    calculate_file_sha256,
    calculate_json_sha256,
    calculate_string_sha256,
    format_sha256,
)
from trustmatch.utils.timestamps import get_file_mtime, get_iso_timestamp

__all__ = [
    "get_iso_timestamp",
    "get_file_mtime",
    "calculate_file_sha256",
    "calculate_json_sha256",
    "calculate_string_sha256",
    "format_sha256",
]
