"""Content hashing for audit artifacts and run fingerprints."""

import hashlib
import json
from pathlib import Path
from typing import Any

__all__ = [
    "format_sha256",
    "calculate_file_sha256",
    "calculate_string_sha256",
    "calculate_json_sha256",
]


def format_sha256(hex_digest: str) -> str:
    """Prefix a raw hex digest with ``sha256:``."""
    return f"sha256:{hex_digest}"


def calculate_file_sha256(path: Path) -> str:
    """Hash a file in 8 KiB chunks.

    Parameters
    ----------
    path : Path
        File to hash.

    Returns
    -------
    str
        Digest with ``sha256:`` prefix.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256_hash = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256_hash.update(chunk)

    return format_sha256(sha256_hash.hexdigest())


def calculate_string_sha256(text: str) -> str:
    """Hash UTF-8 encoded *text*; returns a ``sha256:``-prefixed digest."""
    return format_sha256(hashlib.sha256(text.encode("utf-8")).hexdigest())


def calculate_json_sha256(data: Any) -> str:
    """Hash the canonical JSON form of *data* (sorted keys, compact separators).

    Used to fingerprint run configurations so two runs with the same
    rules can be recognised in manifests.
    """
    canonical = json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return calculate_string_sha256(canonical)
