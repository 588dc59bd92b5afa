"""Run identifiers and environment introspection for manifests."""

import importlib.metadata
import platform
import secrets
import subprocess
import sys
from datetime import UTC, datetime

__all__ = [
    "generate_run_id",
    "get_git_sha",
    "get_package_version",
    "get_python_version",
    "get_platform_info",
    "get_dependency_versions",
    "parse_iso_timestamp",
]

PACKAGE_NAME = "trustmatch"


def generate_run_id() -> str:
    """Generate unique run identifier.

    Returns
    -------
    str
        Run ID in format: ISO8601_timestamp__random_suffix.
    """
    timestamp = datetime.now(UTC).isoformat().replace("+00:00", "Z")
    suffix = secrets.token_hex(4)
    return f"{timestamp}__{suffix}"


def parse_iso_timestamp(iso_str: str) -> datetime:
    """Parse an ISO8601 string with either ``Z`` or ``+00:00`` suffix."""
    return datetime.fromisoformat(iso_str.replace("Z", "+00:00"))


def get_git_sha() -> str | None:
    """Short (7 char) SHA of the current Git checkout, or None outside a repository."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
    except (subprocess.SubprocessError, FileNotFoundError):
        return None
    sha = result.stdout.strip()
    return sha[:7] if sha else None


def get_package_version() -> str:
    """Installed trustmatch version, or "unknown" when running from source."""
    try:
        return importlib.metadata.version(PACKAGE_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def get_python_version() -> str:
    """Python version string (e.g., "3.12.3")."""
    return sys.version.split()[0]


def get_platform_info() -> str:
    """Platform string (e.g., "Linux-6.8.0-x86_64")."""
    return f"{platform.system()}-{platform.release()}-{platform.machine()}"


def get_dependency_versions(packages: list[str]) -> dict[str, str]:
    """Get versions of specified packages.

    Parameters
    ----------
    packages : list[str]
        Distribution names to query.

    Returns
    -------
    dict[str, str]
        Mapping of package name to version ("unknown" if not installed).
    """
    versions: dict[str, str] = {}
    for package in packages:
        try:
            versions[package] = importlib.metadata.version(package)
        except importlib.metadata.PackageNotFoundError:
            versions[package] = "unknown"
    return versions
