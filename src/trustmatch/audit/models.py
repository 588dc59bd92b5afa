"""Data models for audit events and run manifests."""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "CommandInfo",
    "EnvironmentInfo",
    "SourceInfo",
    "InputsInfo",
    "ArtifactInfo",
    "StageInfo",
    "ErrorInfo",
    "OutputsInfo",
    "ManifestData",
    "LogEvent",
]


@dataclass
class CommandInfo:
    """Command-line information.

    Attributes
    ----------
    argv : list[str]
        Complete command-line arguments.
    cwd : str | None
        Working directory basename (for privacy).
    """

    argv: list[str]
    cwd: str | None = None


@dataclass
class EnvironmentInfo:
    """Execution environment information.

    Attributes
    ----------
    python_version : str
        Python version (e.g., "3.12.3").
    platform : str
        OS and architecture (e.g., "Linux-6.8.0-x86_64").
    package_version : str
        trustmatch package version.
    dependencies : dict[str, str]
        Key dependency versions.
    """

    python_version: str
    platform: str
    package_version: str
    dependencies: dict[str, str] = field(default_factory=dict)


@dataclass
class SourceInfo:
    """One side of a reconciliation run.

    Attributes
    ----------
    side : str
        ``"left"`` or ``"right"``.
    connector_id : str
        Connector or file name that supplied the records.
    records : int
        Number of records fetched.
    sha256 : str | None
        Digest of the source file, when the source is a file.
    bytes : int | None
        Source file size.
    mtime : str | None
        ISO8601 modification time of the source file.
    """

    side: str
    connector_id: str
    records: int
    sha256: str | None = None
    bytes: int | None = None
    mtime: str | None = None


@dataclass
class InputsInfo:
    """Input inventory.

    Attributes
    ----------
    sources : list[SourceInfo]
        Left and right sources.
    config_sha256 : str | None
        Fingerprint of the run configuration.
    """

    sources: list[SourceInfo] = field(default_factory=list)
    config_sha256: str | None = None


@dataclass
class ArtifactInfo:
    """Output artifact metadata.

    Attributes
    ----------
    path : str
        Relative path from output directory.
    sha256 : str
        SHA256 digest with "sha256:" prefix.
    bytes : int | None
        File size in bytes.
    record_count : int | None
        Number of records (or pairs) in artifact.
    """

    path: str
    sha256: str
    bytes: int | None = None
    record_count: int | None = None


@dataclass
class StageInfo:
    """Stage execution information.

    Attributes
    ----------
    name : str
        Stage identifier.
    started_at : str
        ISO8601 start time.
    counters : dict[str, int]
        Stage-specific metrics.
    finished_at : str | None
        ISO8601 end time.
    duration_seconds : float | None
        Stage execution duration.
    """

    name: str
    started_at: str
    counters: dict[str, int] = field(default_factory=dict)
    finished_at: str | None = None
    duration_seconds: float | None = None


@dataclass
class ErrorInfo:
    """Error record.

    Attributes
    ----------
    timestamp : str
        ISO8601 when error occurred.
    exception_class : str
        Exception class name.
    message : str
        Error message.
    code : str | None
        Machine-readable code for tagged errors.
    stage : str | None
        Stage where error occurred.
    traceback : str | None
        Stack trace (if debug mode).
    """

    timestamp: str
    exception_class: str
    message: str
    code: str | None = None
    stage: str | None = None
    traceback: str | None = None


@dataclass
class OutputsInfo:
    """Output artifacts inventory."""

    artifacts: list[ArtifactInfo] = field(default_factory=list)


@dataclass
class ManifestData:
    """Complete run manifest.

    Attributes
    ----------
    manifest_version : str
        Schema version (semver).
    run_id : str
        Unique run identifier.
    trace_id : str | None
        Trace identifier shared with the report and errors.
    created_at : str
        ISO8601 UTC timestamp when run started.
    status : str
        Run status ("success", "failed", "partial").
    command : CommandInfo
        Command-line information.
    environment : EnvironmentInfo
        Execution environment.
    inputs : InputsInfo
        Sources and configuration fingerprint.
    parameters : dict[str, Any]
        Configuration snapshot.
    stages : list[StageInfo]
        Stage execution records.
    outputs : OutputsInfo
        Output artifacts inventory.
    finished_at : str | None
        ISO8601 UTC timestamp when run finished.
    duration_seconds : float | None
        Total execution time.
    errors : list[ErrorInfo]
        Error records.
    """

    manifest_version: str
    run_id: str
    trace_id: str | None
    created_at: str
    status: str
    command: CommandInfo
    environment: EnvironmentInfo
    inputs: InputsInfo
    parameters: dict[str, Any]
    stages: list[StageInfo]
    outputs: OutputsInfo
    finished_at: str | None = None
    duration_seconds: float | None = None
    errors: list[ErrorInfo] = field(default_factory=list)


@dataclass
class LogEvent:
    """Structured log event.

    Attributes
    ----------
    ts : str
        ISO8601 timestamp with microseconds (UTC).
    run_id : str
        Unique run identifier.
    level : str
        Log level ("DEBUG", "INFO", "WARN", "ERROR").
    event : str
        Event type identifier.
    data : dict[str, Any]
        Event-specific data payload.
    stage : str | None
        Current stage identifier.
    pair : str | None
        Pair identifier (``left_id|right_id``) if event is pair-specific.
    trace_id : str | None
        Trace identifier of the invocation.
    """

    ts: str
    run_id: str
    level: str
    event: str
    data: dict[str, Any]
    stage: str | None = None
    pair: str | None = None
    trace_id: str | None = None
