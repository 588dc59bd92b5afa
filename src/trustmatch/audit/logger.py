"""Structured audit logger writing JSONL events.

One JSON object per line, append-only, flushed after every write so an
interrupted run still leaves a readable trail.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from trustmatch.audit.models import LogEvent
from trustmatch.utils import get_iso_timestamp

__all__ = ["AuditLogger", "LOG_LEVELS"]

LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


class AuditLogger:
    """JSONL audit logger with persistent file handle.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    log_path : Path
        Path to JSONL log file.
    trace_id : str | None
        Trace identifier stamped on every event.
    current_stage : str | None
        Current stage name for context.
    """

    def __init__(self, run_id: str, log_path: Path, trace_id: str | None = None) -> None:
        """Initialize audit logger and open file handle.

        Parameters
        ----------
        run_id : str
            Unique run identifier.
        log_path : Path
            Path to JSONL log file.
        trace_id : str | None, optional
            Trace identifier stamped on every event.
        """
        self.run_id = run_id
        self.log_path = log_path
        self.trace_id = trace_id
        self.current_stage: str | None = None

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.log_path.open("a", encoding="utf-8")

    def __enter__(self) -> "AuditLogger":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager and close file."""
        self.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def close(self) -> None:
        """Flush and close the log file handle."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def set_stage(self, stage: str | None) -> None:
        """Set current stage context (None to clear)."""
        self.current_stage = stage

    def event(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        level: str = "INFO",
        stage: str | None = None,
        pair: str | None = None,
    ) -> None:
        """Write structured event to log.

        Parameters
        ----------
        event_type : str
            Event type identifier (e.g., "stage_started").
        data : dict[str, Any] | None, optional
            Event-specific data payload.
        level : str, optional
            Log level ("DEBUG", "INFO", "WARN", "ERROR").
        stage : str | None, optional
            Stage identifier, uses current_stage if not provided.
        pair : str | None, optional
            Pair identifier if event is pair-specific.

        Raises
        ------
        ValueError
            If *level* is not a known log level.
        """
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level!r}. Valid levels: {', '.join(LOG_LEVELS)}")

        log_event = LogEvent(
            ts=get_iso_timestamp(),
            run_id=self.run_id,
            level=level,
            event=event_type,
            data=data if data is not None else {},
            stage=stage if stage is not None else self.current_stage,
            pair=pair,
            trace_id=self.trace_id,
        )

        self._write_event(log_event)

    def _write_event(self, event: LogEvent) -> None:
        json.dump(asdict(event), self._file, ensure_ascii=False, separators=(",", ":"))
        self._file.write("\n")
        self._file.flush()

    def run_started(self, command: list[str], parameters: dict[str, Any]) -> None:
        """Log run_started event."""
        self.event("run_started", data={"command": command, "parameters": parameters})

    def run_finished(
        self,
        status: str,
        duration_seconds: float,
        pairs_evaluated: int | None = None,
    ) -> None:
        """Log run_finished event.

        Parameters
        ----------
        status : str
            Run status ("success", "failed", "partial").
        duration_seconds : float
            Total execution time in seconds.
        pairs_evaluated : int | None, optional
            Candidate pairs evaluated by the run.
        """
        data: dict[str, Any] = {"status": status, "duration_seconds": duration_seconds}
        if pairs_evaluated is not None:
            data["pairs_evaluated"] = pairs_evaluated

        self.event("run_finished", data=data)

    def stage_started(self, stage: str, expected_items: int | None = None) -> None:
        """Log stage_started event and make *stage* the current stage."""
        self.set_stage(stage)

        data: dict[str, Any] = {}
        if expected_items is not None:
            data["expected_items"] = expected_items

        self.event("stage_started", data=data, stage=stage)

    def stage_finished(
        self,
        stage: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Log stage_finished event.

        Parameters
        ----------
        stage : str
            Stage identifier.
        duration_seconds : float
            Stage execution time in seconds.
        counters : dict[str, int] | None, optional
            Stage-specific counters.
        """
        data: dict[str, Any] = {"duration_seconds": duration_seconds}
        if counters:
            data["counters"] = counters

        self.event("stage_finished", data=data, stage=stage)

    def pair_flagged(
        self,
        pair: str,
        reason_code: str,
        detail: str | None = None,
        stage: str | None = None,
    ) -> None:
        """Log a non-fatal evaluation warning for one candidate pair.

        Parameters
        ----------
        pair : str
            Pair identifier (``left_id|right_id``).
        reason_code : str
            Warning code (e.g., "missing_field").
        detail : str | None, optional
            Free-text explanation.
        stage : str | None, optional
            Stage identifier.
        """
        data: dict[str, Any] = {"reason_code": reason_code}
        if detail is not None:
            data["detail"] = detail
        self.event("pair_flagged", data=data, level="WARN", stage=stage, pair=pair)

    def artifact_written(
        self,
        path: str,
        sha256: str,
        stage: str | None = None,
        bytes_written: int | None = None,
        record_count: int | None = None,
    ) -> None:
        """Log artifact_written event."""
        data: dict[str, Any] = {"path": path, "sha256": sha256}
        if bytes_written is not None:
            data["bytes"] = bytes_written
        if record_count is not None:
            data["record_count"] = record_count

        self.event("artifact_written", data=data, stage=stage)

    def error(
        self,
        exception_class: str,
        message: str,
        stage: str | None = None,
        code: str | None = None,
        traceback: str | None = None,
    ) -> None:
        """Log error event.

        Parameters
        ----------
        exception_class : str
            Exception class name.
        message : str
            Error message.
        stage : str | None, optional
            Stage where error occurred.
        code : str | None, optional
            Machine-readable error code for tagged errors.
        traceback : str | None, optional
            Stack trace (only in debug mode).
        """
        data: dict[str, Any] = {"exception_class": exception_class, "message": message}
        if code is not None:
            data["code"] = code
        if traceback is not None:
            data["traceback"] = traceback

        self.event("error", data=data, stage=stage, level="ERROR")
