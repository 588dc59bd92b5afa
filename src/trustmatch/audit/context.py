"""Run context manager for audit logging and manifest tracking."""

import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from trustmatch.audit.helpers import (
    generate_run_id,
    get_dependency_versions,
    get_git_sha,
    get_package_version,
    get_platform_info,
    get_python_version,
)
from trustmatch.audit.logger import AuditLogger
from trustmatch.audit.manifest import ManifestWriter
from trustmatch.audit.models import (
    CommandInfo,
    EnvironmentInfo,
    ErrorInfo,
    SourceInfo,
    StageInfo,
)
from trustmatch.errors import TrustMatchError
from trustmatch.telemetry import TraceContext
from trustmatch.utils import calculate_file_sha256, get_file_mtime, get_iso_timestamp

__all__ = ["RunContext", "TRACKED_DEPENDENCIES"]

TRACKED_DEPENDENCIES = ["click", "jsonschema", "rapidfuzz"]


class RunContext:
    """Lifecycle of one audited reconciliation run.

    Couples an :class:`AuditLogger` with a :class:`ManifestWriter` and
    tracks stage timing so callers only report stage boundaries.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    output_dir : Path
        Output directory for all artifacts.
    trace : TraceContext
        Trace metadata shared with reports and errors.
    audit_logger : AuditLogger
        Structured event logger.
    manifest_writer : ManifestWriter
        Manifest builder and writer.
    start_time : datetime
        Run start timestamp.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        trace: TraceContext,
        audit_logger: AuditLogger,
        manifest_writer: ManifestWriter,
    ) -> None:
        self.run_id = run_id
        self.output_dir = output_dir
        self.trace = trace
        self.audit_logger = audit_logger
        self.manifest_writer = manifest_writer
        self.start_time = datetime.now(UTC)
        self.pairs_evaluated: int | None = None
        self._stage_start_times: dict[str, datetime] = {}
        self._finished = False

    @classmethod
    def start(
        cls,
        output_dir: Path,
        parameters: dict[str, Any],
        command_argv: list[str] | None = None,
        trace: TraceContext | None = None,
    ) -> "RunContext":
        """Start a new run context.

        Creates the output directory structure, opens ``events.jsonl``
        and prepares ``run.json``.

        Parameters
        ----------
        output_dir : Path
            Output directory for run artifacts.
        parameters : dict[str, Any]
            Configuration parameters for run.
        command_argv : list[str] | None, optional
            Command-line arguments, uses sys.argv if None.
        trace : TraceContext | None, optional
            Trace context; a new one is generated if None.

        Returns
        -------
        RunContext
            Initialized run context.
        """
        run_id = generate_run_id()
        if trace is None:
            trace = TraceContext.new("reconcile")

        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "reports").mkdir(exist_ok=True)

        command = CommandInfo(
            argv=list(command_argv or sys.argv),
            cwd=Path.cwd().name or None,
        )

        git_sha = get_git_sha()
        package_version = get_package_version()
        environment = EnvironmentInfo(
            python_version=get_python_version(),
            platform=get_platform_info(),
            package_version=f"{package_version}+git.{git_sha}" if git_sha else package_version,
            dependencies=get_dependency_versions(TRACKED_DEPENDENCIES),
        )

        audit_logger = AuditLogger(
            run_id=run_id,
            log_path=output_dir / "events.jsonl",
            trace_id=trace.trace_id,
        )

        manifest_writer = ManifestWriter(
            run_id=run_id,
            output_dir=output_dir,
            command=command,
            environment=environment,
            parameters=parameters,
            trace_id=trace.trace_id,
        )

        audit_logger.run_started(command=command.argv, parameters=parameters)

        return cls(
            run_id=run_id,
            output_dir=output_dir,
            trace=trace,
            audit_logger=audit_logger,
            manifest_writer=manifest_writer,
        )

    def add_source(
        self,
        side: str,
        connector_id: str,
        records: int,
        path: Path | None = None,
    ) -> None:
        """Record one input side; file sources are hashed."""
        source = SourceInfo(side=side, connector_id=connector_id, records=records)
        if path is not None and path.is_file():
            source.sha256 = calculate_file_sha256(path)
            source.bytes = path.stat().st_size
            source.mtime = get_file_mtime(path)
        self.manifest_writer.add_source(source)

    def start_stage(self, stage_name: str, expected_items: int | None = None) -> None:
        """Start a run stage."""
        self._stage_start_times[stage_name] = datetime.now(UTC)
        self.manifest_writer.add_stage(StageInfo(name=stage_name, started_at=get_iso_timestamp()))
        self.audit_logger.stage_started(stage=stage_name, expected_items=expected_items)

    def finish_stage(self, stage_name: str, counters: dict[str, int] | None = None) -> None:
        """Finish a run stage.

        Parameters
        ----------
        stage_name : str
            Stage identifier.
        counters : dict[str, int] | None, optional
            Final counters for stage.

        Raises
        ------
        ValueError
            If stage was not started.
        """
        start_time = self._stage_start_times.pop(stage_name, None)
        if start_time is None:
            raise ValueError(f"Stage not started: {stage_name}")

        duration = (datetime.now(UTC) - start_time).total_seconds()

        self.manifest_writer.finish_stage(
            stage_name=stage_name,
            finished_at=get_iso_timestamp(),
            duration_seconds=duration,
        )
        if counters:
            self.manifest_writer.update_stage_counters(stage_name=stage_name, counters=counters)

        self.audit_logger.stage_finished(
            stage=stage_name,
            duration_seconds=duration,
            counters=counters,
        )

    def write_artifact(
        self,
        relative_path: str,
        content: str,
        record_count: int | None = None,
    ) -> Path:
        """Write a text artifact under ``output_dir`` and register its hash.

        Returns
        -------
        Path
            Absolute path of the written artifact.
        """
        path = self.output_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

        artifact = self.manifest_writer.register_artifact(path, record_count=record_count)
        self.audit_logger.artifact_written(
            path=artifact.path,
            sha256=artifact.sha256,
            bytes_written=artifact.bytes,
            record_count=record_count,
        )
        return path

    def record_error(
        self,
        exception: BaseException,
        stage: str | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Record an error in logs and manifest.

        Parameters
        ----------
        exception : BaseException
            Exception that occurred.
        stage : str | None, optional
            Stage where error occurred.
        include_traceback : bool, optional
            Whether to include stack trace, by default False.
        """
        exception_class = type(exception).__name__
        code = str(exception.code) if isinstance(exception, TrustMatchError) else None
        message = exception.message if isinstance(exception, TrustMatchError) else str(exception)

        tb = None
        if include_traceback:
            tb = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        self.manifest_writer.add_error(
            ErrorInfo(
                timestamp=get_iso_timestamp(),
                exception_class=exception_class,
                message=message,
                code=code,
                stage=stage,
                traceback=tb,
            )
        )
        self.audit_logger.error(
            exception_class=exception_class,
            message=message,
            stage=stage,
            code=code,
            traceback=tb,
        )

    def finish(self, status: str = "success") -> None:
        """Finish the run and write the final manifest.

        Closes the audit logger before hashing ``events.jsonl`` so the
        recorded digest matches the file on disk. Calling twice is a no-op.
        """
        if self._finished:
            return
        self._finished = True

        duration = (datetime.now(UTC) - self.start_time).total_seconds()

        self.audit_logger.run_finished(
            status=status,
            duration_seconds=duration,
            pairs_evaluated=self.pairs_evaluated,
        )
        self.audit_logger.close()

        self.manifest_writer.compute_output_artifacts()
        self.manifest_writer.finish(
            status=status,
            finished_at=get_iso_timestamp(),
            duration_seconds=duration,
        )

    def __enter__(self) -> "RunContext":
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager, recording errors if present."""
        if exc_type is not None:
            self.record_error(exc_val, include_traceback=True)
            self.finish(status="failed")
        else:
            self.finish(status="success")
