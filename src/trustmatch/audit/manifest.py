"""Manifest writer for run execution metadata.

Builds ``run.json`` incrementally and writes it atomically (temp file,
fsync, rename) so readers never observe a half-written manifest.
"""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from trustmatch.audit.models import (
    ArtifactInfo,
    CommandInfo,
    EnvironmentInfo,
    ErrorInfo,
    InputsInfo,
    ManifestData,
    OutputsInfo,
    SourceInfo,
    StageInfo,
)
from trustmatch.utils import calculate_file_sha256, get_iso_timestamp

__all__ = ["ManifestWriter", "MANIFEST_VERSION"]

MANIFEST_VERSION = "1.0.0"


class ManifestWriter:
    """Atomic manifest writer with indexed stage lookup.

    Attributes
    ----------
    manifest : ManifestData
        Current manifest data being built.
    output_dir : Path
        Output directory for manifest files.
    manifest_path : Path
        Final location of ``run.json``.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        command: CommandInfo,
        environment: EnvironmentInfo,
        parameters: dict[str, Any],
        trace_id: str | None = None,
    ) -> None:
        """Initialize manifest writer.

        Parameters
        ----------
        run_id : str
            Unique run identifier.
        output_dir : Path
            Output directory for manifest.
        command : CommandInfo
            Command-line information.
        environment : EnvironmentInfo
            Execution environment.
        parameters : dict[str, Any]
            Configuration parameters.
        trace_id : str | None, optional
            Trace identifier of the invocation.
        """
        self.output_dir = output_dir
        self.manifest_path = output_dir / "run.json"

        self.manifest = ManifestData(
            manifest_version=MANIFEST_VERSION,
            run_id=run_id,
            trace_id=trace_id,
            created_at=get_iso_timestamp(),
            status="partial",
            command=command,
            environment=environment,
            inputs=InputsInfo(),
            parameters=parameters,
            stages=[],
            outputs=OutputsInfo(),
        )

        self._stage_index: dict[str, StageInfo] = {}

    def _get_stage(self, stage_name: str) -> StageInfo:
        stage = self._stage_index.get(stage_name)
        if stage is None:
            raise ValueError(f"Stage not found: {stage_name}")
        return stage

    def add_source(self, source: SourceInfo) -> None:
        """Register one side of the run."""
        self.manifest.inputs.sources.append(source)

    def set_config_fingerprint(self, sha256: str) -> None:
        """Record the digest of the run configuration."""
        self.manifest.inputs.config_sha256 = sha256

    def add_stage(self, stage: StageInfo) -> None:
        """Add stage execution information."""
        self.manifest.stages.append(stage)
        self._stage_index[stage.name] = stage

    def update_stage_counters(self, stage_name: str, counters: dict[str, int]) -> None:
        """Merge *counters* into an existing stage.

        Raises
        ------
        ValueError
            If stage not found.
        """
        self._get_stage(stage_name).counters.update(counters)

    def finish_stage(
        self,
        stage_name: str,
        finished_at: str | None = None,
        duration_seconds: float | None = None,
    ) -> None:
        """Mark stage as finished.

        Parameters
        ----------
        stage_name : str
            Name of stage to finish.
        finished_at : str | None, optional
            ISO8601 timestamp, uses current time if None.
        duration_seconds : float | None, optional
            Stage duration in seconds.

        Raises
        ------
        ValueError
            If stage not found.
        """
        stage = self._get_stage(stage_name)
        stage.finished_at = finished_at or get_iso_timestamp()
        stage.duration_seconds = duration_seconds

    def add_output_artifact(self, artifact: ArtifactInfo) -> None:
        """Add output artifact to manifest."""
        self.manifest.outputs.artifacts.append(artifact)

    def register_artifact(self, path: Path, record_count: int | None = None) -> ArtifactInfo:
        """Hash *path* and add it as an output artifact.

        Parameters
        ----------
        path : Path
            Artifact inside ``output_dir``.
        record_count : int | None, optional
            Number of records or pairs in the artifact.

        Returns
        -------
        ArtifactInfo
            Registered artifact metadata.
        """
        artifact = ArtifactInfo(
            path=path.relative_to(self.output_dir).as_posix(),
            sha256=calculate_file_sha256(path),
            bytes=path.stat().st_size,
            record_count=record_count,
        )
        self.add_output_artifact(artifact)
        return artifact

    def add_error(self, error: ErrorInfo) -> None:
        """Add error record to manifest."""
        self.manifest.errors.append(error)

    def finish(
        self,
        status: str,
        finished_at: str | None = None,
        duration_seconds: float | None = None,
    ) -> None:
        """Finalize manifest and write atomically.

        Parameters
        ----------
        status : str
            Final run status ("success", "failed", "partial").
        finished_at : str | None, optional
            ISO8601 timestamp, uses current time if None.
        duration_seconds : float | None, optional
            Total run duration in seconds.
        """
        self.manifest.status = status
        self.manifest.finished_at = finished_at or get_iso_timestamp()
        self.manifest.duration_seconds = duration_seconds

        self._write_manifest_atomic(self.manifest_path)

    def compute_output_artifacts(self) -> None:
        """Hash events.jsonl and register it as an output artifact."""
        events_path = self.output_dir / "events.jsonl"
        if events_path.exists():
            self.register_artifact(events_path)

    def _write_manifest_atomic(self, path: Path) -> None:
        temp_path = path.with_suffix(".tmp")
        manifest_dict = asdict(self.manifest)

        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(manifest_dict, f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(path)

    def to_dict(self) -> dict[str, Any]:
        """Convert manifest to dictionary."""
        return asdict(self.manifest)
