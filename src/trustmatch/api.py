"""Public API for reconciling record files.

This module provides the main public API for trustmatch, enabling:
- Loading record sets from JSON / JSON Lines files
- Writing reconciliation reports as JSON
- Running an audited reconciliation between two files
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from trustmatch.connectors.json_file import load_json_records
from trustmatch.models.records import Record

if TYPE_CHECKING:
    from trustmatch.engine.config import RunConfig
    from trustmatch.engine.report import ReconciliationReport
    from trustmatch.telemetry import TraceContext

__all__ = [
    "load_records",
    "write_report",
    "reconcile_files",
    "REPORT_PATH",
]

REPORT_PATH = "reports/report.json"


def load_records(path: str | Path, *, records_path: str | None = None) -> list[Record]:
    """Load a record set from a JSON array or JSON Lines file.

    Parameters
    ----------
    path : str | Path
        Input file; ``.jsonl``/``.ndjson`` are read line by line.
    records_path : str | None, optional
        Dotted path to the record array inside a JSON document.

    Returns
    -------
    list[Record]
        Records in file order.

    Raises
    ------
    ConnectorError
        If the file is missing, unreadable or not a list of objects.

    Examples
    --------
        >>> from trustmatch import load_records
        >>> crm = load_records("crm_export.json", records_path="data.items")
    """
    return load_json_records(Path(path), records_path)


def write_report(report: ReconciliationReport, path: str | Path) -> None:
    """Write *report* as deterministic, pretty-printed JSON."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False, sort_keys=True)
        f.write("\n")


def _resolve_config(config: RunConfig | Mapping[str, Any] | str | Path) -> RunConfig:
    from trustmatch.engine.config import RunConfig, load_run_config, validate_run_config_data

    if isinstance(config, RunConfig):
        return config
    if isinstance(config, str | Path):
        return load_run_config(Path(config))
    data = dict(config)
    validate_run_config_data(data)
    return RunConfig.from_dict(data)


def reconcile_files(
    left: str | Path,
    right: str | Path,
    config: RunConfig | Mapping[str, Any] | str | Path,
    output_dir: str | Path = "out",
    *,
    trace: TraceContext | None = None,
    check_fields: bool = True,
    command_argv: list[str] | None = None,
) -> ReconciliationReport:
    """Reconcile two record files and write an audited run directory.

    Parameters
    ----------
    left : str | Path
        Left record file (JSON array or JSON Lines).
    right : str | Path
        Right record file (JSON array or JSON Lines).
    config : RunConfig | Mapping[str, Any] | str | Path
        Run configuration object, mapping, or path to a JSON file.
    output_dir : str | Path, optional
        Run directory, by default "out".
    trace : TraceContext | None, optional
        Trace metadata; generated if None.
    check_fields : bool, optional
        Reject rules referencing fields absent from every record of a
        non-empty input, by default True.
    command_argv : list[str] | None, optional
        Command line recorded in the manifest; ``sys.argv`` if None.

    Returns
    -------
    ReconciliationReport
        Frozen report, also written to ``reports/report.json``.

    Raises
    ------
    ReconciliationError
        If the configuration is invalid (nothing is written) or the run
        fails (the manifest records the failure).
    ConnectorError
        If an input file cannot be read.

    Examples
    --------
        >>> from trustmatch import reconcile_files
        >>> report = reconcile_files("crm.json", "erp.jsonl", "config.json", "out")
        >>> print(report.summary.matched_count)

    Notes
    -----
    The run directory contains:

    - ``reports/report.json``: the report
    - ``events.jsonl``: structured audit events
    - ``run.json``: manifest with inputs, stages, artifacts and hashes
    """
    from trustmatch.audit.context import RunContext
    from trustmatch.engine.runner import reconcile
    from trustmatch.models.records import Schema
    from trustmatch.utils import calculate_json_sha256

    run_config = _resolve_config(config)
    left_path = Path(left)
    right_path = Path(right)

    with RunContext.start(
        output_dir=Path(output_dir),
        parameters=run_config.to_dict(),
        command_argv=command_argv,
        trace=trace,
    ) as ctx:
        ctx.manifest_writer.set_config_fingerprint(calculate_json_sha256(run_config.to_dict()))

        ctx.start_stage("load")
        left_records = load_json_records(left_path, connector_id=left_path.name)
        right_records = load_json_records(right_path, connector_id=right_path.name)
        ctx.add_source("left", left_path.name, len(left_records), left_path)
        ctx.add_source("right", right_path.name, len(right_records), right_path)
        ctx.finish_stage(
            "load",
            counters={"left_records": len(left_records), "right_records": len(right_records)},
        )

        ctx.start_stage("reconcile", expected_items=len(left_records) * len(right_records))
        report = reconcile(
            left_records,
            right_records,
            run_config,
            logger=ctx.audit_logger,
            trace=ctx.trace,
            left_schema=Schema.infer(left_records) if check_fields and left_records else None,
            right_schema=Schema.infer(right_records) if check_fields and right_records else None,
        )
        ctx.pairs_evaluated = report.summary.total_pairs_evaluated
        ctx.finish_stage(
            "reconcile",
            counters={
                "pairs_evaluated": report.summary.total_pairs_evaluated,
                "matched": report.summary.matched_count,
                "review": report.summary.review_count,
                "unmatched": report.summary.unmatched_count,
            },
        )

        ctx.write_artifact(
            REPORT_PATH,
            json.dumps(report.to_dict(), indent=2, ensure_ascii=False, sort_keys=True) + "\n",
            record_count=report.summary.total_pairs_evaluated,
        )

    return report
