"""Reconciliation engine.

This package provides the run configuration, the synchronous
orchestrator, the report types and the async service entry point.
"""

from trustmatch.engine.config import RunConfig, load_run_config
from trustmatch.engine.report import (
    Classification,
    Pair,
    ReconciliationReport,
    ReportSummary,
    UnmatchedReason,
    UnmatchedRecord,
)
from trustmatch.engine.runner import ReconciliationRun, RunState, reconcile
from trustmatch.engine.service import reconcile_sources

__all__ = [
    "RunConfig",
    "load_run_config",
    "Classification",
    "Pair",
    "ReconciliationReport",
    "ReportSummary",
    "UnmatchedReason",
    "UnmatchedRecord",
    "ReconciliationRun",
    "RunState",
    "reconcile",
    "reconcile_sources",
]
