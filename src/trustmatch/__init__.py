"""Explainable entity resolution and reconciliation across record sources.

This package provides:
- Models (trustmatch.models): record, field and schema types
- Preprocessing (trustmatch.preprocess): DACH-aware value normalization
- Similarity (trustmatch.similarity): string metrics and phonetic codecs
- Candidates (trustmatch.candidates): blocking and cross-source pairs
- Matching (trustmatch.matching): weighted, thresholded field rules
- Scoring (trustmatch.scoring): 0-100 confidence over rule verdicts
- Engine (trustmatch.engine): orchestration, reports and async service
- Connectors (trustmatch.connectors): record sources and query filters
- Audit (trustmatch.audit): logging and traceability
- CLI (trustmatch.cli): command-line interface
- Public API (trustmatch.api): high-level convenience functions
"""

__version__ = "0.4.0"
__license__ = "MIT"

from trustmatch.api import load_records, reconcile_files, write_report
from trustmatch.concurrency import ConcurrencyGate
from trustmatch.engine import (
    ReconciliationReport,
    RunConfig,
    load_run_config,
    reconcile,
    reconcile_sources,
)
from trustmatch.errors import (
    ConnectorError,
    ReconciliationError,
    TrustMatchError,
    to_actionable_message,
)
from trustmatch.matching import MatchingRule
from trustmatch.telemetry import TraceContext

__all__ = [
    "__version__",
    "__license__",
    "ConcurrencyGate",
    "ConnectorError",
    "MatchingRule",
    "ReconciliationError",
    "ReconciliationReport",
    "RunConfig",
    "TraceContext",
    "TrustMatchError",
    "load_records",
    "load_run_config",
    "reconcile",
    "reconcile_files",
    "reconcile_sources",
    "to_actionable_message",
    "write_report",
]
