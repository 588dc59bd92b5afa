"""Audit logging and run manifest subsystem.

Main Components
---------------
- RunContext: High-level context manager for reconciliation runs
- AuditLogger: JSONL event logger
- ManifestWriter: Run manifest builder
"""

from trustmatch.audit.context import RunContext
from trustmatch.audit.helpers import generate_run_id
from trustmatch.audit.logger import AuditLogger
from trustmatch.audit.manifest import ManifestWriter

__all__ = [
    "RunContext",
    "AuditLogger",
    "ManifestWriter",
    "generate_run_id",
]
