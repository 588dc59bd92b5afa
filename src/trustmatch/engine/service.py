"""Async service entry point: connectors in, report out.

Order of operations for one invocation:

    1. validate the configuration (no I/O on failure)
    2. wait for a permit on the concurrency gate
    3. fetch both record sets concurrently, completely
    4. run the synchronous orchestrator in a worker thread
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from trustmatch.audit.logger import AuditLogger
from trustmatch.concurrency import ConcurrencyGate
from trustmatch.connectors.base import ConnectionState, Connector, fetch_records
from trustmatch.connectors.filters import QueryFilter
from trustmatch.engine.config import RunConfig
from trustmatch.engine.report import ReconciliationReport
from trustmatch.engine.runner import ReconciliationRun
from trustmatch.errors import ReconciliationError, ReconciliationErrorCode
from trustmatch.models.records import Record, Schema
from trustmatch.telemetry import TraceContext

__all__ = ["reconcile_sources", "ensure_connected"]


def ensure_connected(left: Connector, right: Connector, trace: TraceContext | None = None) -> None:
    """Require both connectors to be connected.

    Raises
    ------
    ReconciliationError
        ``SOURCE_NOT_CONNECTED`` or ``TARGET_NOT_CONNECTED``.
    """
    if left.state is not ConnectionState.CONNECTED:
        raise ReconciliationError(
            ReconciliationErrorCode.SOURCE_NOT_CONNECTED,
            f"Source connector {left.connector_id!r} is not connected (state: {left.state})",
            context={"connector_id": left.connector_id},
            trace=trace,
        )
    if right.state is not ConnectionState.CONNECTED:
        raise ReconciliationError(
            ReconciliationErrorCode.TARGET_NOT_CONNECTED,
            f"Target connector {right.connector_id!r} is not connected (state: {right.state})",
            context={"connector_id": right.connector_id},
            trace=trace,
        )


async def _fetch_both(
    left: Connector,
    right: Connector,
    left_filter: QueryFilter | None,
    right_filter: QueryFilter | None,
    trace: TraceContext | None,
    auto_connect: bool,
) -> tuple[list[Record], list[Record]]:
    try:
        async with asyncio.TaskGroup() as group:
            left_task = group.create_task(
                fetch_records(left, left_filter, trace=trace, auto_connect=auto_connect)
            )
            right_task = group.create_task(
                fetch_records(right, right_filter, trace=trace, auto_connect=auto_connect)
            )
    except ExceptionGroup as group_error:
        # First connector failure; the sibling fetch has been cancelled
        raise group_error.exceptions[0] from None
    return left_task.result(), right_task.result()


async def reconcile_sources(
    left: Connector,
    right: Connector,
    config: RunConfig | Mapping[str, Any],
    *,
    gate: ConcurrencyGate | None = None,
    trace: TraceContext | None = None,
    logger: AuditLogger | None = None,
    left_filter: QueryFilter | None = None,
    right_filter: QueryFilter | None = None,
    auto_connect: bool = True,
    check_fields: bool = True,
) -> ReconciliationReport:
    """Reconcile the records of two connectors.

    Parameters
    ----------
    left : Connector
        Source connector.
    right : Connector
        Target connector.
    config : RunConfig | Mapping[str, Any]
        Run configuration, or its JSON-style mapping.
    gate : ConcurrencyGate | None, optional
        Admission gate; one permit is held for the whole invocation.
    trace : TraceContext | None, optional
        Trace metadata; a new one is generated if None.
    logger : AuditLogger | None, optional
        Audit logger passed to the orchestrator.
    left_filter, right_filter : QueryFilter | None, optional
        Selections passed to each connector's ``query``.
    auto_connect : bool, optional
        Connect disconnected connectors (default: True). When False,
        both must already be connected.
    check_fields : bool, optional
        Reject rules that reference fields absent from every fetched
        record (default: True).

    Returns
    -------
    ReconciliationReport
        Frozen report.

    Raises
    ------
    ReconciliationError
        Invalid configuration (before any I/O), disconnected connectors
        with ``auto_connect=False``, or a failed run.
    ConnectorError
        A connector failed to supply its records.
    asyncio.CancelledError
        If the caller is cancelled; no gate permit stays held.
    """
    if trace is None:
        trace = TraceContext.new("reconcile")

    try:
        run_config = config if isinstance(config, RunConfig) else RunConfig.from_dict(dict(config))
    except ReconciliationError as exc:
        raise exc.with_trace(trace)

    if not auto_connect:
        ensure_connected(left, right, trace)

    async def _run() -> ReconciliationReport:
        left_records, right_records = await _fetch_both(
            left, right, left_filter, right_filter, trace, auto_connect
        )
        left_schema = Schema.infer(left_records) if check_fields and left_records else None
        right_schema = Schema.infer(right_records) if check_fields and right_records else None

        run = ReconciliationRun(
            run_config,
            logger=logger,
            trace=trace,
            left_schema=left_schema,
            right_schema=right_schema,
        )
        return await asyncio.to_thread(run.execute, left_records, right_records)

    if gate is None:
        return await _run()
    async with gate.slot():
        return await _run()
