"""Reconciliation orchestrator.

One :class:`ReconciliationRun` walks a single state machine:

    Idle -> Blocking -> Evaluating -> Scoring -> Completed

with ``Failed`` reachable from every non-terminal state. Stages:

    Blocking:   derive keys, emit left x right candidate pairs
    Evaluating: apply every matching rule to every candidate pair
    Scoring:    fold verdicts into confidence, classify, assemble report

The run is synchronous. Pair evaluation is a pure map and may be spread
over a thread pool; results keep candidate order, so the report does not
depend on the worker count.
"""

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from enum import StrEnum
from typing import Any

from trustmatch.audit.helpers import generate_run_id
from trustmatch.audit.logger import AuditLogger
from trustmatch.candidates.generator import UNKNOWN_BLOCKING_ALGORITHM, generate_candidate_pairs
from trustmatch.candidates.keys import KEY_REGISTRY
from trustmatch.candidates.models import BlockingStats, CandidatePair
from trustmatch.engine.config import RunConfig
from trustmatch.engine.report import (
    REQUIRED_RULE_FAILED,
    SUPERSEDED,
    Classification,
    Pair,
    ReconciliationReport,
    ReportSummary,
    UnmatchedReason,
    UnmatchedRecord,
)
from trustmatch.errors import ReconciliationError, ReconciliationErrorCode, TrustMatchError
from trustmatch.matching.evaluator import MatchingRuleEvaluator
from trustmatch.matching.models import RuleEvaluationResult
from trustmatch.models.records import Record, Schema, get_field, stringify_value
from trustmatch.scoring.confidence import ConfidenceScorer
from trustmatch.telemetry import TraceContext
from trustmatch.utils import get_iso_timestamp

__all__ = ["RunState", "ReconciliationRun", "reconcile", "record_id"]

_FLAGGED_PREFIXES = ("missing_field", "unknown_algorithm")


class RunState(StrEnum):
    """Lifecycle states of a reconciliation run."""

    IDLE = "idle"
    BLOCKING = "blocking"
    EVALUATING = "evaluating"
    SCORING = "scoring"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.BLOCKING, RunState.FAILED}),
    RunState.BLOCKING: frozenset({RunState.EVALUATING, RunState.FAILED}),
    RunState.EVALUATING: frozenset({RunState.SCORING, RunState.FAILED}),
    RunState.SCORING: frozenset({RunState.COMPLETED, RunState.FAILED}),
    RunState.COMPLETED: frozenset(),
    RunState.FAILED: frozenset(),
}


def record_id(record: Record, key_field: str, side: str, index: int) -> str:
    """Identifier of *record*; ``"<side>#<index>"`` when the key is missing."""
    value = get_field(record, key_field)
    text = stringify_value(value)
    return text if text else f"{side}#{index}"


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


class ReconciliationRun:
    """A single, non-reusable reconciliation run.

    Parameters
    ----------
    config : RunConfig
        Validated run configuration.
    logger : AuditLogger | None, optional
        Receives stage and per-pair warning events.
    trace : TraceContext | None, optional
        Trace metadata recorded in the report and attached to errors.
    left_schema, right_schema : Schema | None, optional
        Active schemas; rules referencing unknown fields fail the run
        before blocking starts.

    Attributes
    ----------
    state : RunState
        Current state.
    history : list[RunState]
        Every state entered, in order.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        logger: AuditLogger | None = None,
        trace: TraceContext | None = None,
        left_schema: Schema | None = None,
        right_schema: Schema | None = None,
    ) -> None:
        self.config = config
        self.logger = logger
        self.trace = trace
        self.left_schema = left_schema
        self.right_schema = right_schema
        self.run_id = logger.run_id if logger is not None else generate_run_id()
        self.state = RunState.IDLE
        self.history: list[RunState] = [RunState.IDLE]
        self.scorer = ConfidenceScorer()
        self._masked_rules = frozenset(
            rule.rule_id
            for rule in config.rules
            if trace is not None
            and (trace.is_masked(rule.left_field) or trace.is_masked(rule.target_field))
        )
        blocking = config.blocking
        self._mask_block_keys = (
            blocking is not None
            and trace is not None
            and (trace.is_masked(blocking.left_field) or trace.is_masked(blocking.target_field))
        )
        self._blocking_details: tuple[str, ...] = ()
        if blocking is not None and blocking.algorithm not in KEY_REGISTRY:
            self._blocking_details = (f"{UNKNOWN_BLOCKING_ALGORITHM}:{blocking.algorithm}",)
        self._stage_started: float | None = None

    # -- state machine -------------------------------------------------------

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid run transition: {self.state} -> {new_state}")
        self.state = new_state
        self.history.append(new_state)

    def _enter_stage(self, state: RunState, expected_items: int | None = None) -> None:
        self._transition(state)
        self._stage_started = time.perf_counter()
        if self.logger:
            self.logger.stage_started(str(state), expected_items=expected_items)

    def _leave_stage(self, counters: dict[str, int] | None = None) -> None:
        if self.logger and self._stage_started is not None:
            self.logger.stage_finished(
                str(self.state),
                duration_seconds=time.perf_counter() - self._stage_started,
                counters=counters,
            )
        self._stage_started = None

    def _fail(self, exc: BaseException) -> TrustMatchError:
        stage = str(self.state)
        if isinstance(exc, TrustMatchError):
            error = exc.with_trace(self.trace)
        else:
            error = ReconciliationError(
                ReconciliationErrorCode.RECONCILIATION_ERROR,
                f"Reconciliation failed during {stage}: {exc}",
                context={"original_error": type(exc).__name__, "stage": stage},
                trace=self.trace,
            )
        self._transition(RunState.FAILED)
        if self.logger:
            self.logger.error(
                exception_class=type(error).__name__,
                message=error.message,
                stage=stage,
                code=str(error.code),
            )
        return error

    # -- execution -----------------------------------------------------------

    def execute(self, left: Sequence[Record], right: Sequence[Record]) -> ReconciliationReport:
        """Run the state machine to completion on two record sets.

        Parameters
        ----------
        left : Sequence[Record]
            Records of the first source.
        right : Sequence[Record]
            Records of the second source.

        Returns
        -------
        ReconciliationReport
            Frozen report.

        Raises
        ------
        RuntimeError
            If the run was already executed.
        ReconciliationError
            On invalid rules or schemas, or on an unexpected failure.
            The run ends in ``FAILED`` and no report is returned.
        """
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"Run {self.run_id} already executed (state: {self.state})")

        started_at = get_iso_timestamp()
        try:
            evaluator = MatchingRuleEvaluator(
                self.config.rules, self.left_schema, self.right_schema
            )

            self._enter_stage(RunState.BLOCKING, expected_items=len(left) + len(right))
            candidates, stats = generate_candidate_pairs(
                left,
                right,
                self.config.blocking,
                logger=self.logger,
                mask_keys=self._mask_block_keys,
            )
            self._leave_stage(stats.counters())

            self._enter_stage(RunState.EVALUATING, expected_items=len(candidates))
            left_ids = [
                record_id(r, self.config.left_key_field, "left", i) for i, r in enumerate(left)
            ]
            right_ids = [
                record_id(r, self.config.right_key_field, "right", j) for j, r in enumerate(right)
            ]
            evaluations = self._evaluate_all(evaluator, left, right, candidates)
            flagged = self._flag_warnings(candidates, evaluations, left_ids, right_ids)
            self._leave_stage({"pairs_evaluated": len(evaluations), "pairs_flagged": flagged})

            self._enter_stage(RunState.SCORING, expected_items=len(candidates))
            report = self._score(
                candidates, evaluations, left_ids, right_ids, stats, started_at
            )
            self._leave_stage(
                {
                    "matched": report.summary.matched_count,
                    "review": report.summary.review_count,
                    "unmatched": report.summary.unmatched_count,
                }
            )
        except Exception as exc:
            error = self._fail(exc)
            if error is exc:
                raise
            raise error from exc

        self._transition(RunState.COMPLETED)
        return report

    def _evaluate_all(
        self,
        evaluator: MatchingRuleEvaluator,
        left: Sequence[Record],
        right: Sequence[Record],
        candidates: list[CandidatePair],
    ) -> list[list[RuleEvaluationResult]]:
        def evaluate(pair: CandidatePair) -> list[RuleEvaluationResult]:
            return evaluator.evaluate(left[pair.left_index], right[pair.right_index])

        if self.config.max_workers > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                return list(pool.map(evaluate, candidates))
        return [evaluate(pair) for pair in candidates]

    def _flag_warnings(
        self,
        candidates: list[CandidatePair],
        evaluations: list[list[RuleEvaluationResult]],
        left_ids: list[str],
        right_ids: list[str],
    ) -> int:
        flagged = 0
        for pair, results in zip(candidates, evaluations, strict=True):
            warnings = [
                d for r in results for d in r.details if d.startswith(_FLAGGED_PREFIXES)
            ]
            if not warnings:
                continue
            flagged += 1
            if self.logger:
                pair_id = f"{left_ids[pair.left_index]}|{right_ids[pair.right_index]}"
                for detail in warnings:
                    self.logger.pair_flagged(
                        pair_id,
                        reason_code=detail.split(":", 1)[0],
                        detail=detail,
                        stage=str(RunState.EVALUATING),
                    )
        return flagged

    def _classify(self, confidence: float, required_failed: bool) -> Classification:
        if required_failed:
            return Classification.UNMATCHED
        if self.scorer.meets_threshold(confidence, self.config.match_threshold):
            return Classification.MATCHED
        if not self.scorer.meets_threshold(confidence, self.config.review_threshold):
            return Classification.UNMATCHED
        return Classification.REVIEW

    def _mask(self, result: RuleEvaluationResult) -> RuleEvaluationResult:
        """Drop value-bearing details of rules that read a masked field."""
        if result.rule_id not in self._masked_rules:
            return result
        kept = tuple(d for d in result.details if d.startswith(_FLAGGED_PREFIXES))
        return replace(result, details=kept)

    def _score(
        self,
        candidates: list[CandidatePair],
        evaluations: list[list[RuleEvaluationResult]],
        left_ids: list[str],
        right_ids: list[str],
        stats: BlockingStats,
        started_at: str,
    ) -> ReconciliationReport:
        # (left index, right index, pair)
        scored: list[tuple[int, int, Pair]] = []
        for candidate, results in zip(candidates, evaluations, strict=True):
            confidence = self.scorer.calculate(results)
            failed_required = [r.rule_id for r in results if r.required and not r.matched]
            details = self._blocking_details + tuple(
                f"{REQUIRED_RULE_FAILED}:{rule_id}" for rule_id in failed_required
            )
            pair = Pair(
                left_id=left_ids[candidate.left_index],
                right_id=right_ids[candidate.right_index],
                confidence=confidence,
                rule_results=tuple(self._mask(r) for r in results),
                classification=self._classify(confidence, bool(failed_required)),
                details=details,
                block_key=candidate.block_key,
            )
            scored.append((candidate.left_index, candidate.right_index, pair))

        scored.sort(key=lambda item: item[2].sort_key())

        if self.config.one_to_one:
            scored = _assign_one_to_one(scored)

        buckets: dict[Classification, list[Pair]] = {c: [] for c in Classification}
        for _, _, pair in scored:
            buckets[pair.classification].append(pair)

        matched_left = {i for i, _, p in scored if p.classification is Classification.MATCHED}
        matched_right = {j for _, j, p in scored if p.classification is Classification.MATCHED}
        candidate_left = {c.left_index for c in candidates}
        candidate_right = {c.right_index for c in candidates}

        summary = ReportSummary(
            total_pairs_evaluated=len(scored),
            total_left_records=len(left_ids),
            total_right_records=len(right_ids),
            matched_count=len(buckets[Classification.MATCHED]),
            review_count=len(buckets[Classification.REVIEW]),
            unmatched_count=len(buckets[Classification.UNMATCHED]),
            candidate_pairs=stats.candidate_pairs,
            average_confidence=self.scorer.calculate_average(p.confidence for _, _, p in scored),
        )

        metadata: dict[str, Any] = {
            "run_id": self.run_id,
            "started_at": started_at,
            "finished_at": get_iso_timestamp(),
            "trace": self.trace.to_dict() if self.trace is not None else None,
            "match_threshold": self.config.match_threshold,
            "review_threshold": self.config.review_threshold,
            "one_to_one": self.config.one_to_one,
            "blocking": stats.to_dict(),
        }

        return ReconciliationReport(
            matched=tuple(buckets[Classification.MATCHED]),
            review=tuple(buckets[Classification.REVIEW]),
            unmatched=tuple(buckets[Classification.UNMATCHED]),
            summary=summary,
            unmatched_left=_unmatched_records("left", left_ids, candidate_left, matched_left),
            unmatched_right=_unmatched_records("right", right_ids, candidate_right, matched_right),
            metadata=metadata,
        )


def _assign_one_to_one(scored: list[tuple[int, int, Pair]]) -> list[tuple[int, int, Pair]]:
    """Greedy best-first assignment over already sorted matched pairs."""
    claimed_left: set[int] = set()
    claimed_right: set[int] = set()
    assigned: list[tuple[int, int, Pair]] = []

    for i, j, pair in scored:
        if pair.classification is not Classification.MATCHED:
            assigned.append((i, j, pair))
            continue
        if i in claimed_left or j in claimed_right:
            demoted = Pair(
                left_id=pair.left_id,
                right_id=pair.right_id,
                confidence=pair.confidence,
                rule_results=pair.rule_results,
                classification=Classification.UNMATCHED,
                details=pair.details + (SUPERSEDED,),
                block_key=pair.block_key,
            )
            assigned.append((i, j, demoted))
            continue
        claimed_left.add(i)
        claimed_right.add(j)
        assigned.append((i, j, pair))

    return assigned


def _unmatched_records(
    side: str,
    ids: list[str],
    with_candidates: set[int],
    matched: set[int],
) -> tuple[UnmatchedRecord, ...]:
    unmatched = []
    for index, rid in enumerate(ids):
        if index in matched:
            continue
        reason = (
            UnmatchedReason.NO_MATCH if index in with_candidates else UnmatchedReason.NO_CANDIDATE
        )
        unmatched.append(UnmatchedRecord(side=side, record_id=rid, reason=reason))
    return tuple(unmatched)


def reconcile(
    left: Sequence[Record],
    right: Sequence[Record],
    config: RunConfig,
    *,
    logger: AuditLogger | None = None,
    trace: TraceContext | None = None,
    left_schema: Schema | None = None,
    right_schema: Schema | None = None,
) -> ReconciliationReport:
    """Reconcile two record sets in one run.

    Parameters
    ----------
    left : Sequence[Record]
        Records of the first source.
    right : Sequence[Record]
        Records of the second source.
    config : RunConfig
        Validated run configuration.
    logger : AuditLogger | None, optional
        Audit logger for stage and warning events.
    trace : TraceContext | None, optional
        Trace metadata.
    left_schema, right_schema : Schema | None, optional
        Active schemas checked against the rules before blocking.

    Returns
    -------
    ReconciliationReport
        Frozen report.

    Examples
    --------
    >>> from trustmatch.matching import MatchingRule
    >>> config = RunConfig(rules=(MatchingRule("name", "name"),))
    >>> report = reconcile([{"id": 1, "name": "Acme"}], [{"id": "A", "name": "Acme"}], config)
    >>> report.summary.matched_count
    1
    """
    run = ReconciliationRun(
        config,
        logger=logger,
        trace=trace,
        left_schema=left_schema,
        right_schema=right_schema,
    )
    return run.execute(left, right)
