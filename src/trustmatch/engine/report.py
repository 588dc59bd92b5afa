"""Reconciliation report types.

A report is assembled by exactly one run and handed out frozen; nothing
mutates it afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from trustmatch.matching.models import RuleEvaluationResult

__all__ = [
    "Classification",
    "UnmatchedReason",
    "Pair",
    "UnmatchedRecord",
    "ReportSummary",
    "ReconciliationReport",
    "REQUIRED_RULE_FAILED",
    "SUPERSEDED",
]

REQUIRED_RULE_FAILED = "required_rule_failed"
SUPERSEDED = "superseded_by_better_match"


class Classification(StrEnum):
    """Outcome of one candidate pair."""

    MATCHED = "matched"
    REVIEW = "review"
    UNMATCHED = "unmatched"


class UnmatchedReason(StrEnum):
    """Why a record ended up without a match.

    Attributes
    ----------
    NO_CANDIDATE : str
        The record shared no blocking key with the other side.
    NO_MATCH : str
        The record was compared but never matched.
    """

    NO_CANDIDATE = "no_candidate"
    NO_MATCH = "no_match"


@dataclass(frozen=True, slots=True)
class Pair:
    """One evaluated cross-source pair.

    Attributes
    ----------
    left_id : str
        Identifier of the left record.
    right_id : str
        Identifier of the right record.
    confidence : float
        Confidence score in [0, 100].
    rule_results : tuple[RuleEvaluationResult, ...]
        Rule verdicts in rule order.
    classification : Classification
        Final bucket.
    details : tuple[str, ...]
        Pair-level notes (required rule failures, one-to-one demotion).
    block_key : str | None
        Blocking key that produced the pair.
    """

    left_id: str
    right_id: str
    confidence: float
    rule_results: tuple[RuleEvaluationResult, ...]
    classification: Classification
    details: tuple[str, ...] = ()
    block_key: str | None = None

    @property
    def pair_id(self) -> str:
        return f"{self.left_id}|{self.right_id}"

    def sort_key(self) -> tuple[float, str, str]:
        return (-self.confidence, self.left_id, self.right_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "left_id": self.left_id,
            "right_id": self.right_id,
            "confidence": self.confidence,
            "classification": str(self.classification),
            "block_key": self.block_key,
            "details": list(self.details),
            "rule_results": [r.to_dict() for r in self.rule_results],
        }


@dataclass(frozen=True, slots=True)
class UnmatchedRecord:
    """A record of either side that has no matched partner."""

    side: str
    record_id: str
    reason: UnmatchedReason

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"side": self.side, "record_id": self.record_id, "reason": str(self.reason)}


@dataclass(frozen=True, slots=True)
class ReportSummary:
    """Aggregate counts of a run.

    Attributes
    ----------
    total_pairs_evaluated : int
        Candidate pairs that went through rule evaluation.
    total_left_records : int
        Records in the left set.
    total_right_records : int
        Records in the right set.
    matched_count : int
        Pairs classified as matched.
    review_count : int
        Pairs classified as needing review.
    unmatched_count : int
        Pairs classified as unmatched.
    candidate_pairs : int
        Pairs produced by blocking.
    average_confidence : float
        Mean confidence over evaluated pairs (0 when none).
    """

    total_pairs_evaluated: int
    total_left_records: int
    total_right_records: int
    matched_count: int
    review_count: int
    unmatched_count: int
    candidate_pairs: int = 0
    average_confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_pairs_evaluated": self.total_pairs_evaluated,
            "total_left_records": self.total_left_records,
            "total_right_records": self.total_right_records,
            "matched_count": self.matched_count,
            "review_count": self.review_count,
            "unmatched_count": self.unmatched_count,
            "candidate_pairs": self.candidate_pairs,
            "average_confidence": self.average_confidence,
        }


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """Complete, immutable outcome of one reconciliation run.

    Attributes
    ----------
    matched, review, unmatched : tuple[Pair, ...]
        Pairs per classification, sorted by (-confidence, left id, right id).
    summary : ReportSummary
        Aggregate counts.
    unmatched_left, unmatched_right : tuple[UnmatchedRecord, ...]
        Records without a matched partner, in input order.
    metadata : dict[str, Any]
        Run id, timestamps, trace context and blocking statistics.
    """

    matched: tuple[Pair, ...]
    review: tuple[Pair, ...]
    unmatched: tuple[Pair, ...]
    summary: ReportSummary
    unmatched_left: tuple[UnmatchedRecord, ...] = ()
    unmatched_right: tuple[UnmatchedRecord, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def pairs(self) -> tuple[Pair, ...]:
        """All evaluated pairs: matched, then review, then unmatched."""
        return self.matched + self.review + self.unmatched

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "summary": self.summary.to_dict(),
            "matched": [p.to_dict() for p in self.matched],
            "review": [p.to_dict() for p in self.review],
            "unmatched": [p.to_dict() for p in self.unmatched],
            "unmatched_left": [r.to_dict() for r in self.unmatched_left],
            "unmatched_right": [r.to_dict() for r in self.unmatched_right],
            "metadata": dict(self.metadata),
        }
