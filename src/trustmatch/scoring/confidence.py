"""Weighted confidence scoring over rule verdicts."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from trustmatch.matching.models import RuleEvaluationResult

__all__ = ["ConfidenceScorer", "round_score", "MAX_CONFIDENCE"]

MAX_CONFIDENCE = 100.0


def round_score(value: float, places: int = 2) -> float:
    """Round half away from zero to *places* decimals (66.665 -> 66.67)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


class ConfidenceScorer:
    """Turn rule verdicts into a 0-100 confidence score.

    The score is the share of rule weight carried by matched rules:
    ``100 * sum(matched weights) / sum(all weights)``. Stateless; one
    instance may be shared across threads.
    """

    def calculate(self, results: Sequence[RuleEvaluationResult]) -> float:
        """Compute the confidence of one candidate pair.

        Parameters
        ----------
        results : Sequence[RuleEvaluationResult]
            Verdicts of every rule on the pair.

        Returns
        -------
        float
            Score in [0, 100], two decimals. 0 when *results* is empty or
            the total weight is 0.
        """
        total = sum(r.weight for r in results)
        if not results or total <= 0:
            return 0.0

        matched = sum(r.weight for r in results if r.matched)
        score = MAX_CONFIDENCE * matched / total
        return round_score(min(MAX_CONFIDENCE, max(0.0, score)))

    def calculate_average(self, scores: Iterable[float]) -> float:
        """Arithmetic mean of *scores*, two decimals; 0 for no scores."""
        values = list(scores)
        if not values:
            return 0.0
        return round_score(sum(values) / len(values))

    def meets_threshold(self, score: float, minimum: float) -> bool:
        """Whether *score* reaches *minimum* (inclusive)."""
        return score >= minimum
