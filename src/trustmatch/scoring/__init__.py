"""Confidence scoring.

Folds per-rule verdicts into a single, explainable 0-100 score.
"""

from trustmatch.scoring.confidence import MAX_CONFIDENCE, ConfidenceScorer, round_score

__all__ = ["ConfidenceScorer", "MAX_CONFIDENCE", "round_score"]
