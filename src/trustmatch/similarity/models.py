"""Data models for similarity scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

__all__ = [
    "SimilarityAlgorithm",
    "Aggregation",
    "SimilarityConfig",
    "SimilarityResult",
    "CompositeSimilarityResult",
    "MAX_PREFIX_SCALE",
]

MAX_PREFIX_SCALE = 0.25


class SimilarityAlgorithm(StrEnum):
    """Similarity algorithms.

    ``COMPOSITE`` is never computed directly; it labels results of
    :func:`trustmatch.similarity.composite_similarity`.
    """

    LEVENSHTEIN = "levenshtein"
    JARO = "jaro"
    JARO_WINKLER = "jaro_winkler"
    DICE_SORENSEN = "dice_sorensen"
    JACCARD = "jaccard"
    NGRAM = "ngram"
    SOUNDEX = "soundex"
    COLOGNE_PHONETIC = "cologne_phonetic"
    COMPOSITE = "composite"


class Aggregation(StrEnum):
    """How composite similarity combines component scores."""

    AVERAGE = "average"
    WEIGHTED = "weighted"
    MAX = "max"
    MIN = "min"


@dataclass(frozen=True, slots=True)
class SimilarityConfig:
    """How to compare two values.

    Attributes
    ----------
    algorithm : SimilarityAlgorithm | str
        Algorithm name. Unknown names degrade to exact comparison.
    ngram_size : int
        Window size for ``ngram`` (default: 2).
    normalize : bool
        Trim, spell out umlauts and strip punctuation before comparing.
    case_sensitive : bool
        When False, both values are lowercased before comparing.
    prefix_scale : float
        Winkler prefix boost factor, at most 0.25 (default: 0.1).
    """

    algorithm: SimilarityAlgorithm | str = SimilarityAlgorithm.JARO_WINKLER
    ngram_size: int = 2
    normalize: bool = False
    case_sensitive: bool = True
    prefix_scale: float = 0.1

    def __post_init__(self) -> None:
        """Validate numeric options."""
        if self.ngram_size < 1:
            raise ValueError(f"ngram_size must be >= 1, got {self.ngram_size}")
        if not 0.0 <= self.prefix_scale <= MAX_PREFIX_SCALE:
            raise ValueError(
                f"prefix_scale must be in [0, {MAX_PREFIX_SCALE}], got {self.prefix_scale}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimilarityConfig:
        """Build from a JSON-style mapping."""
        algorithm = data.get("algorithm", SimilarityAlgorithm.JARO_WINKLER)
        if algorithm in SimilarityAlgorithm._value2member_map_:
            algorithm = SimilarityAlgorithm(algorithm)
        return cls(
            algorithm=algorithm,
            ngram_size=int(data.get("ngram_size", 2)),
            normalize=bool(data.get("normalize", False)),
            case_sensitive=bool(data.get("case_sensitive", True)),
            prefix_scale=float(data.get("prefix_scale", 0.1)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "algorithm": str(self.algorithm),
            "ngram_size": self.ngram_size,
            "normalize": self.normalize,
            "case_sensitive": self.case_sensitive,
            "prefix_scale": self.prefix_scale,
        }


@dataclass(frozen=True, slots=True)
class SimilarityResult:
    """Score of one algorithm on one value pair.

    Attributes
    ----------
    score : float
        Similarity in [0, 1]; 1 means identical.
    algorithm : str
        Algorithm that produced the score.
    details : tuple[str, ...]
        Explanations and degradation warnings.
    """

    score: float
    algorithm: str
    details: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"score": self.score, "algorithm": self.algorithm, "details": list(self.details)}


@dataclass(frozen=True, slots=True)
class CompositeSimilarityResult:
    """Aggregate of several component similarity results.

    Attributes
    ----------
    score : float
        Aggregated similarity in [0, 1].
    components : tuple[SimilarityResult, ...]
        Component results in configuration order.
    aggregation : Aggregation
        Aggregation used.
    weights : tuple[float, ...] | None
        Component weights for ``weighted`` aggregation.
    """

    score: float
    components: tuple[SimilarityResult, ...]
    aggregation: Aggregation
    weights: tuple[float, ...] | None = None

    @property
    def algorithm(self) -> str:
        return SimilarityAlgorithm.COMPOSITE.value

    @property
    def details(self) -> tuple[str, ...]:
        """Component summaries followed by their own details."""
        summary = tuple(f"{c.algorithm}: {c.score:.3f}" for c in self.components)
        nested = tuple(d for c in self.components for d in c.details)
        return summary + nested

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "algorithm": self.algorithm,
            "aggregation": str(self.aggregation),
            "weights": list(self.weights) if self.weights is not None else None,
            "components": [c.to_dict() for c in self.components],
        }
