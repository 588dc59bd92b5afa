"""Similarity dispatch and composite aggregation.

Algorithms are resolved through ``ALGORITHM_REGISTRY``. Unknown names
never abort a run: they degrade to exact comparison and say so in the
result details.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from trustmatch.errors import ReconciliationError, ReconciliationErrorCode
from trustmatch.models.records import stringify_value
from trustmatch.preprocess import PreprocessingStep, apply_steps, collapse_whitespace
from trustmatch.similarity.models import (
    Aggregation,
    CompositeSimilarityResult,
    SimilarityAlgorithm,
    SimilarityConfig,
    SimilarityResult,
)
from trustmatch.similarity.phonetic import cologne_phonetic, soundex
from trustmatch.similarity.string_metrics import (
    dice_sorensen_similarity,
    jaccard_similarity,
    jaro_similarity,
    jaro_winkler_similarity,
    levenshtein_similarity,
    ngram_similarity,
)

__all__ = [
    "ALGORITHM_REGISTRY",
    "NORMALIZE_STEPS",
    "similarity",
    "composite_similarity",
    "prepare_value",
]

# Steps applied when ``SimilarityConfig.normalize`` is set
NORMALIZE_STEPS: tuple[PreprocessingStep, ...] = (
    PreprocessingStep.TRIM,
    PreprocessingStep.NORMALIZE_UMLAUTS,
    PreprocessingStep.REMOVE_PUNCTUATION,
)

Scorer = Callable[[str, str, SimilarityConfig], tuple[float, tuple[str, ...]]]


def _phonetic_scorer(encode: Callable[[str], str]) -> Scorer:
    def _score(a: str, b: str, _config: SimilarityConfig) -> tuple[float, tuple[str, ...]]:
        code_a = encode(a)
        code_b = encode(b)
        if code_a and code_a == code_b:
            return 1.0, (f"both encode to {code_a}",)
        return 0.0, (f"{a!r} -> {code_a!r}, {b!r} -> {code_b!r}",)

    return _score


ALGORITHM_REGISTRY: dict[SimilarityAlgorithm, Scorer] = {
    SimilarityAlgorithm.LEVENSHTEIN: lambda a, b, _c: (levenshtein_similarity(a, b), ()),
    SimilarityAlgorithm.JARO: lambda a, b, _c: (jaro_similarity(a, b), ()),
    SimilarityAlgorithm.JARO_WINKLER: lambda a, b, c: (
        jaro_winkler_similarity(a, b, c.prefix_scale),
        (),
    ),
    SimilarityAlgorithm.DICE_SORENSEN: lambda a, b, _c: (dice_sorensen_similarity(a, b), ()),
    SimilarityAlgorithm.JACCARD: lambda a, b, _c: (jaccard_similarity(a, b), ()),
    SimilarityAlgorithm.NGRAM: lambda a, b, c: (ngram_similarity(a, b, c.ngram_size), ()),
    SimilarityAlgorithm.SOUNDEX: _phonetic_scorer(soundex),
    SimilarityAlgorithm.COLOGNE_PHONETIC: _phonetic_scorer(cologne_phonetic),
}


def prepare_value(value: Any, config: SimilarityConfig) -> str:
    """Stringify *value* and apply the config's normalisation and case folding."""
    text = stringify_value(value)
    if config.normalize:
        text = collapse_whitespace(apply_steps(text, NORMALIZE_STEPS))
    if not config.case_sensitive:
        text = text.lower()
    return text


def similarity(a: Any, b: Any, config: SimilarityConfig | None = None) -> SimilarityResult:
    """Score two values with a single algorithm.

    Parameters
    ----------
    a, b : Any
        Values to compare; non-strings are stringified.
    config : SimilarityConfig | None, optional
        Algorithm and options. Defaults to Jaro-Winkler.

    Returns
    -------
    SimilarityResult
        Score in [0, 1] plus details.

    Raises
    ------
    ReconciliationError
        If *config* names ``composite``, which is only valid through
        :func:`composite_similarity`.
    """
    if config is None:
        config = SimilarityConfig()

    algorithm = str(config.algorithm)
    if algorithm == SimilarityAlgorithm.COMPOSITE:
        raise ReconciliationError(
            ReconciliationErrorCode.INVALID_OPTIONS,
            "'composite' is not a base algorithm; use composite_similarity()",
        )

    text_a = prepare_value(a, config)
    text_b = prepare_value(b, config)

    scorer = ALGORITHM_REGISTRY.get(algorithm)  # type: ignore[call-overload]
    if scorer is None:
        score = 1.0 if text_a == text_b else 0.0
        return SimilarityResult(
            score=score,
            algorithm=algorithm,
            details=(f"unknown_algorithm:{algorithm}; fell back to exact comparison",),
        )

    if text_a == text_b:
        return SimilarityResult(score=1.0, algorithm=algorithm)

    score, details = scorer(text_a, text_b, config)
    return SimilarityResult(score=score, algorithm=algorithm, details=details)


def _aggregate(
    scores: list[float],
    aggregation: Aggregation,
    weights: Sequence[float] | None,
) -> float:
    if aggregation is Aggregation.MAX:
        return max(scores)
    if aggregation is Aggregation.MIN:
        return min(scores)
    if aggregation is Aggregation.WEIGHTED:
        if weights is None:
            raise ReconciliationError(
                ReconciliationErrorCode.MISSING_WEIGHTS,
                "Weighted aggregation needs one weight per component",
            )
        total = sum(weights)
        if total <= 0:
            return 0.0
        return sum(s * w for s, w in zip(scores, weights, strict=True)) / total
    return sum(scores) / len(scores)


def composite_similarity(
    a: Any,
    b: Any,
    configs: Sequence[SimilarityConfig],
    aggregation: Aggregation | str = Aggregation.AVERAGE,
    weights: Sequence[float] | None = None,
) -> CompositeSimilarityResult:
    """Combine several algorithm scores into one.

    Parameters
    ----------
    a, b : Any
        Values to compare.
    configs : Sequence[SimilarityConfig]
        Component configurations (at least one).
    aggregation : Aggregation | str, optional
        ``average`` (default), ``weighted``, ``max`` or ``min``.
    weights : Sequence[float] | None, optional
        One non-negative weight per config; required for ``weighted``.

    Returns
    -------
    CompositeSimilarityResult
        Aggregated score with component results.

    Raises
    ------
    ReconciliationError
        ``EMPTY_COMPOSITE`` for an empty config list, ``MISSING_WEIGHTS``
        when weighted aggregation lacks a weight per component,
        ``INVALID_OPTIONS`` for an unknown aggregation or a negative weight.
    """
    if not configs:
        raise ReconciliationError(
            ReconciliationErrorCode.EMPTY_COMPOSITE,
            "Composite similarity requires at least one component configuration",
        )

    try:
        mode = Aggregation(aggregation)
    except ValueError:
        valid = ", ".join(m.value for m in Aggregation)
        raise ReconciliationError(
            ReconciliationErrorCode.INVALID_OPTIONS,
            f"Unknown aggregation: {aggregation!r}. Valid aggregations: {valid}",
        ) from None

    weight_tuple: tuple[float, ...] | None = None
    if weights is not None:
        weight_tuple = tuple(float(w) for w in weights)
        if any(w < 0 for w in weight_tuple):
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_OPTIONS,
                "Composite weights must be non-negative",
                context={"weights": list(weight_tuple)},
            )

    if mode is Aggregation.WEIGHTED and (weight_tuple is None or len(weight_tuple) != len(configs)):
        raise ReconciliationError(
            ReconciliationErrorCode.MISSING_WEIGHTS,
            f"Weighted aggregation needs {len(configs)} weights, "
            f"got {0 if weight_tuple is None else len(weight_tuple)}",
        )

    components = tuple(similarity(a, b, config) for config in configs)
    score = _aggregate([c.score for c in components], mode, weight_tuple)

    return CompositeSimilarityResult(
        score=max(0.0, min(1.0, score)),
        components=components,
        aggregation=mode,
        weights=weight_tuple,
    )
