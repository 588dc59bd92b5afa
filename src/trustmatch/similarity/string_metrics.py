"""String similarity metrics normalised to [0, 1].

Edit-distance and Jaro kernels come from ``rapidfuzz``; set-overlap
metrics are plain set arithmetic. Every metric returns 1.0 for equal
strings and 0.0 when exactly one side is empty.
"""

from __future__ import annotations

from rapidfuzz.distance import Jaro, Levenshtein

__all__ = [
    "WINKLER_MAX_PREFIX",
    "levenshtein_similarity",
    "jaro_similarity",
    "jaro_winkler_similarity",
    "ngrams",
    "dice_sorensen_similarity",
    "ngram_similarity",
    "jaccard_similarity",
]

WINKLER_MAX_PREFIX = 4


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


def levenshtein_similarity(a: str, b: str) -> float:
    """Return ``1 - distance / max(len(a), len(b))``; both empty → 1."""
    if a == b:
        return 1.0
    longest = max(len(a), len(b))
    return _clamp(1.0 - Levenshtein.distance(a, b) / longest)


def jaro_similarity(a: str, b: str) -> float:
    """Jaro similarity (matching window ``max(len) // 2 - 1`` plus transpositions)."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return _clamp(Jaro.similarity(a, b))


def jaro_winkler_similarity(a: str, b: str, prefix_scale: float = 0.1) -> float:
    """Jaro-Winkler similarity.

    Parameters
    ----------
    a, b : str
        Strings to compare.
    prefix_scale : float, optional
        Boost per shared leading character (max 4 characters counted).

    Returns
    -------
    float
        ``jaro + prefix * prefix_scale * (1 - jaro)``.

    Notes
    -----
    The prefix boost is applied at every Jaro level, with no minimum
    Jaro threshold.
    """
    if a == b:
        return 1.0
    jaro = jaro_similarity(a, b)
    if jaro == 0.0:
        return 0.0

    prefix = 0
    for ch_a, ch_b in zip(a[:WINKLER_MAX_PREFIX], b[:WINKLER_MAX_PREFIX], strict=False):
        if ch_a != ch_b:
            break
        prefix += 1

    return _clamp(jaro + prefix * prefix_scale * (1.0 - jaro))


def ngrams(text: str, n: int) -> set[str]:
    """Character n-gram set; a string shorter than *n* is its own single gram."""
    if not text:
        return set()
    if len(text) < n:
        return {text}
    return {text[i : i + n] for i in range(len(text) - n + 1)}


def _dice(grams_a: set[str], grams_b: set[str]) -> float:
    if not grams_a or not grams_b:
        return 0.0
    return _clamp(2.0 * len(grams_a & grams_b) / (len(grams_a) + len(grams_b)))


def dice_sorensen_similarity(a: str, b: str) -> float:
    """Bigram Dice-Sørensen coefficient ``2|A∩B| / (|A|+|B|)``."""
    return ngram_similarity(a, b, 2)


def ngram_similarity(a: str, b: str, n: int = 2) -> float:
    """Dice overlap of character n-grams with a caller-chosen window."""
    if a == b:
        return 1.0
    return _dice(ngrams(a, n), ngrams(b, n))


def jaccard_similarity(a: str, b: str) -> float:
    """Token-set Jaccard coefficient ``|A∩B| / |A∪B|`` over whitespace tokens."""
    if a == b:
        return 1.0
    tokens_a = set(a.split())
    tokens_b = set(b.split())
    if not tokens_a or not tokens_b:
        return 0.0
    return _clamp(len(tokens_a & tokens_b) / len(tokens_a | tokens_b))
