"""Similarity scoring: string metrics, phonetic codecs and composites."""

from trustmatch.similarity.engine import (
    ALGORITHM_REGISTRY,
    composite_similarity,
    prepare_value,
    similarity,
)
from trustmatch.similarity.models import (
    Aggregation,
    CompositeSimilarityResult,
    SimilarityAlgorithm,
    SimilarityConfig,
    SimilarityResult,
)
from trustmatch.similarity.phonetic import (
    cologne_phonetic,
    normalize_german_text,
    phonetic_variants,
    soundex,
)
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
    "Aggregation",
    "CompositeSimilarityResult",
    "SimilarityAlgorithm",
    "SimilarityConfig",
    "SimilarityResult",
    "similarity",
    "composite_similarity",
    "prepare_value",
    "cologne_phonetic",
    "soundex",
    "normalize_german_text",
    "phonetic_variants",
    "levenshtein_similarity",
    "jaro_similarity",
    "jaro_winkler_similarity",
    "dice_sorensen_similarity",
    "ngram_similarity",
    "jaccard_similarity",
]
