"""Blocking: key derivation and cross-source candidate generation."""

from trustmatch.candidates.generator import generate_candidate_pairs
from trustmatch.candidates.keys import KEY_REGISTRY, blocking_key
from trustmatch.candidates.models import (
    BlockingAlgorithm,
    BlockingConfig,
    BlockingOptions,
    BlockingStats,
    CandidatePair,
)

__all__ = [
    "KEY_REGISTRY",
    "BlockingAlgorithm",
    "BlockingConfig",
    "BlockingOptions",
    "BlockingStats",
    "CandidatePair",
    "blocking_key",
    "generate_candidate_pairs",
]
