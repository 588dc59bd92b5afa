"""Text preprocessing pipeline (case folding, umlauts, legal forms, phone, VAT)."""

from trustmatch.preprocess._helpers import collapse_whitespace, strip_accents
from trustmatch.preprocess.steps import (
    STEP_REGISTRY,
    PreprocessingStep,
    apply_step,
    apply_steps,
    expand_umlauts,
    normalize_phone,
    normalize_umlauts,
    normalize_vat,
    parse_steps,
    remove_legal_forms,
    remove_punctuation,
)

__all__ = [
    "PreprocessingStep",
    "STEP_REGISTRY",
    "apply_step",
    "apply_steps",
    "parse_steps",
    "collapse_whitespace",
    "strip_accents",
    "expand_umlauts",
    "normalize_phone",
    "normalize_umlauts",
    "normalize_vat",
    "remove_legal_forms",
    "remove_punctuation",
]
