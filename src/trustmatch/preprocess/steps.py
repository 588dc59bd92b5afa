"""Deterministic text preprocessing steps.

Every step is a total function ``str -> str``: malformed input passes
through unchanged rather than raising. Steps are looked up in
``STEP_REGISTRY`` and applied left to right by :func:`apply_steps`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import StrEnum
from typing import Any

from trustmatch.models.records import stringify_value
from trustmatch.preprocess._helpers import (
    DACH_CALLING_CODES,
    DIGRAPH_TO_UMLAUT,
    LEGAL_FORM_RE,
    LEGAL_FORM_TRIM_CHARS,
    PHONE_SEPARATOR_RE,
    PHONE_TRUNK_RE,
    PUNCT_RE,
    UMLAUT_DIGRAPH_RE,
    UMLAUT_TO_DIGRAPH,
    VAT_COUNTRY_PREFIXES,
    VAT_SEPARATOR_RE,
    VAT_SUFFIX_RE,
    WHITESPACE_RE,
    collapse_whitespace,
)

__all__ = [
    "PreprocessingStep",
    "STEP_REGISTRY",
    "apply_step",
    "apply_steps",
    "parse_steps",
    "lowercase",
    "uppercase",
    "trim",
    "remove_whitespace",
    "remove_punctuation",
    "normalize_umlauts",
    "expand_umlauts",
    "remove_legal_forms",
    "normalize_phone",
    "normalize_vat",
]


class PreprocessingStep(StrEnum):
    """Closed set of preprocessing steps."""

    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    TRIM = "trim"
    REMOVE_WHITESPACE = "remove_whitespace"
    REMOVE_PUNCTUATION = "remove_punctuation"
    NORMALIZE_UMLAUTS = "normalize_umlauts"
    EXPAND_UMLAUTS = "expand_umlauts"
    REMOVE_LEGAL_FORMS = "remove_legal_forms"
    NORMALIZE_PHONE = "normalize_phone"
    NORMALIZE_VAT = "normalize_vat"


# ============================================================================
# Step handlers
# ============================================================================


def lowercase(text: str) -> str:
    return text.lower()


def uppercase(text: str) -> str:
    return text.upper()


def trim(text: str) -> str:
    return text.strip()


def remove_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub("", text)


def remove_punctuation(text: str) -> str:
    """Strip every character that is neither alphanumeric nor whitespace."""
    return PUNCT_RE.sub("", text)


def normalize_umlauts(text: str) -> str:
    """Replace umlauts and sharp s with their two-letter spellings (ä → ae, ß → ss)."""
    return "".join(UMLAUT_TO_DIGRAPH.get(ch, ch) for ch in text)


def expand_umlauts(text: str) -> str:
    """Turn two-letter spellings back into umlauts (ae → ä).

    Best effort and lossy: digraphs following a vowel or ``q`` are kept
    (``Bauer``, ``Queue``), every other ``ae``/``oe``/``ue`` is folded.
    """
    return UMLAUT_DIGRAPH_RE.sub(lambda m: DIGRAPH_TO_UMLAUT[m.group(1)], text)


def remove_legal_forms(text: str) -> str:
    """Strip company legal-form tokens such as GmbH, AG, KG or Ltd.

    Parameters
    ----------
    text : str
        Company name.

    Returns
    -------
    str
        Name without legal-form tokens, whitespace collapsed and dangling
        separators (``,;&-``) trimmed from both ends.

    Examples
    --------
        >>> remove_legal_forms("Acme Handels GmbH & Co. KG")
        'Acme Handels'
    """
    stripped = LEGAL_FORM_RE.sub(" ", text)
    return collapse_whitespace(stripped).strip(LEGAL_FORM_TRIM_CHARS)


def normalize_phone(text: str) -> str:
    """Canonicalise a phone number to its domestic DACH form.

    Drops the ``(0)`` trunk marker and separators, rewrites ``+43``,
    ``0043`` (and the 49/41/423 equivalents) to a leading ``0``, and
    turns any other ``+`` prefix into ``00``.
    """
    number = PHONE_TRUNK_RE.sub("", text)
    number = PHONE_SEPARATOR_RE.sub("", number)

    international: str | None = None
    if number.startswith("+"):
        international = number[1:]
    elif number.startswith("00"):
        international = number[2:]

    if international is None:
        return number

    for code in DACH_CALLING_CODES:
        if international.startswith(code):
            return "0" + international[len(code) :]

    return "00" + international


def normalize_vat(text: str) -> str:
    """Canonicalise a VAT number: no separators, uppercase, no country prefix.

    ``"ATU 123 456 78"`` becomes ``"U12345678"`` and
    ``"CHE-123.456.789 MWST"`` becomes ``"123456789"``.
    """
    vat = VAT_SEPARATOR_RE.sub("", text).upper()
    vat = VAT_SUFFIX_RE.sub("", vat)

    if vat.startswith("CHE") and len(vat) > 3:
        return vat[3:]
    if len(vat) > 2 and vat[:2] in VAT_COUNTRY_PREFIXES:
        return vat[2:]
    return vat


# ============================================================================
# Registry and pipeline
# ============================================================================

STEP_REGISTRY: dict[PreprocessingStep, Callable[[str], str]] = {
    PreprocessingStep.LOWERCASE: lowercase,
    PreprocessingStep.UPPERCASE: uppercase,
    PreprocessingStep.TRIM: trim,
    PreprocessingStep.REMOVE_WHITESPACE: remove_whitespace,
    PreprocessingStep.REMOVE_PUNCTUATION: remove_punctuation,
    PreprocessingStep.NORMALIZE_UMLAUTS: normalize_umlauts,
    PreprocessingStep.EXPAND_UMLAUTS: expand_umlauts,
    PreprocessingStep.REMOVE_LEGAL_FORMS: remove_legal_forms,
    PreprocessingStep.NORMALIZE_PHONE: normalize_phone,
    PreprocessingStep.NORMALIZE_VAT: normalize_vat,
}


def parse_steps(names: Iterable[str | PreprocessingStep]) -> tuple[PreprocessingStep, ...]:
    """Convert step names to ``PreprocessingStep`` members.

    Raises
    ------
    ValueError
        If a name is not a known step.
    """
    steps: list[PreprocessingStep] = []
    for name in names:
        try:
            steps.append(PreprocessingStep(name))
        except ValueError:
            valid = ", ".join(s.value for s in PreprocessingStep)
            raise ValueError(
                f"Unknown preprocessing step: {name!r}. Valid steps: {valid}"
            ) from None
    return tuple(steps)


def apply_step(text: str, step: PreprocessingStep | str) -> str:
    """Apply a single step; unrecognised step names leave *text* unchanged."""
    handler = STEP_REGISTRY.get(step)  # type: ignore[call-overload]
    if handler is None:
        return text
    return handler(text)


def apply_steps(value: Any, steps: Iterable[PreprocessingStep | str]) -> str:
    """Run *value* through *steps* left to right.

    Parameters
    ----------
    value : Any
        Field value; non-strings are stringified first.
    steps : Iterable[PreprocessingStep | str]
        Ordered steps.

    Returns
    -------
    str
        Preprocessed text.
    """
    text = stringify_value(value)
    for step in steps:
        text = apply_step(text, step)
    return text
