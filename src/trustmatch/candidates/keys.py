"""Blocking-key derivation.

A key is a string, or None when the record must be excluded from
blocking (missing or empty value). Key functions are looked up in
``KEY_REGISTRY``; unknown algorithms fall back to the normalised text.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from trustmatch.candidates.models import BlockingAlgorithm, BlockingOptions
from trustmatch.models.records import stringify_value
from trustmatch.preprocess import collapse_whitespace
from trustmatch.similarity.phonetic import cologne_phonetic, soundex

__all__ = ["KEY_REGISTRY", "DEFAULT_PREFIX_LENGTH", "blocking_key", "normalize_key_text"]

DEFAULT_PREFIX_LENGTH = 4


def normalize_key_text(value: Any, options: BlockingOptions) -> str:
    """Turn a field value into key text.

    Strings have whitespace collapsed and are lowercased unless
    ``options.case_sensitive``; other kinds go through
    :func:`~trustmatch.models.stringify_value`.
    """
    if isinstance(value, str):
        text = collapse_whitespace(value)
        return text if options.case_sensitive else text.lower()
    return stringify_value(value)


def _prefix_key(text: str, options: BlockingOptions) -> str:
    length = DEFAULT_PREFIX_LENGTH if options.prefix_length is None else options.prefix_length
    return text[: max(1, length)]


KEY_REGISTRY: dict[BlockingAlgorithm, Callable[[str, BlockingOptions], str]] = {
    BlockingAlgorithm.EXACT: lambda text, _opts: text,
    BlockingAlgorithm.PREFIX: _prefix_key,
    BlockingAlgorithm.COLOGNE_PHONETIC: lambda text, _opts: cologne_phonetic(text),
    BlockingAlgorithm.SOUNDEX: lambda text, _opts: soundex(text),
}


def blocking_key(
    value: Any,
    algorithm: BlockingAlgorithm | str = BlockingAlgorithm.EXACT,
    options: BlockingOptions | None = None,
) -> str | None:
    """Derive the blocking key of one field value.

    Parameters
    ----------
    value : Any
        Field value; None yields None.
    algorithm : BlockingAlgorithm | str, optional
        ``exact`` (default), ``prefix``, ``cologne_phonetic`` or ``soundex``.
    options : BlockingOptions | None, optional
        Case sensitivity, truncation and prefix length.

    Returns
    -------
    str | None
        Key, or None when the normalised text (or phonetic code) is empty.

    Notes
    -----
    ``max_length`` truncates before the algorithm runs, so a phonetic
    key is computed over the truncated text.
    """
    if value is None:
        return None
    if options is None:
        options = BlockingOptions()

    text = normalize_key_text(value, options)
    if not text:
        return None

    if options.max_length is not None and options.max_length > 0:
        text = text[: options.max_length]

    key_fn = KEY_REGISTRY.get(algorithm)  # type: ignore[call-overload]
    if key_fn is None:
        return text

    key = key_fn(text, options)
    return key or None
