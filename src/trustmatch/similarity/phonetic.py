"""Phonetic codecs tuned for German, Austrian and Swiss names.

Cologne phonetics (Kölner Phonetik) maps German spelling variants to a
digit string; ``Meyer``/``Maier``/``Mayr`` all encode to ``"67"`` and
``Müller``/``Mueller`` to ``"657"``. American Soundex is included for
English-language sources.

Both codecs are total: any input, including the empty string, yields a
defined (possibly empty) code.
"""

from __future__ import annotations

from trustmatch.preprocess._helpers import UMLAUT_TO_DIGRAPH, WHITESPACE_RE, strip_accents

__all__ = [
    "normalize_german_text",
    "cologne_phonetic",
    "soundex",
    "phonetic_variants",
]


# ============================================================================
# Cologne phonetics
# ============================================================================

_COLOGNE_SIMPLE = {
    **dict.fromkeys("aeijouy", "0"),
    "b": "1",
    **dict.fromkeys("fvw", "3"),
    **dict.fromkeys("gkq", "4"),
    "l": "5",
    **dict.fromkeys("mn", "6"),
    "r": "7",
    **dict.fromkeys("sz", "8"),
}

# C at word start before these letters is hard (4), otherwise soft (8)
_C_INITIAL_HARD = frozenset("ahkloqrux")
# C elsewhere before these letters is hard, unless preceded by S or Z
_C_INNER_HARD = frozenset("ahkoqux")


def normalize_german_text(text: str) -> str:
    """Lowercase, spell out umlauts (ä → ae, ß → ss), strip other diacritics."""
    lowered = text.lower()
    spelled = "".join(UMLAUT_TO_DIGRAPH.get(ch, ch) for ch in lowered)
    return WHITESPACE_RE.sub(" ", strip_accents(spelled)).strip()


def _cologne_letter_code(word: str, i: int) -> str:
    """Return the raw code of ``word[i]`` given its neighbours."""
    ch = word[i]
    prev = word[i - 1] if i > 0 else ""
    nxt = word[i + 1] if i + 1 < len(word) else ""

    if ch == "h":
        return ""
    if ch == "p":
        return "3" if nxt == "h" else "1"
    if ch in "dt":
        return "8" if nxt in ("c", "s", "z") else "2"
    if ch == "c":
        if i == 0:
            return "4" if nxt in _C_INITIAL_HARD else "8"
        if prev in ("s", "z"):
            return "8"
        return "4" if nxt in _C_INNER_HARD else "8"
    if ch == "x":
        return "8" if prev in ("c", "k", "q") else "48"
    return _COLOGNE_SIMPLE.get(ch, "")


def _cologne_word(word: str) -> str:
    raw = "".join(_cologne_letter_code(word, i) for i in range(len(word)))
    if not raw:
        return ""

    collapsed = [raw[0]]
    for digit in raw[1:]:
        if digit != collapsed[-1]:
            collapsed.append(digit)

    return collapsed[0] + "".join(d for d in collapsed[1:] if d != "0")


def cologne_phonetic(text: str) -> str:
    """Encode *text* with Cologne phonetics.

    Parameters
    ----------
    text : str
        Name or phrase; umlauts and accents are folded first.

    Returns
    -------
    str
        Digit string, concatenated across words. Empty when *text*
        contains no letters.
    """
    normalized = normalize_german_text(text)
    words = ["".join(ch for ch in token if "a" <= ch <= "z") for token in normalized.split(" ")]
    return "".join(_cologne_word(word) for word in words if word)


# ============================================================================
# Soundex
# ============================================================================

_SOUNDEX_CODES = {
    **dict.fromkeys("BFPV", "1"),
    **dict.fromkeys("CGJKQSXZ", "2"),
    **dict.fromkeys("DT", "3"),
    "L": "4",
    **dict.fromkeys("MN", "5"),
    "R": "6",
}

SOUNDEX_LENGTH = 4


def soundex(text: str) -> str:
    """Encode *text* with American Soundex.

    Keeps the first letter, codes the rest into six digit classes,
    collapses adjacent equal codes (H and W do not separate them, vowels
    do), and pads or truncates to ``letter + 3 digits``.

    Parameters
    ----------
    text : str
        Input word; non-letters are ignored and accents folded.

    Returns
    -------
    str
        Four-character code such as ``"R163"``, or ``""`` when *text*
        has no ASCII letters.
    """
    letters = [ch for ch in strip_accents(text).upper() if "A" <= ch <= "Z"]
    if not letters:
        return ""

    first = letters[0]
    code = [first]
    prev = _SOUNDEX_CODES.get(first, "")

    for ch in letters[1:]:
        if len(code) == SOUNDEX_LENGTH:
            break
        digit = _SOUNDEX_CODES.get(ch)
        if digit is None:
            if ch not in "HW":
                prev = ""
            continue
        if digit != prev:
            code.append(digit)
        prev = digit

    return "".join(code).ljust(SOUNDEX_LENGTH, "0")


# ============================================================================
# Variants
# ============================================================================


def phonetic_variants(name: str) -> list[str]:
    """Generate spelling variants of a German name for widening blocking keys.

    Returns the lowercased name, its spelled-out form (ü → ue) and its
    contracted form (ue → ü), deduplicated in that order.
    """
    lowered = name.lower()
    spelled = "".join(UMLAUT_TO_DIGRAPH.get(ch, ch) for ch in lowered)
    contracted = lowered.replace("ae", "ä").replace("oe", "ö").replace("ue", "ü")

    variants: list[str] = []
    for variant in (lowered, spelled, contracted):
        if variant not in variants:
            variants.append(variant)
    return variants
