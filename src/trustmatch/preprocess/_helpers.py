"""Compiled patterns and lookup tables for preprocessing steps."""

import re
import unicodedata

# Pre-compiled regex patterns
WHITESPACE_RE = re.compile(r"\s+")
PUNCT_RE = re.compile(r"[^\w\s]|_")
PHONE_TRUNK_RE = re.compile(r"\(0\)")
PHONE_SEPARATOR_RE = re.compile(r"[\s\-/.()]")
VAT_SEPARATOR_RE = re.compile(r"[\s\-/.]")
VAT_SUFFIX_RE = re.compile(r"(?:MWST|TVA|IVA)$")
UMLAUT_DIGRAPH_RE = re.compile(r"(?<![aeiouqAEIOUQ])([AaOoUu])[eE]")

# Country calling codes rewritten to the domestic trunk prefix "0"
DACH_CALLING_CODES = ("423", "43", "49", "41")

# VAT prefixes: EU member states plus CH/LI
VAT_COUNTRY_PREFIXES = frozenset(
    {
        "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "EL", "ES", "FI", "FR",
        "GB", "HR", "HU", "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT",
        "RO", "SE", "SI", "SK", "XI", "CH", "LI",
    }
)  # fmt: skip

UMLAUT_TO_DIGRAPH = {
    "ä": "ae",
    "ö": "oe",
    "ü": "ue",
    "Ä": "Ae",
    "Ö": "Oe",
    "Ü": "Ue",
    "ß": "ss",
    "ẞ": "SS",
}

DIGRAPH_TO_UMLAUT = {
    "a": "ä",
    "o": "ö",
    "u": "ü",
    "A": "Ä",
    "O": "Ö",
    "U": "Ü",
}

# Company legal forms (DACH first, then common international forms).
# Each entry is a regex fragment; dots are optional where usage varies.
LEGAL_FORM_PATTERNS: tuple[str, ...] = (
    r"GmbH\s*&\s*Co\.?\s*KG(?:aA)?",
    r"AG\s*&\s*Co\.?\s*KG(?:aA)?",
    r"UG\s*\(haftungsbeschr[aä]nkt\)",
    r"Ges\.?\s*m\.?\s*b\.?\s*H\.?",
    r"gGmbH",
    r"GmbH",
    r"mbH",
    r"KGaA",
    r"OHG",
    r"KEG",
    r"e\.\s*U\.",
    r"e\.\s*V\.",
    r"e\.\s*K\.",
    r"eGen",
    r"eG",
    r"UG",
    r"AG",
    r"KG",
    r"OG",
    r"SE",
    r"S\.?\s*[aà]\.?\s*r\.?\s*l\.?",
    r"S\.?A\.?",
    r"Ltd\.?",
    r"Limited",
    r"LLC",
    r"LLP",
    r"PLC",
    r"Inc\.?",
    r"Corp\.?",
    r"B\.?V\.?",
    r"N\.?V\.?",
)

LEGAL_FORM_RE = re.compile(
    r"(?<!\w)(?:" + "|".join(LEGAL_FORM_PATTERNS) + r")(?!\w)",
    re.IGNORECASE,
)

LEGAL_FORM_TRIM_CHARS = " ,;&-"


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def strip_accents(text: str) -> str:
    """Remove diacritical marks for cross-locale matching.

    Parameters
    ----------
    text : str
        Input text with potential diacritics.

    Returns
    -------
    str
        Text with combining marks removed.
    """
    nfd = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in nfd if not unicodedata.combining(ch))


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim."""
    return WHITESPACE_RE.sub(" ", text).strip()
