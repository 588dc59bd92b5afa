"""Tests for the preprocessing steps and pipeline."""

import pytest

from trustmatch.preprocess import (
    PreprocessingStep,
    apply_step,
    apply_steps,
    collapse_whitespace,
    expand_umlauts,
    normalize_phone,
    normalize_umlauts,
    normalize_vat,
    parse_steps,
    remove_legal_forms,
    remove_punctuation,
    strip_accents,
)

# ========== Simple steps ==========


@pytest.mark.unit
@pytest.mark.parametrize(
    ("step", "text", "expected"),
    [
        pytest.param("lowercase", "ACME Straße", "acme straße", id="lowercase"),
        pytest.param("uppercase", "acme", "ACME", id="uppercase"),
        pytest.param("trim", "  Acme \t", "Acme", id="trim"),
        pytest.param("remove_whitespace", "DE 123\t456", "DE123456", id="remove-whitespace"),
    ],
)
def test_simple_steps(step: str, text: str, expected: str) -> None:
    """Test case and whitespace steps."""
    assert apply_step(text, step) == expected


@pytest.mark.unit
def test_remove_punctuation_keeps_letters_digits_and_spaces() -> None:
    """Test punctuation and underscores are removed, umlauts kept."""
    assert remove_punctuation("Schmidt & Partner, KG.") == "Schmidt  Partner KG"
    assert remove_punctuation("Müller_Bau-2000!") == "MüllerBau2000"


@pytest.mark.unit
def test_collapse_whitespace_and_strip_accents() -> None:
    """Test helper normalisers used by blocking and similarity."""
    assert collapse_whitespace("  Acme \n  Handels  ") == "Acme Handels"
    assert strip_accents("Café Zürich") == "Cafe Zurich"


# ========== Umlauts ==========


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        pytest.param("Müller", "Mueller", id="lower-u"),
        pytest.param("Größe", "Groesse", id="o-and-sharp-s"),
        pytest.param("Ärger", "Aerger", id="upper-a"),
        pytest.param("Mueller", "Mueller", id="already-spelled"),
    ],
)
def test_normalize_umlauts(text: str, expected: str) -> None:
    """Test umlauts and ß are spelled out."""
    assert normalize_umlauts(text) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        pytest.param("Mueller", "Müller", id="contract"),
        pytest.param("Goethe", "Göthe", id="oe"),
        pytest.param("Bauer", "Bauer", id="after-vowel-kept"),
        pytest.param("Queue", "Queue", id="after-q-kept"),
    ],
)
def test_expand_umlauts(text: str, expected: str) -> None:
    """Test digraphs fold back to umlauts except after vowels and q."""
    assert expand_umlauts(text) == expected


# ========== Legal forms ==========


@pytest.mark.unit
@pytest.mark.parametrize(
    ("name", "expected"),
    [
        pytest.param("Acme Handels GmbH & Co. KG", "Acme Handels", id="gmbh-co-kg"),
        pytest.param("acme handels gmbh & co. kg", "acme handels", id="lowercase"),
        pytest.param("Müller Bau AG", "Müller Bau", id="ag"),
        pytest.param("Hagen Systems Ltd.", "Hagen Systems", id="ltd"),
        pytest.param("Stage Technik GmbH", "Stage Technik", id="no-partial-word"),
        pytest.param("Huber UG (haftungsbeschränkt)", "Huber", id="ug"),
        pytest.param("Gastro Wien Ges.m.b.H.", "Gastro Wien", id="austrian-gesmbh"),
    ],
)
def test_remove_legal_forms(name: str, expected: str) -> None:
    """Test legal-form tokens are stripped with surrounding separators."""
    assert remove_legal_forms(name) == expected


# ========== Phone and VAT ==========


@pytest.mark.unit
@pytest.mark.parametrize(
    ("number", "expected"),
    [
        pytest.param("+43 (0)1 234 56-78", "012345678", id="austria-trunk"),
        pytest.param("0049 30 1234567", "0301234567", id="germany-00"),
        pytest.param("+41 44 668 18 00", "0446681800", id="switzerland"),
        pytest.param("030/123 456", "030123456", id="domestic"),
        pytest.param("+1 555 0100", "0015550100", id="non-dach"),
    ],
)
def test_normalize_phone(number: str, expected: str) -> None:
    """Test DACH numbers collapse to their domestic form."""
    assert normalize_phone(number) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("vat", "expected"),
    [
        pytest.param("ATU 123 456 78", "U12345678", id="austria"),
        pytest.param("DE 123 456 789", "123456789", id="germany"),
        pytest.param("de123456789", "123456789", id="lowercase"),
        pytest.param("CHE-123.456.789 MWST", "123456789", id="switzerland"),
        pytest.param("123456789", "123456789", id="no-prefix"),
    ],
)
def test_normalize_vat(vat: str, expected: str) -> None:
    """Test VAT numbers lose separators, country prefix and suffix."""
    assert normalize_vat(vat) == expected


# ========== Pipeline ==========


@pytest.mark.unit
def test_apply_steps_runs_in_order() -> None:
    """Test steps apply left to right."""
    steps = ["lowercase", "remove_legal_forms", "normalize_umlauts", "trim"]

    assert apply_steps("  MÜLLER Bau AG ", steps) == "mueller bau"


@pytest.mark.unit
def test_apply_steps_order_matters() -> None:
    """Test uppercase then lowercase differs from the reverse order."""
    assert apply_steps("Acme", ["uppercase", "lowercase"]) == "acme"
    assert apply_steps("Acme", ["lowercase", "uppercase"]) == "ACME"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [
        pytest.param(None, "", id="none"),
        pytest.param(12.0, "12", id="integral-float"),
        pytest.param(True, "true", id="bool"),
    ],
)
def test_apply_steps_stringifies_non_text(value: object, expected: str) -> None:
    """Test non-string values are stringified before the steps run."""
    assert apply_steps(value, [PreprocessingStep.TRIM]) == expected


@pytest.mark.unit
def test_apply_step_unknown_name_is_identity() -> None:
    """Test an unrecognised step leaves the text unchanged."""
    assert apply_step("Acme", "reverse") == "Acme"


@pytest.mark.unit
def test_parse_steps() -> None:
    """Test names convert to enum members and unknown names are rejected."""
    assert parse_steps(["lowercase", PreprocessingStep.TRIM]) == (
        PreprocessingStep.LOWERCASE,
        PreprocessingStep.TRIM,
    )

    with pytest.raises(ValueError, match="Unknown preprocessing step: 'reverse'"):
        parse_steps(["lowercase", "reverse"])
