"""Tests for blocking keys and cross-source candidate generation."""

import json
from pathlib import Path

import pytest

from trustmatch.audit.logger import AuditLogger
from trustmatch.candidates import (
    BlockingAlgorithm,
    BlockingConfig,
    BlockingOptions,
    CandidatePair,
    blocking_key,
    generate_candidate_pairs,
)
from trustmatch.utils.hashing import calculate_string_sha256

# ========== Blocking keys ==========


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "algorithm", "options", "expected"),
    [
        pytest.param("  ACME   GmbH ", "exact", None, "acme gmbh", id="exact"),
        pytest.param(
            "ACME GmbH", "exact", BlockingOptions(case_sensitive=True), "ACME GmbH", id="case"
        ),
        pytest.param("Schmidt", "prefix", None, "schm", id="prefix-default"),
        pytest.param(
            "Schmidt", "prefix", BlockingOptions(prefix_length=3), "sch", id="prefix-three"
        ),
        pytest.param("Sc", "prefix", BlockingOptions(prefix_length=5), "sc", id="prefix-short"),
        pytest.param("Köln", "cologne_phonetic", None, "456", id="cologne"),
        pytest.param("Robert", "soundex", None, "R163", id="soundex"),
        pytest.param(
            "Schmidtbauer", "exact", BlockingOptions(max_length=7), "schmidt", id="max-length"
        ),
        pytest.param(12345, "prefix", BlockingOptions(prefix_length=2), "12", id="number"),
    ],
)
def test_blocking_key(value, algorithm: str, options, expected: str) -> None:
    """Test key derivation per algorithm and option."""
    assert blocking_key(value, algorithm, options) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "algorithm"),
    [
        pytest.param(None, "exact", id="none"),
        pytest.param("", "exact", id="empty"),
        pytest.param("   ", "prefix", id="blank"),
        pytest.param("1234", "cologne_phonetic", id="no-letters-cologne"),
        pytest.param("1234", "soundex", id="no-letters-soundex"),
    ],
)
def test_blocking_key_excludes_empty(value, algorithm: str) -> None:
    """Test values without a usable key are excluded from blocking."""
    assert blocking_key(value, algorithm) is None


@pytest.mark.unit
def test_blocking_key_unknown_algorithm_uses_text() -> None:
    """Test an unknown algorithm falls back to the normalised text."""
    assert blocking_key(" Acme  GmbH", "metaphone") == "acme gmbh"


@pytest.mark.unit
@pytest.mark.parametrize("length", [0, 33, -1])
def test_blocking_options_reject_prefix_length(length: int) -> None:
    """Test prefix length outside 1..32 is rejected."""
    with pytest.raises(ValueError, match="prefix_length"):
        BlockingOptions(prefix_length=length)


@pytest.mark.unit
def test_blocking_config_from_dict() -> None:
    """Test config parsing with a right-hand field and options."""
    config = BlockingConfig.from_dict(
        {
            "field": "city",
            "right_field": "town",
            "algorithm": "prefix",
            "options": {"prefix_length": 3},
        }
    )

    assert config.left_field == "city"
    assert config.target_field == "town"
    assert config.algorithm is BlockingAlgorithm.PREFIX
    assert config.options.prefix_length == 3
    assert BlockingConfig.from_dict(config.to_dict()) == config


# ========== Candidate generation ==========


def _records(field: str, values: list[str | None]) -> list[dict]:
    return [{field: v} if v is not None else {} for v in values]


@pytest.mark.unit
def test_generate_without_config_is_cross_product() -> None:
    """Test no blocking compares every left record with every right record."""
    pairs, stats = generate_candidate_pairs([{}, {}], [{}, {}, {}], None)

    assert [(p.left_index, p.right_index) for p in pairs] == [
        (0, 0),
        (0, 1),
        (0, 2),
        (1, 0),
        (1, 1),
        (1, 2),
    ]
    assert all(p.block_key is None for p in pairs)
    assert stats.candidate_pairs == 6
    assert stats.cross_buckets == 1


@pytest.mark.unit
def test_generate_without_config_empty_side() -> None:
    """Test an empty side yields no pairs."""
    pairs, stats = generate_candidate_pairs([{"a": 1}], [], None)

    assert pairs == []
    assert stats.cross_buckets == 0
    assert stats.max_bucket == 0


@pytest.mark.unit
def test_generate_orders_by_key_then_indexes() -> None:
    """Test only shared keys pair up and output order is deterministic."""
    left = _records("city", ["b", "a", "a", None])
    right = _records("city", ["a", "b", "c"])

    pairs, stats = generate_candidate_pairs(left, right, BlockingConfig("city"))

    assert pairs == [
        CandidatePair(1, 0, "a"),
        CandidatePair(2, 0, "a"),
        CandidatePair(0, 1, "b"),
    ]
    assert stats.left_keyed == 3
    assert stats.right_keyed == 3
    assert stats.unique_keys == 3
    assert stats.cross_buckets == 2
    assert stats.max_bucket == 3
    assert stats.candidate_pairs == 3
    assert stats.warnings == []


@pytest.mark.unit
def test_generate_never_pairs_same_side() -> None:
    """Test records of one side sharing a key are not paired with each other."""
    left = _records("city", ["köln", "köln"])
    right = _records("city", ["berlin"])

    pairs, stats = generate_candidate_pairs(left, right, BlockingConfig("city"))

    assert pairs == []
    assert stats.unique_keys == 2
    assert stats.cross_buckets == 0


@pytest.mark.unit
def test_generate_phonetic_with_right_field() -> None:
    """Test phonetic keys pair spelling variants across differently named fields."""
    left = _records("city", ["München", "Köln", None])
    right = _records("town", ["Muenchen", "Berlin"])
    config = BlockingConfig("city", BlockingAlgorithm.COLOGNE_PHONETIC, right_field="town")

    pairs, stats = generate_candidate_pairs(left, right, config)

    assert pairs == [CandidatePair(0, 0, "6646")]
    assert stats.left_keyed == 2
    assert stats.right_keyed == 2


@pytest.mark.unit
def test_generate_unknown_algorithm_warns() -> None:
    """Test an unknown algorithm is recorded in stats and still blocks on text."""
    left = _records("city", ["Köln"])
    right = _records("city", [" köln "])

    pairs, stats = generate_candidate_pairs(left, right, BlockingConfig("city", "metaphone"))

    assert pairs == [CandidatePair(0, 0, "köln")]
    assert stats.warnings[0].startswith("unknown_blocking_algorithm:metaphone")


@pytest.mark.unit
def test_generate_logs_oversized_block(tmp_path: Path) -> None:
    """Test buckets above max_block_size emit a WARN event but still pair."""
    left = _records("city", ["köln"] * 2)
    right = _records("city", ["köln"] * 2)
    log_path = tmp_path / "events.jsonl"

    with AuditLogger(run_id="r", log_path=log_path) as logger:
        pairs, _ = generate_candidate_pairs(
            left, right, BlockingConfig("city"), logger=logger, max_block_size=3
        )

    events = [json.loads(line) for line in log_path.read_text().splitlines()]

    assert len(pairs) == 4
    assert len(events) == 1
    assert events[0]["event"] == "oversized_block"
    assert events[0]["level"] == "WARN"
    assert events[0]["stage"] == "blocking"
    assert events[0]["data"] == {"block_key": "köln", "block_size": 4, "max_block_size": 3}


@pytest.mark.unit
def test_generate_mask_keys_hides_values(tmp_path: Path) -> None:
    """Test masked keys appear only as digests in pairs and log events."""
    left = _records("email", ["Secret@X.de", "other@y.de"] * 2)
    right = _records("email", ["secret@x.de"] * 2)
    log_path = tmp_path / "events.jsonl"

    with AuditLogger(run_id="r", log_path=log_path) as logger:
        pairs, stats = generate_candidate_pairs(
            left,
            right,
            BlockingConfig("email"),
            logger=logger,
            max_block_size=3,
            mask_keys=True,
        )

    digest = calculate_string_sha256("secret@x.de")
    log_text = log_path.read_text()
    events = [json.loads(line) for line in log_text.splitlines()]

    assert [(p.left_index, p.right_index) for p in pairs] == [(0, 0), (0, 1), (2, 0), (2, 1)]
    assert {p.block_key for p in pairs} == {digest}
    assert events[0]["data"]["block_key"] == digest[:100]
    assert "secret@x.de" not in log_text
    assert stats.unique_keys == 2


@pytest.mark.unit
def test_blocking_stats_counters_exclude_warnings() -> None:
    """Test counters() only carries integers."""
    _, stats = generate_candidate_pairs(_records("c", ["x"]), _records("c", ["x"]), None)

    counters = stats.counters()

    assert "warnings" not in counters
    assert counters["candidate_pairs"] == 1
