"""Tests for the reconciliation run state machine and report assembly."""

import json
from dataclasses import replace
from pathlib import Path

import pytest

from trustmatch.audit.logger import AuditLogger
from trustmatch.candidates import BlockingConfig
from trustmatch.engine import (
    Classification,
    ReconciliationRun,
    RunConfig,
    RunState,
    UnmatchedReason,
    reconcile,
)
from trustmatch.engine.report import REQUIRED_RULE_FAILED, SUPERSEDED
from trustmatch.errors import ReconciliationError, ReconciliationErrorCode
from trustmatch.matching import MatchingRule
from trustmatch.models import Schema
from trustmatch.similarity import SimilarityConfig
from trustmatch.telemetry import TraceContext
from trustmatch.utils.hashing import calculate_string_sha256


@pytest.fixture
def two_by_two(make_record):
    """Two companies on each side; each left record has one true partner."""
    left = [
        make_record("C-1"),
        make_record(
            "C-2", company="Zeta Logistik", email="hello@zeta.example", vat="DE555666777"
        ),
    ]
    right = [
        make_record("E-1"),
        make_record(
            "E-2", company="Zeta Logistik GmbH", email="hello@zeta.example", vat="DE 555 666 777"
        ),
    ]
    return left, right


def _read_events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


# ========== Classification ==========


@pytest.mark.unit
def test_reconcile_cross_product(company_config: RunConfig, two_by_two) -> None:
    """Test every pair is evaluated and true partners match."""
    left, right = two_by_two

    report = reconcile(left, right, company_config)

    assert [p.pair_id for p in report.matched] == ["C-1|E-1", "C-2|E-2"]
    assert all(p.confidence == 100.0 for p in report.matched)
    assert {p.pair_id for p in report.unmatched} == {"C-1|E-2", "C-2|E-1"}
    assert all(p.confidence == 0.0 for p in report.unmatched)
    assert report.review == ()
    assert report.summary.total_pairs_evaluated == 4
    assert report.summary.candidate_pairs == 4
    assert report.summary.average_confidence == 50.0
    assert report.unmatched_left == ()
    assert report.unmatched_right == ()


@pytest.mark.unit
def test_reconcile_review_band(company_config: RunConfig, make_record) -> None:
    """Test a confidence between the thresholds lands in review."""
    report = reconcile([make_record("C-1")], [make_record("E-1", email=None)], company_config)

    (pair,) = report.review
    assert pair.confidence == 70.0
    assert pair.classification is Classification.REVIEW
    assert [r.matched for r in pair.rule_results] == [True, False, True]
    assert pair.rule_results[1].details == ("missing_field:right.email",)
    assert report.unmatched_left[0].reason is UnmatchedReason.NO_MATCH


@pytest.mark.unit
@pytest.mark.parametrize(
    ("match", "review", "expected"),
    [
        pytest.param(70.0, 60.0, Classification.MATCHED, id="at-match"),
        pytest.param(90.0, 70.0, Classification.REVIEW, id="at-review"),
        pytest.param(90.0, 70.01, Classification.UNMATCHED, id="below-review"),
    ],
)
def test_threshold_boundaries_are_inclusive(
    company_rules, make_record, match: float, review: float, expected: Classification
) -> None:
    """Test a confidence equal to a threshold takes the higher bucket."""
    config = RunConfig(rules=company_rules, match_threshold=match, review_threshold=review)

    report = reconcile([make_record("C-1")], [make_record("E-1", email=None)], config)

    assert report.pairs[0].classification is expected


@pytest.mark.unit
def test_required_rule_failure_forces_unmatched(company_rules, make_record) -> None:
    """Test a failed required rule overrides the confidence band."""
    rules = (*company_rules[:2], replace(company_rules[2], required=True))
    config = RunConfig(rules=rules)

    report = reconcile([make_record("C-1")], [make_record("E-1", vat="DE999999999")], config)

    (pair,) = report.unmatched
    assert pair.confidence == 80.0
    assert pair.details == (f"{REQUIRED_RULE_FAILED}:vat",)


@pytest.mark.unit
def test_one_to_one_keeps_best_match(company_rules, make_record) -> None:
    """Test greedy assignment demotes pairs whose record is already claimed."""
    left = [make_record("C-2"), make_record("C-1")]
    right = [make_record("E-1")]

    shared = reconcile(left, right, RunConfig(rules=company_rules))
    exclusive = reconcile(left, right, RunConfig(rules=company_rules, one_to_one=True))

    assert shared.summary.matched_count == 2
    assert [p.pair_id for p in exclusive.matched] == ["C-1|E-1"]
    (demoted,) = exclusive.unmatched
    assert demoted.pair_id == "C-2|E-1"
    assert demoted.confidence == 100.0
    assert demoted.details == (SUPERSEDED,)
    assert [(r.record_id, r.reason) for r in exclusive.unmatched_left] == [
        ("C-2", UnmatchedReason.NO_MATCH)
    ]


@pytest.mark.unit
def test_unmatched_reasons_with_blocking(company_rules, make_record) -> None:
    """Test records outside any shared block are reported as no_candidate."""
    config = RunConfig(rules=company_rules, blocking=BlockingConfig("city"))
    left = [make_record("C-1"), make_record("C-2", city="Hamburg")]
    right = [make_record("E-1"), make_record("E-2", city="Berlin")]

    report = reconcile(left, right, config)

    assert report.summary.candidate_pairs == 1
    assert report.matched[0].block_key == "münchen"
    assert [(r.side, r.record_id, r.reason) for r in report.unmatched_left] == [
        ("left", "C-2", UnmatchedReason.NO_CANDIDATE)
    ]
    assert [(r.side, r.record_id, r.reason) for r in report.unmatched_right] == [
        ("right", "E-2", UnmatchedReason.NO_CANDIDATE)
    ]
    assert report.metadata["blocking"]["cross_buckets"] == 1


@pytest.mark.unit
def test_record_id_fallback_and_key_fields(company_rules) -> None:
    """Test configured key fields and the positional fallback."""
    config = RunConfig(rules=company_rules, left_key_field="crm_no", right_key_field="meta.erp")
    left = [{"company": "Acme", "crm_no": 17}, {"company": "Zeta"}]
    right = [{"company": "Acme", "meta": {"erp": "E-9"}}]

    report = reconcile(left, right, config)

    assert {p.left_id for p in report.pairs} == {"17", "left#1"}
    assert {p.right_id for p in report.pairs} == {"E-9"}


@pytest.mark.unit
def test_worker_count_does_not_change_report(company_rules, make_record) -> None:
    """Test threaded evaluation produces the same pairs in the same order."""
    cities = ["München", "Köln", "Hamburg"]
    left = [make_record(f"C-{i}", city=c) for i, c in enumerate(cities)]
    right = [make_record(f"E-{i}", city=c, email=None) for i, c in enumerate(cities)]

    sequential = reconcile(left, right, RunConfig(rules=company_rules))
    threaded = reconcile(left, right, RunConfig(rules=company_rules, max_workers=4))

    assert threaded.pairs == sequential.pairs
    assert threaded.summary == sequential.summary


@pytest.mark.unit
def test_empty_inputs(company_config: RunConfig, make_record) -> None:
    """Test an empty side yields an empty report with every record unmatched."""
    report = reconcile([make_record("C-1")], [], company_config)

    assert report.pairs == ()
    assert report.summary.total_pairs_evaluated == 0
    assert report.summary.average_confidence == 0.0
    assert report.unmatched_left[0].reason is UnmatchedReason.NO_CANDIDATE


@pytest.mark.unit
def test_report_to_dict(company_config: RunConfig, make_record) -> None:
    """Test the serialised report carries every section."""
    trace = TraceContext(trace_id="c" * 32, tool="reconcile")

    data = reconcile([make_record("C-1")], [make_record("E-1")], company_config, trace=trace)
    data = data.to_dict()

    assert set(data) == {
        "summary",
        "matched",
        "review",
        "unmatched",
        "unmatched_left",
        "unmatched_right",
        "metadata",
    }
    assert data["matched"][0]["classification"] == "matched"
    assert data["metadata"]["trace"]["trace_id"] == "c" * 32
    assert data["metadata"]["match_threshold"] == 90.0
    json.dumps(data)


# ========== State machine ==========


@pytest.mark.unit
def test_run_state_history(company_config: RunConfig, two_by_two) -> None:
    """Test a successful run walks every state once."""
    run = ReconciliationRun(company_config)

    run.execute(*two_by_two)

    assert run.state is RunState.COMPLETED
    assert run.history == [
        RunState.IDLE,
        RunState.BLOCKING,
        RunState.EVALUATING,
        RunState.SCORING,
        RunState.COMPLETED,
    ]


@pytest.mark.unit
def test_run_is_not_reusable(company_config: RunConfig, two_by_two) -> None:
    """Test executing a finished run is refused."""
    run = ReconciliationRun(company_config)
    run.execute(*two_by_two)

    with pytest.raises(RuntimeError, match="already executed"):
        run.execute(*two_by_two)


@pytest.mark.unit
def test_run_logs_stage_events(company_config: RunConfig, make_record, tmp_path: Path) -> None:
    """Test stages and flagged pairs are written to the audit log."""
    log_path = tmp_path / "events.jsonl"

    with AuditLogger(run_id="r1", log_path=log_path) as logger:
        run = ReconciliationRun(company_config, logger=logger)
        run.execute([make_record("C-1")], [make_record("E-1", email=None)])

    events = _read_events(log_path)
    started = [e["stage"] for e in events if e["event"] == "stage_started"]
    finished = {e["stage"]: e["data"]["counters"] for e in events if e["event"] == "stage_finished"}
    flagged = [e for e in events if e["event"] == "pair_flagged"]

    assert run.run_id == "r1"
    assert started == ["blocking", "evaluating", "scoring"]
    assert finished["evaluating"] == {"pairs_evaluated": 1, "pairs_flagged": 1}
    assert finished["scoring"] == {"matched": 0, "review": 1, "unmatched": 0}
    assert len(flagged) == 1
    assert flagged[0]["pair"] == "C-1|E-1"
    assert flagged[0]["data"]["reason_code"] == "missing_field"


@pytest.mark.unit
def test_unknown_field_fails_before_blocking(
    company_config: RunConfig, make_record, tmp_path: Path
) -> None:
    """Test schema checks fail the run from the idle state."""
    left = [make_record("C-1")]
    right = [{"id": "E-1", "name": "Acme"}]
    log_path = tmp_path / "events.jsonl"

    with AuditLogger(run_id="r1", log_path=log_path) as logger:
        run = ReconciliationRun(
            company_config,
            logger=logger,
            left_schema=Schema.infer(left),
            right_schema=Schema.infer(right),
        )
        with pytest.raises(ReconciliationError) as exc_info:
            run.execute(left, right)

    assert exc_info.value.code is ReconciliationErrorCode.UNKNOWN_FIELD
    assert run.history == [RunState.IDLE, RunState.FAILED]
    (error_event,) = _read_events(log_path)
    assert error_event["event"] == "error"
    assert error_event["stage"] == "idle"
    assert error_event["data"]["code"] == "UNKNOWN_FIELD"


@pytest.mark.unit
def test_unexpected_failure_is_wrapped(
    company_config: RunConfig, two_by_two, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test foreign exceptions become RECONCILIATION_ERROR with the failing stage."""

    def _explode(*args, **kwargs):
        raise RuntimeError("index corrupted")

    monkeypatch.setattr("trustmatch.engine.runner.generate_candidate_pairs", _explode)
    trace = TraceContext(trace_id="d" * 32)
    run = ReconciliationRun(company_config, trace=trace)

    with pytest.raises(ReconciliationError) as exc_info:
        run.execute(*two_by_two)

    error = exc_info.value
    assert error.code is ReconciliationErrorCode.RECONCILIATION_ERROR
    assert error.context == {"original_error": "RuntimeError", "stage": "blocking"}
    assert error.trace is trace
    assert isinstance(error.__cause__, RuntimeError)
    assert run.state is RunState.FAILED
    assert run.history[-2:] == [RunState.BLOCKING, RunState.FAILED]


# ========== Masking ==========


@pytest.mark.unit
def test_masked_fields_hide_rule_details() -> None:
    """Test rules reading a masked field keep only flag details."""
    rules = (
        MatchingRule(
            "company",
            "company",
            similarity=SimilarityConfig(algorithm="cologne_phonetic"),
            threshold=1.0,
        ),
        MatchingRule(
            "city",
            "city",
            similarity=SimilarityConfig(algorithm="cologne_phonetic"),
            threshold=1.0,
        ),
    )
    config = RunConfig(rules=rules, review_threshold=0.0)
    left = [{"id": "C-1", "company": "Meyer Bau", "city": "Köln"}, {"id": "C-2", "city": "Bonn"}]
    right = [{"id": "E-1", "company": "Maier Bau", "city": "Koeln"}]
    masked = TraceContext(trace_id="e" * 32, masked_fields=("company",))

    plain = {p.pair_id: p for p in reconcile(left, right, config).pairs}
    hidden = {p.pair_id: p for p in reconcile(left, right, config, trace=masked).pairs}

    assert plain["C-1|E-1"].rule_results[0].details
    assert hidden["C-1|E-1"].rule_results[0].details == ()
    assert hidden["C-1|E-1"].rule_results[0].score == 1.0
    assert hidden["C-1|E-1"].rule_results[1].details == plain["C-1|E-1"].rule_results[1].details
    assert hidden["C-2|E-1"].rule_results[0].details == ("missing_field:left.company",)


@pytest.mark.unit
def test_masked_blocking_field_hides_block_key() -> None:
    """Test a masked blocking field never reaches the report in clear text."""
    rules = (
        MatchingRule("company", "company", similarity=SimilarityConfig(algorithm="levenshtein")),
    )
    config = RunConfig(rules=rules, blocking=BlockingConfig("email"), review_threshold=0.0)
    left = [{"id": "C-1", "company": "Acme", "email": "Secret@X.de"}]
    right = [{"id": "E-1", "company": "Acme", "email": "secret@x.de"}]
    masked = TraceContext(trace_id="f" * 32, masked_fields=("email",))

    plain = reconcile(left, right, config)
    hidden = reconcile(left, right, config, trace=masked)

    assert plain.matched[0].block_key == "secret@x.de"
    assert hidden.matched[0].block_key == calculate_string_sha256("secret@x.de")
    assert "secret@x.de" not in json.dumps(hidden.to_dict(), ensure_ascii=False).lower()


# ========== Blocking fallbacks ==========


@pytest.mark.unit
def test_unknown_blocking_algorithm_is_recorded_per_pair() -> None:
    """Test the blocking fallback lands in every pair's details and in metadata."""
    rules = (MatchingRule("company", "company", threshold=0.9),)
    config = RunConfig(rules=rules, blocking=BlockingConfig("city", "metaphone"))
    left = [{"id": "C-1", "company": "Acme", "city": "Köln"}]
    right = [
        {"id": "E-1", "company": "Acme", "city": " köln "},
        {"id": "E-2", "company": "Zeta", "city": "Köln"},
    ]

    report = reconcile(left, right, config)

    assert [p.pair_id for p in report.pairs] == ["C-1|E-1", "C-1|E-2"]
    assert all(p.details == ("unknown_blocking_algorithm:metaphone",) for p in report.pairs)
    assert report.metadata["blocking"]["warnings"][0].startswith(
        "unknown_blocking_algorithm:metaphone"
    )


# ========== Reference example ==========


@pytest.mark.unit
def test_acme_example_matches_with_full_confidence() -> None:
    """Test the Acme GmbH / ACME Gmbh pair matches at confidence 100."""
    config = RunConfig.from_dict(
        {
            "match_threshold": 90,
            "review_threshold": 60,
            "rules": [
                {
                    "id": "name",
                    "field": "name",
                    "algorithm": "jaro_winkler",
                    "preprocessing": ["lowercase", "remove_legal_forms", "trim"],
                    "threshold": 0.85,
                    "weight": 1.0,
                }
            ],
        }
    )
    left = [{"id": 1, "name": "Acme GmbH"}]
    right = [{"id": "A", "name": "ACME Gmbh"}]

    report = reconcile(left, right, config)

    assert report.summary.total_pairs_evaluated == 1
    assert len(report.matched) == 1
    pair = report.matched[0]
    assert (pair.left_id, pair.right_id) == ("1", "A")
    assert pair.confidence == 100.0
    assert pair.classification is Classification.MATCHED
    assert [(r.rule_id, r.matched, r.score) for r in pair.rule_results] == [("name", True, 1.0)]
    assert report.review == ()
    assert report.unmatched == ()
