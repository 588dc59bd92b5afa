"""Tests for schema validation of manifests and events."""

import json
from pathlib import Path

import jsonschema
import pytest

from trustmatch.audit import RunContext
from trustmatch.engine import RunConfig, reconcile
from trustmatch.matching import MatchingRule

_SCHEMAS_DIR = Path(__file__).parent.parent.parent / "schemas"
_FIXTURES_DIR = Path(__file__).parent.parent / "fixtures" / "audit"


@pytest.fixture(scope="module")
def manifest_schema() -> dict:
    """Load run manifest JSON schema."""
    with (_SCHEMAS_DIR / "run_manifest.schema.json").open() as f:
        return json.load(f)


@pytest.fixture(scope="module")
def event_schema() -> dict:
    """Load log event JSON schema."""
    with (_SCHEMAS_DIR / "log_event.schema.json").open() as f:
        return json.load(f)


def _validate_events(path: Path, schema: dict) -> list[dict]:
    events = []
    with path.open() as f:
        for line in f:
            if line.strip():
                event = json.loads(line)
                jsonschema.validate(instance=event, schema=schema)
                events.append(event)
    return events


@pytest.mark.unit
def test_example_fixtures_validate(manifest_schema: dict, event_schema: dict) -> None:
    """Test example manifest and events fixtures pass schema validation."""
    with (_FIXTURES_DIR / "example_run.json").open() as f:
        manifest = json.load(f)
    jsonschema.validate(instance=manifest, schema=manifest_schema)

    _validate_events(_FIXTURES_DIR / "example_events.jsonl", event_schema)


@pytest.mark.unit
def test_generated_manifest_validates(tmp_path: Path, manifest_schema: dict) -> None:
    """Test programmatically generated manifest validates against schema."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={"match_threshold": 90.0})
    run.add_source("left", "memory", 2)
    run.start_stage("reconcile")
    run.finish_stage("reconcile", counters={"pairs_evaluated": 4})
    run.write_artifact("reports/report.json", "{}\n", record_count=4)
    run.finish(status="success")

    with (output_dir / "run.json").open() as f:
        jsonschema.validate(instance=json.load(f), schema=manifest_schema)


@pytest.mark.unit
def test_generated_events_validate(tmp_path: Path, event_schema: dict) -> None:
    """Test events of a real run, including pair warnings, validate against schema."""
    output_dir = tmp_path / "output"
    config = RunConfig(rules=(MatchingRule("email", "email", threshold=0.9),))

    with RunContext.start(output_dir=output_dir, parameters=config.to_dict()) as run:
        reconcile(
            [{"id": "C-1", "email": "a@example.org"}],
            [{"id": "E-1"}],
            config,
            logger=run.audit_logger,
            trace=run.trace,
        )

    events = _validate_events(output_dir / "events.jsonl", event_schema)
    flagged = [e for e in events if e["event"] == "pair_flagged"]
    assert flagged[0]["pair"] == "C-1|E-1"
    assert flagged[0]["data"]["reason_code"] == "missing_field"


@pytest.mark.unit
def test_failed_run_events_validate(tmp_path: Path, event_schema: dict) -> None:
    """Test the error event of a failed run validates against schema."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})
    run.record_error(RuntimeError("boom"), stage="reconcile", include_traceback=True)
    run.finish(status="failed")

    events = _validate_events(output_dir / "events.jsonl", event_schema)
    assert [e["level"] for e in events if e["event"] == "error"] == ["ERROR"]


@pytest.mark.unit
def test_invalid_data_rejected_by_schema(
    manifest_schema: dict,
    event_schema: dict,
) -> None:
    """Test schemas reject invalid status, level, and missing fields."""
    # Invalid manifest status
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(
            instance={
                "manifest_version": "1.0.0",
                "run_id": "x",
                "trace_id": None,
                "created_at": "2026-01-01T00:00:00Z",
                "status": "bogus",
                "command": {"argv": ["x"]},
                "environment": {
                    "python_version": "3.12",
                    "platform": "Linux",
                    "package_version": "0.4.0",
                    "dependencies": {},
                },
                "inputs": {"sources": [], "config_sha256": None},
                "parameters": {},
                "stages": [],
                "outputs": {"artifacts": []},
                "finished_at": None,
                "duration_seconds": None,
                "errors": [],
            },
            schema=manifest_schema,
        )

    # Missing required event fields
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(instance={"ts": "x", "run_id": "x"}, schema=event_schema)

    # pair_flagged without a pair id
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(
            instance={
                "ts": "2026-01-01T00:00:00Z",
                "run_id": "x",
                "level": "WARN",
                "event": "pair_flagged",
                "data": {"reason_code": "missing_field"},
                "stage": "evaluating",
                "pair": None,
                "trace_id": None,
            },
            schema=event_schema,
        )
