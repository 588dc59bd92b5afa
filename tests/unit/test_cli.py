"""Tests for CLI module."""

import json
import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner

from trustmatch.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    """Provide Click test CLI runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# Top-level CLI
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_cli_version_flag(runner: CliRunner) -> None:
    """Test --version flag outputs version string."""
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "trustmatch" in result.output


@pytest.mark.unit
def test_cli_help(runner: CliRunner) -> None:
    """Test --help output lists commands."""
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("reconcile", "similarity", "phonetic", "blocking-key"):
        assert command in result.output


@pytest.mark.unit
def test_cli_invalid_command(runner: CliRunner) -> None:
    """Test invalid command returns non-zero exit code."""
    result = runner.invoke(cli, ["invalid-command"])

    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# reconcile command
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_reconcile_help(runner: CliRunner) -> None:
    """Test reconcile command help."""
    result = runner.invoke(cli, ["reconcile", "--help"])

    assert result.exit_code == 0
    assert "Reconcile the records of LEFT" in result.output


@pytest.mark.unit
def test_reconcile_requires_config(runner: CliRunner, reconcile_fixtures: Path) -> None:
    """Test reconcile refuses to run without --config."""
    result = runner.invoke(
        cli,
        [
            "reconcile",
            str(reconcile_fixtures / "left.json"),
            str(reconcile_fixtures / "right.jsonl"),
        ],
    )

    assert result.exit_code != 0
    assert "--config" in result.output


@pytest.mark.integration
def test_reconcile_writes_run_directory(
    runner: CliRunner, reconcile_fixtures: Path, tmp_path: Path
) -> None:
    """Test reconcile on the fixture sources writes report, events and manifest."""
    output_dir = tmp_path / "out"

    result = runner.invoke(
        cli,
        [
            "reconcile",
            str(reconcile_fixtures / "left.json"),
            str(reconcile_fixtures / "right.jsonl"),
            "-c",
            str(reconcile_fixtures / "config.json"),
            "-o",
            str(output_dir),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Reconciled 2 pairs (1 matched, 1 review, 0 unmatched)" in result.output
    assert (output_dir / "reports" / "report.json").is_file()
    assert (output_dir / "events.jsonl").is_file()

    manifest = json.loads((output_dir / "run.json").read_text())
    assert manifest["status"] == "success"


@pytest.mark.integration
def test_reconcile_verbose_flag(
    runner: CliRunner, reconcile_fixtures: Path, tmp_path: Path
) -> None:
    """Test verbose flag produces extra output."""
    result = runner.invoke(
        cli,
        [
            "reconcile",
            str(reconcile_fixtures / "left.json"),
            str(reconcile_fixtures / "right.jsonl"),
            "--config",
            str(reconcile_fixtures / "config.json"),
            "--output-dir",
            str(tmp_path / "out"),
            "--verbose",
        ],
    )

    assert result.exit_code == 0
    assert "starting reconciliation" in result.output.lower()
    assert "Candidate pairs: 2" in result.output


@pytest.mark.unit
def test_reconcile_invalid_config_reports_code(
    runner: CliRunner, reconcile_fixtures: Path, tmp_path: Path
) -> None:
    """Test a threshold violation is rendered as an actionable error."""
    config = json.loads((reconcile_fixtures / "config.json").read_text())
    config["review_threshold"] = 95
    config["match_threshold"] = 80
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config))

    result = runner.invoke(
        cli,
        [
            "reconcile",
            str(reconcile_fixtures / "left.json"),
            str(reconcile_fixtures / "right.jsonl"),
            "-c",
            str(config_path),
            "-o",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 1
    assert "Error [INVALID_THRESHOLDS]" in result.output
    assert "Suggested action:" in result.output
    assert not (tmp_path / "out").exists()


@pytest.mark.unit
def test_reconcile_malformed_source(
    runner: CliRunner, reconcile_fixtures: Path, tmp_path: Path
) -> None:
    """Test a source that is not a record array fails with SCHEMA_MISMATCH."""
    left = tmp_path / "left.json"
    left.write_text('{"id": "C-001"}')
    shutil.copy(reconcile_fixtures / "config.json", tmp_path / "config.json")

    result = runner.invoke(
        cli,
        [
            "reconcile",
            str(left),
            str(reconcile_fixtures / "right.jsonl"),
            "-c",
            str(tmp_path / "config.json"),
            "-o",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 1
    assert "Error [SCHEMA_MISMATCH]" in result.output
    assert "Connector: left.json" in result.output


# ---------------------------------------------------------------------------
# similarity / phonetic / blocking-key commands
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    ("args", "expected"),
    [
        pytest.param(
            ["Meyer", "Maier", "-a", "cologne_phonetic"], "cologne_phonetic: 1.0000", id="cologne"
        ),
        pytest.param(
            ["kitten", "sitting", "-a", "levenshtein"], "levenshtein: 0.5714", id="levenshtein"
        ),
        pytest.param(
            ["Müller GmbH", "Mueller GmbH", "--normalize"], "jaro_winkler: 1.0000", id="normalize"
        ),
        pytest.param(["ACME", "acme", "--ignore-case"], "jaro_winkler: 1.0000", id="ignore-case"),
    ],
)
def test_similarity_command(runner: CliRunner, args: list[str], expected: str) -> None:
    """Test similarity prints '<algorithm>: <score>'."""
    result = runner.invoke(cli, ["similarity", *args])

    assert result.exit_code == 0
    assert expected in result.output


@pytest.mark.unit
def test_similarity_rejects_composite(runner: CliRunner) -> None:
    """Test composite is not offered as a single algorithm."""
    result = runner.invoke(cli, ["similarity", "a", "b", "-a", "composite"])

    assert result.exit_code != 0


@pytest.mark.unit
def test_similarity_invalid_ngram_size(runner: CliRunner) -> None:
    """Test a non-positive n-gram window is reported as an error."""
    result = runner.invoke(cli, ["similarity", "a", "b", "-a", "ngram", "--ngram-size", "0"])

    assert result.exit_code == 1
    assert "ngram_size" in result.output


@pytest.mark.unit
@pytest.mark.parametrize(
    ("args", "expected"),
    [
        pytest.param(["Müller"], "657", id="cologne-umlaut"),
        pytest.param(["Mueller"], "657", id="cologne-spelled"),
        pytest.param(["Robert", "--codec", "soundex"], "R163", id="soundex"),
    ],
)
def test_phonetic_command(runner: CliRunner, args: list[str], expected: str) -> None:
    """Test phonetic prints the code of the input."""
    result = runner.invoke(cli, ["phonetic", *args])

    assert result.exit_code == 0
    assert result.output.strip() == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("args", "expected"),
    [
        pytest.param(["  ACME   GmbH "], "acme gmbh", id="exact"),
        pytest.param(["Schmidt", "-a", "prefix", "--prefix-length", "3"], "sch", id="prefix"),
        pytest.param(["ACME", "--case-sensitive"], "ACME", id="case-sensitive"),
        pytest.param(["Köln", "-a", "cologne_phonetic"], "456", id="cologne"),
        pytest.param(["   "], "(no key)", id="blank"),
    ],
)
def test_blocking_key_command(runner: CliRunner, args: list[str], expected: str) -> None:
    """Test blocking-key prints the derived key or a no-key marker."""
    result = runner.invoke(cli, ["blocking-key", *args])

    assert result.exit_code == 0
    assert result.output.strip() == expected


@pytest.mark.unit
def test_blocking_key_invalid_prefix_length(runner: CliRunner) -> None:
    """Test an out-of-range prefix length exits with an error."""
    result = runner.invoke(
        cli, ["blocking-key", "Schmidt", "-a", "prefix", "--prefix-length", "40"]
    )

    assert result.exit_code == 1
    assert "prefix_length" in result.output
