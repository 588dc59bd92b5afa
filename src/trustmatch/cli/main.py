"""Command-line interface for trustmatch.

Provides CLI commands for reconciliation and for inspecting the
similarity, phonetic and blocking building blocks.
"""

import importlib.metadata
import sys
from pathlib import Path

import click

from trustmatch.candidates.models import BlockingAlgorithm
from trustmatch.similarity.models import SimilarityAlgorithm

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("trustmatch")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.4.0"  # Fallback for development

_SIMILARITY_CHOICES = [
    str(a) for a in SimilarityAlgorithm if a is not SimilarityAlgorithm.COMPOSITE
]
_BLOCKING_CHOICES = [str(a) for a in BlockingAlgorithm]
_CODEC_CHOICES = ["cologne", "soundex"]


@click.group()
@click.version_option(version=__version__, prog_name="trustmatch")
def cli() -> None:
    """Explainable entity resolution and reconciliation across record sources.

    Use 'trustmatch COMMAND --help' for command-specific help.
    """


@cli.command()
@click.argument("left", type=click.Path(exists=True, dir_okay=False))
@click.argument("right", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Run configuration JSON file",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(),
    default="out",
    help="Output directory for results (default: out)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def reconcile(
    left: str,
    right: str,
    config_path: str,
    output_dir: str,
    verbose: bool,
) -> None:
    """Reconcile the records of LEFT against the records of RIGHT.

    LEFT and RIGHT are JSON array files or JSON Lines files (.jsonl).
    Writes reports/report.json, events.jsonl and run.json to OUTPUT_DIR.

    Examples
    --------
        trustmatch reconcile crm.json erp.jsonl -c config.json
        trustmatch reconcile crm.json erp.json -c config.json -o results -v
    """
    from trustmatch.api import reconcile_files
    from trustmatch.errors import TrustMatchError

    if verbose:
        click.echo("Starting reconciliation...", err=True)
        click.echo(f"  Left: {left}", err=True)
        click.echo(f"  Right: {right}", err=True)
        click.echo(f"  Config: {config_path}", err=True)
        click.echo(f"  Output: {output_dir}", err=True)

    try:
        report = reconcile_files(
            Path(left),
            Path(right),
            Path(config_path),
            Path(output_dir),
            command_argv=sys.argv,
        )
    except TrustMatchError as e:
        click.secho(e.to_actionable_message(), fg="red", err=True)
        sys.exit(1)
    except Exception as e:
        click.secho(f"✗ Error: {e}", fg="red", err=True)
        if verbose:
            import traceback

            click.echo(traceback.format_exc(), err=True)
        sys.exit(1)

    summary = report.summary
    if verbose:
        click.echo("\nResults:", err=True)
        click.echo(f"  Left records: {summary.total_left_records}", err=True)
        click.echo(f"  Right records: {summary.total_right_records}", err=True)
        click.echo(f"  Candidate pairs: {summary.candidate_pairs}", err=True)
        click.echo(f"  Average confidence: {summary.average_confidence}", err=True)
        click.echo(f"  Unmatched left records: {len(report.unmatched_left)}", err=True)
        click.echo(f"  Unmatched right records: {len(report.unmatched_right)}", err=True)

    click.secho(
        f"✓ Reconciled {summary.total_pairs_evaluated} pairs "
        f"({summary.matched_count} matched, {summary.review_count} review, "
        f"{summary.unmatched_count} unmatched)",
        fg="green",
    )


@cli.command()
@click.argument("a")
@click.argument("b")
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice(_SIMILARITY_CHOICES),
    default=str(SimilarityAlgorithm.JARO_WINKLER),
    show_default=True,
    help="Similarity algorithm",
)
@click.option("--ngram-size", type=int, default=2, show_default=True, help="Window for ngram")
@click.option("--normalize", is_flag=True, help="Trim, spell out umlauts, strip punctuation")
@click.option("--ignore-case", is_flag=True, help="Compare case-insensitively")
def similarity(
    a: str,
    b: str,
    algorithm: str,
    ngram_size: int,
    normalize: bool,
    ignore_case: bool,
) -> None:
    """Score the similarity of A and B in [0, 1].

    Examples
    --------
        trustmatch similarity "Meyer" "Maier" -a cologne_phonetic
        trustmatch similarity "Müller GmbH" "Mueller GmbH" --normalize
    """
    from trustmatch.similarity import SimilarityConfig
    from trustmatch.similarity import similarity as score_similarity

    try:
        config = SimilarityConfig(
            algorithm=SimilarityAlgorithm(algorithm),
            ngram_size=ngram_size,
            normalize=normalize,
            case_sensitive=not ignore_case,
        )
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    result = score_similarity(a, b, config)
    click.echo(f"{result.algorithm}: {result.score:.4f}")
    for detail in result.details:
        click.echo(f"  {detail}", err=True)


@cli.command()
@click.argument("text")
@click.option(
    "--codec",
    type=click.Choice(_CODEC_CHOICES),
    default="cologne",
    show_default=True,
    help="Phonetic codec",
)
def phonetic(text: str, codec: str) -> None:
    """Print the phonetic code of TEXT.

    Examples
    --------
        trustmatch phonetic "Müller-Lüdenscheidt"
        trustmatch phonetic Robert --codec soundex
    """
    from trustmatch.similarity import cologne_phonetic, soundex

    encode = cologne_phonetic if codec == "cologne" else soundex
    click.echo(encode(text))


@cli.command("blocking-key")
@click.argument("value")
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice(_BLOCKING_CHOICES),
    default=str(BlockingAlgorithm.EXACT),
    show_default=True,
    help="Blocking key algorithm",
)
@click.option("--prefix-length", type=int, default=None, help="Characters kept by prefix blocking")
@click.option("--case-sensitive", is_flag=True, help="Keep case in exact and prefix keys")
def blocking_key(
    value: str,
    algorithm: str,
    prefix_length: int | None,
    case_sensitive: bool,
) -> None:
    """Print the blocking key derived from VALUE.

    Examples
    --------
        trustmatch blocking-key "  ACME  GmbH "
        trustmatch blocking-key "Schmidt" -a prefix --prefix-length 3
    """
    from trustmatch.candidates import BlockingOptions
    from trustmatch.candidates import blocking_key as derive_key

    try:
        options = BlockingOptions(case_sensitive=case_sensitive, prefix_length=prefix_length)
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    key = derive_key(value, BlockingAlgorithm(algorithm), options)
    if key is None:
        click.secho("(no key)", fg="yellow")
        return
    click.echo(key)


if __name__ == "__main__":
    cli()
