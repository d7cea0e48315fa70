import click
import pandas as pd
from pathlib import Path

from .cli.merge_cells import merge_cells


@click.group()
def cli():
    """Command-line interface for cbmerge."""
    pass

####### Merge cells ###########
@cli.command()
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def merge(config_path):
    """Merge noisy cell barcodes using the config at CONFIG_PATH."""
    try:
        result, _, outputs = merge_cells(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if result is None:
        click.echo("Barcodes catalog is empty; no merge performed.")
        return

    counts = result.status_counts()
    click.echo(
        f"{result.merges_count} merges, {len(result.filtered_cells)} cells kept "
        f"(real={counts['real']}, merged={counts['merged']}, excluded={counts['excluded']})"
    )
    for kind, path in outputs.items():
        click.echo(f"  {kind}: {path}")
##########################################

####### batch command ###########
def _read_config_paths(config_table: Path, column: str) -> list[Path]:
    """Config paths from a plain list (.txt/.list) or a CSV/TSV with a path column."""
    if config_table.suffix.lower() in {".txt", ".list"}:
        with config_table.open() as f:
            return [Path(line.strip()).expanduser() for line in f if line.strip()]

    sep = "\t" if config_table.suffix.lower() in {".tsv", ".tab"} else ","
    try:
        df = pd.read_csv(config_table, sep=sep, dtype=str)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Failed to read table {config_table}: {e}") from e
    if column not in df.columns:
        raise click.ClickException(
            f"Column '{column}' not found in {config_table}. "
            f"Available columns: {', '.join(df.columns)}"
        )
    return [Path(p).expanduser() for p in df[column].dropna()]


@cli.command()
@click.argument(
    "config_table",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
)
@click.option(
    "--column",
    "-c",
    default="config_path",
    show_default=True,
    help="Column name containing config paths (ignored for plain TXT).",
)
def batch(config_table: Path, column: str):
    """
    Run a merge for every config listed in CONFIG_TABLE.

    Plain text format: one config path per line, no header.
    """
    config_paths = _read_config_paths(config_table, column)
    if not config_paths:
        raise click.ClickException(f"No config paths found in {config_table}")

    total = len(config_paths)
    click.echo(f"Running merge on {total} config paths from {config_table}")

    failures = 0
    for i, cfg in enumerate(config_paths, start=1):
        if not cfg.exists():
            click.echo(f"[{i}/{total}] SKIP (missing): {cfg}")
            continue

        click.echo(f"[{i}/{total}] merge → {cfg}")
        try:
            merge_cells(cfg)
        except (OSError, ValueError) as e:
            failures += 1
            click.echo(f"  ERROR on {cfg}: {e}")

    if failures:
        raise click.ClickException(f"{failures} of {total} merges failed.")
    click.echo("Batch processing complete.")
##########################################
