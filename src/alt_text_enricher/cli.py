"""Typer CLI for building the asset index and enriching a Files export."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import NoReturn

import requests
import typer

from .config import AppConfig, config
from .errors import AltTextEnricherError
from .index_cache import IndexStore
from .indexer import SweepReport
from .pipeline import RunSummary
from .schemas import RowOutcome
from .service_layer import build_index, build_provider, build_source_client, ensure_index, run_enrichment

app = typer.Typer(help="Generate alt text for Shopify file exports from the command line.")


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
) -> None:
    """Configure logging for every command."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def index(
    cache_path: Path = typer.Option(
        config.cache_path,
        "--cache-path",
        help="JSON file holding the file name -> URL index.",
    ),
    refresh: bool = typer.Option(
        False,
        "--refresh",
        help="Discard cached entries and rebuild the index from scratch.",
        is_flag=True,
    ),
) -> None:
    """Sweep content, collection, and product images into the index cache."""

    cfg = replace(config, cache_path=cache_path)
    try:
        store = IndexStore.load(cfg.cache_path)
        if refresh:
            store.clear()
        reports = build_index(store, build_source_client(cfg), cfg)
    except (AltTextEnricherError, requests.RequestException) as exc:
        _fail(exc)

    _echo_sweeps(reports)
    typer.echo(f"Index holds {len(store)} asset URL(s) → {cfg.cache_path}")


@app.command()
def run(
    input_path: Path = typer.Argument(config.input_csv, help="Shopify Files export (.csv)."),
    output: Path = typer.Option(
        config.output_csv,
        "--output",
        "-o",
        help="Destination CSV for rows with alt text.",
    ),
    cache_path: Path = typer.Option(
        config.cache_path,
        "--cache-path",
        help="JSON file holding the file name -> URL index.",
    ),
    batch_size: int = typer.Option(config.batch_size, "--batch-size", min=1, help="Rows per output write."),
    chunk_size: int = typer.Option(config.chunk_size, "--chunk-size", min=1, help="Rows per rate-limited burst."),
    chunk_delay_ms: int = typer.Option(
        config.chunk_delay_ms,
        "--chunk-delay-ms",
        min=0,
        help="Pause between bursts, in milliseconds.",
    ),
    tokens_per_minute: int = typer.Option(
        config.tokens_per_minute,
        "--tokens-per-minute",
        min=1,
        help="Generation token budget used to derive the rate-limit backoff.",
    ),
    refresh_index: bool = typer.Option(
        False,
        "--refresh-index",
        help="Rebuild the index from Shopify even when a cache exists.",
        is_flag=True,
    ),
    resume: bool = typer.Option(
        False,
        "--resume",
        help="Append to an existing output file, skipping rows it already holds.",
        is_flag=True,
    ),
    mock_generation: bool = typer.Option(
        False,
        "--mock-generation",
        help="Use a deterministic offline generator instead of the OpenAI API.",
        is_flag=True,
    ),
) -> None:
    """Resolve each row against the index and generate any missing alt text."""

    cfg: AppConfig = replace(
        config,
        input_csv=input_path,
        output_csv=output,
        cache_path=cache_path,
        batch_size=batch_size,
        chunk_size=chunk_size,
        chunk_delay_ms=chunk_delay_ms,
        tokens_per_minute=tokens_per_minute,
    )
    if not cfg.input_csv.exists():
        typer.echo(f"Input file not found: {cfg.input_csv}", err=True)
        raise typer.Exit(code=1)

    try:
        store = IndexStore.load(cfg.cache_path)
        provider = build_provider(cfg, mock=mock_generation)
        reports = ensure_index(store, lambda: build_source_client(cfg), cfg, refresh=refresh_index)
        _echo_sweeps(reports)
        summary = run_enrichment(store, provider, cfg, resume=resume)
    except (AltTextEnricherError, requests.RequestException) as exc:
        _fail(exc)

    typer.echo(_format_summary(summary, cfg.output_csv))


@app.command()
def lookup(
    file_name: str = typer.Argument(..., help="File name as it appears in the export."),
    cache_path: Path = typer.Option(
        config.cache_path,
        "--cache-path",
        help="JSON file holding the file name -> URL index.",
    ),
) -> None:
    """Show which cached URL a file name resolves to."""

    try:
        store = IndexStore.load(cache_path)
    except (AltTextEnricherError, requests.RequestException) as exc:
        _fail(exc)

    url, matched_key = store.resolve(file_name.strip())
    if url is None:
        typer.echo(f"No matching Shopify file for '{file_name}'", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{matched_key} → {url}")


def _fail(exc: Exception) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1) from exc


def _echo_sweeps(reports: list[SweepReport]) -> None:
    for report in reports:
        typer.echo(
            f"Swept {report.category} images: {report.indexed} indexed, "
            f"{report.skipped} skipped, {report.pages} page(s)"
        )


def _format_summary(summary: RunSummary, output: Path) -> str:
    lines = [
        f"Processed {summary.processed_rows} of {summary.total_rows} row(s) "
        f"in {summary.batches} batch(es) → {output}"
    ]
    if summary.skipped_rows:
        lines.append(f"Resumed after {summary.skipped_rows} previously written row(s)")
    for outcome in RowOutcome:
        lines.append(f"  {outcome.value}: {summary.count(outcome)}")
    return "\n".join(lines)


if __name__ == "__main__":
    app()
