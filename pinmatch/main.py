#!/usr/bin/env python3
"""
pinmatch - Pinball table identity resolution

Entry point for enriching the local table catalog and building the
cross-source master catalog.

Usage:
    python -m pinmatch.main enrich scan.json
    python -m pinmatch.main build-master
    python -m pinmatch.main status
"""

import sys
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from pinmatch.catalog import CatalogStore, IncrementalIndexMerger, load_scan, save_master_catalog
from pinmatch.config import DATA_SOURCES, settings
from pinmatch.deduplication import ClusterBuilder
from pinmatch.matching import MismatchJournal, SingleRecordMatcher, needs_match
from pinmatch.sources import CorpusCache
from pinmatch.utils.io import load_json_document

console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug):
    """pinmatch - Pinball table identity resolution"""
    if debug:
        from pinmatch.utils.logging import setup_logging
        setup_logging(level="DEBUG")


@cli.command()
@click.argument("scan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--force-rebuild", is_flag=True, help="Ignore stored ids and rematch every table")
@click.option("--workers", type=int, default=None, help="Worker threads for matching")
def enrich(scan_file: Path, force_rebuild: bool, workers: int | None):
    """
    Merge a scan into the catalog and match stale tables.

    SCAN_FILE is the scanner output: {"tables": [...]}.
    """
    matching = settings.matching.model_copy(update={"force_rebuild": force_rebuild or settings.matching.force_rebuild})

    console.print("\n[bold blue]pinmatch - Catalog Enrichment[/bold blue]")
    console.print(f"Scan: {scan_file}")
    console.print(f"Force rebuild: {matching.force_rebuild}\n")

    fresh, metadata = load_scan(scan_file)
    store = CatalogStore()
    merger = IncrementalIndexMerger(force_rebuild=matching.force_rebuild, max_workers=workers)
    records = merger.merge(fresh, store.load())

    corpora = CorpusCache.load(sources=("vpsdb",), include_master=True)
    journal = MismatchJournal(settings.paths.mismatch_log)
    matcher = SingleRecordMatcher(corpora, matching=matching, journal=journal)

    stale = [r for r in records if needs_match(r, matching.force_rebuild)]
    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        task = progress.add_task(f"Matching {len(stale)} tables...", total=None)
        summary = matcher.match_all(stale, metadata, max_workers=workers)
        progress.update(task, description="[green]✓ Matching complete[/green]")

    report = merger.report
    table = Table(title="Enrichment Summary")
    table.add_column("Stage")
    table.add_column("Count", justify="right")
    table.add_row("New", str(report.inserted))
    table.add_row("Updated", str(report.updated))
    table.add_row("Unchanged", str(report.unchanged))
    table.add_row("Kept (not scanned)", str(report.kept))
    table.add_row("Dropped", str(report.dropped))
    table.add_row("Matched", str(summary.matched))
    table.add_row("  of which direct", str(summary.direct))
    table.add_row("Unmatched", str(summary.unmatched))
    table.add_row("Failed", str(summary.failed))
    console.print(table)

    if len(journal):
        console.print(f"[yellow]{len(journal)} mismatches logged to {journal.path}[/yellow]")

    if not store.save(records):
        console.print(f"[red]Could not save catalog to {store.path}; see log for details[/red]")
        sys.exit(1)


@cli.command("build-master")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Master catalog path")
@click.option("--workers", type=int, default=None, help="Worker threads for unification")
def build_master(output: Path | None, workers: int | None):
    """Build the cross-source master catalog from all four corpora."""
    console.print("\n[bold blue]pinmatch - Master Catalog Build[/bold blue]\n")

    corpora = CorpusCache.load()

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        task = progress.add_task("Clustering...", total=None)
        try:
            result = ClusterBuilder(corpora, max_workers=workers).build()
        except Exception as e:
            console.print(f"[red]Build failed: {e}[/red]")
            logger.exception("Master catalog build failed")
            sys.exit(1)
        progress.update(task, description="[green]✓ Clustering complete[/green]")

    table = Table(title="Source Corpora")
    table.add_column("Source")
    table.add_column("Name")
    table.add_column("Records", justify="right")
    table.add_column("Skipped", justify="right")
    for source, info in DATA_SOURCES.items():
        corpus = corpora[source]
        table.add_row(source, info["name"], str(len(corpus)), str(corpus.skipped))
    console.print(table)

    console.print(f"Clusters: {len(result.clusters):,}")
    console.print(f"Isolated records: {len(result.isolated):,}")
    console.print(f"Pre-links: {len(result.prelinks):,}")
    if result.duration_seconds is not None:
        console.print(f"Duration: {result.duration_seconds:.1f}s")

    if not save_master_catalog(result.to_document(corpora), output):
        console.print("[red]Could not save master catalog; see log for details[/red]")
        sys.exit(1)


@cli.command()
def status():
    """Show catalog and master catalog statistics."""
    console.print("\n[bold blue]pinmatch - Status[/bold blue]\n")

    table = Table()
    table.add_column("Item")
    table.add_column("Path")
    table.add_column("Entries", justify="right")

    records = CatalogStore().load()
    matched = sum(1 for r in records if r.vps_id)
    table.add_row("Catalog", str(settings.paths.index_path), f"{len(records):,} ({matched:,} matched)")

    master = load_json_document(settings.paths.master_path, "master catalog")
    tables = master.get("tables", []) if isinstance(master, dict) else []
    table.add_row("Master catalog", str(settings.paths.master_path), f"{len(tables):,}")

    for source in DATA_SOURCES:
        path = settings.paths.corpus_path(source)
        table.add_row(source, str(path), "[green]present[/green]" if path.exists() else "[yellow]missing[/yellow]")

    console.print(table)


if __name__ == "__main__":
    cli()
