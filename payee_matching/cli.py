"""Command line interface for payee normalization, deduplication and link review."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import typer
from rich.console import Console
from rich.table import Table

from payee_matching.classification.keyword_exclusion import KeywordExclusionFilter
from payee_matching.curation.dedupe_adjudicator import find_duplicate_candidates
from payee_matching.normalization.deduplication import (
    DeduplicationEngine,
    DedupePersistenceError,
    DuplicateGroup,
)
from payee_matching.normalization.name_normalizer import normalize_name
from payee_matching.normalization.result_matcher import guess_payee_column
from payee_matching.normalization.string_similarity import calculate_combined_similarity
from payee_matching.storage.dedupe_store import DedupeStoreError, JsonDedupeStore
from payee_matching.utils.config import Config, load_config
from payee_matching.utils.logging_setup import setup_logging

app = typer.Typer(help="Normalize, compare and deduplicate payee names.")
links_app = typer.Typer(help="Review and export stored dedupe links.")
app.add_typer(links_app, name="links")

console = Console(color_system=None, force_terminal=False, width=120)

_state: Dict[str, bool] = {"verbose": False}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    _state["verbose"] = verbose
    setup_logging(verbose=verbose)


def _load(config_path: Path) -> Config:
    cfg = load_config(config_path)
    setup_logging(cfg.logging, verbose=_state["verbose"])
    return cfg


def _open_store(cfg: Config, store_path: Path | None) -> JsonDedupeStore:
    try:
        if store_path is not None:
            return JsonDedupeStore(path=store_path)
        return JsonDedupeStore(config=cfg.storage)
    except DedupeStoreError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)


def read_names(path: Path, column: str | None = None) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Read payee names from a CSV file (header row required) or a text file.

    Returns the names and, for CSV input, the parsed rows.
    """
    if not path.exists():
        console.print(f"[red]Input file not found: {path}[/red]")
        raise typer.Exit(code=1)

    if path.suffix.lower() != ".csv":
        lines = path.read_text(encoding="utf-8").splitlines()
        return [line.strip() for line in lines if line.strip()], []

    with open(path, newline="", encoding="utf-8-sig") as f:
        rows = list(csv.DictReader(f))
    if not rows:
        return [], []

    column = column or guess_payee_column(rows[0])
    if column is None or column not in rows[0]:
        console.print(f"[red]Could not determine payee column in {path}[/red]")
        raise typer.Exit(code=1)
    return [row.get(column) or "" for row in rows], rows


@app.command("normalize")
def normalize(
    name: str = typer.Argument(..., help="Payee name to normalize."),
) -> None:
    """Show the normalized form and content hash of a name."""
    result = normalize_name(name)
    console.print(f"[bold]{result.normalized or '(empty)'}[/bold]")
    console.print(f"Hash: {result.hash}")


@app.command("similarity")
def similarity(
    first: str = typer.Argument(..., help="First payee name."),
    second: str = typer.Argument(..., help="Second payee name."),
    raw: bool = typer.Option(False, help="Compare the names without normalizing them."),
) -> None:
    """Show per-metric and combined similarity for two names."""
    a = first if raw else normalize_name(first).normalized
    b = second if raw else normalize_name(second).normalized
    scores = calculate_combined_similarity(a, b)

    table = Table(title=f"{a} vs {b}")
    table.add_column("Metric", style="cyan")
    table.add_column("Score", justify="right")
    for metric, value in scores.model_dump().items():
        table.add_row(metric, f"{value:.2f}")
    console.print(table)


@app.command("filter")
def filter_names(
    input_file: Path = typer.Argument(..., help="CSV or text file of payee names."),
    column: str | None = typer.Option(None, help="Payee column for CSV input."),
    config: Path = typer.Option(Path("config/config.yaml"), help="Path to config file."),
) -> None:
    """Split names into those needing classification and keyword-excluded ones."""
    cfg = _load(config)
    names, _rows = read_names(input_file, column)
    keyword_filter = KeywordExclusionFilter(cfg.keywords)
    result = keyword_filter.filter(names)

    console.print(
        f"Valid: {len(result.valid_names)} | Excluded: {len(result.excluded_names)}"
    )
    if not result.excluded_names:
        return

    table = Table(title="Excluded payees")
    table.add_column("Name", style="cyan")
    table.add_column("Keywords")
    for name in result.excluded_names:
        table.add_row(name, ", ".join(keyword_filter.check(name).matched_keywords))
    console.print(table)


@app.command("dedupe")
def dedupe(
    input_file: Path = typer.Argument(..., help="CSV or text file of payee names."),
    column: str | None = typer.Option(None, help="Payee column for CSV input."),
    threshold: float | None = typer.Option(
        None, help="Combined similarity threshold (0-100).", min=0.0, max=100.0
    ),
    store: Path | None = typer.Option(None, help="Override dedupe link store path."),
    fuzzy: bool = typer.Option(True, "--fuzzy/--no-fuzzy", help="Enable fuzzy matching."),
    show_all: bool = typer.Option(False, "--all", help="Also list single-member groups."),
    config: Path = typer.Option(Path("config/config.yaml"), help="Path to config file."),
) -> None:
    """Group duplicate payee names and persist newly discovered links."""
    cfg = _load(config)
    names, _rows = read_names(input_file, column)
    link_store = _open_store(cfg, store)
    engine = DeduplicationEngine(
        store=link_store, config=cfg.matching, similarity_threshold=threshold
    )

    try:
        result = engine.group_names(names, use_fuzzy=fuzzy)
    except DedupePersistenceError as exc:
        console.print(f"[red]{exc}[/red]")
        _render_group_mapping(exc.partial_groups, title="Groups computed locally (not saved)")
        for link in exc.pending_links:
            console.print(f"Unsaved link: {link.duplicate_normalized} -> {link.canonical_normalized}")
        console.print(
            f"[yellow]{len(exc.partial_groups)} groups computed; "
            f"{len(exc.pending_links)} links not saved.[/yellow]"
        )
        raise typer.Exit(code=1)

    groups = result.groups if show_all else [g for g in result.groups if g.size > 1]
    _render_groups(groups, title=f"Duplicate groups ({len(result.groups)} total)")
    console.print(
        f"Names: {len(names)} | Groups: {len(result.groups)} | "
        f"New links: {len(result.new_links)} | Stored links reused: {result.reused_links}"
    )


def _render_groups(groups: Sequence[DuplicateGroup], *, title: str) -> None:
    if not groups:
        console.print("[yellow]No duplicate groups found.[/yellow]")
        return
    table = Table(title=title)
    table.add_column("Canonical", style="cyan")
    table.add_column("Members")
    table.add_column("Rows", justify="right")
    table.add_column("Source")
    for group in groups:
        table.add_row(
            group.canonical_normalized,
            "; ".join(group.members),
            ", ".join(str(i) for i in group.row_indices),
            "store" if group.from_store else "batch",
        )
    console.print(table)


def _render_group_mapping(groups: Dict[str, List[str]], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("Canonical", style="cyan")
    table.add_column("Members")
    for canonical, members in groups.items():
        table.add_row(canonical, "; ".join(members))
    console.print(table)


@app.command("candidates")
def candidates(
    input_file: Path = typer.Argument(..., help="CSV or text file of payee names."),
    column: str | None = typer.Option(None, help="Payee column for CSV input."),
    min_similarity: float | None = typer.Option(
        None, help="Minimum ratio (0-1) for a pair to be listed.", min=0.0, max=1.0
    ),
    limit: int = typer.Option(50, help="Max pairs to display.", min=1),
    config: Path = typer.Option(Path("config/config.yaml"), help="Path to config file."),
) -> None:
    """List name pairs that may be duplicates and need review."""
    cfg = _load(config)
    names, _rows = read_names(input_file, column)
    threshold = (
        min_similarity if min_similarity is not None else cfg.matching.candidate_min_similarity
    )
    pairs = find_duplicate_candidates(names, min_similarity=threshold)
    if not pairs:
        console.print("[yellow]No duplicate candidates found.[/yellow]")
        return

    table = Table(title=f"Duplicate candidates ({len(pairs)} total)")
    table.add_column("Payee A", style="cyan")
    table.add_column("Payee B", style="cyan")
    table.add_column("Similarity", justify="right")
    for pair in pairs[:limit]:
        table.add_row(pair.payee_name_1, pair.payee_name_2, f"{pair.similarity:.2f}")
    console.print(table)


@links_app.command("list")
def list_links(
    query: str | None = typer.Option(None, help="Filter links containing this text."),
    limit: int = typer.Option(50, help="Max rows to display.", min=1),
    store: Path | None = typer.Option(None, help="Override dedupe link store path."),
    config: Path = typer.Option(Path("config/config.yaml"), help="Path to config file."),
) -> None:
    """List stored duplicate -> canonical links."""
    cfg = _load(config)
    link_store = _open_store(cfg, store)
    records = link_store.all_links()
    if query:
        needle = query.upper()
        records = [
            r
            for r in records
            if needle in r.duplicate_normalized or needle in r.canonical_normalized
        ]
    if not records:
        console.print("[yellow]No dedupe links stored.[/yellow]")
        return

    table = Table(title=f"Dedupe links ({len(records)} total, version {link_store.version})")
    table.add_column("Duplicate", style="cyan")
    table.add_column("Canonical")
    table.add_column("Updated")
    for record in records[:limit]:
        table.add_row(
            record.duplicate_normalized,
            record.canonical_normalized,
            record.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@links_app.command("export")
def export_links(
    output: Path = typer.Argument(..., help="Destination CSV file."),
    store: Path | None = typer.Option(None, help="Override dedupe link store path."),
    config: Path = typer.Option(Path("config/config.yaml"), help="Path to config file."),
) -> None:
    """Export stored dedupe links to CSV."""
    cfg = _load(config)
    link_store = _open_store(cfg, store)
    path = link_store.export_csv(output)
    console.print(f"[green]Exported {len(link_store.all_links())} links to {path}[/green]")


@links_app.command("remove")
def remove_link(
    duplicate: str = typer.Argument(..., help="Duplicate name (raw or normalized)."),
    store: Path | None = typer.Option(None, help="Override dedupe link store path."),
    config: Path = typer.Option(Path("config/config.yaml"), help="Path to config file."),
) -> None:
    """Delete the stored link for a duplicate name."""
    cfg = _load(config)
    link_store = _open_store(cfg, store)
    normalized = normalize_name(duplicate).normalized
    if not link_store.remove(normalized):
        console.print(f"[red]No link stored for {normalized}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed link for {normalized}[/green]")


def run() -> None:
    """Entrypoint for Typer."""
    app()


if __name__ == "__main__":
    run()
