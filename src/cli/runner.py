# src/cli/runner.py

"""Headless runners for the price updater, history tracker and trend report."""

import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from src.models.model_history import HistoryDocument
from src.services.price_updater import (
    PriceChange,
    fetch_openrouter_prices,
    format_change_report,
    merge_prices,
)
from src.services.trend_report import (
    TrendChange,
    format_trend_line,
    summarize_trends,
)
from src.storage.price_history_store import (
    HistoryStoreError,
    PriceHistoryStore,
    utc_today,
)
from src.storage.pricing_file import (
    PricingFileError,
    load_pricing,
    save_pricing,
)

logger = logging.getLogger("ai_price_compare.cli")

# Stderr console for status messages so stdout stays clean for reports
_err = Console(stderr=True)


def _print_changes_table(changes: list[PriceChange]) -> None:
    """Render a Rich table of OpenRouter price changes to stdout."""
    table = Table(
        title="OpenRouter Price Updates",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Model", max_width=40)
    table.add_column("Old (in/out per 1M)", justify="right")
    table.add_column("New (in/out per 1M)", justify="right", style="green")

    for idx, change in enumerate(changes, 1):
        table.add_row(str(idx), change.model, change.old, change.new)

    Console().print(table)


def _print_trend_table(changes: list[TrendChange]) -> None:
    """Render a Rich table of non-stable trends to stdout."""
    table = Table(
        title="Price Changes (30-entry trend)",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Model", max_width=40)
    table.add_column("Direction", justify="center")
    table.add_column("Change", justify="right")

    for change in changes:
        style = "red" if change.trend.direction.value == "up" else "green"
        table.add_row(
            change.name,
            f"[{style}]{change.trend.direction.value}[/{style}]",
            f"{change.trend.change_percent:.1f}%",
        )

    Console().print(table)


def print_trend_summary(document: HistoryDocument) -> list[TrendChange]:
    """Print the non-stable trends of *document* and return them."""
    changes = summarize_trends(document)
    if not changes:
        _err.print(
            "[dim]No significant price changes detected (30-entry trend)[/dim]"
        )
        return changes

    for change in changes:
        logger.info("%s", format_trend_line(change))
    _print_trend_table(changes)
    return changes


def run_update_prices(prices_path: Path | None = None) -> int:
    """Fetch OpenRouter prices and merge them into the pricing document."""
    _err.print("[bold]Updating prices from OpenRouter...[/bold]")

    try:
        current = load_pricing(prices_path)
    except PricingFileError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    _err.print(
        f"[dim]Loaded {len(current['models'])} models, last update: "
        f"{current.get('lastUpdated') or 'unknown'}[/dim]"
    )

    fetched = fetch_openrouter_prices()
    if not fetched:
        _err.print("[yellow]No price data fetched. Exiting.[/yellow]")
        return 0

    updated, changes = merge_prices(current, fetched, utc_today())
    try:
        path = save_pricing(updated, prices_path)
    except OSError as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")
        return 1

    logger.info("%s", format_change_report(changes))
    if changes:
        _print_changes_table(changes)
    _err.print(
        f"[green]✓ Updated {len(changes)} model prices → {path}[/green]"
    )
    return 0


def run_track_history(
    prices_path: Path | None = None,
    history_path: Path | None = None,
    strict: bool | None = None,
) -> int:
    """Record today's prices into the history store and persist it."""
    _err.print("[bold]Tracking price history...[/bold]")

    try:
        pricing = load_pricing(prices_path)
    except PricingFileError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    store = PriceHistoryStore(path=history_path, strict=strict)
    try:
        store.load()
        stats = store.update_from_pricing(pricing)
        store.persist()
    except HistoryStoreError as exc:
        logger.error("History update failed: %s", exc)
        _err.print(f"[red]History update failed: {exc}[/red]")
        return 1

    _err.print(
        f"[green]✓ History updated: {stats.new_entries} new, "
        f"{stats.updated_entries} updated, {stats.skipped} skipped, "
        f"{len(store.document.models)} models tracked[/green]"
    )
    print_trend_summary(store.document)
    return 0


def run_summary(
    history_path: Path | None = None,
    strict: bool | None = None,
) -> int:
    """Print the trend summary of the persisted history."""
    store = PriceHistoryStore(path=history_path, strict=strict)
    try:
        document = store.load()
    except HistoryStoreError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    print_trend_summary(document)
    return 0
