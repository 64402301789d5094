from __future__ import annotations

from decimal import Decimal
from typing import AbstractSet, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from price_catalog.domain.models import CatalogStats, PriceRecord
from price_catalog.domain.results import BulkDeleteResult, MutationResult
from price_catalog.engine.export import format_amount, format_updated

SOURCE_STYLES = {
    "CPWD_SOR": "green",
    "GeM": "cyan",
    "AOR": "blue",
    "MANUAL": "yellow",
    "AI_ESTIMATED": "magenta",
}


def print_records(
    records: Sequence[PriceRecord],
    selected: Optional[AbstractSet[str]] = None,
    title: str = "Price Catalog",
    caption: Optional[str] = None,
    currency_symbol: str = "₹",
    console: Optional[Console] = None,
) -> None:
    """
    Render one page of price records as a rich table.

    Selected rows are marked in the first column; source tags are colored by
    provenance.
    """
    console = console or Console()

    if not records:
        console.print("[yellow]No price records match this filter.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, caption=caption)
    table.add_column("", no_wrap=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Item", style="bold")
    table.add_column("Category")
    table.add_column("Unit Price", justify="right", style="bold green")
    table.add_column("Unit")
    table.add_column("Source")
    table.add_column("Updated", justify="right")

    selected = selected or set()
    for record in records:
        name = escape(record.item_name)
        if record.item_code:
            name = f"{name} [dim]({escape(record.item_code)})[/dim]"
        style = SOURCE_STYLES.get(record.source, "white")
        table.add_row(
            "✔" if record.id in selected else "",
            record.id,
            name,
            record.category or "General",
            format_amount(record.unit_price, currency_symbol),
            record.unit or "N/A",
            f"[{style}]{record.source}[/{style}]",
            format_updated(record.last_verified),
        )

    console.print(table)


def print_stats(
    stats: CatalogStats, currency_symbol: str = "₹", console: Optional[Console] = None
) -> None:
    """Render summary statistics and the per-source breakdown."""
    console = console or Console()

    summary = Table(title="Summary", box=box.SIMPLE_HEAVY, show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Total items", f"{stats.total:,}")
    summary.add_row("Categories", str(stats.categories))
    summary.add_row("Average price", format_amount(Decimal(stats.avg_price), currency_symbol))
    summary.add_row(
        "Price range",
        "N/A"
        if stats.min_price is None
        else f"{format_amount(stats.min_price, currency_symbol)} – "
        f"{format_amount(stats.max_price, currency_symbol)}",
    )
    summary.add_row(
        "Last updated", format_updated(stats.last_updated) if stats.last_updated else "N/A"
    )
    console.print(summary)

    if stats.by_source:
        by_source = Table(title="By Source", box=box.ROUNDED)
        by_source.add_column("Source", no_wrap=True)
        by_source.add_column("Items", justify="right", style="magenta")
        by_source.add_column("Total Price", justify="right", style="green")
        for source, totals in sorted(stats.by_source.items()):
            style = SOURCE_STYLES.get(source, "white")
            by_source.add_row(
                f"[{style}]{source}[/{style}]",
                str(totals.count),
                format_amount(totals.total_price, currency_symbol),
            )
        console.print(by_source)


def print_mutation(result: MutationResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    action = result.get("action", "change")
    if result.get("ok"):
        target = result.get("record_id") or "record"
        console.print(f"[green]{action.capitalize()} succeeded[/green] for {target}.")
        if not result.get("refreshed", True):
            console.print("[yellow]Store confirmed the change but the refresh failed.[/yellow]")
        return
    console.print(
        f"[red]{action.capitalize()} failed ({result.get('error_kind')}):[/red] {escape(str(result.get('error')))}"
    )
    for problem in result.get("problems") or []:
        console.print(f"  • {escape(problem)}")


def print_bulk_delete(result: BulkDeleteResult, console: Optional[Console] = None) -> None:
    """Summarize a bulk delete, listing every id that could not be removed."""
    console = console or Console()
    requested = result.get("requested", 0)
    succeeded = result.get("succeeded", [])
    failed = result.get("failed", {})

    if not requested:
        console.print("[yellow]Nothing to delete.[/yellow]")
        return

    color = "green" if not failed else ("yellow" if succeeded else "red")
    console.print(f"[{color}]Deleted {len(succeeded)} of {requested} record(s).[/{color}]")
    if failed:
        table = Table(title="Failed deletes", box=box.ROUNDED)
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Reason", style="red")
        for record_id, reason in failed.items():
            table.add_row(record_id, escape(reason))
        console.print(table)
