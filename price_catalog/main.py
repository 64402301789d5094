from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

import typer

from price_catalog.config import PAGE_SIZE_OPTIONS, get_settings
from price_catalog.domain.models import Category, PriceFilter, Source
from price_catalog.infrastructure.http_store import HttpPriceStore
from price_catalog.reporter import print_bulk_delete, print_mutation, print_records, print_stats
from price_catalog.session import CatalogSession
from price_catalog.utils.logging import configure_logging

app = typer.Typer(help="Price catalog query and maintenance CLI.")

T = TypeVar("T")


def _run(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)  # type: ignore[arg-type]


def _session() -> CatalogSession:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return CatalogSession(HttpPriceStore(), settings=settings)


def _filter(text: Optional[str], category: Optional[str], source: Optional[str]) -> PriceFilter:
    return PriceFilter(text=text, category=category, source=source)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"store={settings.store_url} timeout={settings.store_timeout_seconds:g}s "
        f"retries={settings.store_retry_attempts} | page_size={settings.default_page_size} "
        f"bulk_concurrency={settings.bulk_delete_concurrency} "
        f"mutation_timeout={settings.mutation_timeout_seconds:g}s"
    )
    typer.echo("Categories: " + ", ".join(c.value for c in Category))
    typer.echo("Sources: " + ", ".join(s.value for s in Source))


@app.command()
def search(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Free-text match on item name."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Exact category."),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Exact source tag."),
    page: int = typer.Option(1, "--page", "-p", min=1, help="1-based page number."),
    page_size: Optional[int] = typer.Option(
        None, "--page-size", help="Rows per page (5, 10, 25, 50 or 100)."
    ),
) -> None:
    """
    Search the catalog and show one page plus statistics for the whole result set.
    """

    if page_size is not None and page_size not in PAGE_SIZE_OPTIONS:
        raise typer.BadParameter(f"must be one of {PAGE_SIZE_OPTIONS}", param_hint="--page-size")

    async def _search() -> bool:
        async with _session() as session:
            if page_size is not None:
                session.set_page_size(page_size)
            result = await session.search(_filter(text, category, source))
            if result.get("status") != "ok":
                typer.echo(f"Search failed: {result.get('error')}", err=True)
                return False
            session.set_page(min(page, session.page_count) - 1)
            print_records(
                session.page(),
                caption=f"Page {session.page_index + 1} of {session.page_count}",
                currency_symbol=session.currency_symbol,
            )
            print_stats(session.stats, currency_symbol=session.currency_symbol)
            return True

    if not _run(_search()):
        raise typer.Exit(code=1)


@app.command()
def recent(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Rows to show."),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Exact category."),
) -> None:
    """
    List the most recently verified prices.
    """

    async def _recent() -> bool:
        async with _session() as session:
            result = await session.recent(limit, category=category)
            if result.get("status") != "ok":
                typer.echo(f"Listing failed: {result.get('error')}", err=True)
                return False
            print_records(result.get("records", []), title="Recently Verified")
            return True

    if not _run(_recent()):
        raise typer.Exit(code=1)


@app.command()
def add(
    name: str = typer.Option(..., "--name", help="Item name."),
    price: str = typer.Option(..., "--price", help="Unit price (non-negative number)."),
    unit: str = typer.Option("nos", "--unit", help="Unit of measure."),
    category: str = typer.Option(Category.OTHER.value, "--category", "-c"),
    source: str = typer.Option(Source.MANUAL.value, "--source", "-s"),
    code: Optional[str] = typer.Option(None, "--code", help="External item code."),
    description: Optional[str] = typer.Option(None, "--description"),
    irc: Optional[List[str]] = typer.Option(None, "--irc", help="IRC reference; repeatable."),
) -> None:
    """
    Add a price record.
    """
    data: Dict[str, Any] = {
        "itemName": name,
        "unitPrice": price,
        "unit": unit,
        "category": category,
        "source": source,
        "itemCode": code,
        "description": description,
        "ircReference": irc or [],
    }

    async def _add() -> bool:
        async with _session() as session:
            result = await session.add(data)
            print_mutation(result)
            return bool(result.get("ok"))

    if not _run(_add()):
        raise typer.Exit(code=1)


@app.command()
def edit(
    record_id: str = typer.Argument(..., help="Record id."),
    name: Optional[str] = typer.Option(None, "--name"),
    price: Optional[str] = typer.Option(None, "--price"),
    unit: Optional[str] = typer.Option(None, "--unit"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    source: Optional[str] = typer.Option(None, "--source", "-s"),
    code: Optional[str] = typer.Option(None, "--code"),
    description: Optional[str] = typer.Option(None, "--description"),
) -> None:
    """
    Edit the editable fields of one record. Only the options given are sent.
    """
    given = {
        "itemName": name,
        "unitPrice": price,
        "unit": unit,
        "category": category,
        "source": source,
        "itemCode": code,
        "description": description,
    }
    data = {key: value for key, value in given.items() if value is not None}
    if not data:
        raise typer.BadParameter("give at least one field option to change")

    async def _edit() -> bool:
        async with _session() as session:
            result = await session.edit(record_id, data)
            print_mutation(result)
            return bool(result.get("ok"))

    if not _run(_edit()):
        raise typer.Exit(code=1)


@app.command()
def delete(
    record_ids: List[str] = typer.Argument(..., help="One or more record ids."),
) -> None:
    """
    Delete one or many records. Every id is attempted; failures are listed.
    """

    async def _delete() -> bool:
        async with _session() as session:
            if len(record_ids) == 1:
                result = await session.delete(record_ids[0])
                print_mutation(result)
                return bool(result.get("ok"))
            report = await session.bulk_delete(record_ids)
            print_bulk_delete(report)
            return not report.get("failed")

    if not _run(_delete()):
        raise typer.Exit(code=1)


@app.command()
def export(
    text: Optional[str] = typer.Option(None, "--text", "-t"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    source: Optional[str] = typer.Option(None, "--source", "-s"),
    out_dir: Path = typer.Option(Path("."), "--out-dir", "-o", help="Directory for the CSV."),
) -> None:
    """
    Export the full filtered result set to price_data_<date>.csv.
    """

    async def _export() -> Optional[Path]:
        async with _session() as session:
            result = await session.search(_filter(text, category, source))
            if result.get("status") != "ok":
                typer.echo(f"Search failed: {result.get('error')}", err=True)
                return None
            return session.export_file(out_dir)

    path = _run(_export())
    if path is None:
        raise typer.Exit(code=1)
    typer.echo(f"Wrote {path}")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
