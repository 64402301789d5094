"""
CSV exporter for the current result set.

Serializes the full filtered result set (never just one page) with a fixed
column order and RFC 4180 quoting, prefixed with a UTF-8 byte-order mark so
spreadsheet tools detect the encoding. Amounts use Indian digit grouping
(1,50,000) and dates the day/month/year order the dashboard shows.

Usage:
    from price_catalog.engine.export import to_csv, write_csv

    text = to_csv(records)
    path = write_csv(records, "exports")
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import List, Optional, Sequence, Union

from price_catalog.config import get_settings
from price_catalog.domain.models import PriceRecord
from price_catalog.utils.logging import get_logger

log = get_logger(__name__)

BOM = "\ufeff"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
HEADERS = ["Item Name", "Category", "Unit Price", "Unit", "Source", "IRC References", "Updated"]


def group_indian(digits: str) -> str:
    """Insert separators the en-IN way: last three digits, then pairs."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_amount(value: Optional[Decimal], symbol: str = "₹") -> str:
    """
    Render a price like the dashboard does: currency symbol, grouped integer
    part, at most three fraction digits with trailing zeros dropped.
    """
    amount = Decimal(0) if value is None else value
    amount = amount.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):f}".partition(".")
    fraction = fraction.rstrip("0")
    text = group_indian(whole) + (f".{fraction}" if fraction else "")
    return f"{symbol}{sign}{text}"


def format_updated(value: Union[datetime, str, None]) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, datetime):
        return f"{value.day}/{value.month}/{value.year}"
    return "Invalid Date"


def _row(record: PriceRecord, symbol: str) -> List[str]:
    name = record.item_name
    if record.item_code:
        name = f"{name} ({record.item_code})"
    return [
        name,
        record.category or "General",
        format_amount(record.unit_price, symbol),
        record.unit or "N/A",
        record.source,
        "; ".join(record.irc_reference),
        format_updated(record.last_verified),
    ]


def to_csv(records: Sequence[PriceRecord], currency_symbol: Optional[str] = None) -> str:
    """
    Serialize records to CSV text beginning with a byte-order mark.

    Fields containing a comma, double quote, or line break are quoted with
    inner quotes doubled; all others are written bare. Rows end with CRLF.
    """
    symbol = get_settings().currency_symbol if currency_symbol is None else currency_symbol
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(HEADERS)
    for record in records:
        writer.writerow(_row(record, symbol))
    return BOM + buffer.getvalue()


def to_csv_bytes(records: Sequence[PriceRecord], currency_symbol: Optional[str] = None) -> bytes:
    return to_csv(records, currency_symbol=currency_symbol).encode("utf-8")


def export_filename(on: Optional[date] = None) -> str:
    """File name for an export taken on the given day (default: today)."""
    return f"price_data_{(on or date.today()).isoformat()}.csv"


def write_csv(
    records: Sequence[PriceRecord],
    directory: Union[Path, str] = ".",
    on: Optional[date] = None,
    currency_symbol: Optional[str] = None,
) -> Path:
    """Write an export file into `directory` and return its path."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / export_filename(on)
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(to_csv(records, currency_symbol=currency_symbol))
    log.info("CSV export written", extra={"path": str(path), "rows": len(records)})
    return path


__all__ = [
    "BOM",
    "CSV_MEDIA_TYPE",
    "HEADERS",
    "export_filename",
    "format_amount",
    "format_updated",
    "group_indian",
    "to_csv",
    "to_csv_bytes",
    "write_csv",
]
