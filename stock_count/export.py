"""CSV report rendering for counted inventory.

Both serializers are pure functions of `(products, counts)` that return CSV
text; writing the text somewhere is left to `write_report` or the caller.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, tzinfo
from decimal import Decimal
from pathlib import Path
from typing import Literal, TypeAlias

from .aggregate import totals_by_product
from .models import CountRecord, Product

logger = logging.getLogger(__name__)

ReportKind: TypeAlias = Literal["inventory_summary", "audit_log"]

UNKNOWN = "Unknown"

SUMMARY_HEADERS = (
    "SKU",
    "Product Name",
    "Category Level 1",
    "Category Level 2",
    "Category Level 3",
    "Price",
    "Expected Count",
    "Actual Count",
    "Discrepancy",
    "Store",
    "Location",
)
AUDIT_LOG_HEADERS = (
    "Timestamp",
    "Date",
    "Time",
    "Counter Name",
    "SKU",
    "Product Name",
    "Quantity",
    "Store",
    "Location",
)


def _format_number(value: float | int | None) -> str:
    """Render a number in plain decimal form, with `0` for absent values."""

    if value is None:
        return "0"
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    # Shortest round-tripping digits, never in exponent notation.
    return format(Decimal(repr(value)), "f")


def _render(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    """Write rows as CSV text with standard minimal quoting."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def summary_report_csv(products: Iterable[Product], counts: Iterable[CountRecord]) -> str:
    """Render one row per product with its counted total and discrepancy."""

    totals = totals_by_product(counts)
    rows = []
    for product in products:
        counted = totals.get(product.id, 0)
        rows.append(
            (
                product.sku,
                product.name,
                product.category_level_1 or "",
                product.category_level_2 or "",
                product.category_level_3 or "",
                _format_number(product.price),
                product.expected_or_zero,
                counted,
                counted - product.expected_or_zero,
                product.store or "",
                product.location or "",
            )
        )
    logger.info("Rendered summary report for %d products", len(rows))
    return _render(SUMMARY_HEADERS, rows)


def audit_log_csv(
    products: Iterable[Product],
    counts: Iterable[CountRecord],
    *,
    tz: tzinfo | None = None,
) -> str:
    """Render one row per count event, newest first.

    Events whose product no longer exists are kept and labelled `Unknown`.
    Date and time columns use `tz`, or the local zone when it is None.
    """

    products_by_id = {product.id: product for product in products}
    ordered = sorted(counts, key=lambda record: record.timestamp, reverse=True)

    rows = []
    for record in ordered:
        product = products_by_id.get(record.product_id)
        moment = datetime.fromtimestamp(record.timestamp / 1000, tz=tz)
        rows.append(
            (
                record.timestamp,
                moment.strftime("%Y-%m-%d"),
                moment.strftime("%H:%M:%S"),
                record.counter_name or UNKNOWN,
                product.sku if product else UNKNOWN,
                product.name if product else UNKNOWN,
                record.quantity,
                (product.store or "") if product else "",
                (product.location or "") if product else "",
            )
        )
    logger.info("Rendered audit log for %d count records", len(rows))
    return _render(AUDIT_LOG_HEADERS, rows)


def report_filename(kind: ReportKind, now: datetime | None = None) -> str:
    """Return `<kind>_<YYYY-MM-DD>_<HH-MM-SS>.csv` for the local clock."""

    if kind not in ("inventory_summary", "audit_log"):
        raise ValueError(f"Unsupported report kind: {kind}")
    moment = now or datetime.now()
    return f"{kind}_{moment:%Y-%m-%d}_{moment:%H-%M-%S}.csv"


def write_report(content: str, *, output_dir: Path, kind: ReportKind, now: datetime | None = None) -> Path:
    """Write report text under `output_dir` with a generated filename."""

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / report_filename(kind, now)
    output_path.write_text(content, encoding="utf-8")
    logger.info("Wrote %s report: %s", kind, output_path)
    return output_path
