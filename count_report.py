"""Command-line runner for inventory count reports.

This script imports a product catalog CSV through the column-mapping pipeline,
replays a count log (in the audit-log CSV layout), writes the summary and
audit-log reports under `output/` by default and prints the dashboard figures.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from stock_count import ImportSession, InMemoryBackend, InventoryStore, Settings, get_settings
from stock_count.aggregate import new_record_id
from stock_count.export import audit_log_csv, summary_report_csv, write_report
from stock_count.mapping import ConvertedRow, ImportResult
from stock_count.models import CountRecord, DataIssue
from stock_count.normalize import normalize_text, parse_int_prefix
from stock_count.reconcile import DiscrepancyView, ProductDiscrepancy, filter_discrepancies, summarize
from stock_count.tokenizer import tokenize_csv

logger = logging.getLogger(__name__)

DEFAULT_ORGANIZATION = "local"
COUNT_LOG_COLUMNS = ("Timestamp", "Counter Name", "SKU", "Quantity")


def _issue_to_dict(issue: DataIssue) -> dict[str, str | None]:
    """Serialize a `DataIssue` into a JSON-friendly dictionary."""

    return {
        "code": issue.code,
        "field": issue.field,
        "message": issue.message,
    }


def _row_issues_to_dict(row: ConvertedRow) -> dict[str, Any]:
    return {
        "source_row": row.source_row,
        "issues": [_issue_to_dict(issue) for issue in row.issues],
    }


def _discrepancy_to_dict(item: ProductDiscrepancy) -> dict[str, Any]:
    return {
        "sku": item.product.sku,
        "name": item.product.name,
        "counted": item.counted,
        "expected": item.expected,
        "diff": item.diff,
        "status": item.status.value,
        "store": item.product.store,
        "location": item.product.location,
    }


def replay_count_log(store: InventoryStore, text: str) -> list[dict[str, Any]]:
    """Append every usable row of a count log to the store.

    Rows naming an unknown SKU or an unreadable quantity are skipped and
    reported; the returned list holds one entry per skipped row.
    """

    table = tokenize_csv(text)
    if not table.headers:
        return []
    missing = [column for column in COUNT_LOG_COLUMNS if table.column_index(column) < 0]
    if missing:
        raise ValueError(f"Count log is missing columns: {', '.join(missing)}")
    index = {column: table.column_index(column) for column in COUNT_LOG_COLUMNS}

    def cell(row: list[str], column: str) -> str | None:
        position = index[column]
        return row[position] if position < len(row) else None

    skipped: list[dict[str, Any]] = []
    for source_row, row in enumerate(table.rows, start=1):
        sku = cell(row, "SKU") or ""
        product = store.get_product_by_sku(sku)
        quantity = parse_int_prefix(cell(row, "Quantity"))
        timestamp = parse_int_prefix(cell(row, "Timestamp"))

        issue: DataIssue | None = None
        if product is None:
            issue = DataIssue(code="sku_not_found", message=f'Product with SKU "{sku}" not found.', field="sku")
        elif not quantity:
            issue = DataIssue(code="invalid_quantity", message="Quantity must be a non-zero integer", field="quantity")
        elif timestamp is None:
            issue = DataIssue(code="invalid_timestamp", message="Timestamp is not an integer", field="timestamp")

        if issue is not None:
            skipped.append({"source_row": source_row, "issue": _issue_to_dict(issue)})
            continue

        store.record_count(
            CountRecord(
                id=new_record_id(),
                product_id=product.id,
                quantity=quantity,
                timestamp=timestamp,
                counter_name=normalize_text(cell(row, "Counter Name")),
            )
        )
    if skipped:
        logger.warning("Skipped %d count log rows", len(skipped))
    return skipped


def load_store(
    *,
    catalog_path: Path,
    counts_path: Path | None,
    settings: Settings,
) -> tuple[InventoryStore, ImportResult, list[dict[str, Any]]]:
    """Build an in-memory store from a catalog file and an optional count log."""

    store = InventoryStore(InMemoryBackend(), DEFAULT_ORGANIZATION, settings=settings).connect()
    session = ImportSession.from_text(
        catalog_path.read_text(encoding="utf-8-sig"),
        preview_rows=settings.PREVIEW_ROWS,
    )
    import_result = store.commit_import(session)
    if not import_result.ready:
        return store, import_result, []

    skipped: list[dict[str, Any]] = []
    if counts_path is not None:
        skipped = replay_count_log(store, counts_path.read_text(encoding="utf-8-sig"))
    return store, import_result, skipped


def build_report(
    store: InventoryStore,
    import_result: ImportResult,
    skipped_counts: list[dict[str, Any]],
    *,
    view: DiscrepancyView = "discrepancies",
    store_filter: str = "",
    location: str = "",
) -> dict[str, Any]:
    """Build the JSON-friendly dashboard payload for the current store state."""

    classified = store.classify()
    listed = filter_discrepancies(classified, view=view, store=store_filter, location=location)

    return {
        "metadata": {
            "generated_at": datetime.now().isoformat(),
            "organization_id": store.organization_id,
            "view": view,
            "store": store_filter,
            "location": location,
        },
        "import": {
            "status": import_result.status,
            "imported_count": len(import_result.committed),
            "rejected_count": import_result.rejected_count,
            "missing_fields": [product_field.value for product_field in import_result.missing_fields],
        },
        "summary": summarize(classified),
        "products": [_discrepancy_to_dict(item) for item in listed],
        "data_quality_issues": {
            "rejected_import_rows": [_row_issues_to_dict(row) for row in import_result.rejected_rows],
            "coerced_import_rows": [_row_issues_to_dict(row) for row in import_result.coerced_rows],
            "skipped_count_rows": skipped_counts,
        },
    }


def write_reports(store: InventoryStore, *, output_dir: Path, now: datetime | None = None) -> dict[str, Path]:
    """Write the summary and audit-log CSV reports for the store snapshot."""

    snapshot = store.snapshot()
    moment = now or datetime.now()
    return {
        "inventory_summary": write_report(
            summary_report_csv(snapshot.products, snapshot.counts),
            output_dir=output_dir,
            kind="inventory_summary",
            now=moment,
        ),
        "audit_log": write_report(
            audit_log_csv(snapshot.products, snapshot.counts),
            output_dir=output_dir,
            kind="audit_log",
            now=moment,
        ),
    }


def _parse_args(settings: Settings) -> argparse.Namespace:
    """Parse CLI arguments for report generation."""

    parser = argparse.ArgumentParser(description="Import a catalog, replay counts and emit CSV reports.")
    parser.add_argument("--catalog", type=Path, required=True, help="Path to the product catalog CSV")
    parser.add_argument("--counts", type=Path, default=None, help="Path to a count log CSV (audit-log layout)")
    parser.add_argument(
        "--view",
        choices=["all", "discrepancies"],
        default="discrepancies",
        help="Products listed in the printed report",
    )
    parser.add_argument("--store", default="", help="Only list products of this store")
    parser.add_argument("--location", default="", help="Only list products at this location")
    parser.add_argument("--output-dir", type=Path, default=settings.EXPORT_DIR, help="Directory for CSV reports")
    return parser.parse_args()


def main() -> int:
    """Entrypoint for command-line execution."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = _parse_args(settings)

    store, import_result, skipped = load_store(
        catalog_path=args.catalog,
        counts_path=args.counts,
        settings=settings,
    )
    report = build_report(
        store,
        import_result,
        skipped,
        view=args.view,
        store_filter=args.store,
        location=args.location,
    )
    if not import_result.ready:
        print(json.dumps(report["import"], indent=2))
        logger.error("Catalog import failed: %s", import_result.status)
        return 1

    paths = write_reports(store, output_dir=args.output_dir)
    print(json.dumps(report, indent=2, sort_keys=True))
    for kind, path in paths.items():
        print(f"Wrote {kind} report: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
