"""Public API exports for inventory counting, import mapping and reporting."""

from .aggregate import apply_absolute, apply_delta, total, totals_by_product
from .backend import ChangeEvent, InMemoryBackend, InventoryBackend
from .catalog import filter_options, filter_products, find_by_sku
from .config import Settings, get_settings
from .errors import BackendError, InvalidTotalError, StockCountError
from .export import audit_log_csv, report_filename, summary_report_csv, write_report
from .mapping import FIELD_SPECS, ImportResult, ImportSession, ProductField, auto_map
from .models import CountRecord, DataIssue, Product, ProductDraft
from .reconcile import (
    CountSummary,
    DiscrepancyStatus,
    ProductDiscrepancy,
    classify_products,
    filter_discrepancies,
    summarize,
)
from .store import InventorySnapshot, InventoryStore, ScanResult, TotalUpdate
from .tokenizer import CsvTable, tokenize_csv

__all__ = [
    "BackendError",
    "ChangeEvent",
    "CountRecord",
    "CountSummary",
    "CsvTable",
    "DataIssue",
    "DiscrepancyStatus",
    "FIELD_SPECS",
    "ImportResult",
    "ImportSession",
    "InMemoryBackend",
    "InvalidTotalError",
    "InventoryBackend",
    "InventorySnapshot",
    "InventoryStore",
    "Product",
    "ProductDiscrepancy",
    "ProductDraft",
    "ProductField",
    "ScanResult",
    "Settings",
    "StockCountError",
    "TotalUpdate",
    "apply_absolute",
    "apply_delta",
    "audit_log_csv",
    "auto_map",
    "classify_products",
    "filter_discrepancies",
    "filter_options",
    "filter_products",
    "find_by_sku",
    "get_settings",
    "report_filename",
    "summarize",
    "summary_report_csv",
    "tokenize_csv",
    "total",
    "totals_by_product",
    "write_report",
]
