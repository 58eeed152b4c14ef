"""Column mapping from arbitrary CSV headers onto the product import schema."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, TypeAlias

from .config import get_settings
from .models import DataIssue, Product, ProductDraft
from .normalize import coerce_expected_stock, coerce_price, normalize_text
from .tokenizer import CsvTable, tokenize_csv

logger = logging.getLogger(__name__)

Coercion: TypeAlias = Callable[[str | None], tuple[object, list[DataIssue]]]
ImportStatus: TypeAlias = Literal["needs_mapping", "nothing_to_import", "ready"]


class ProductField(str, Enum):
    """Closed set of product fields a CSV column can be mapped onto."""

    SKU = "sku"
    NAME = "name"
    CATEGORY_LEVEL_1 = "categoryLevel1"
    CATEGORY_LEVEL_2 = "categoryLevel2"
    CATEGORY_LEVEL_3 = "categoryLevel3"
    PRICE = "price"
    EXPECTED_STOCK = "expectedStock"


def _coerce_text(value: str | None) -> tuple[object, list[DataIssue]]:
    return normalize_text(value), []


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """How one schema field is labelled, stored and coerced."""

    field: ProductField
    label: str
    attribute: str
    required: bool
    coerce: Coercion

    @property
    def match_names(self) -> tuple[str, str]:
        """Lowercased header spellings that auto-map onto this field."""

        label = self.label.lower()
        if label.endswith(" *"):
            label = label[:-2]
        return label, self.field.value.lower()


FIELD_SPECS: tuple[FieldSpec, ...] = (
    FieldSpec(ProductField.SKU, "SKU *", "sku", True, _coerce_text),
    FieldSpec(ProductField.NAME, "Product Name *", "name", True, _coerce_text),
    FieldSpec(ProductField.CATEGORY_LEVEL_1, "Category Level 1", "category_level_1", False, _coerce_text),
    FieldSpec(ProductField.CATEGORY_LEVEL_2, "Category Level 2", "category_level_2", False, _coerce_text),
    FieldSpec(ProductField.CATEGORY_LEVEL_3, "Category Level 3", "category_level_3", False, _coerce_text),
    FieldSpec(ProductField.PRICE, "Price", "price", False, coerce_price),
    FieldSpec(ProductField.EXPECTED_STOCK, "Expected Stock", "expected_stock", False, coerce_expected_stock),
)
_SPECS_BY_FIELD = {spec.field: spec for spec in FIELD_SPECS}
REQUIRED_FIELDS = tuple(spec.field for spec in FIELD_SPECS if spec.required)


def field_spec(product_field: ProductField | str) -> FieldSpec:
    """Return the spec for a field given as enum member or key string."""

    return _SPECS_BY_FIELD[ProductField(product_field)]


def auto_map(headers: Iterable[str]) -> dict[ProductField, str]:
    """Map each schema field to the first header spelled like its label or key."""

    headers = list(headers)
    mapping: dict[ProductField, str] = {}
    for spec in FIELD_SPECS:
        names = spec.match_names
        for header in headers:
            if header.lower() in names:
                mapping[spec.field] = header
                break
    return mapping


@dataclass(slots=True)
class ConvertedRow:
    """One data row after mapping and type coercion."""

    source_row: int
    values: dict[ProductField, object]
    issues: list[DataIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Return whether both required identity fields resolved to text."""

        return all(self.values.get(required) for required in REQUIRED_FIELDS)

    def to_draft(self) -> ProductDraft | None:
        """Build the product draft, or None when a required field is empty."""

        if not self.is_valid:
            return None
        kwargs = {_SPECS_BY_FIELD[key].attribute: value for key, value in self.values.items()}
        return ProductDraft(**kwargs)


@dataclass(slots=True)
class ImportResult:
    """Outcome of converting an uploaded file into importable products."""

    status: ImportStatus
    products: list[ProductDraft] = field(default_factory=list)
    rejected_rows: list[ConvertedRow] = field(default_factory=list)
    # Accepted rows whose price or expected stock was defaulted to 0.
    coerced_rows: list[ConvertedRow] = field(default_factory=list)
    missing_fields: list[ProductField] = field(default_factory=list)
    committed: list[Product] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.status == "ready"

    @property
    def rejected_count(self) -> int:
        """Return the number of rows dropped for a missing SKU or name."""

        return len(self.rejected_rows)

    @property
    def issues(self) -> list[DataIssue]:
        return [issue for row in (*self.rejected_rows, *self.coerced_rows) for issue in row.issues]


class ImportSession:
    """Interactive mapping state for one uploaded CSV file.

    Nothing here writes anywhere; discarding the session cancels the import.
    """

    def __init__(self, table: CsvTable, *, preview_rows: int | None = None) -> None:
        self.table = table
        self.preview_rows = get_settings().PREVIEW_ROWS if preview_rows is None else preview_rows
        self._mapping = auto_map(table.headers)
        self._skipped: set[str] = set()

    @classmethod
    def from_text(cls, text: str, *, preview_rows: int | None = None) -> ImportSession:
        """Tokenize raw file text and auto-map its headers."""

        return cls(tokenize_csv(text), preview_rows=preview_rows)

    @property
    def headers(self) -> list[str]:
        return list(self.table.headers)

    @property
    def mapping(self) -> dict[ProductField, str]:
        return dict(self._mapping)

    @property
    def skipped(self) -> frozenset[str]:
        return frozenset(self._skipped)

    def map_field(self, product_field: ProductField | str, header: str) -> None:
        """Map a schema field onto a header; an empty header unmaps it."""

        spec = field_spec(product_field)
        if not header:
            self._mapping.pop(spec.field, None)
            return
        if header not in self.table.headers:
            raise ValueError(f"Unknown CSV header: {header}")
        self._mapping[spec.field] = header

    def unmap_field(self, product_field: ProductField | str) -> None:
        self._mapping.pop(field_spec(product_field).field, None)

    def skip(self, header: str) -> None:
        self._skipped.add(header)

    def unskip(self, header: str) -> None:
        self._skipped.discard(header)

    def toggle_skip(self, header: str) -> bool:
        """Flip the skip flag for `header` and return whether it is now skipped."""

        if header in self._skipped:
            self._skipped.discard(header)
            return False
        self._skipped.add(header)
        return True

    def _active_columns(self) -> dict[ProductField, int]:
        """Return column indexes for mapped fields whose header is not skipped."""

        columns: dict[ProductField, int] = {}
        for product_field, header in self._mapping.items():
            if not header or header in self._skipped:
                continue
            index = self.table.column_index(header)
            if index >= 0:
                columns[product_field] = index
        return columns

    def missing_required(self) -> list[ProductField]:
        """Return required fields lacking a usable, non-skipped header."""

        columns = self._active_columns()
        return [required for required in REQUIRED_FIELDS if required not in columns]

    def can_proceed(self) -> bool:
        """Return whether every required field is mapped; recomputed on each call."""

        return not self.missing_required()

    def convert_row(self, row: list[str], *, source_row: int) -> ConvertedRow:
        """Apply the current mapping and coercions to one data row."""

        values: dict[ProductField, object] = {}
        issues: list[DataIssue] = []
        for product_field, index in self._active_columns().items():
            raw = row[index] if index < len(row) else None
            value, field_issues = _SPECS_BY_FIELD[product_field].coerce(raw)
            values[product_field] = value
            issues.extend(field_issues)

        converted = ConvertedRow(source_row=source_row, values=values, issues=issues)
        for required in REQUIRED_FIELDS:
            if not values.get(required):
                converted.issues.append(
                    DataIssue(
                        code="missing_required_field",
                        message=f"Row {source_row} has no {_SPECS_BY_FIELD[required].label.rstrip(' *')}",
                        field=_SPECS_BY_FIELD[required].attribute,
                    )
                )
        return converted

    def _convert_rows(self, rows: list[list[str]]) -> list[ConvertedRow]:
        return [self.convert_row(row, source_row=position) for position, row in enumerate(rows, start=1)]

    def preview(self, limit: int | None = None) -> list[ConvertedRow]:
        """Convert the first rows with exactly the path `build` uses."""

        count = self.preview_rows if limit is None else limit
        return self._convert_rows(self.table.rows[:count])

    def build(self) -> ImportResult:
        """Convert every row and split the batch into valid and rejected rows."""

        missing = self.missing_required()
        if missing:
            return ImportResult(status="needs_mapping", missing_fields=missing)

        products: list[ProductDraft] = []
        rejected: list[ConvertedRow] = []
        coerced: list[ConvertedRow] = []
        for converted in self._convert_rows(self.table.rows):
            draft = converted.to_draft()
            if draft is None:
                rejected.append(converted)
            else:
                products.append(draft)
                if converted.issues:
                    coerced.append(converted)

        logger.info(
            "Mapped %d of %d rows for import (%d rejected, %d with defaulted numbers)",
            len(products),
            self.table.total_rows,
            len(rejected),
            len(coerced),
        )
        if not products:
            return ImportResult(status="nothing_to_import", rejected_rows=rejected)
        return ImportResult(status="ready", products=products, rejected_rows=rejected, coerced_rows=coerced)
