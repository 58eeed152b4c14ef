"""In-memory inventory state for one organization, kept in sync with the backend.

Every local change goes through `InventoryStore.apply_change`, both for writes
the backend has just confirmed and for notifications pushed by the backend.
Count events are keyed by id, so a write that is later echoed back by a
notification is only counted once.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TypeVar

from .aggregate import Clock, IdFactory, apply_absolute, apply_delta, new_record_id, now_ms, total
from .backend import ChangeEvent, InventoryBackend, Unsubscribe
from .catalog import find_by_sku
from .config import Settings, get_settings
from .errors import BackendError, InvalidTotalError
from .mapping import ImportResult, ImportSession
from .models import CountRecord, DataIssue, Product, ProductDraft
from .normalize import parse_total
from .reconcile import CountSummary, ProductDiscrepancy, classify_products, summarize

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class InventorySnapshot:
    """Consistent, read-only view of products and count events."""

    products: tuple[Product, ...]
    counts: tuple[CountRecord, ...]


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of scanning or typing a SKU."""

    sku: str
    product: Product | None = None
    record: CountRecord | None = None
    issue: DataIssue | None = None

    @property
    def found(self) -> bool:
        return self.product is not None


@dataclass(frozen=True, slots=True)
class TotalUpdate:
    """Outcome of setting a product's counted total directly.

    `total` is always the value to display afterwards: the new total when the
    input was accepted, the last valid aggregate when it was rejected.
    """

    product_id: str
    total: int
    record: CountRecord | None = None
    issue: DataIssue | None = None

    @property
    def accepted(self) -> bool:
        return self.issue is None


class InventoryStore:
    """Owns the product/count snapshot of one organization."""

    def __init__(
        self,
        backend: InventoryBackend,
        organization_id: str,
        *,
        settings: Settings | None = None,
        counter_name: str = "",
        id_factory: IdFactory = new_record_id,
        clock: Clock = now_ms,
    ) -> None:
        self.backend = backend
        self.organization_id = organization_id
        self.settings = settings or get_settings()
        self.counter_name = counter_name
        self._id_factory = id_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._products: dict[str, Product] = {}
        self._counts: dict[str, CountRecord] = {}
        self._unsubscribe: Unsubscribe | None = None
        # Changes received while `load` is fetching; replayed onto the fresh snapshot.
        self._pending: list[ChangeEvent] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> InventoryStore:
        """Subscribe to backend notifications, then load the full snapshot."""

        if self._unsubscribe is None:
            self._unsubscribe = self.backend.subscribe(self.organization_id, self.apply_change)
        self.load()
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> InventoryStore:
        return self.connect()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _fetch_all(self, fetch: Callable[..., list[T]]) -> list[T]:
        """Page through a backend listing until a short page is returned."""

        size = self.settings.PAGE_SIZE
        collected: list[T] = []
        offset = 0
        while True:
            page = fetch(self.organization_id, offset=offset, limit=size)
            collected.extend(page)
            if len(page) < size:
                return collected
            offset += size

    def load(self) -> InventorySnapshot:
        """Replace the local snapshot with every product and count event.

        Changes that arrive during the fetch are held back and applied on top
        of the fetched records, so nothing pushed mid-load is lost.
        """

        with self._lock:
            if self._pending is None:
                self._pending = []
        fetched = False
        try:
            products = self._confirm("loading products", lambda: self._fetch_all(self.backend.list_products))
            counts = self._confirm("loading count records", lambda: self._fetch_all(self.backend.list_counts))
            fetched = True
        finally:
            with self._lock:
                if fetched:
                    self._products = {product.id: product for product in products}
                    self._counts = {record.id: record for record in counts}
                pending, self._pending = self._pending or [], None
                for event in pending:
                    self._apply_locked(event)
        if pending:
            logger.debug("Replayed %d changes received during load", len(pending))
        logger.info(
            "Loaded %d products and %d count records for organization %s",
            len(products),
            len(counts),
            self.organization_id,
        )
        return self.snapshot()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def snapshot(self) -> InventorySnapshot:
        with self._lock:
            return InventorySnapshot(products=tuple(self._products.values()), counts=tuple(self._counts.values()))

    @property
    def products(self) -> tuple[Product, ...]:
        with self._lock:
            return tuple(self._products.values())

    @property
    def counts(self) -> tuple[CountRecord, ...]:
        with self._lock:
            return tuple(self._counts.values())

    @property
    def effective_counter_name(self) -> str:
        return self.counter_name or self.settings.DEFAULT_COUNTER_NAME

    def get_product_by_sku(self, sku: str) -> Product | None:
        return find_by_sku(self.products, sku)

    def total(self, product_id: str) -> int:
        """Return the counted total of a product over the full event history."""

        return total(product_id, self.counts)

    def classify(self) -> list[ProductDiscrepancy]:
        snapshot = self.snapshot()
        return classify_products(snapshot.products, snapshot.counts)

    def summary(self) -> CountSummary:
        return summarize(self.classify())

    # ------------------------------------------------------------------
    # Change inbox
    # ------------------------------------------------------------------

    def apply_change(self, event: ChangeEvent) -> bool:
        """Merge one change into the snapshot; return whether anything changed."""

        if event.table not in ("products", "count_records"):
            raise ValueError(f"Unsupported change table: {event.table}")
        with self._lock:
            if self._pending is not None:
                self._pending.append(event)
                return False
            return self._apply_locked(event)

    def apply_changes(self, events: Iterable[ChangeEvent]) -> int:
        return sum(1 for event in events if self.apply_change(event))

    def _apply_locked(self, event: ChangeEvent) -> bool:
        if event.table == "products":
            return self._apply_product_change(event)
        return self._apply_count_change(event)

    def _apply_product_change(self, event: ChangeEvent) -> bool:
        if event.kind == "delete":
            return self._products.pop(event.key, None) is not None
        product = event.record
        if not isinstance(product, Product):
            raise ValueError(f"Product change without a product: {event}")
        if product.organization_id != self.organization_id:
            logger.debug("Ignoring product %s from organization %s", product.id, product.organization_id)
            return False
        if self._products.get(product.id) == product:
            return False
        self._products[product.id] = product
        return True

    def _apply_count_change(self, event: ChangeEvent) -> bool:
        if event.kind == "delete":
            return self._counts.pop(event.key, None) is not None
        if event.kind == "update":
            logger.warning("Ignoring update to immutable count record %s", event.key)
            return False
        record = event.record
        if not isinstance(record, CountRecord):
            raise ValueError(f"Count change without a count record: {event}")
        if record.id in self._counts:
            logger.debug("Ignoring duplicate count record %s", record.id)
            return False
        self._counts[record.id] = record
        return True

    # ------------------------------------------------------------------
    # Confirmed writes
    # ------------------------------------------------------------------

    def _confirm(self, action: str, call: Callable[[], T]) -> T:
        """Run a backend call; failures are logged and propagated unchanged."""

        try:
            return call()
        except BackendError as exc:
            logger.error("Error %s for organization %s: %s", action, self.organization_id, exc)
            raise

    def add_product(self, draft: ProductDraft) -> Product:
        product = self._confirm("adding product", lambda: self.backend.insert_product(self.organization_id, draft))
        self.apply_change(ChangeEvent("products", "insert", record=product))
        return product

    def add_products(self, drafts: Iterable[ProductDraft]) -> list[Product]:
        drafts = list(drafts)
        products = self._confirm("adding products", lambda: self.backend.insert_products(self.organization_id, drafts))
        self.apply_changes(ChangeEvent("products", "insert", record=product) for product in products)
        logger.info("Added %d products", len(products))
        return products

    def update_product(self, product_id: str, changes: Mapping[str, object]) -> Product:
        product = self._confirm("updating product", lambda: self.backend.update_product(product_id, changes))
        self.apply_change(ChangeEvent("products", "update", record=product))
        return product

    def bulk_update_expected_stock(self, product_ids: Iterable[str], expected_stock: int) -> list[Product]:
        """Overwrite expected stock on every listed product."""

        product_ids = list(product_ids)
        products = self._confirm(
            "bulk updating expected stock",
            lambda: self.backend.update_products_field(product_ids, "expected_stock", expected_stock),
        )
        self.apply_changes(ChangeEvent("products", "update", record=product) for product in products)
        return products

    def delete_product(self, product_id: str) -> None:
        self._confirm("deleting product", lambda: self.backend.delete_product(product_id))
        self.apply_change(ChangeEvent("products", "delete", record_id=product_id))

    def delete_products(self, product_ids: Iterable[str]) -> None:
        product_ids = list(product_ids)
        self._confirm("deleting products", lambda: self.backend.delete_products(product_ids))
        self.apply_changes(ChangeEvent("products", "delete", record_id=product_id) for product_id in product_ids)

    def delete_all_products(self) -> None:
        """Delete the whole catalog; count events are left to `reset_counts`."""

        self._confirm("deleting all products", lambda: self.backend.delete_all_products(self.organization_id))
        with self._lock:
            self._products.clear()

    def commit_import(self, session: ImportSession) -> ImportResult:
        """Write the valid rows of an import session, if its mapping is ready."""

        result = session.build()
        if not result.ready:
            logger.info("Import not committed: %s", result.status)
            return result
        result.committed = self.add_products(result.products)
        return result

    def record_count(self, record: CountRecord) -> CountRecord:
        """Persist an already-built count event and merge the confirmed copy."""

        confirmed = self._confirm("adding count", lambda: self.backend.insert_count(self.organization_id, record))
        self.apply_change(ChangeEvent("count_records", "insert", record=confirmed))
        return confirmed

    def add_count(self, product_id: str, amount: int) -> CountRecord:
        """Record a +N/-N adjustment for a product."""

        record = apply_delta(
            product_id,
            amount,
            counter_name=self.effective_counter_name,
            id_factory=self._id_factory,
            clock=self._clock,
        )
        return self.record_count(record)

    def scan_sku(self, sku: str) -> ScanResult:
        """Count one unit of the product with exactly this SKU."""

        product = self.get_product_by_sku(sku)
        if product is None:
            logger.info("SKU not found: %s", sku)
            return ScanResult(
                sku=sku,
                issue=DataIssue(code="sku_not_found", message=f'Product with SKU "{sku}" not found.', field="sku"),
            )
        record = self.add_count(product.id, 1)
        return ScanResult(sku=sku, product=product, record=record)

    def set_total(self, product_id: str, value: str | int) -> TotalUpdate:
        """Correct a product's counted total by appending the signed difference.

        An unreadable value is rejected and the current aggregate is returned
        for display; a value equal to the current total appends nothing.
        """

        counts = self.counts
        current = total(product_id, counts)
        try:
            desired = value if isinstance(value, int) else parse_total(value)
        except InvalidTotalError as exc:
            return TotalUpdate(
                product_id=product_id,
                total=current,
                issue=DataIssue(code="invalid_total", message=str(exc), field="total"),
            )

        record = apply_absolute(
            product_id,
            desired,
            counts,
            counter_name=self.effective_counter_name,
            id_factory=self._id_factory,
            clock=self._clock,
        )
        if record is None:
            return TotalUpdate(product_id=product_id, total=current)
        confirmed = self.record_count(record)
        return TotalUpdate(product_id=product_id, total=self.total(product_id), record=confirmed)

    def reset_counts(self) -> None:
        """Irreversibly delete every count event of the organization."""

        self._confirm("resetting counts", lambda: self.backend.delete_all_counts(self.organization_id))
        with self._lock:
            discarded = len(self._counts)
            self._counts.clear()
        logger.info("Reset %d count records for organization %s", discarded, self.organization_id)
