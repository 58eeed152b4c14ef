"""Persistence collaborator contract and an in-memory implementation.

The hosted service owns products and count records per organization and
pushes change notifications to subscribers. `InMemoryBackend` follows the same
contract so the store can run without a network service.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Literal, Protocol, TypeAlias

from .aggregate import new_record_id
from .errors import BackendError
from .models import MUTABLE_PRODUCT_FIELDS, CountRecord, Product, ProductDraft

logger = logging.getLogger(__name__)

ChangeTable: TypeAlias = Literal["products", "count_records"]
ChangeKind: TypeAlias = Literal["insert", "update", "delete"]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One insert/update/delete notification for a product or count record."""

    table: ChangeTable
    kind: ChangeKind
    record: Product | CountRecord | None = None
    record_id: str | None = None

    @property
    def key(self) -> str | None:
        """Return the id of the affected record."""

        if self.record is not None:
            return self.record.id
        return self.record_id


ChangeListener: TypeAlias = Callable[[ChangeEvent], None]
Unsubscribe: TypeAlias = Callable[[], None]


class InventoryBackend(Protocol):
    """Operations the counting core needs from the persistence service."""

    def list_products(self, organization_id: str, *, offset: int, limit: int) -> list[Product]: ...

    def list_counts(self, organization_id: str, *, offset: int, limit: int) -> list[CountRecord]: ...

    def insert_product(self, organization_id: str, draft: ProductDraft) -> Product: ...

    def insert_products(self, organization_id: str, drafts: Iterable[ProductDraft]) -> list[Product]: ...

    def update_product(self, product_id: str, changes: Mapping[str, object]) -> Product: ...

    def update_products_field(self, product_ids: Iterable[str], field: str, value: object) -> list[Product]: ...

    def delete_product(self, product_id: str) -> None: ...

    def delete_products(self, product_ids: Iterable[str]) -> None: ...

    def delete_all_products(self, organization_id: str) -> None: ...

    def insert_count(self, organization_id: str, record: CountRecord) -> CountRecord: ...

    def delete_all_counts(self, organization_id: str) -> None: ...

    def find_product_by_sku(self, organization_id: str, sku: str) -> Product | None: ...

    def subscribe(self, organization_id: str, listener: ChangeListener) -> Unsubscribe: ...


def _check_fields(changes: Mapping[str, object]) -> None:
    unknown = set(changes) - MUTABLE_PRODUCT_FIELDS
    if unknown:
        raise ValueError(f"Unsupported product fields: {', '.join(sorted(unknown))}")


class InMemoryBackend:
    """Dictionary-backed persistence with synchronous change notifications."""

    def __init__(self, *, id_factory: Callable[[], str] = new_record_id) -> None:
        self._id_factory = id_factory
        self._products: dict[str, Product] = {}
        self._counts: defaultdict[str, dict[str, CountRecord]] = defaultdict(dict)
        self._listeners: defaultdict[str, list[ChangeListener]] = defaultdict(list)

    def _publish(self, organization_id: str, event: ChangeEvent) -> None:
        for listener in list(self._listeners[organization_id]):
            listener(event)

    def _get(self, product_id: str) -> Product:
        try:
            return self._products[product_id]
        except KeyError:
            raise BackendError(f"Product not found: {product_id}") from None

    def _org_products(self, organization_id: str) -> list[Product]:
        return [product for product in self._products.values() if product.organization_id == organization_id]

    def _check_sku_free(self, organization_id: str, sku: str, *, exclude_id: str | None = None) -> None:
        for product in self._org_products(organization_id):
            if product.sku == sku and product.id != exclude_id:
                raise BackendError(f"Duplicate SKU for organization {organization_id}: {sku}")

    def list_products(self, organization_id: str, *, offset: int, limit: int) -> list[Product]:
        return self._org_products(organization_id)[offset : offset + limit]

    def list_counts(self, organization_id: str, *, offset: int, limit: int) -> list[CountRecord]:
        ordered = sorted(self._counts[organization_id].values(), key=lambda record: record.timestamp, reverse=True)
        return ordered[offset : offset + limit]

    def insert_product(self, organization_id: str, draft: ProductDraft) -> Product:
        return self.insert_products(organization_id, [draft])[0]

    def insert_products(self, organization_id: str, drafts: Iterable[ProductDraft]) -> list[Product]:
        drafts = list(drafts)
        seen: set[str] = set()
        for draft in drafts:
            if draft.sku in seen:
                raise BackendError(f"Duplicate SKU in batch: {draft.sku}")
            seen.add(draft.sku)
            self._check_sku_free(organization_id, draft.sku)

        created = [
            Product.from_draft(draft, id=self._id_factory(), organization_id=organization_id) for draft in drafts
        ]
        for product in created:
            self._products[product.id] = product
        for product in created:
            self._publish(organization_id, ChangeEvent("products", "insert", record=product))
        return created

    def update_product(self, product_id: str, changes: Mapping[str, object]) -> Product:
        _check_fields(changes)
        current = self._get(product_id)
        sku = changes.get("sku")
        if sku is not None and sku != current.sku:
            self._check_sku_free(current.organization_id, str(sku), exclude_id=product_id)
        updated = replace(current, **changes)
        self._products[product_id] = updated
        self._publish(updated.organization_id, ChangeEvent("products", "update", record=updated))
        return updated

    def update_products_field(self, product_ids: Iterable[str], field: str, value: object) -> list[Product]:
        if field == "sku":
            raise ValueError("SKU cannot be bulk-updated")
        _check_fields({field: value})
        targets = [self._get(product_id) for product_id in product_ids]
        return [self.update_product(product.id, {field: value}) for product in targets]

    def delete_product(self, product_id: str) -> None:
        self.delete_products([product_id])

    def delete_products(self, product_ids: Iterable[str]) -> None:
        for product_id in list(product_ids):
            product = self._products.pop(product_id, None)
            if product is not None:
                self._publish(product.organization_id, ChangeEvent("products", "delete", record_id=product_id))

    def delete_all_products(self, organization_id: str) -> None:
        self.delete_products([product.id for product in self._org_products(organization_id)])

    def insert_count(self, organization_id: str, record: CountRecord) -> CountRecord:
        product = self._get(record.product_id)
        if product.organization_id != organization_id:
            raise BackendError(f"Product {record.product_id} belongs to another organization")
        if record.id in self._counts[organization_id]:
            raise BackendError(f"Duplicate count record id: {record.id}")
        self._counts[organization_id][record.id] = record
        self._publish(organization_id, ChangeEvent("count_records", "insert", record=record))
        return record

    def delete_all_counts(self, organization_id: str) -> None:
        removed = list(self._counts[organization_id])
        self._counts[organization_id].clear()
        for record_id in removed:
            self._publish(organization_id, ChangeEvent("count_records", "delete", record_id=record_id))
        logger.info("Deleted %d count records for organization %s", len(removed), organization_id)

    def find_product_by_sku(self, organization_id: str, sku: str) -> Product | None:
        for product in self._org_products(organization_id):
            if product.sku == sku:
                return product
        return None

    def subscribe(self, organization_id: str, listener: ChangeListener) -> Unsubscribe:
        self._listeners[organization_id].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[organization_id]:
                self._listeners[organization_id].remove(listener)

        return unsubscribe
