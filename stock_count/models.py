"""Core typed models shared by import, counting and reporting modules."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DataIssue:
    """Structured data-quality issue emitted during import or counting."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True, slots=True)
class ProductDraft:
    """Product fields as read from an import file, before an id is assigned."""

    sku: str
    name: str
    category_level_1: str | None = None
    category_level_2: str | None = None
    category_level_3: str | None = None
    price: float | None = None
    expected_stock: int | None = None
    store: str | None = None
    location: str | None = None


@dataclass(frozen=True, slots=True)
class Product:
    """Catalog entry owned by one organization."""

    id: str
    organization_id: str
    sku: str
    name: str
    category_level_1: str | None = None
    category_level_2: str | None = None
    category_level_3: str | None = None
    price: float | None = None
    expected_stock: int | None = None
    store: str | None = None
    location: str | None = None

    @property
    def expected_or_zero(self) -> int:
        """Return expected stock, treating an absent value as `0`."""

        return self.expected_stock or 0

    @classmethod
    def from_draft(cls, draft: ProductDraft, *, id: str, organization_id: str) -> Product:
        """Attach identity to an import draft."""

        return cls(
            id=id,
            organization_id=organization_id,
            sku=draft.sku,
            name=draft.name,
            category_level_1=draft.category_level_1,
            category_level_2=draft.category_level_2,
            category_level_3=draft.category_level_3,
            price=draft.price,
            expected_stock=draft.expected_stock,
            store=draft.store,
            location=draft.location,
        )


# Fields that may be changed on an existing product; id and organization never are.
MUTABLE_PRODUCT_FIELDS = frozenset(
    {
        "sku",
        "name",
        "category_level_1",
        "category_level_2",
        "category_level_3",
        "price",
        "expected_stock",
        "store",
        "location",
    }
)


@dataclass(frozen=True, slots=True)
class CountRecord:
    """One immutable, signed quantity adjustment recorded against a product."""

    id: str
    product_id: str
    quantity: int
    timestamp: int
    counter_name: str | None = None
