"""Reconciliation of counted totals against expected stock."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Literal, TypedDict, TypeAlias

from .aggregate import totals_by_product
from .models import CountRecord, Product

DiscrepancyView: TypeAlias = Literal["all", "discrepancies"]


class DiscrepancyStatus(str, Enum):
    """Outcome of comparing counted quantity with expected stock."""

    MISSING = "missing"
    SURPLUS = "surplus"
    EXACT = "exact"


@dataclass(frozen=True, slots=True)
class ProductDiscrepancy:
    """Counted versus expected quantities for one product."""

    product: Product
    counted: int
    expected: int

    @property
    def diff(self) -> int:
        return self.counted - self.expected

    @property
    def status(self) -> DiscrepancyStatus:
        if self.counted < self.expected:
            return DiscrepancyStatus.MISSING
        if self.counted > self.expected:
            return DiscrepancyStatus.SURPLUS
        return DiscrepancyStatus.EXACT

    @property
    def magnitude(self) -> int:
        """Return the unsigned size of the discrepancy (0 for an exact match)."""

        return abs(self.diff)

    @property
    def has_discrepancy(self) -> bool:
        return self.status is not DiscrepancyStatus.EXACT


class CountSummary(TypedDict):
    """Organization-wide counting figures."""

    total_products: int
    total_expected: int
    total_counted: int
    completion_percentage: int
    missing_count: int
    surplus_count: int
    exact_count: int
    discrepancy_count: int
    missing_units: int
    surplus_units: int


def classify(product: Product, counted: int) -> ProductDiscrepancy:
    """Compare one product's counted total with its expected stock."""

    return ProductDiscrepancy(product=product, counted=counted, expected=product.expected_or_zero)


def classify_products(
    products: Iterable[Product],
    counts: Iterable[CountRecord],
) -> list[ProductDiscrepancy]:
    """Classify every product in catalog order.

    Events for products missing from `products` are simply never looked up.
    """

    totals = totals_by_product(counts)
    return [classify(product, totals.get(product.id, 0)) for product in products]


def completion_percentage(total_counted: int, total_expected: int) -> int:
    """Return `round(100 * counted / expected)` rounding halves up, or 0 without expectations."""

    if total_expected <= 0:
        return 0
    # Integer form of floor(100 * counted / expected + 0.5).
    return (200 * total_counted + total_expected) // (2 * total_expected)


def summarize(discrepancies: Iterable[ProductDiscrepancy]) -> CountSummary:
    """Compute dashboard figures over a full classified catalog."""

    items = list(discrepancies)
    total_expected = sum(item.expected for item in items)
    total_counted = sum(item.counted for item in items)
    missing = [item for item in items if item.status is DiscrepancyStatus.MISSING]
    surplus = [item for item in items if item.status is DiscrepancyStatus.SURPLUS]

    return {
        "total_products": len(items),
        "total_expected": total_expected,
        "total_counted": total_counted,
        "completion_percentage": completion_percentage(total_counted, total_expected),
        "missing_count": len(missing),
        "surplus_count": len(surplus),
        "exact_count": len(items) - len(missing) - len(surplus),
        "discrepancy_count": len(missing) + len(surplus),
        "missing_units": sum(item.magnitude for item in missing),
        "surplus_units": sum(item.magnitude for item in surplus),
    }


def filter_discrepancies(
    items: Iterable[ProductDiscrepancy],
    *,
    view: DiscrepancyView = "all",
    store: str = "",
    location: str = "",
) -> list[ProductDiscrepancy]:
    """Return items matching the view and exact store/location filters.

    An empty store or location places no restriction; all filters must hold.
    """

    if view not in ("all", "discrepancies"):
        raise ValueError(f"Unsupported discrepancy view: {view}")

    selected: list[ProductDiscrepancy] = []
    for item in items:
        if view == "discrepancies" and not item.has_discrepancy:
            continue
        if store and item.product.store != store:
            continue
        if location and item.product.location != location:
            continue
        selected.append(item)
    return selected
