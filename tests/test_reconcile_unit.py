"""Small-scale unit tests for discrepancy classification and summaries.

These tests use explicit handcrafted products and events so each
classification helper can be verified in isolation.
"""

from __future__ import annotations

import pytest

from stock_count.models import CountRecord, Product
from stock_count.reconcile import (
    DiscrepancyStatus,
    classify,
    classify_products,
    completion_percentage,
    filter_discrepancies,
    summarize,
)


def _product(
    product_id: str,
    *,
    expected: int | None,
    store: str | None = "Main",
    location: str | None = "A1",
) -> Product:
    """Build a minimal catalog product for targeted reconciliation tests."""
    return Product(
        id=product_id,
        organization_id="org-1",
        sku=f"SKU-{product_id}",
        name=f"Product {product_id}",
        expected_stock=expected,
        store=store,
        location=location,
    )


def _count(record_id: str, product_id: str, quantity: int) -> CountRecord:
    return CountRecord(id=record_id, product_id=product_id, quantity=quantity, timestamp=0)


def test_classify_reports_surplus_for_over_count() -> None:
    """Expected 10 with events +3, +4, +5 is a surplus of 2."""
    product = _product("p1", expected=10)
    counts = [_count("c1", "p1", 3), _count("c2", "p1", 4), _count("c3", "p1", 5)]

    [item] = classify_products([product], counts)
    assert item.counted == 12
    assert item.diff == 2
    assert item.status is DiscrepancyStatus.SURPLUS
    assert item.magnitude == 2


def test_classify_reports_missing_and_exact() -> None:
    """Under-counts are missing with a positive magnitude; equal counts are exact."""
    missing = classify(_product("p1", expected=5), counted=2)
    exact = classify(_product("p2", expected=4), counted=4)

    assert missing.status is DiscrepancyStatus.MISSING
    assert missing.magnitude == 3
    assert missing.diff == -3
    assert exact.status is DiscrepancyStatus.EXACT
    assert exact.magnitude == 0
    assert not exact.has_discrepancy


def test_absent_expected_stock_counts_as_zero() -> None:
    """A product without expected stock compares against 0."""
    item = classify(_product("p1", expected=None), counted=1)
    assert item.expected == 0
    assert item.status is DiscrepancyStatus.SURPLUS


def test_every_product_gets_exactly_one_class_and_diffs_reconstruct() -> None:
    """Class counts cover the catalog and signed magnitudes rebuild the raw diffs."""
    products = [_product(f"p{index}", expected=5) for index in range(6)]
    counts = [_count(f"c{index}", f"p{index}", index * 2) for index in range(6)]
    items = classify_products(products, counts)
    summary = summarize(items)

    assert summary["missing_count"] + summary["surplus_count"] + summary["exact_count"] == len(products)
    signed = {
        DiscrepancyStatus.MISSING: -1,
        DiscrepancyStatus.SURPLUS: 1,
        DiscrepancyStatus.EXACT: 0,
    }
    assert [signed[item.status] * item.magnitude for item in items] == [item.diff for item in items]
    assert summary["surplus_units"] - summary["missing_units"] == sum(item.diff for item in items)


def test_orphan_events_are_ignored_by_classification() -> None:
    """Events whose product was deleted do not crash or inflate totals."""
    items = classify_products([_product("p1", expected=2)], [_count("c1", "p1", 2), _count("c2", "gone", 9)])
    assert [item.counted for item in items] == [2]
    assert summarize(items)["total_counted"] == 2


def test_summarize_computes_dashboard_figures() -> None:
    """Totals, completion and class counts follow the catalog figures."""
    products = [_product("p1", expected=10), _product("p2", expected=None), _product("p3", expected=6)]
    counts = [_count("c1", "p1", 4), _count("c2", "p2", 1), _count("c3", "p3", 6)]

    summary = summarize(classify_products(products, counts))
    assert summary == {
        "total_products": 3,
        "total_expected": 16,
        "total_counted": 11,
        "completion_percentage": 69,
        "missing_count": 1,
        "surplus_count": 1,
        "exact_count": 1,
        "discrepancy_count": 2,
        "missing_units": 6,
        "surplus_units": 1,
    }


@pytest.mark.parametrize(
    ("counted", "expected", "percentage"),
    [(0, 0, 0), (25, 0, 0), (1, 8, 13), (1, 3, 33), (12, 10, 120), (-1, 2, -50)],
)
def test_completion_percentage_rounds_and_never_divides_by_zero(counted: int, expected: int, percentage: int) -> None:
    """Completion rounds halves up and is 0 when nothing is expected."""
    assert completion_percentage(counted, expected) == percentage


def test_filter_discrepancies_composes_view_store_and_location() -> None:
    """View, store and location filters combine with logical AND."""
    items = [
        classify(_product("p1", expected=1, store="Main", location="A1"), counted=0),
        classify(_product("p2", expected=1, store="Main", location="B2"), counted=1),
        classify(_product("p3", expected=1, store="Annex", location="A1"), counted=3),
    ]

    assert [item.product.id for item in filter_discrepancies(items)] == ["p1", "p2", "p3"]
    assert [item.product.id for item in filter_discrepancies(items, view="discrepancies")] == ["p1", "p3"]
    assert [item.product.id for item in filter_discrepancies(items, store="Main")] == ["p1", "p2"]
    assert [
        item.product.id for item in filter_discrepancies(items, view="discrepancies", location="A1", store="Annex")
    ] == ["p3"]


def test_filter_discrepancies_rejects_unknown_view() -> None:
    """Unsupported view names fail fast."""
    with pytest.raises(ValueError, match="Unsupported discrepancy view"):
        filter_discrepancies([], view="shortages")  # type: ignore[arg-type]
