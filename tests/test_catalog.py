"""Tests for catalog lookups and cascading filter options."""

from __future__ import annotations

from stock_count.catalog import filter_options, filter_products, find_by_sku
from stock_count.models import Product


def _product(product_id: str, **fields: object) -> Product:
    defaults: dict[str, object] = {"organization_id": "org-1", "sku": product_id.upper(), "name": product_id}
    defaults.update(fields)
    return Product(id=product_id, **defaults)


CATALOG = [
    _product("p1", category_level_1="Hardware", category_level_2="Fasteners", category_level_3="Bolts", store="Main", location="A1"),
    _product("p2", category_level_1="Hardware", category_level_2="Tools", store="Main", location="B2"),
    _product("p3", category_level_1="Garden", category_level_2="Seeds", store="Annex", location="A1"),
    _product("p4"),
]


def test_find_by_sku_is_exact_and_case_sensitive() -> None:
    """Lookups never fold case or trim."""
    assert find_by_sku(CATALOG, "P1") == CATALOG[0]
    assert find_by_sku(CATALOG, "p1") is None
    assert find_by_sku(CATALOG, " P1") is None


def test_filter_products_combines_non_empty_filters() -> None:
    """Empty filters match everything; set filters must all match."""
    assert filter_products(CATALOG) == CATALOG
    assert [product.id for product in filter_products(CATALOG, category_level_1="Hardware")] == ["p1", "p2"]
    assert [product.id for product in filter_products(CATALOG, store="Main", location="A1")] == ["p1"]
    assert filter_products(CATALOG, store="Outlet") == []


def test_filter_options_cascade_from_parent_selection() -> None:
    """Lower levels only offer values present under the selected parents."""
    everything = filter_options(CATALOG)
    assert everything["category_level_1"] == ["Garden", "Hardware"]
    assert everything["category_level_2"] == ["Fasteners", "Seeds", "Tools"]
    assert everything["store"] == ["Annex", "Main"]
    assert everything["location"] == ["A1", "B2"]

    narrowed = filter_options(CATALOG, category_level_1="Hardware", category_level_2="Fasteners", store="Annex")
    assert narrowed["category_level_2"] == ["Fasteners", "Tools"]
    assert narrowed["category_level_3"] == ["Bolts"]
    assert narrowed["location"] == ["A1"]
