"""Catalog lookups and list filters."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypedDict

from .models import Product


class FilterOptions(TypedDict):
    """Sorted distinct values offered by the catalog filter drop-downs."""

    category_level_1: list[str]
    category_level_2: list[str]
    category_level_3: list[str]
    store: list[str]
    location: list[str]


def find_by_sku(products: Iterable[Product], sku: str) -> Product | None:
    """Return the product whose SKU equals `sku` exactly (case-sensitive)."""

    for product in products:
        if product.sku == sku:
            return product
    return None


def _matches(value: str | None, wanted: str) -> bool:
    return not wanted or value == wanted


def filter_products(
    products: Iterable[Product],
    *,
    category_level_1: str = "",
    category_level_2: str = "",
    category_level_3: str = "",
    store: str = "",
    location: str = "",
) -> list[Product]:
    """Return products matching every non-empty filter exactly."""

    return [
        product
        for product in products
        if _matches(product.category_level_1, category_level_1)
        and _matches(product.category_level_2, category_level_2)
        and _matches(product.category_level_3, category_level_3)
        and _matches(product.store, store)
        and _matches(product.location, location)
    ]


def _distinct(values: Iterable[str | None]) -> list[str]:
    return sorted({value for value in values if value})


def filter_options(
    products: Iterable[Product],
    *,
    category_level_1: str = "",
    category_level_2: str = "",
    store: str = "",
) -> FilterOptions:
    """Return filter choices, narrowing lower levels by the selected parents.

    Level-2 categories follow the level-1 selection, level-3 follows both, and
    locations follow the selected store.
    """

    products = list(products)
    level_1_scope = filter_products(products, category_level_1=category_level_1)
    level_2_scope = filter_products(level_1_scope, category_level_2=category_level_2)
    store_scope = filter_products(products, store=store)

    return {
        "category_level_1": _distinct(product.category_level_1 for product in products),
        "category_level_2": _distinct(product.category_level_2 for product in level_1_scope),
        "category_level_3": _distinct(product.category_level_3 for product in level_2_scope),
        "store": _distinct(product.store for product in products),
        "location": _distinct(product.location for product in store_scope),
    }
