"""Folding count events into per-product running totals."""

from __future__ import annotations

import time
import uuid
from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import TypeAlias

from .models import CountRecord

TotalsByProduct: TypeAlias = dict[str, int]
IdFactory: TypeAlias = Callable[[], str]
Clock: TypeAlias = Callable[[], int]


def new_record_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    """Return the wall clock in epoch milliseconds."""

    return time.time_ns() // 1_000_000


def total(product_id: str, counts: Iterable[CountRecord]) -> int:
    """Return the counted quantity for one product over the full event set.

    The sum must be taken over the complete history; a filtered or paginated
    slice of events yields a wrong total.
    """

    return sum(record.quantity for record in counts if record.product_id == product_id)


def totals_by_product(counts: Iterable[CountRecord]) -> TotalsByProduct:
    """Aggregate event quantities by product in a single pass."""

    totals: defaultdict[str, int] = defaultdict(int)
    for record in counts:
        totals[record.product_id] += record.quantity
    return dict(totals)


def apply_delta(
    product_id: str,
    amount: int,
    *,
    counter_name: str | None = None,
    id_factory: IdFactory = new_record_id,
    clock: Clock = now_ms,
) -> CountRecord:
    """Build the event for a +N/-N adjustment (stepper button or SKU scan)."""

    if amount == 0:
        raise ValueError("Count adjustments must be non-zero")
    return CountRecord(
        id=id_factory(),
        product_id=product_id,
        quantity=amount,
        timestamp=clock(),
        counter_name=counter_name,
    )


def apply_absolute(
    product_id: str,
    desired_total: int,
    counts: Iterable[CountRecord],
    *,
    counter_name: str | None = None,
    id_factory: IdFactory = new_record_id,
    clock: Clock = now_ms,
) -> CountRecord | None:
    """Build the correcting event that moves a product's total to `desired_total`.

    Returns None when the total already matches, so repeating a correction
    never appends a zero-quantity event. Negative totals are accepted.
    """

    diff = desired_total - total(product_id, counts)
    if diff == 0:
        return None
    return apply_delta(product_id, diff, counter_name=counter_name, id_factory=id_factory, clock=clock)
