"""Field-level coercion helpers used by the import pipeline and manual counting."""

from __future__ import annotations

import math
import re

from .errors import InvalidTotalError
from .models import DataIssue

# Leading numeric prefixes, so "12 pcs" reads as 12 and "9.99 EUR" as 9.99.
_INT_PREFIX_RE = re.compile(r"^[+-]?\d+")
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def normalize_text(value: str | None) -> str | None:
    """Trim text and collapse empty values to None."""

    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_int_prefix(value: str | None) -> int | None:
    """Read the leading integer of `value`, or return None when there is none."""

    if value is None:
        return None
    match = _INT_PREFIX_RE.match(value.strip())
    if match is None:
        return None
    return int(match.group())


def parse_float_prefix(value: str | None) -> float | None:
    """Read the leading decimal number of `value`, or return None when there is none."""

    if value is None:
        return None
    match = _FLOAT_PREFIX_RE.match(value.strip())
    if match is None:
        return None
    parsed = float(match.group())
    if not math.isfinite(parsed):
        return None
    return parsed


def coerce_price(value: str | None) -> tuple[float, list[DataIssue]]:
    """Parse a price, defaulting to `0` and emitting an issue when unreadable."""

    parsed = parse_float_prefix(value)
    if parsed is not None:
        return parsed, []
    if normalize_text(value) is None:
        return 0.0, []
    return 0.0, [
        DataIssue(
            code="invalid_price",
            message=f"Price is not numeric and was set to 0: {value.strip()}",
            field="price",
        )
    ]


def coerce_expected_stock(value: str | None) -> tuple[int, list[DataIssue]]:
    """Parse expected stock, defaulting to `0` and emitting an issue when unreadable."""

    parsed = parse_int_prefix(value)
    if parsed is not None:
        return parsed, []
    if normalize_text(value) is None:
        return 0, []
    return 0, [
        DataIssue(
            code="invalid_expected_stock",
            message=f"Expected stock is not an integer and was set to 0: {value.strip()}",
            field="expected_stock",
        )
    ]


def parse_total(value: str) -> int:
    """Parse a manually entered total count.

    Unlike the import coercions there is no default here: an unreadable total
    must never be applied as zero.
    """

    parsed = parse_int_prefix(value)
    if parsed is None:
        raise InvalidTotalError(value)
    return parsed
