from __future__ import annotations

"""Unit tests for field-level coercion helpers.

These tests document how import values and manually typed totals are read.
Each case focuses on one rule so regressions are easy to diagnose.
"""

import pytest

from stock_count.errors import InvalidTotalError
from stock_count.normalize import (
    coerce_expected_stock,
    coerce_price,
    normalize_text,
    parse_float_prefix,
    parse_int_prefix,
    parse_total,
)


def _issue_codes(issues: list[object]) -> set[str]:
    return {issue.code for issue in issues}


def test_normalize_text_trims_and_collapses_empty_values() -> None:
    """Text is stripped and blank or missing values become None."""
    assert normalize_text("  Widget A  ") == "Widget A"
    assert normalize_text("   ") is None
    assert normalize_text(None) is None


def test_parse_int_prefix_reads_leading_integer() -> None:
    """Only the leading signed integer is read, like a lenient integer parse."""
    assert parse_int_prefix("42") == 42
    assert parse_int_prefix(" -7 ") == -7
    assert parse_int_prefix("12 pcs") == 12
    assert parse_int_prefix("12.9") == 12
    assert parse_int_prefix("pcs 12") is None
    assert parse_int_prefix("") is None
    assert parse_int_prefix(None) is None


def test_parse_float_prefix_reads_leading_decimal() -> None:
    """Decimal prefixes parse and non-finite spellings are rejected."""
    assert parse_float_prefix("9.99") == pytest.approx(9.99)
    assert parse_float_prefix(".5") == pytest.approx(0.5)
    assert parse_float_prefix("1e3") == pytest.approx(1000.0)
    assert parse_float_prefix("4.50 EUR") == pytest.approx(4.5)
    assert parse_float_prefix("inf") is None
    assert parse_float_prefix("EUR 4") is None


def test_coerce_price_defaults_to_zero_and_flags_garbage() -> None:
    """Unreadable prices become 0 with an issue; empty prices become 0 silently."""
    assert coerce_price("12.5") == (12.5, [])

    value, issues = coerce_price("n/a")
    assert value == 0.0
    assert _issue_codes(issues) == {"invalid_price"}

    assert coerce_price("") == (0.0, [])
    assert coerce_price(None) == (0.0, [])


def test_coerce_expected_stock_defaults_to_zero_and_flags_garbage() -> None:
    """Unreadable stock becomes 0 with an issue; empty stock becomes 0 silently."""
    assert coerce_expected_stock("15") == (15, [])

    value, issues = coerce_expected_stock("lots")
    assert value == 0
    assert _issue_codes(issues) == {"invalid_expected_stock"}

    assert coerce_expected_stock(None) == (0, [])


def test_parse_total_rejects_non_integers() -> None:
    """A manual total has no default: unreadable text raises."""
    assert parse_total("25") == 25
    assert parse_total("-3") == -3

    with pytest.raises(InvalidTotalError, match="Total is not an integer"):
        parse_total("abc")
    with pytest.raises(ValueError):
        parse_total("")
