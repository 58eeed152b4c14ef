"""Tokenizer tests for uploaded catalog CSV text.

These cases pin down the lenient parsing rules: blank lines are dropped,
quoted spans may hold commas and doubled quotes, and every field is trimmed.
"""

from __future__ import annotations

import csv
import io

from stock_count.tokenizer import CsvTable, tokenize_csv, tokenize_line


def _serialize(rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerows(rows)
    return buffer.getvalue()


def test_tokenize_csv_splits_header_and_rows() -> None:
    """The first line is the header and the rest are data rows."""
    table = tokenize_csv("SKU,Name\nA1,Widget\nA2,Gadget")
    assert table.headers == ["SKU", "Name"]
    assert table.rows == [["A1", "Widget"], ["A2", "Gadget"]]
    assert table.total_rows == 2


def test_tokenize_csv_discards_blank_lines_and_carriage_returns() -> None:
    """Blank or whitespace-only lines vanish and CRLF endings are tolerated."""
    table = tokenize_csv("\r\n  \nSKU,Name\r\n\r\nA1,Widget\r\n   \n")
    assert table.headers == ["SKU", "Name"]
    assert table.rows == [["A1", "Widget"]]


def test_tokenize_csv_handles_quoted_commas_and_doubled_quotes() -> None:
    """Commas inside quotes do not split and `""` decodes to one quote."""
    table = tokenize_csv('sku,name\nA1,"Bolt, 10mm ""hex"""\n')
    assert table.rows == [["A1", 'Bolt, 10mm "hex"']]


def test_tokenize_line_trims_fields_and_skips_space_before_quote() -> None:
    """Fields are trimmed and a quoted span may follow leading spaces."""
    assert tokenize_line('  A1 ,  "Widget, large"  , 9.99 ') == ["A1", "Widget, large", "9.99"]


def test_tokenize_line_keeps_unterminated_quote_on_its_line() -> None:
    """An unclosed quote ends at the line boundary instead of raising."""
    table = tokenize_csv('sku,name\nA1,"Widget\nA2,Gadget')
    assert table.rows == [["A1", "Widget"], ["A2", "Gadget"]]


def test_tokenize_csv_empty_input_is_not_an_error() -> None:
    """Empty or blank-only text yields an empty table."""
    assert tokenize_csv("") == CsvTable()
    assert tokenize_csv("\n \n\r\n") == CsvTable(headers=[], rows=[])


def test_tokenize_csv_ignores_byte_order_mark() -> None:
    """A UTF-8 BOM in front of the header must not leak into the first name."""
    table = tokenize_csv("\ufeffSKU,Name\nA1,Widget")
    assert table.headers == ["SKU", "Name"]


def test_tokenize_csv_keeps_ragged_rows() -> None:
    """Rows are not padded or validated against the header width."""
    table = tokenize_csv("sku,name,price\nA1\nA2,Gadget,1,extra")
    assert table.rows == [["A1"], ["A2", "Gadget", "1", "extra"]]


def test_column_index_returns_first_match_or_minus_one() -> None:
    """Duplicate headers resolve to their first position."""
    table = tokenize_csv("sku,name,sku\nA1,Widget,B1")
    assert table.column_index("sku") == 0
    assert table.column_index("price") == -1


def test_tokenize_round_trips_serialized_matrix() -> None:
    """Values with commas and quotes survive a write/tokenize round trip."""
    matrix = [
        ["SKU", "Product Name", "Note"],
        ["A1", 'Bolt "M8", zinc', "plain"],
        ["A2", "Nut, 10 pack", '"quoted"'],
        ["A3", "Washer", "a,b,c"],
    ]
    table = tokenize_csv(_serialize(matrix))
    assert [table.headers, *table.rows] == matrix


def test_tokenize_line_opens_quote_after_tab() -> None:
    """A quoted span preceded by a tab still protects its commas."""
    table = tokenize_csv('SKU,Name,Price\nA1,\t"Widget, large",5')
    assert table.rows == [["A1", "Widget, large", "5"]]


def test_tokenize_line_toggles_on_quotes_inside_a_field() -> None:
    """Quotes in the middle of a field open and close spans too."""
    assert tokenize_line('12" pipe, "x"') == ["12 pipe, x"]
    assert tokenize_line('A1,"",B2') == ["A1", "", "B2"]
