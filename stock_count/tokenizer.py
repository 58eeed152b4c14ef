"""Lenient CSV tokenizer for uploaded catalog files."""

from __future__ import annotations

from dataclasses import dataclass, field

_BOM = "\ufeff"


@dataclass(slots=True)
class CsvTable:
    """Header row plus data rows of a tokenized CSV document."""

    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        """Return the number of data rows (header excluded)."""

        return len(self.rows)

    def column_index(self, header: str) -> int:
        """Return the first column position of `header`, or `-1` when absent."""

        try:
            return self.headers.index(header)
        except ValueError:
            return -1


def _split_lines(text: str) -> list[str]:
    """Split on newlines, dropping carriage returns and blank lines."""

    if text.startswith(_BOM):
        text = text[len(_BOM) :]
    lines = (line.rstrip("\r") for line in text.split("\n"))
    return [line for line in lines if line.strip()]


def tokenize_line(line: str) -> list[str]:
    """Split one line into trimmed fields, honoring double-quoted spans.

    Every `"` toggles the quoted state wherever it appears in a field, and a
    doubled `""` inside a quoted span stands for one literal quote. A quote
    left open simply runs to the end of the line.
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    position = 0
    while position < len(line):
        char = line[position]
        if char == '"':
            if in_quotes and line[position + 1 : position + 2] == '"':
                current.append('"')
                position += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        position += 1
    fields.append("".join(current).strip())
    return fields


def tokenize_csv(text: str) -> CsvTable:
    """Tokenize CSV text; the first non-blank line is always the header row."""

    lines = _split_lines(text)
    if not lines:
        return CsvTable()
    return CsvTable(
        headers=tokenize_line(lines[0]),
        rows=[tokenize_line(line) for line in lines[1:]],
    )
