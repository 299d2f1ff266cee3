"""Reading and writing result sets in the mysql client's table format.

    +----+-------+
    | id | name  |
    +----+-------+
    |  1 | Alice |
    +----+-------+
    1 row in set (0.00 sec)

Vertical (\\G) output and "Empty set" are understood as well.
"""

import datetime
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

BORDER_RE = re.compile(r"^\s*\+(?:-+\+)+\s*$")
VERTICAL_ROW_RE = re.compile(r"^\s*\*+\s*\d+\.\s*row\s*\*+\s*$")
VERTICAL_FIELD_RE = re.compile(r"^\s*([^:]+?):\s?(.*)$")
EMPTY_SET_RE = re.compile(r"^\s*empty set\b", re.IGNORECASE)


@dataclass
class ExpectedTable:
    """A result set as printed in a lesson."""

    columns: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    line: int = 1  # 1-based, relative to the output block content
    empty_set: bool = False


def format_value(value: Any) -> str:
    """Render a Python value the way the mysql client prints it."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, datetime.timedelta):
        total = int(value.total_seconds())
        sign = "-" if total < 0 else ""
        hours, rest = divmod(abs(total), 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    return str(value)


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def render_table(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """Render a result set as a mysql client table."""
    if not rows:
        return "Empty set"
    cells = [[format_value(v) for v in row] for row in rows]
    widths = [len(str(c)) for c in columns]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    lines = [border, "| " + " | ".join(str(c).ljust(w) for c, w in zip(columns, widths)) + " |", border]
    for raw, row in zip(rows, cells):
        padded = [
            cell.rjust(w) if _is_numeric(value) else cell.ljust(w)
            for value, cell, w in zip(raw, row, widths)
        ]
        lines.append("| " + " | ".join(padded) + " |")
    lines.append(border)
    return "\n".join(lines)


def _split_row(line: str, border: str) -> list[str]:
    """Split a table row using the column positions of its border."""
    stripped = line.rstrip()
    if len(stripped) == len(border.rstrip()):
        positions = [i for i, ch in enumerate(border) if ch == "+"]
        return [stripped[a + 1 : b].strip() for a, b in zip(positions, positions[1:])]
    # Wide characters shift the columns; fall back to splitting on pipes.
    return [cell.strip() for cell in stripped.strip().strip("|").split("|")]


def _parse_box(lines: list[str], start: int) -> tuple[ExpectedTable, int]:
    """Parse a boxed table starting at a border line; return it and the next index."""
    border = lines[start]
    table = ExpectedTable(line=start + 1)
    i = start + 1
    if i < len(lines) and lines[i].lstrip().startswith("|"):
        table.columns = _split_row(lines[i], border)
        i += 1
    if i < len(lines) and BORDER_RE.match(lines[i]):
        i += 1
    while i < len(lines) and lines[i].lstrip().startswith("|"):
        table.rows.append(_split_row(lines[i], border))
        i += 1
    if i < len(lines) and BORDER_RE.match(lines[i]):
        i += 1
    return table, i


def _parse_vertical(lines: list[str], start: int) -> tuple[ExpectedTable, int]:
    table = ExpectedTable(line=start + 1)
    i = start
    while i < len(lines) and VERTICAL_ROW_RE.match(lines[i]):
        i += 1
        columns: list[str] = []
        values: list[str] = []
        while i < len(lines) and not VERTICAL_ROW_RE.match(lines[i]):
            match = VERTICAL_FIELD_RE.match(lines[i])
            if not match:
                break
            columns.append(match.group(1).strip())
            values.append(match.group(2).strip())
            i += 1
        if not table.columns:
            table.columns = columns
        table.rows.append(values)
    return table, i


def parse_tables(text: str) -> list[ExpectedTable]:
    """Find every result set in a block of client output.

    Status lines such as "3 rows in set" or "Query OK" are skipped.
    """
    lines = text.splitlines()
    tables = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if BORDER_RE.match(line):
            table, i = _parse_box(lines, i)
            tables.append(table)
        elif VERTICAL_ROW_RE.match(line):
            table, i = _parse_vertical(lines, i)
            tables.append(table)
        elif EMPTY_SET_RE.match(line):
            tables.append(ExpectedTable(line=i + 1, empty_set=True))
            i += 1
        else:
            i += 1
    return tables


def table_matches(expected: ExpectedTable, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> bool:
    """Compare an expected table with an actual result set cell by cell."""
    if expected.empty_set:
        return not rows
    if [c.strip() for c in expected.columns] != [str(c) for c in columns]:
        return False
    actual = [[format_value(v) for v in row] for row in rows]
    return actual == [[cell.strip() for cell in row] for row in expected.rows]
