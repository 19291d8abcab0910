"""Quoted-field CSV parsing for device uploads."""

import re
from datetime import date
from typing import List

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_csv(text: str) -> List[List[str]]:
    """
    Split CSV text into rows of trimmed cells.

    Handles quoted cells containing commas and newlines, ``""`` as an escaped
    quote, and both ``\\n`` and ``\\r\\n`` line endings. Rows whose cells are
    all empty are dropped.

    Examples:
        >>> parse_csv('a,"b, c"\\r\\n"say ""hi"" now",d')
        [['a', 'b, c'], ['say "hi" now', 'd']]
    """
    rows: List[List[str]] = []
    row: List[str] = []
    cell: List[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    def end_row():
        row.append("".join(cell).strip())
        if any(c != "" for c in row):
            rows.append(list(row))
        row.clear()
        cell.clear()

    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if in_quotes:
            if char == '"' and next_char == '"':
                cell.append('"')
                i += 1
            elif char == '"':
                in_quotes = False
            else:
                cell.append(char)
        elif char == '"':
            in_quotes = True
        elif char == ",":
            row.append("".join(cell).strip())
            cell.clear()
        elif char == "\n":
            end_row()
        elif char == "\r" and next_char == "\n":
            end_row()
            i += 1
        else:
            cell.append(char)
        i += 1

    end_row()
    return rows


def is_valid_date(value: str) -> bool:
    """True for ``YYYY-MM-DD`` strings naming a real calendar date."""
    if not value or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def normalize_header(value: str) -> str:
    return re.sub(r"\s+", "_", value.strip().lower())
