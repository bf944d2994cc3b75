from __future__ import annotations

import re

from .types import StructuralError, TokenizedRow

# rows end at `\n` (or `\r\n`) only, other Unicode line breaks stay inside cells
_LINE_BREAK_RE = re.compile(r"\r?\n")


def split_line(line: str, delimiter: str = ",") -> list[str]:
    """
    Split one line into trimmed cells.

    A `"` toggles quoting, except `""` inside quotes which emits one literal `"`.
    The delimiter only separates cells outside quotes.
    """
    if len(delimiter) != 1:
        raise ValueError(f"delimiter must be a single character, got {delimiter!r}")

    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    cells.append("".join(current).strip())
    return cells


def tokenize(text: str, delimiter: str = ",") -> list[TokenizedRow]:
    """
    Split raw upload text into rows of cells.

    Blank lines are dropped, but `line_number` keeps counting them so it
    always points at the physical line of the upload (header = 1).
    """
    rows = [
        TokenizedRow(line_number=i, cells=split_line(line, delimiter))
        for i, line in enumerate(_LINE_BREAK_RE.split(text), start=1)
        if line.strip()
    ]
    if len(rows) < 2:
        raise StructuralError("CSV file must contain at least a header and one data row")
    return rows
