"""
In-memory storage implementation for the order dashboard.

Holds each sheet as a list of rows (row 1 is the header) and resolves A1
ranges against them with the same row arithmetic as the real spreadsheet.
Used by the test suite and by STORAGE_BACKEND=inmemory for local demos.
"""

import re
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from orderdesk.errors import AuthError
from orderdesk.storage.base import Storage

_RANGE_RE = re.compile(r"^(?P<sheet>[^!]+)!(?P<c1>[A-Z]+)(?P<r1>\d*)(?::(?P<c2>[A-Z]+)(?P<r2>\d*))?$")

DEFAULT_HEADERS = {
    "Orders": ["order_id", "customer_name", "phone", "order_type", "items",
               "total_amount", "payment_status", "order_status", "created_at"],
    "Menu": ["item_id", "item_name", "price", "available"],
    "Meta": ["key", "value"],
}


def _col_index(letters: str) -> int:
    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def parse_a1(range_name: str) -> Tuple[str, int, int, int, Optional[int]]:
    """
    Parse "Sheet!C5:D5" into (sheet, first_col, last_col, first_row, last_row).

    Columns are 0-based, rows 1-based; an open-ended range has last_row None.
    """
    match = _RANGE_RE.match(range_name)
    if not match:
        raise ValueError(f"Unsupported range: {range_name}")
    c1 = _col_index(match.group("c1"))
    c2 = _col_index(match.group("c2")) if match.group("c2") else c1
    r1 = int(match.group("r1")) if match.group("r1") else 1
    if match.group("c2") is None:
        r2 = r1
    else:
        r2 = int(match.group("r2")) if match.group("r2") else None
    return match.group("sheet"), c1, c2, r1, r2


class InMemoryStorage(Storage):
    """Spreadsheet storage held in Python lists."""

    def __init__(self, sheets: Optional[Dict[str, List[List[str]]]] = None):
        """Initialize with optional sheet contents (header row included)."""
        self._sheets: Dict[str, List[List[str]]] = defaultdict(list)
        for name, header in DEFAULT_HEADERS.items():
            self._sheets[name] = [list(header)]
        for name, rows in (sheets or {}).items():
            self._sheets[name] = [list(row) for row in rows]
        # Every write as (range_name, values), in call order
        self.writes: List[Tuple[str, List[List[str]]]] = []
        self.reads: List[str] = []
        self.token_valid = True

    def rows(self, sheet: str) -> List[List[str]]:
        return self._sheets[sheet]

    def append_row(self, sheet: str, row: List[str]) -> None:
        """Append a data row, as a form or another actor would."""
        self._sheets[sheet].append([str(cell) for cell in row])

    async def fetch_range(self, range_name: str) -> List[List[str]]:
        if not self.token_valid:
            raise AuthError()
        self.reads.append(range_name)
        sheet, c1, c2, r1, r2 = parse_a1(range_name)
        grid = self._sheets[sheet]
        last = len(grid) if r2 is None else min(r2, len(grid))

        values = []
        for row in grid[r1 - 1:last]:
            cells = row[c1:c2 + 1]
            # Mirror the API: trailing empty cells are dropped
            while cells and cells[-1] == "":
                cells = cells[:-1]
            values.append(cells)
        # Trailing empty rows are dropped as well
        while values and not values[-1]:
            values.pop()
        return values

    async def write_range(self, range_name: str, values: List[List[str]]) -> None:
        if not self.token_valid:
            raise AuthError()
        self.writes.append((range_name, [list(row) for row in values]))
        sheet, c1, _c2, r1, _r2 = parse_a1(range_name)
        grid = self._sheets[sheet]
        for offset, new_cells in enumerate(values):
            row_index = r1 - 1 + offset
            while len(grid) <= row_index:
                grid.append([])
            row = grid[row_index]
            needed = c1 + len(new_cells)
            if len(row) < needed:
                row.extend([""] * (needed - len(row)))
            row[c1:c1 + len(new_cells)] = [str(cell) for cell in new_cells]

    def clear(self) -> None:
        """Reset every sheet to its header row and forget recorded calls."""
        self._sheets.clear()
        for name, header in DEFAULT_HEADERS.items():
            self._sheets[name] = [list(header)]
        self.writes.clear()
        self.reads.clear()
        self.token_valid = True
