"""SheetStore protocol and in-memory implementation of the spreadsheet primitives."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Protocol, Sequence, Union, runtime_checkable

from storefront_mcp.data.ranges import GridRange, column_letter, parse_a1_range
from storefront_mcp.errors import StoreError

DEFAULT_ROW_COUNT = 1000
DEFAULT_COLUMN_COUNT = 26

Row = list[str]


@dataclass(frozen=True)
class TabInfo:
    """Resolved identity and grid capacity of one tab."""
    sheet_id: int
    title: str
    row_count: int
    column_count: int


@dataclass(frozen=True)
class AddTab:
    title: str


@dataclass(frozen=True)
class ResizeGrid:
    sheet_id: int
    row_count: int
    column_count: int | None = None


StructuralOp = Union[AddTab, ResizeGrid]


# ── Protocol ────────────────────────────────────────────────────────


@runtime_checkable
class SheetStore(Protocol):
    """The cell-range primitives the data layer is allowed to use.

    Implementations are bound to a single spreadsheet.
    """

    async def get_metadata(self) -> list[TabInfo]: ...
    async def batch_update(self, ops: Sequence[StructuralOp]) -> None: ...
    async def get_range(self, range_spec: str) -> list[Row]: ...
    async def update_range(self, range_spec: str, rows: Sequence[Sequence[str]]) -> None: ...
    async def append_rows(self, range_spec: str, rows: Sequence[Sequence[str]]) -> int: ...


# ── In-memory implementation ────────────────────────────────────────


@dataclass
class _MemoryTab:
    sheet_id: int
    title: str
    row_count: int = DEFAULT_ROW_COUNT
    column_count: int = DEFAULT_COLUMN_COUNT
    cells: dict[tuple[int, int], str] = field(default_factory=dict)

    def info(self) -> TabInfo:
        return TabInfo(self.sheet_id, self.title, self.row_count, self.column_count)

    def row_is_empty(self, row: int, start_col: int, end_col: int) -> bool:
        return all(not self.cells.get((row, c), "") for c in range(start_col, end_col + 1))


def _exceeds(spec: str, tab: _MemoryTab) -> StoreError:
    return StoreError(
        f"Range ({spec}) exceeds grid limits. Max rows: {tab.row_count}, "
        f"max column: {column_letter(tab.column_count)}",
        code="SHEETS_HTTP_ERROR",
        status=400,
        details={"range": spec},
    )


class MemorySheetStore:
    """Spreadsheet held in memory, mimicking the Sheets values API.

    Reads trim trailing empty cells and rows; reads and updates outside the
    grid fail; appends fill the first empty row after the last populated row
    in the range and grow the grid if they run past it.  Every write is
    recorded in :attr:`writes` as ``(kind, range)``.
    """

    def __init__(self) -> None:
        self._tabs: dict[str, _MemoryTab] = {}
        self._ids = itertools.count(1)
        self.writes: list[tuple[str, str]] = []
        self.reads: list[str] = []

    # Seeding helpers for tests and local demos; not recorded as writes.

    def add_tab(
        self,
        title: str,
        *,
        row_count: int = DEFAULT_ROW_COUNT,
        column_count: int = DEFAULT_COLUMN_COUNT,
    ) -> TabInfo:
        tab = _MemoryTab(next(self._ids), title, row_count, column_count)
        self._tabs[title] = tab
        return tab.info()

    def put_row(self, title: str, row: int, values: Sequence[str]) -> None:
        tab = self._tabs[title]
        for offset, value in enumerate(values):
            tab.cells[(row, offset + 1)] = str(value)

    def row_values(self, title: str, row: int) -> Row:
        tab = self._tabs[title]
        values = [tab.cells.get((row, c), "") for c in range(1, tab.column_count + 1)]
        while values and not values[-1]:
            values.pop()
        return values

    def tab(self, title: str) -> TabInfo | None:
        tab = self._tabs.get(title)
        return tab.info() if tab else None

    # SheetStore protocol

    async def get_metadata(self) -> list[TabInfo]:
        return [tab.info() for tab in self._tabs.values()]

    async def batch_update(self, ops: Sequence[StructuralOp]) -> None:
        for op in ops:
            if isinstance(op, AddTab):
                if op.title in self._tabs:
                    raise StoreError(
                        f'A sheet with the name "{op.title}" already exists.',
                        code="SHEETS_HTTP_ERROR",
                        status=400,
                    )
                self.add_tab(op.title)
                self.writes.append(("add_tab", op.title))
            elif isinstance(op, ResizeGrid):
                tab = self._by_id(op.sheet_id)
                tab.row_count = op.row_count
                if op.column_count is not None:
                    tab.column_count = op.column_count
                tab.cells = {
                    (r, c): v
                    for (r, c), v in tab.cells.items()
                    if r <= tab.row_count and c <= tab.column_count
                }
                self.writes.append(("resize", tab.title))
            else:
                raise StoreError(f"Unsupported structural op: {op!r}", code="BAD_REQUEST")

    async def get_range(self, range_spec: str) -> list[Row]:
        self.reads.append(range_spec)
        grid, tab = self._resolve(range_spec)
        start_row = grid.start_row or 1
        end_row = grid.end_row or tab.row_count
        if start_row > tab.row_count or end_row > tab.row_count or grid.end_col > tab.column_count:
            raise _exceeds(range_spec, tab)

        rows: list[Row] = []
        for r in range(start_row, end_row + 1):
            values = [tab.cells.get((r, c), "") for c in range(grid.start_col, grid.end_col + 1)]
            while values and not values[-1]:
                values.pop()
            rows.append(values)
        while rows and not rows[-1]:
            rows.pop()
        return rows

    async def update_range(self, range_spec: str, rows: Sequence[Sequence[str]]) -> None:
        grid, tab = self._resolve(range_spec)
        start_row = grid.start_row or 1
        last_row = start_row + len(rows) - 1
        widest = max((len(r) for r in rows), default=0)
        if last_row > tab.row_count or grid.start_col + widest - 1 > tab.column_count:
            raise _exceeds(range_spec, tab)
        self._write(tab, start_row, grid.start_col, rows)
        self.writes.append(("update", range_spec))

    async def append_rows(self, range_spec: str, rows: Sequence[Sequence[str]]) -> int:
        grid, tab = self._resolve(range_spec)
        start_row = grid.start_row or 1
        scan_end = min(grid.end_row or tab.row_count, tab.row_count)
        last_populated = start_row - 1
        for r in range(start_row, scan_end + 1):
            if not tab.row_is_empty(r, grid.start_col, grid.end_col):
                last_populated = r
        target = last_populated + 1
        needed = target + len(rows) - 1
        if needed > tab.row_count:
            tab.row_count = needed
        self._write(tab, target, grid.start_col, rows)
        self.writes.append(("append", range_spec))
        return target

    # internals

    def _resolve(self, range_spec: str) -> tuple[GridRange, _MemoryTab]:
        grid = parse_a1_range(range_spec)
        tab = self._tabs.get(grid.title)
        if tab is None:
            raise StoreError(
                f"Unable to parse range: {range_spec}",
                code="SHEETS_HTTP_ERROR",
                status=400,
                details={"range": range_spec},
            )
        return grid, tab

    def _by_id(self, sheet_id: int) -> _MemoryTab:
        for tab in self._tabs.values():
            if tab.sheet_id == sheet_id:
                return tab
        raise StoreError(f"No grid with id: {sheet_id}", code="SHEETS_HTTP_ERROR", status=400)

    @staticmethod
    def _write(tab: _MemoryTab, start_row: int, start_col: int, rows: Sequence[Sequence[str]]) -> None:
        for r_off, row in enumerate(rows):
            for c_off, value in enumerate(row):
                tab.cells[(start_row + r_off, start_col + c_off)] = "" if value is None else str(value)
