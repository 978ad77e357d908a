"""Key-indexed table semantics over a rectangular region of one tab.

Rows carry no identity other than their position, so every keyed operation is
a scan of the region followed by a positional write.  Scan-then-write is not
atomic across processes; :class:`KeyLocks` only serializes writers to the same
key inside this process.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Generic, Sequence, TypeVar

from storefront_mcp.data.codec import RowSchema, encode_cell
from storefront_mcp.data.ranges import a1_range
from storefront_mcp.data.store import SheetStore
from storefront_mcp.errors import LayoutOverflowError, NotFound, ValidationError

logger = logging.getLogger(__name__)

R = TypeVar("R")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TableRegion:
    """Where one logical table lives inside a tab.

    ``data_end_row`` of ``None`` means the table may grow to the end of the grid.
    """
    tab: str
    header_row: int
    data_start_row: int
    data_end_row: int | None = None

    def __post_init__(self) -> None:
        if self.header_row < 1 or self.data_start_row <= self.header_row:
            raise ValueError(f"data rows must start below the header row: {self}")
        if self.data_end_row is not None and self.data_end_row < self.data_start_row:
            raise ValueError(f"empty data region: {self}")

    def data_range(self, last_column: str) -> str:
        return a1_range(self.tab, "A", self.data_start_row, last_column, self.data_end_row)

    def row_range(self, row: int, last_column: str) -> str:
        return a1_range(self.tab, "A", row, last_column, row)


class KeyLocks:
    """In-process advisory locks keyed by ``(tab, key)``.

    An entry lives only while some task holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, tab: str, key: str) -> AsyncIterator[None]:
        slot = (tab, key)
        lock = self._locks.setdefault(slot, asyncio.Lock())
        self._users[slot] = self._users.get(slot, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[slot] -= 1
            if not self._users[slot]:
                del self._users[slot]
                del self._locks[slot]


@dataclass(frozen=True)
class StoredRow(Generic[R]):
    row: int
    raw: list[str]
    record: R


@dataclass(frozen=True)
class UpsertResult(Generic[R]):
    record: R
    row: int
    created: bool


def _strip_key(value: str) -> str:
    return value.strip()


class KeyIndexedTable(Generic[R]):
    """List / find / upsert / append / update-field over one :class:`TableRegion`."""

    def __init__(
        self,
        store: SheetStore,
        schema: RowSchema[R],
        region: TableRegion,
        *,
        locks: KeyLocks | None = None,
        normalize_key: Callable[[str], str] = _strip_key,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self.schema = schema
        self.region = region
        self._locks = locks if locks is not None else KeyLocks()
        self._normalize_key = normalize_key
        self._clock = clock

    @property
    def data_range(self) -> str:
        return self.region.data_range(self.schema.last_column)

    async def _scan(self) -> tuple[list[StoredRow[R]], int]:
        """Decode the region; returns keyed rows and the last populated row number."""
        raw_rows = await self._store.get_range(self.data_range)
        stored: list[StoredRow[R]] = []
        for offset, raw in enumerate(raw_rows):
            record = self.schema.decode(raw)
            if not self.schema.key_of(record):
                # blank or padding row
                continue
            stored.append(StoredRow(self.region.data_start_row + offset, list(raw), record))
        return stored, self.region.data_start_row + len(raw_rows) - 1

    async def list_all(self) -> list[R]:
        rows, _ = await self._scan()
        return [r.record for r in rows]

    async def locate(self, key: str) -> StoredRow[R] | None:
        rows, _ = await self._scan()
        return self._match(rows, key)

    async def find_by_key(self, key: str) -> R | None:
        found = await self.locate(key)
        return found.record if found else None

    def _match(self, rows: Sequence[StoredRow[R]], key: str) -> StoredRow[R] | None:
        wanted = self._normalize_key(key)
        for stored in rows:
            if self._normalize_key(self.schema.key_of(stored.record)) == wanted:
                return stored
        return None

    def _require_key(self, record: R) -> str:
        key = self.schema.key_of(record)
        if not key:
            raise ValidationError(
                f"{self.schema.name} record is missing its key field {self.schema.key_attr}",
                details={"field": self.schema.key_attr},
            )
        return self._normalize_key(key)

    async def upsert(self, record: R) -> UpsertResult[R]:
        """Update the row holding the record's key in place, or append a new row.

        ``created_at`` is carried over from the stored row when the caller left
        it blank; ``updated_at`` is always refreshed.
        """
        key = self._require_key(record)
        async with self._locks.hold(self.region.tab, key):
            rows, last_populated = await self._scan()
            existing = self._match(rows, key)
            now = self._clock()
            changes: dict[str, str] = {}
            if self.schema.has_field("created_at") and not getattr(record, "created_at"):
                changes["created_at"] = (
                    getattr(existing.record, "created_at") if existing else ""
                ) or now
            if self.schema.has_field("updated_at"):
                changes["updated_at"] = now
            if changes:
                record = dataclasses.replace(record, **changes)

            encoded = self.schema.encode(record)
            if existing is not None:
                await self._store.update_range(
                    self.region.row_range(existing.row, self.schema.last_column), [encoded]
                )
                return UpsertResult(record, existing.row, created=False)

            row = await self._append_encoded(encoded, last_populated)
            return UpsertResult(record, row, created=True)

    async def append(self, record: R) -> UpsertResult[R]:
        """Append without a key scan; callers guarantee the key is fresh."""
        self._require_key(record)
        raw_rows = await self._store.get_range(self.data_range)
        last_populated = self.region.data_start_row + len(raw_rows) - 1
        row = await self._append_encoded(self.schema.encode(record), last_populated)
        return UpsertResult(record, row, created=True)

    async def _append_encoded(self, encoded: list[str], last_populated: int) -> int:
        next_row = last_populated + 1
        end = self.region.data_end_row
        if end is not None and next_row > end:
            raise LayoutOverflowError(
                f"{self.schema.name} table in {self.region.tab!r} is full: row {next_row} "
                f"would cross into rows reserved from {end + 1}",
                details={"tab": self.region.tab, "row": next_row, "data_end_row": end},
            )
        row = await self._store.append_rows(self.data_range, [encoded])
        if end is not None and row > end:
            logger.error(
                "%s append in %s landed on row %d beyond its region end %d",
                self.schema.name, self.region.tab, row, end,
            )
        return row

    async def update_field(self, key: str, attr: str, value: object) -> R:
        """Write one cell of the row holding ``key``.

        Rows still in a legacy column layout are rewritten whole in the current
        layout, since their columns do not line up with the header.
        """
        column = self.schema.column_of(attr)
        wanted = self._normalize_key(key)
        async with self._locks.hold(self.region.tab, wanted):
            rows, _ = await self._scan()
            found = self._match(rows, wanted)
            if found is None:
                raise NotFound(
                    f"{self.schema.name} {key!r} not found in {self.region.tab!r}",
                    details={"key": key, "tab": self.region.tab},
                )
            updated = dataclasses.replace(found.record, **{attr: value})
            if self.schema.layout_for(found.raw) is not self.schema.fields:
                await self._store.update_range(
                    self.region.row_range(found.row, self.schema.last_column),
                    [self.schema.encode(updated)],
                )
                return updated
            spec = next(f for f in self.schema.fields if f.attr == attr)
            await self._store.update_range(
                a1_range(self.region.tab, column, found.row, column, found.row),
                [[encode_cell(spec, value)]],
            )
            return updated
