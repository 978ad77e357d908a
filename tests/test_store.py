"""Unit tests for the SheetStore protocol and MemorySheetStore."""

from __future__ import annotations

import pytest

from storefront_mcp.clients.sheets import SheetsClient
from storefront_mcp.data.store import AddTab, MemorySheetStore, ResizeGrid, SheetStore
from storefront_mcp.errors import StoreError

# ── Protocol compliance ────────────────────────────────────────


class TestProtocolCompliance:
    def test_memory_store_satisfies_protocol(self, store: MemorySheetStore):
        assert isinstance(store, SheetStore)

    def test_sheets_client_satisfies_protocol(self):
        assert isinstance(SheetsClient("sheet-id"), SheetStore)


# ── Structural ops ─────────────────────────────────────────────


class TestBatchUpdate:
    async def test_add_tab_uses_default_grid(self, store: MemorySheetStore):
        await store.batch_update([AddTab("AB123")])
        [tab] = await store.get_metadata()
        assert (tab.title, tab.row_count, tab.column_count) == ("AB123", 1000, 26)
        assert store.writes == [("add_tab", "AB123")]

    async def test_duplicate_tab_rejected(self, store: MemorySheetStore):
        store.add_tab("AB123")
        with pytest.raises(StoreError, match="already exists"):
            await store.batch_update([AddTab("AB123")])

    async def test_resize_keeps_cells(self, store: MemorySheetStore):
        info = store.add_tab("AB123")
        store.put_row("AB123", 5, ["x", "y"])
        await store.batch_update([ResizeGrid(info.sheet_id, 2300)])
        assert store.tab("AB123").row_count == 2300
        assert store.row_values("AB123", 5) == ["x", "y"]

    async def test_resize_unknown_sheet(self, store: MemorySheetStore):
        with pytest.raises(StoreError):
            await store.batch_update([ResizeGrid(99, 10)])


# ── Values ─────────────────────────────────────────────────────


class TestValues:
    async def test_get_range_trims_trailing_cells_and_rows(self, store: MemorySheetStore):
        store.add_tab("T")
        store.put_row("T", 2, ["a", "", "c", ""])
        store.put_row("T", 4, ["d"])
        rows = await store.get_range("'T'!A2:D10")
        assert rows == [["a", "", "c"], [], ["d"]]

    async def test_get_range_past_grid_fails(self, store: MemorySheetStore):
        store.add_tab("T", row_count=1000)
        with pytest.raises(StoreError, match="exceeds grid limits"):
            await store.get_range("'T'!A2001:L")

    async def test_get_range_unknown_tab_fails(self, store: MemorySheetStore):
        with pytest.raises(StoreError, match="Unable to parse range"):
            await store.get_range("'nope'!A1:B2")

    async def test_update_range_bounds_checked(self, store: MemorySheetStore):
        store.add_tab("T", row_count=10)
        with pytest.raises(StoreError):
            await store.update_range("'T'!A11:B11", [["x", "y"]])
        assert store.writes == []

    async def test_update_range_writes_cells(self, store: MemorySheetStore):
        store.add_tab("T")
        await store.update_range("'T'!B3:C3", [["x", "y"]])
        assert store.row_values("T", 3) == ["", "x", "y"]
        assert store.writes == [("update", "'T'!B3:C3")]

    async def test_append_fills_after_last_populated_row(self, store: MemorySheetStore):
        store.add_tab("T")
        store.put_row("T", 2, ["a"])
        store.put_row("T", 4, ["b"])
        row = await store.append_rows("'T'!A2:C10", [["c"]])
        assert row == 5
        assert store.row_values("T", 5) == ["c"]

    async def test_append_does_not_shift_rows_below_range(self, store: MemorySheetStore):
        store.add_tab("T")
        store.put_row("T", 10, ["lead header"])
        row = await store.append_rows("'T'!A2:C9", [["v"]])
        assert row == 2
        assert store.row_values("T", 10) == ["lead header"]

    async def test_append_grows_grid(self, store: MemorySheetStore):
        store.add_tab("T", row_count=3)
        store.put_row("T", 3, ["full"])
        row = await store.append_rows("'T'!A1:A", [["more"]])
        assert row == 4
        assert store.tab("T").row_count == 4
