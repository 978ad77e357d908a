"""Tests for idempotent tab provisioning."""

from __future__ import annotations

from storefront_mcp.data.provisioner import TabProvisioner
from storefront_mcp.data.store import MemorySheetStore


class TestEnsureTab:
    async def test_creates_missing_tab(self, store: MemorySheetStore):
        info = await TabProvisioner(store).ensure_tab("AB123")
        assert info.title == "AB123"
        assert store.tab("AB123") is not None
        assert store.writes == [("add_tab", "AB123")]

    async def test_second_call_writes_nothing(self, store: MemorySheetStore):
        provisioner = TabProvisioner(store)
        await provisioner.ensure_tab("AB123", 2300)
        writes = list(store.writes)
        await provisioner.ensure_tab("AB123", 2300)
        assert store.writes == writes

    async def test_grows_grid_without_touching_cells(self, store: MemorySheetStore):
        store.add_tab("AB123", row_count=1000)
        store.put_row("AB123", 1, ["vehicleId", "title"])
        store.put_row("AB123", 7, ["VEH-ABCDEF", "Civic"])
        info = await TabProvisioner(store).ensure_tab("AB123", 2300)
        assert info.row_count >= 2300
        assert store.tab("AB123").row_count >= 2300
        assert store.row_values("AB123", 7) == ["VEH-ABCDEF", "Civic"]
        assert store.writes == [("resize", "AB123")]

    async def test_never_shrinks(self, store: MemorySheetStore):
        store.add_tab("AB123", row_count=5000)
        info = await TabProvisioner(store).ensure_tab("AB123", 2300)
        assert info.row_count == 5000
        assert store.writes == []


class TestEnsureHeaderRow:
    async def test_writes_missing_header(self, store: MemorySheetStore):
        store.add_tab("SETTINGS")
        wrote = await TabProvisioner(store).ensure_header_row(
            "SETTINGS", 1, "C", ["key", "value", "updatedAt"]
        )
        assert wrote is True
        assert store.row_values("SETTINGS", 1) == ["key", "value", "updatedAt"]

    async def test_matching_header_is_not_rewritten(self, store: MemorySheetStore):
        store.add_tab("SETTINGS")
        store.put_row("SETTINGS", 1, ["key", "value", "updatedAt"])
        provisioner = TabProvisioner(store)
        assert await provisioner.ensure_header_row("SETTINGS", 1, "C", ["key", "value", "updatedAt"]) is False
        assert await provisioner.ensure_header_row("SETTINGS", 1, "C", ["key", "value", "updatedAt"]) is False
        assert store.writes == []

    async def test_migrates_old_header_only(self, store: MemorySheetStore):
        store.add_tab("AB123")
        old = ["vehicleId", "title", "make", "model", "year", "price", "status",
               "notes", "heroImage", "imagesJson", "updatedAt"]
        new = old[:9] + ["heroVideo"] + old[9:]
        store.put_row("AB123", 1, old)
        store.put_row("AB123", 2, ["VEH-1", "t", "Kia", "Rio"])
        assert await TabProvisioner(store).ensure_header_row("AB123", 1, "L", new) is True
        assert store.row_values("AB123", 1) == new
        assert store.row_values("AB123", 2) == ["VEH-1", "t", "Kia", "Rio"]

    async def test_header_at_offset_row(self, store: MemorySheetStore):
        store.add_tab("AB123", row_count=2300)
        await TabProvisioner(store).ensure_header_row("AB123", 2000, "B", ["createdAt", "leadId"])
        assert store.row_values("AB123", 2000) == ["createdAt", "leadId"]
