"""Tests for KeyIndexedTable over the in-memory sheet."""

from __future__ import annotations

import asyncio

import pytest

from storefront_mcp.data.records import Dealer, Lead, Vehicle
from storefront_mcp.data.schemas import DEALER_SCHEMA, LEAD_SCHEMA, VEHICLE_SCHEMA
from storefront_mcp.data.store import MemorySheetStore
from storefront_mcp.data.table import KeyIndexedTable, KeyLocks, TableRegion, utc_now_iso
from storefront_mcp.errors import LayoutOverflowError, NotFound, ValidationError


@pytest.fixture()
def vehicles(store: MemorySheetStore, clock) -> KeyIndexedTable[Vehicle]:
    store.add_tab("AB123", row_count=2300)
    store.put_row("AB123", 1, VEHICLE_SCHEMA.headers)
    return KeyIndexedTable(
        store, VEHICLE_SCHEMA, TableRegion("AB123", 1, 2, 1999), clock=clock
    )


def _vehicle_rows(store: MemorySheetStore, vehicle_id: str) -> list[int]:
    return [r for r in range(2, 2000) if store.row_values("AB123", r)[:1] == [vehicle_id]]


class TestRegion:
    def test_data_range(self):
        assert TableRegion("AB123", 1, 2, 1999).data_range("L") == "'AB123'!A2:L1999"
        assert TableRegion("AB123", 2000, 2001).data_range("L") == "'AB123'!A2001:L"

    def test_data_must_start_below_header(self):
        with pytest.raises(ValueError):
            TableRegion("AB123", 5, 5)

    def test_empty_region_rejected(self):
        with pytest.raises(ValueError):
            TableRegion("AB123", 1, 10, 9)


class TestUpsert:
    async def test_insert_then_update_keeps_single_row(self, vehicles, store):
        first = await vehicles.upsert(Vehicle(vehicle_id="VEH-ABCDEF", make="Kia", model="Rio"))
        assert first.created is True
        assert first.row == 2

        second = await vehicles.upsert(Vehicle(vehicle_id="VEH-ABCDEF", make="Kia", model="Ceed"))
        assert second.created is False
        assert second.row == 2
        assert _vehicle_rows(store, "VEH-ABCDEF") == [2]
        assert (await vehicles.find_by_key("VEH-ABCDEF")).model == "Ceed"

    async def test_updated_at_refreshed(self, vehicles):
        first = await vehicles.upsert(Vehicle(vehicle_id="VEH-1"))
        second = await vehicles.upsert(Vehicle(vehicle_id="VEH-1"))
        assert first.record.updated_at
        assert second.record.updated_at > first.record.updated_at

    async def test_created_at_preserved(self, store, clock):
        store.add_tab("ADMIN")
        table = KeyIndexedTable(store, DEALER_SCHEMA, TableRegion("ADMIN", 1, 2), clock=clock)
        created = await table.upsert(Dealer(dealer_id="AB123", name="Acme"))
        updated = await table.upsert(Dealer(dealer_id="AB123", name="Acme Motors"))
        assert updated.record.created_at == created.record.created_at
        assert updated.record.updated_at != created.record.updated_at

    async def test_key_match_ignores_surrounding_whitespace(self, vehicles, store):
        store.put_row("AB123", 2, [" VEH-1 ", "old"])
        result = await vehicles.upsert(Vehicle(vehicle_id="VEH-1", title="new"))
        assert result.row == 2
        assert result.created is False

    async def test_missing_key_rejected(self, vehicles):
        with pytest.raises(ValidationError):
            await vehicles.upsert(Vehicle(vehicle_id=""))

    async def test_blank_rows_skipped(self, vehicles, store):
        store.put_row("AB123", 2, ["VEH-1", "a"])
        store.put_row("AB123", 4, ["VEH-2", "b"])
        listed = await vehicles.list_all()
        assert [v.vehicle_id for v in listed] == ["VEH-1", "VEH-2"]
        result = await vehicles.upsert(Vehicle(vehicle_id="VEH-3"))
        assert result.row == 5

    async def test_concurrent_upserts_same_key_single_row(self, vehicles, store):
        await asyncio.gather(*(
            vehicles.upsert(Vehicle(vehicle_id="VEH-RACE", title=str(i))) for i in range(5)
        ))
        assert _vehicle_rows(store, "VEH-RACE") == [2]


class TestOverflow:
    async def test_vehicle_table_cannot_reach_lead_header(self, store, clock):
        store.add_tab("AB123", row_count=20)
        store.put_row("AB123", 5, LEAD_SCHEMA.headers)
        table = KeyIndexedTable(store, VEHICLE_SCHEMA, TableRegion("AB123", 1, 2, 4), clock=clock)
        for i in range(3):
            await table.upsert(Vehicle(vehicle_id=f"VEH-{i}"))
        with pytest.raises(LayoutOverflowError) as exc_info:
            await table.upsert(Vehicle(vehicle_id="VEH-9"))
        assert exc_info.value.code == "LAYOUT_OVERFLOW"
        assert store.row_values("AB123", 5) == LEAD_SCHEMA.headers


class TestUpdateField:
    @pytest.fixture()
    def leads(self, store: MemorySheetStore) -> KeyIndexedTable[Lead]:
        store.add_tab("AB123", row_count=2300)
        return KeyIndexedTable(store, LEAD_SCHEMA, TableRegion("AB123", 2000, 2001))

    async def test_writes_single_cell(self, leads, store):
        await leads.append(Lead(created_at="t", lead_id="lead_1", name="Jane", phone="1"))
        store.writes.clear()
        updated = await leads.update_field("lead_1", "status", "booked")
        assert updated.status == "booked"
        assert store.writes == [("update", "'AB123'!L2001:L2001")]
        assert store.row_values("AB123", 2001)[11] == "booked"

    async def test_unknown_key(self, leads):
        with pytest.raises(NotFound):
            await leads.update_field("lead_missing", "status", "booked")

    async def test_unknown_field(self, leads):
        with pytest.raises(ValueError):
            await leads.update_field("lead_1", "colour", "red")

    async def test_legacy_row_rewritten_in_current_layout(self, vehicles, store):
        legacy = ["VEH-OLD", "t", "Kia", "Rio", "2019", "9000", "available", "",
                  "https://img.example/a.jpg", '["https://img.example/a.jpg"]', "2025-01-01T00:00:00.000Z"]
        store.put_row("AB123", 2, legacy)
        await vehicles.update_field("VEH-OLD", "status", "sold")
        row = store.row_values("AB123", 2)
        assert len(row) == 12
        assert row[6] == "sold"
        assert row[9] == ""
        assert row[10] == '["https://img.example/a.jpg"]'


class TestHelpers:
    def test_utc_now_iso_format(self):
        stamp = utc_now_iso()
        assert stamp.endswith("Z")
        assert len(stamp) == len("2026-01-01T00:00:00.000Z")

    async def test_key_locks_serialize_same_key(self):
        locks = KeyLocks()
        order: list[str] = []

        async def _worker(name: str):
            async with locks.hold("T", "k"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(_worker("a"), _worker("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]
        assert len(locks) == 0

    async def test_key_locks_released_after_sequential_use(self):
        locks = KeyLocks()
        for i in range(1000):
            async with locks.hold("T", f"lead_{i}"):
                assert len(locks) == 1
        assert len(locks) == 0

    async def test_key_lock_kept_while_waiters_remain(self):
        locks = KeyLocks()
        release = asyncio.Event()
        seen: list[int] = []

        async def _first():
            async with locks.hold("T", "k"):
                await release.wait()

        async def _second():
            async with locks.hold("T", "k"):
                seen.append(len(locks))

        tasks = [asyncio.create_task(_first()), asyncio.create_task(_second())]
        await asyncio.sleep(0)
        assert len(locks) == 1
        release.set()
        await asyncio.gather(*tasks)
        assert seen == [1]
        assert len(locks) == 0

    async def test_key_lock_released_when_body_raises(self):
        locks = KeyLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("T", "k"):
                raise RuntimeError("write failed")
        assert len(locks) == 0
