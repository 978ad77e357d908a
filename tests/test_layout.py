"""Tests for the dealer tab layout (vehicles on top, leads from a fixed row)."""

from __future__ import annotations

import pytest

from storefront_mcp.config import StorefrontConfig
from storefront_mcp.data.layout import DealerTabLayout, safe_tab_name
from storefront_mcp.data.records import Lead, Vehicle
from storefront_mcp.data.schemas import LEAD_SCHEMA, VEHICLE_SCHEMA
from storefront_mcp.data.store import MemorySheetStore
from storefront_mcp.errors import ValidationError


class TestSafeTabName:
    def test_plain_id_unchanged(self):
        assert safe_tab_name("AB123") == "AB123"

    def test_unsafe_characters_replaced(self):
        assert safe_tab_name("AB/12[3]") == "AB_12_3_"

    def test_length_capped(self):
        assert len(safe_tab_name("x" * 200)) == 80

    def test_blank_rejected(self):
        with pytest.raises(ValidationError):
            safe_tab_name("  ")


class TestRegions:
    def test_default_offsets(self, store: MemorySheetStore, config: StorefrontConfig):
        layout = DealerTabLayout(store, config)
        vehicles = layout.vehicle_region("AB123")
        leads = layout.lead_region("AB123")
        assert (vehicles.header_row, vehicles.data_start_row, vehicles.data_end_row) == (1, 2, 1999)
        assert (leads.header_row, leads.data_start_row, leads.data_end_row) == (2000, 2001, None)

    def test_custom_offset(self, store: MemorySheetStore, config: StorefrontConfig):
        layout = DealerTabLayout(store, config.with_overrides(dealer_leads_start_row=50))
        assert layout.vehicle_region("AB123").data_end_row == 49
        assert layout.lead_region("AB123").header_row == 50


class TestEnsureDealerTab:
    async def test_provisions_tab_and_both_headers(self, store: MemorySheetStore, config: StorefrontConfig):
        info = await DealerTabLayout(store, config).ensure_dealer_tab("AB123")
        assert info.row_count >= 2300
        assert store.row_values("AB123", 1) == VEHICLE_SCHEMA.headers
        assert store.row_values("AB123", 2000) == LEAD_SCHEMA.headers

    async def test_idempotent(self, store: MemorySheetStore, config: StorefrontConfig):
        layout = DealerTabLayout(store, config)
        await layout.ensure_dealer_tab("AB123")
        writes = list(store.writes)
        await layout.ensure_dealer_tab("AB123")
        assert store.writes == writes

    async def test_existing_small_tab_grown_before_lead_header(
        self, store: MemorySheetStore, config: StorefrontConfig
    ):
        store.add_tab("AB123", row_count=1000)
        store.put_row("AB123", 2, ["VEH-1", "kept"])
        await DealerTabLayout(store, config).ensure_dealer_tab("AB123")
        assert store.tab("AB123").row_count >= 2300
        assert store.row_values("AB123", 2) == ["VEH-1", "kept"]
        assert store.row_values("AB123", 2000) == LEAD_SCHEMA.headers

    async def test_vehicles_and_leads_stay_in_their_regions(
        self, store: MemorySheetStore, config: StorefrontConfig
    ):
        layout = DealerTabLayout(store, config)
        await layout.ensure_dealer_tab("AB123")
        lead = await layout.leads("AB123").append(Lead(created_at="t", lead_id="lead_1", name="J", phone="1"))
        vehicle = await layout.vehicles("AB123").upsert(Vehicle(vehicle_id="VEH-1"))
        assert lead.row == 2001
        assert vehicle.row == 2
        assert [v.vehicle_id for v in await layout.vehicles("AB123").list_all()] == ["VEH-1"]
        assert [x.lead_id for x in await layout.leads("AB123").list_all()] == ["lead_1"]
