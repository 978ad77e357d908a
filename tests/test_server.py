"""Tests for the MCP server tool wrappers and their error handling."""

from __future__ import annotations

import json

from storefront_mcp import server
from storefront_mcp.config import StorefrontConfig
from storefront_mcp.data.storefront import set_config, set_store
from storefront_mcp.errors import LayoutOverflowError, StoreError


class TestToolWrappers:
    async def test_dealer_and_lead_round_trip(self):
        created = json.loads(await server.save_dealer("AB123", name="Acme"))
        assert created["ok"] is True

        submitted = json.loads(await server.submit_lead("AB123", {"name": "Jane", "phone": "8765551234"}))
        assert submitted["ok"] is True

        updated = json.loads(await server.update_lead_status("AB123", submitted["leadId"], "booked"))
        assert updated["lead"]["status"] == "booked"

    async def test_empty_strings_keep_stored_values(self):
        await server.save_dealer("AB123", name="Acme", whatsapp="15550001")
        edited = json.loads(await server.save_dealer("AB123", status="paused"))
        assert edited["dealer"]["name"] == "Acme"
        assert edited["dealer"]["whatsapp"] == "15550001"

    async def test_update_settings_only_sends_given_keys(self):
        await server.update_settings(storefront_hero_video_url="https://v.example/h.mp4")
        result = json.loads(await server.update_settings(storefront_logo_url="https://x.example/l.png"))
        assert result["settings"] == {
            "storefrontLogoUrl": "https://x.example/l.png",
            "storefrontHeroVideoUrl": "https://v.example/h.mp4",
        }


class TestErrorHandling:
    async def test_validation_error_payload(self):
        result = json.loads(await server.save_dealer("not-an-id", name="Acme"))
        assert result["ok"] is False
        assert result["code"] == "VALIDATION_ERROR"
        assert result["details"] == {"field": "dealerId"}

    async def test_not_found_payload(self):
        result = json.loads(await server.list_dealer_vehicles("ZZ999"))
        assert result["code"] == "NOT_FOUND"

    async def test_missing_spreadsheet_id_payload(self):
        set_store(None)
        set_config(StorefrontConfig())
        result = json.loads(await server.get_settings())
        assert result["code"] == "MISSING_SPREADSHEET_ID"

    async def test_layout_overflow_payload(self, monkeypatch):
        async def _full(*_args, **_kwargs):
            raise LayoutOverflowError("vehicle table in 'AB123' is full")

        monkeypatch.setattr(server, "save_vehicle_impl", _full)
        result = json.loads(await server.save_vehicle("AB123", {"make": "Kia", "model": "Rio"}))
        assert result["code"] == "LAYOUT_OVERFLOW"

    async def test_store_error_is_masked(self, monkeypatch, caplog):
        async def _down(*_args, **_kwargs):
            raise StoreError("HTTP 503 from Sheets", code="SHEETS_HTTP_ERROR", status=503)

        monkeypatch.setattr(server, "list_requests_impl", _down)
        result = json.loads(await server.list_requests())
        assert result["ok"] is False
        assert result["code"] == "INTERNAL_ERROR"
        assert "503" not in result["error"]
        assert "list_requests" in caplog.text

    async def test_unexpected_error_is_masked(self, monkeypatch):
        async def _boom(*_args, **_kwargs):
            raise KeyError("surprise")

        monkeypatch.setattr(server, "get_inventory_impl", _boom)
        result = json.loads(await server.get_inventory())
        assert result["code"] == "INTERNAL_ERROR"


async def test_all_tools_registered():
    names = {tool.name for tool in await server.mcp.list_tools()}
    assert names == {
        "list_dealers", "save_dealer", "reset_dealer_passcode", "dealer_login",
        "get_public_dealer", "list_dealer_vehicles", "save_vehicle", "list_public_vehicles",
        "get_inventory", "list_dealer_leads", "submit_lead", "update_lead_status",
        "list_requests", "get_settings", "update_settings", "get_public_config",
    }
