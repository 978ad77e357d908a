"""Storefront MCP server: FastMCP entry point over the sheet-backed data layer."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from storefront_mcp.errors import (
    ConfigError,
    LayoutOverflowError,
    NotFound,
    ValidationError,
    error_payload,
    log_and_return_tool_error,
)
from storefront_mcp.tools.dealers import (
    dealer_login_impl,
    get_public_dealer_impl,
    list_dealers_impl,
    reset_passcode_impl,
    save_dealer_impl,
)
from storefront_mcp.tools.leads import (
    list_dealer_leads_impl,
    list_requests_impl,
    submit_lead_impl,
    update_lead_status_impl,
)
from storefront_mcp.tools.settings import (
    get_public_config_impl,
    get_settings_impl,
    update_settings_impl,
)
from storefront_mcp.tools.vehicles import (
    get_inventory_impl,
    list_dealer_vehicles_impl,
    list_public_vehicles_impl,
    save_vehicle_impl,
)

# Load .env from project root (no extra dependency)
_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
if _ENV_FILE.is_file():
    for line in _ENV_FILE.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            os.environ.setdefault(k.strip(), v.strip())

mcp = FastMCP("Storefront")
logger = logging.getLogger(__name__)

# Caller-facing failures; anything else is logged and masked.
_EXPECTED_ERRORS = (ValidationError, NotFound, ConfigError, LayoutOverflowError)

_RETRY_MESSAGE = "The storefront sheet is unavailable right now. Please try again in a moment."


# ── Dealers ────────────────────────────────────────────────────────


@mcp.tool()
async def list_dealers() -> str:
    """Admin: list every dealer (without credentials) with its vehicle count."""
    try:
        return await list_dealers_impl()
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="list_dealers", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def save_dealer(
    dealer_id: str,
    name: str = "",
    status: str = "",
    whatsapp: str = "",
    logo_url: str = "",
    passcode: str = "",
) -> str:
    """Admin: create or edit a dealer.

    Empty fields keep their stored value.  A new dealer without a passcode gets
    a generated 6-digit one, returned once in the response.
    """
    try:
        return await save_dealer_impl(
            dealer_id=dealer_id,
            name=name or None,
            status=status or None,
            whatsapp=whatsapp or None,
            logo_url=logo_url or None,
            passcode=passcode or None,
        )
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="save_dealer", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def reset_dealer_passcode(dealer_id: str) -> str:
    """Admin: replace a dealer's passcode with a new generated one."""
    try:
        return await reset_passcode_impl(dealer_id)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="reset_dealer_passcode", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def dealer_login(dealer_id: str, passcode: str) -> str:
    """Check a dealer's passcode. Paused dealers cannot log in."""
    try:
        return await dealer_login_impl(dealer_id, passcode)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="dealer_login", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def get_public_dealer(dealer_id: str) -> str:
    """Storefront profile of one dealer (name, WhatsApp, logo)."""
    try:
        return await get_public_dealer_impl(dealer_id)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="get_public_dealer", exc=exc, user_message=_RETRY_MESSAGE
        )


# ── Vehicles ───────────────────────────────────────────────────────


@mcp.tool()
async def list_dealer_vehicles(dealer_id: str) -> str:
    """All vehicles of one dealer, whatever their status."""
    try:
        return await list_dealer_vehicles_impl(dealer_id)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="list_dealer_vehicles", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def save_vehicle(dealer_id: str, vehicle: dict[str, Any]) -> str:
    """Create or update a vehicle.

    vehicle: camelCase fields (vehicleId, title, make, model, year, price,
    status, notes, heroImage, heroVideo, images).  Omit vehicleId to create.
    """
    try:
        return await save_vehicle_impl(dealer_id, vehicle)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="save_vehicle", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def list_public_vehicles(dealer_id: str = "") -> str:
    """Publicly listed vehicles of active dealers, optionally for one dealer."""
    try:
        return await list_public_vehicles_impl(dealer_id or None)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="list_public_vehicles", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def get_inventory() -> str:
    """Admin: every dealer's vehicles in one list."""
    try:
        return await get_inventory_impl()
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="get_inventory", exc=exc, user_message=_RETRY_MESSAGE
        )


# ── Leads ──────────────────────────────────────────────────────────


@mcp.tool()
async def list_dealer_leads(dealer_id: str) -> str:
    """All leads recorded for one dealer."""
    try:
        return await list_dealer_leads_impl(dealer_id)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="list_dealer_leads", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def submit_lead(dealer_id: str, lead: dict[str, Any]) -> str:
    """Record a storefront request (video call, test drive, callback).

    lead: camelCase fields (vehicleId, type, name, phone, email, preferredDate,
    preferredTime, notes, source).  name and phone are required.
    """
    try:
        return await submit_lead_impl(dealer_id, lead)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="submit_lead",
            exc=exc,
            user_message="We could not record your request right now. Please try again shortly.",
        )


@mcp.tool()
async def update_lead_status(dealer_id: str, lead_id: str, status: str) -> str:
    """Set the follow-up status of one lead (e.g. contacted, booked, closed)."""
    try:
        return await update_lead_status_impl(dealer_id, lead_id, status)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="update_lead_status", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def list_requests() -> str:
    """Admin: leads across all dealers, newest first."""
    try:
        return await list_requests_impl()
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="list_requests", exc=exc, user_message=_RETRY_MESSAGE
        )


# ── Settings ───────────────────────────────────────────────────────


@mcp.tool()
async def get_settings() -> str:
    """Admin: storefront-wide settings."""
    try:
        return await get_settings_impl()
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="get_settings", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def update_settings(
    storefront_logo_url: str | None = None,
    storefront_hero_video_url: str | None = None,
) -> str:
    """Admin: set storefront settings. Pass an empty string to clear a value."""
    values: dict[str, Any] = {}
    if storefront_logo_url is not None:
        values["storefrontLogoUrl"] = storefront_logo_url
    if storefront_hero_video_url is not None:
        values["storefrontHeroVideoUrl"] = storefront_hero_video_url
    try:
        return await update_settings_impl(values)
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="update_settings", exc=exc, user_message=_RETRY_MESSAGE
        )


@mcp.tool()
async def get_public_config() -> str:
    """Storefront branding (logo and hero video) for public pages."""
    try:
        return await get_public_config_impl()
    except _EXPECTED_ERRORS as exc:
        return error_payload(exc)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="get_public_config", exc=exc, user_message=_RETRY_MESSAGE
        )


if __name__ == "__main__":
    mcp.run()
