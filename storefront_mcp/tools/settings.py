"""Storefront settings tools."""

from __future__ import annotations

from typing import Any

from storefront_mcp.data.storefront import get_settings, update_settings
from storefront_mcp.tools.responses import ok_response


async def get_settings_impl() -> str:
    return ok_response(settings=await get_settings())


async def update_settings_impl(values: dict[str, Any]) -> str:
    return ok_response(settings=await update_settings(values))


async def get_public_config_impl() -> str:
    settings = await get_settings()
    return ok_response(
        logoUrl=settings.get("storefrontLogoUrl", ""),
        heroVideoUrl=settings.get("storefrontHeroVideoUrl", ""),
    )
