"""Shared constants used across the data layer and tool modules."""

from __future__ import annotations

import re

DEALER_ID_RE = re.compile(r"^[A-Z]{2}\d{3}$")
VEHICLE_ID_PREFIX = "VEH-"
LEAD_ID_PREFIX = "lead_"

DEALER_STATUSES: frozenset[str] = frozenset({"active", "paused"})
DEFAULT_DEALER_STATUS = "active"
DEFAULT_VEHICLE_STATUS = "available"

# Storefront shows vehicles that are basically "for sale".
PUBLIC_VEHICLE_STATUSES: frozenset[str] = frozenset({
    "published",
    "available",
    "in_stock",
    "instock",
})

DEFAULT_LEAD_TYPE = "video"
DEFAULT_LEAD_SOURCE = "storefront"
DEFAULT_LEAD_STATUS = "new"

SETTINGS_KEYS: tuple[str, ...] = (
    "storefrontLogoUrl",
    "storefrontHeroVideoUrl",
)

HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
