"""Persisted tab layouts for dealers, vehicles, leads and settings.

Column-shift table
------------------
``ADMIN`` v1 rows predate the plaintext ``passcode`` column (8 cells: the
``createdAt`` timestamp sits at index 6).  Dealer-tab vehicle v1 rows predate
``heroVideo`` (11 cells: ``imagesJson`` sits at index 9).  Headers are
migrated in place but old data rows are never reflowed, so these layouts are
recognised per row at decode time.
"""

from __future__ import annotations

import re
from typing import Sequence

from storefront_mcp.constants import DEFAULT_DEALER_STATUS, DEFAULT_LEAD_STATUS
from storefront_mcp.data.codec import FieldKind, FieldSpec, LegacyLayout, RowSchema
from storefront_mcp.data.records import Dealer, Lead, Setting, Vehicle

_ISO_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T")


def _admin_v1_row(row: Sequence[str]) -> bool:
    return len(row) in (7, 8) and bool(_ISO_TIMESTAMP_RE.match(row[6].strip()))


def _vehicle_v1_row(row: Sequence[str]) -> bool:
    return len(row) in (10, 11) and row[9].strip().startswith("[")


DEALER_SCHEMA: RowSchema[Dealer] = RowSchema(
    "dealer",
    Dealer,
    [
        FieldSpec("dealerId", "dealer_id"),
        FieldSpec("name", "name"),
        FieldSpec("status", "status", FieldKind.LOWER_TEXT, DEFAULT_DEALER_STATUS),
        FieldSpec("passcodeHash", "passcode_hash"),
        FieldSpec("passcode", "passcode"),
        FieldSpec("whatsapp", "whatsapp"),
        FieldSpec("logoUrl", "logo_url"),
        FieldSpec("createdAt", "created_at"),
        FieldSpec("updatedAt", "updated_at"),
    ],
    key_attr="dealer_id",
    version=2,
    legacy=[
        LegacyLayout(
            1,
            ("dealerId", "name", "status", "passcodeHash", "whatsapp",
             "logoUrl", "createdAt", "updatedAt"),
            _admin_v1_row,
        ),
    ],
)

VEHICLE_SCHEMA: RowSchema[Vehicle] = RowSchema(
    "vehicle",
    Vehicle,
    [
        FieldSpec("vehicleId", "vehicle_id"),
        FieldSpec("title", "title"),
        FieldSpec("make", "make"),
        FieldSpec("model", "model"),
        FieldSpec("year", "year", FieldKind.INT, None),
        FieldSpec("price", "price", FieldKind.NUMBER, 0),
        FieldSpec("status", "status"),
        FieldSpec("notes", "notes"),
        FieldSpec("heroImage", "hero_image"),
        FieldSpec("heroVideo", "hero_video"),
        FieldSpec("imagesJson", "images", FieldKind.JSON_LIST),
        FieldSpec("updatedAt", "updated_at"),
    ],
    key_attr="vehicle_id",
    version=2,
    legacy=[
        LegacyLayout(
            1,
            ("vehicleId", "title", "make", "model", "year", "price", "status",
             "notes", "heroImage", "imagesJson", "updatedAt"),
            _vehicle_v1_row,
        ),
    ],
)

LEAD_SCHEMA: RowSchema[Lead] = RowSchema(
    "lead",
    Lead,
    [
        FieldSpec("createdAt", "created_at"),
        FieldSpec("leadId", "lead_id"),
        FieldSpec("vehicleId", "vehicle_id"),
        FieldSpec("type", "type"),
        FieldSpec("name", "name"),
        FieldSpec("phone", "phone"),
        FieldSpec("email", "email"),
        FieldSpec("preferredDate", "preferred_date"),
        FieldSpec("preferredTime", "preferred_time"),
        FieldSpec("notes", "notes"),
        FieldSpec("source", "source"),
        FieldSpec("status", "status", FieldKind.TEXT, DEFAULT_LEAD_STATUS),
    ],
    key_attr="lead_id",
)

SETTING_SCHEMA: RowSchema[Setting] = RowSchema(
    "setting",
    Setting,
    [
        FieldSpec("key", "key"),
        FieldSpec("value", "value"),
        FieldSpec("updatedAt", "updated_at"),
    ],
    key_attr="key",
)
