"""Runtime configuration for the sheet-backed storefront."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

from storefront_mcp.errors import ConfigError


def _int_setting(env: Mapping[str, str], name: str, default: int, *, minimum: int = 1) -> int:
    raw = str(env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}", details={"name": name}) from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}", details={"name": name})
    return value


@dataclass(frozen=True)
class StorefrontConfig:
    """Everything the provisioning and repository layers need to find their tabs."""

    spreadsheet_id: str = ""
    admin_tab: str = "ADMIN"
    settings_tab: str = "SETTINGS"
    dealer_leads_start_row: int = 2000
    dealer_min_rows: int = 1000
    dealer_leads_buffer_rows: int = 300
    admin_min_rows: int = 1000
    settings_min_rows: int = 50
    tab_name_max_length: int = 80
    max_vehicle_images: int = 7
    passcode_iterations: int = 120_000
    rollup_concurrency: int = 8

    def __post_init__(self) -> None:
        if self.dealer_leads_start_row < 3:
            raise ConfigError(
                "dealer_leads_start_row must leave room for the vehicle header and one vehicle row",
                details={"dealer_leads_start_row": self.dealer_leads_start_row},
            )
        if self.rollup_concurrency < 1:
            raise ConfigError("rollup_concurrency must be at least 1")
        if not self.admin_tab.strip() or not self.settings_tab.strip():
            raise ConfigError("admin and settings tab titles must not be blank")
        if self.admin_tab == self.settings_tab:
            raise ConfigError("admin and settings tabs must be different tabs")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StorefrontConfig:
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            spreadsheet_id=str(env.get("GOOGLE_SHEET_ID", "") or "").strip(),
            admin_tab=str(env.get("ADMIN_SHEET_TITLE", "") or defaults.admin_tab).strip(),
            settings_tab=str(env.get("SETTINGS_SHEET_TITLE", "") or defaults.settings_tab).strip(),
            dealer_leads_start_row=_int_setting(
                env, "DEALER_LEADS_START_ROW", defaults.dealer_leads_start_row, minimum=3
            ),
            dealer_min_rows=_int_setting(env, "DEALER_MIN_ROWS", defaults.dealer_min_rows),
            dealer_leads_buffer_rows=_int_setting(
                env, "DEALER_LEADS_BUFFER_ROWS", defaults.dealer_leads_buffer_rows
            ),
            rollup_concurrency=_int_setting(env, "ROLLUP_CONCURRENCY", defaults.rollup_concurrency),
        )

    @property
    def dealer_min_row_count(self) -> int:
        """Grid rows a dealer tab needs so the lead table is always addressable."""
        return max(self.dealer_min_rows, self.dealer_leads_start_row + self.dealer_leads_buffer_rows)

    def require_spreadsheet_id(self) -> str:
        if not self.spreadsheet_id:
            raise ConfigError("Missing GOOGLE_SHEET_ID env var", code="MISSING_SPREADSHEET_ID")
        return self.spreadsheet_id

    def with_overrides(self, **changes: object) -> StorefrontConfig:
        return replace(self, **changes)
