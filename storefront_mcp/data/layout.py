"""Dealer tab layout: vehicles at the top, leads from a fixed offset row.

One tab per dealer holds two logical tables::

    row 1                      vehicle header
    rows 2 .. S-1              vehicle rows
    row S                      lead header (S = dealer_leads_start_row)
    rows S+1 ..                lead rows

Vehicle appends that would reach row S raise :class:`LayoutOverflowError`
instead of writing over the lead header.
"""

from __future__ import annotations

import re
from typing import Callable

from storefront_mcp.config import StorefrontConfig
from storefront_mcp.data.provisioner import TabProvisioner
from storefront_mcp.data.records import Lead, Vehicle
from storefront_mcp.data.schemas import LEAD_SCHEMA, VEHICLE_SCHEMA
from storefront_mcp.data.store import SheetStore, TabInfo
from storefront_mcp.data.table import KeyIndexedTable, KeyLocks, TableRegion, utc_now_iso
from storefront_mcp.errors import ValidationError

_UNSAFE_TAB_CHARS_RE = re.compile(r"[^\w\- ]+")


def safe_tab_name(dealer_id: str, max_length: int = 80) -> str:
    """Tab titles avoid slashes/brackets and stay short."""
    name = _UNSAFE_TAB_CHARS_RE.sub("_", str(dealer_id or "").strip())[:max_length]
    if not name.strip("_ "):
        raise ValidationError(f"Cannot derive a tab name from dealer id {dealer_id!r}")
    return name


class DealerTabLayout:
    def __init__(
        self,
        store: SheetStore,
        config: StorefrontConfig,
        *,
        provisioner: TabProvisioner | None = None,
        locks: KeyLocks | None = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self._config = config
        self._provisioner = provisioner or TabProvisioner(store)
        self._locks = locks if locks is not None else KeyLocks()
        self._clock = clock

    def tab_name(self, dealer_id: str) -> str:
        return safe_tab_name(dealer_id, self._config.tab_name_max_length)

    def vehicle_region(self, dealer_id: str) -> TableRegion:
        return TableRegion(
            self.tab_name(dealer_id),
            header_row=1,
            data_start_row=2,
            data_end_row=self._config.dealer_leads_start_row - 1,
        )

    def lead_region(self, dealer_id: str) -> TableRegion:
        start = self._config.dealer_leads_start_row
        return TableRegion(self.tab_name(dealer_id), header_row=start, data_start_row=start + 1)

    async def ensure_dealer_tab(self, dealer_id: str) -> TabInfo:
        title = self.tab_name(dealer_id)
        vehicles, leads = self.vehicle_region(dealer_id), self.lead_region(dealer_id)
        info = await self._provisioner.ensure_tab(title, self._config.dealer_min_row_count)
        await self._provisioner.ensure_header_row(
            title, vehicles.header_row, VEHICLE_SCHEMA.last_column, VEHICLE_SCHEMA.headers
        )
        await self._provisioner.ensure_header_row(
            title, leads.header_row, LEAD_SCHEMA.last_column, LEAD_SCHEMA.headers
        )
        return info

    def vehicles(self, dealer_id: str) -> KeyIndexedTable[Vehicle]:
        return KeyIndexedTable(
            self._store,
            VEHICLE_SCHEMA,
            self.vehicle_region(dealer_id),
            locks=self._locks,
            clock=self._clock,
        )

    def leads(self, dealer_id: str) -> KeyIndexedTable[Lead]:
        return KeyIndexedTable(
            self._store,
            LEAD_SCHEMA,
            self.lead_region(dealer_id),
            locks=self._locks,
            clock=self._clock,
        )
