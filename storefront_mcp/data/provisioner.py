"""Idempotent tab provisioning: existence, grid size and header rows."""

from __future__ import annotations

import logging
from typing import Sequence

from storefront_mcp.data.ranges import a1_range
from storefront_mcp.data.store import AddTab, ResizeGrid, SheetStore, TabInfo
from storefront_mcp.errors import StoreError

logger = logging.getLogger(__name__)


class TabProvisioner:
    """Makes a tab usable before any read or write touches it.

    Store failures propagate as :class:`StoreError`; nothing is retried here.
    """

    def __init__(self, store: SheetStore) -> None:
        self._store = store

    async def _find(self, title: str) -> TabInfo | None:
        for tab in await self._store.get_metadata():
            if tab.title == title:
                return tab
        return None

    async def ensure_tab(self, title: str, min_row_count: int = 0) -> TabInfo:
        """Create ``title`` if missing and grow its grid to ``min_row_count`` rows."""
        tab = await self._find(title)
        if tab is None:
            await self._store.batch_update([AddTab(title)])
            logger.info("Created tab %s", title)
            tab = await self._find(title)
            if tab is None:
                raise StoreError(f"Tab {title!r} missing right after creation", code="TAB_NOT_CREATED")

        if tab.row_count < min_row_count:
            await self._store.batch_update([ResizeGrid(tab.sheet_id, min_row_count)])
            logger.info("Grew tab %s from %d to %d rows", title, tab.row_count, min_row_count)
            tab = TabInfo(tab.sheet_id, tab.title, min_row_count, tab.column_count)
        return tab

    async def ensure_header_row(
        self,
        tab_title: str,
        start_row: int,
        end_column: str,
        expected_headers: Sequence[str],
    ) -> bool:
        """Rewrite the header row when it differs from ``expected_headers``.

        Only the header is touched; data rows written under an older layout are
        left as they are.  Returns True when a write happened.
        """
        spec = a1_range(tab_title, "A", start_row, end_column, start_row)
        rows = await self._store.get_range(spec)
        current = rows[0] if rows else []
        if "|".join(current) == "|".join(expected_headers):
            return False
        await self._store.update_range(spec, [list(expected_headers)])
        if current:
            logger.info("Migrated header of %s row %d: %s -> %s", tab_title, start_row, current, list(expected_headers))
        else:
            logger.info("Initialised header of %s row %d", tab_title, start_row)
        return True
