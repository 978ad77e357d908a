"""Repository facade: the functions the tool layer calls.

Each helper opens a :class:`SheetsClient` session for the configured
spreadsheet (or uses the store injected with :func:`set_store`), builds the
repositories and runs one operation.  Per-key locks and the Google token
provider are shared across calls for the life of the process.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping

from storefront_mcp.clients.sheets import GoogleTokenProvider, SheetsClient
from storefront_mcp.config import StorefrontConfig
from storefront_mcp.data.records import Dealer, Lead, Vehicle
from storefront_mcp.data.repositories import DealerSaveResult, Repositories
from storefront_mcp.data.store import SheetStore
from storefront_mcp.data.table import KeyLocks

_config: StorefrontConfig | None = None
_store_override: SheetStore | None = None
_locks = KeyLocks()
_tokens = GoogleTokenProvider()


def get_config() -> StorefrontConfig:
    """Return the active config, reading the environment on first use."""
    global _config  # noqa: PLW0603
    if _config is None:
        _config = StorefrontConfig.from_env()
    return _config


def set_config(config: StorefrontConfig | None) -> None:
    global _config  # noqa: PLW0603
    _config = config


def set_store(store: SheetStore | None) -> None:
    """Inject a store instance (e.g. ``MemorySheetStore``) for tests and demos."""
    global _store_override, _locks  # noqa: PLW0603
    _store_override = store
    _locks = KeyLocks()


@asynccontextmanager
async def open_repositories(config: StorefrontConfig | None = None) -> AsyncIterator[Repositories]:
    cfg = config or get_config()
    if _store_override is not None:
        yield Repositories.build(_store_override, cfg, locks=_locks)
        return
    async with SheetsClient(cfg.require_spreadsheet_id(), token_provider=_tokens) as client:
        yield Repositories.build(client, cfg, locks=_locks)


# ── Repository contract ────────────────────────────────────────────


async def list_dealers() -> list[Dealer]:
    async with open_repositories() as repos:
        return await repos.dealers.list_dealers()


async def upsert_dealer(record: Mapping[str, Any]) -> DealerSaveResult:
    async with open_repositories() as repos:
        return await repos.dealers.upsert_dealer(record)


async def get_dealer(dealer_id: str) -> Dealer | None:
    async with open_repositories() as repos:
        return await repos.dealers.get_dealer(dealer_id)


async def list_vehicles(dealer_id: str) -> list[Vehicle]:
    async with open_repositories() as repos:
        return await repos.vehicles.list_vehicles(dealer_id)


async def upsert_vehicle(dealer_id: str, vehicle: Mapping[str, Any]) -> Vehicle:
    async with open_repositories() as repos:
        return await repos.vehicles.upsert_vehicle(dealer_id, vehicle)


async def list_leads(dealer_id: str) -> list[Lead]:
    async with open_repositories() as repos:
        return await repos.leads.list_leads(dealer_id)


async def append_lead(dealer_id: str, lead: Mapping[str, Any]) -> Lead:
    async with open_repositories() as repos:
        return await repos.leads.append_lead(dealer_id, lead)


async def update_lead_status(dealer_id: str, lead_id: str, status: str) -> Lead:
    async with open_repositories() as repos:
        return await repos.leads.update_lead_status(dealer_id, lead_id, status)


async def get_settings() -> dict[str, str]:
    async with open_repositories() as repos:
        return await repos.settings.get_settings()


async def update_settings(values: Mapping[str, Any]) -> dict[str, str]:
    async with open_repositories() as repos:
        return await repos.settings.update_settings(values)
