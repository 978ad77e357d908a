"""Entity repositories: dealers, per-dealer vehicles and leads, settings.

Inputs are plain mappings with the camelCase keys used by the storefront
front-ends; outputs are the typed records from :mod:`storefront_mcp.data.records`.
Every operation provisions its tab first, then reads or writes through a
:class:`KeyIndexedTable`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Mapping, TypeVar

from storefront_mcp.config import StorefrontConfig
from storefront_mcp.constants import (
    DEALER_ID_RE,
    DEALER_STATUSES,
    DEFAULT_DEALER_STATUS,
    DEFAULT_LEAD_SOURCE,
    DEFAULT_LEAD_STATUS,
    DEFAULT_LEAD_TYPE,
    DEFAULT_VEHICLE_STATUS,
    LEAD_ID_PREFIX,
    SETTINGS_KEYS,
    VEHICLE_ID_PREFIX,
)
from storefront_mcp.data.layout import DealerTabLayout
from storefront_mcp.data.provisioner import TabProvisioner
from storefront_mcp.data.records import Dealer, Lead, Setting, Vehicle
from storefront_mcp.data.schemas import DEALER_SCHEMA, SETTING_SCHEMA
from storefront_mcp.data.store import SheetStore
from storefront_mcp.data.table import KeyIndexedTable, KeyLocks, TableRegion, utc_now_iso
from storefront_mcp.errors import NotFound, ValidationError
from storefront_mcp.normalization import (
    clean_http_url,
    clean_text,
    digits_only,
    filter_http_urls,
    is_http_url,
    parse_int,
    parse_price,
)
from storefront_mcp.security import generate_passcode, hash_passcode, verify_passcode

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MIN_PASSCODE_LENGTH = 4


def new_vehicle_id() -> str:
    return VEHICLE_ID_PREFIX + secrets.token_hex(3).upper()


def new_lead_id() -> str:
    return LEAD_ID_PREFIX + secrets.token_hex(6)


def normalize_dealer_id(value: Any) -> str:
    """Canonical upper-case dealer id; raises on anything but 2 letters + 3 digits."""
    dealer_id = clean_text(value).upper()
    if not DEALER_ID_RE.fullmatch(dealer_id):
        raise ValidationError(
            f"Invalid dealerId {value!r}: expected 2 letters followed by 3 digits",
            details={"field": "dealerId"},
        )
    return dealer_id


def filter_public_vehicles(vehicles: Iterable[Vehicle]) -> list[Vehicle]:
    return [v for v in vehicles if v.is_public]


async def for_each_dealer(
    dealers: Iterable[Dealer],
    fetch: Callable[[Dealer], Awaitable[T]],
    *,
    limit: int,
) -> list[tuple[Dealer, T | None]]:
    """Run ``fetch`` per dealer with at most ``limit`` in flight.

    A dealer whose read fails is logged and reported with ``None`` so one broken
    tab does not hide the rest of the rollup.
    """
    semaphore = asyncio.Semaphore(limit)

    async def _one(dealer: Dealer) -> tuple[Dealer, T | None]:
        async with semaphore:
            try:
                return dealer, await fetch(dealer)
            except Exception as exc:
                logger.warning("Skipping dealer %s in rollup: %s", dealer.dealer_id, exc)
                return dealer, None

    return list(await asyncio.gather(*(_one(d) for d in dealers)))


@dataclass(frozen=True)
class DealerSaveResult:
    dealer: Dealer
    created: bool
    # Plaintext passcode, only when this call generated or changed it.
    passcode: str | None = None


class DealerRepository:
    """Dealers live in the admin tab, one row each, keyed by dealerId."""

    def __init__(
        self,
        store: SheetStore,
        config: StorefrontConfig,
        *,
        layout: DealerTabLayout,
        provisioner: TabProvisioner | None = None,
        locks: KeyLocks | None = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._config = config
        self._layout = layout
        self._provisioner = provisioner or TabProvisioner(store)
        self._table: KeyIndexedTable[Dealer] = KeyIndexedTable(
            store,
            DEALER_SCHEMA,
            TableRegion(config.admin_tab, header_row=1, data_start_row=2),
            locks=locks,
            normalize_key=lambda key: key.strip().upper(),
            clock=clock,
        )

    async def ensure_tab(self) -> None:
        await self._provisioner.ensure_tab(self._config.admin_tab, self._config.admin_min_rows)
        await self._provisioner.ensure_header_row(
            self._config.admin_tab, 1, DEALER_SCHEMA.last_column, DEALER_SCHEMA.headers
        )

    async def list_dealers(self) -> list[Dealer]:
        await self.ensure_tab()
        return await self._table.list_all()

    async def get_dealer(self, dealer_id: str) -> Dealer | None:
        key = normalize_dealer_id(dealer_id)
        await self.ensure_tab()
        return await self._table.find_by_key(key)

    async def require_dealer(self, dealer_id: str) -> Dealer:
        dealer = await self.get_dealer(dealer_id)
        if dealer is None:
            raise NotFound(f"Dealer {dealer_id!r} not found", details={"dealerId": dealer_id})
        return dealer

    async def upsert_dealer(self, record: Mapping[str, Any]) -> DealerSaveResult:
        """Create or edit a dealer.

        Fields missing from ``record`` keep their stored values.  A new dealer
        without a passcode gets a generated 6-digit one.  The dealer's own tab is
        provisioned after every save.
        """
        dealer_id = normalize_dealer_id(record.get("dealerId"))
        name = clean_text(record.get("name"))
        status = clean_text(record.get("status")).lower()
        if status and status not in DEALER_STATUSES:
            raise ValidationError(
                f"Invalid status {status!r}; expected one of {sorted(DEALER_STATUSES)}",
                details={"field": "status"},
            )
        passcode = clean_text(record.get("passcode"))
        if passcode and len(passcode) < _MIN_PASSCODE_LENGTH:
            raise ValidationError(
                f"passcode must be at least {_MIN_PASSCODE_LENGTH} characters",
                details={"field": "passcode"},
            )

        existing = await self.get_dealer(dealer_id)
        if existing is None and not name:
            raise ValidationError("dealerId and name required", details={"field": "name"})
        base = existing or Dealer(dealer_id=dealer_id)

        if not passcode and existing is None:
            passcode = generate_passcode()
        secret_changes: dict[str, str] = {}
        if passcode:
            secret_changes = {
                "passcode": passcode,
                "passcode_hash": hash_passcode(passcode, iterations=self._config.passcode_iterations),
            }

        dealer = dataclasses.replace(
            base,
            dealer_id=dealer_id,
            name=name or base.name,
            status=status or base.status or DEFAULT_DEALER_STATUS,
            whatsapp=digits_only(record["whatsapp"]) if record.get("whatsapp") is not None else base.whatsapp,
            logo_url=clean_http_url(record["logoUrl"]) if record.get("logoUrl") is not None else base.logo_url,
            updated_at="",
            **secret_changes,
        )
        result = await self._table.upsert(dealer)
        await self._layout.ensure_dealer_tab(dealer_id)
        if result.created:
            logger.info("Created dealer %s", dealer_id)
        return DealerSaveResult(result.record, created=result.created, passcode=passcode or None)

    async def reset_passcode(self, dealer_id: str) -> DealerSaveResult:
        dealer = await self.require_dealer(dealer_id)
        passcode = generate_passcode()
        updated = dataclasses.replace(
            dealer,
            passcode=passcode,
            passcode_hash=hash_passcode(passcode, iterations=self._config.passcode_iterations),
        )
        result = await self._table.upsert(updated)
        return DealerSaveResult(result.record, created=False, passcode=passcode)

    async def authenticate(self, dealer_id: str, passcode: str) -> Dealer | None:
        """Return the dealer when the passcode matches and the dealer is active."""
        dealer = await self.get_dealer(dealer_id)
        if dealer is None or not dealer.is_active:
            return None
        if not verify_passcode(passcode, dealer.passcode_hash, iterations=self._config.passcode_iterations):
            return None
        return dealer


class VehicleRepository:
    """Vehicles of one dealer, rows 2 .. leads-start-1 of the dealer's tab."""

    def __init__(self, config: StorefrontConfig, *, dealers: DealerRepository, layout: DealerTabLayout) -> None:
        self._config = config
        self._dealers = dealers
        self._layout = layout

    async def _open(self, dealer_id: str) -> tuple[str, KeyIndexedTable[Vehicle]]:
        dealer = await self._dealers.require_dealer(dealer_id)
        await self._layout.ensure_dealer_tab(dealer.dealer_id)
        return dealer.dealer_id, self._layout.vehicles(dealer.dealer_id)

    async def list_vehicles(self, dealer_id: str) -> list[Vehicle]:
        return await self.list_for_dealer(await self._dealers.require_dealer(dealer_id))

    async def list_for_dealer(self, dealer: Dealer) -> list[Vehicle]:
        """List without re-reading the admin tab; for rollups over known dealers."""
        await self._layout.ensure_dealer_tab(dealer.dealer_id)
        table = self._layout.vehicles(dealer.dealer_id)
        return [dataclasses.replace(v, dealer_id=dealer.dealer_id) for v in await table.list_all()]

    def _from_input(self, data: Mapping[str, Any]) -> Vehicle:
        make = clean_text(data.get("make"))
        model = clean_text(data.get("model"))
        if not make or not model:
            raise ValidationError("make and model required", details={"field": "make" if not make else "model"})

        raw_price = data.get("price")
        price = parse_price(raw_price)
        if price is None and clean_text(raw_price):
            raise ValidationError(f"price must be a number, got {raw_price!r}", details={"field": "price"})
        if price is not None and price < 0:
            raise ValidationError("price must not be negative", details={"field": "price"})

        images = filter_http_urls(data.get("images"), limit=self._config.max_vehicle_images)
        hero_image = clean_http_url(data.get("heroImage")) or (images[0] if images else "")
        return Vehicle(
            vehicle_id=clean_text(data.get("vehicleId")) or new_vehicle_id(),
            title=clean_text(data.get("title")),
            make=make,
            model=model,
            year=parse_int(data.get("year")),
            price=price or 0,
            status=clean_text(data.get("status")) or DEFAULT_VEHICLE_STATUS,
            notes=clean_text(data.get("notes")),
            hero_image=hero_image,
            hero_video=clean_http_url(data.get("heroVideo")),
            images=images,
        )

    async def upsert_vehicle(self, dealer_id: str, vehicle: Mapping[str, Any]) -> Vehicle:
        """Update by vehicleId, or insert; an omitted vehicleId always inserts."""
        record = self._from_input(vehicle)
        canonical, table = await self._open(dealer_id)
        result = await table.upsert(record)
        return dataclasses.replace(result.record, dealer_id=canonical)


class LeadRepository:
    """Leads of one dealer, from the row after the lead header downwards."""

    def __init__(
        self,
        *,
        dealers: DealerRepository,
        layout: DealerTabLayout,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._dealers = dealers
        self._layout = layout
        self._clock = clock

    async def _open(self, dealer_id: str) -> tuple[str, KeyIndexedTable[Lead]]:
        dealer = await self._dealers.require_dealer(dealer_id)
        await self._layout.ensure_dealer_tab(dealer.dealer_id)
        return dealer.dealer_id, self._layout.leads(dealer.dealer_id)

    async def list_leads(self, dealer_id: str) -> list[Lead]:
        return await self.list_for_dealer(await self._dealers.require_dealer(dealer_id))

    async def list_for_dealer(self, dealer: Dealer) -> list[Lead]:
        await self._layout.ensure_dealer_tab(dealer.dealer_id)
        table = self._layout.leads(dealer.dealer_id)
        return [dataclasses.replace(lead, dealer_id=dealer.dealer_id) for lead in await table.list_all()]

    async def append_lead(self, dealer_id: str, lead: Mapping[str, Any]) -> Lead:
        name = clean_text(lead.get("name"))
        phone = clean_text(lead.get("phone"))
        if not name or not phone:
            raise ValidationError("name and phone required", details={"field": "name" if not name else "phone"})
        record = Lead(
            created_at=self._clock(),
            lead_id=new_lead_id(),
            vehicle_id=clean_text(lead.get("vehicleId")),
            type=clean_text(lead.get("type")) or DEFAULT_LEAD_TYPE,
            name=name,
            phone=phone,
            email=clean_text(lead.get("email")),
            preferred_date=clean_text(lead.get("preferredDate")),
            preferred_time=clean_text(lead.get("preferredTime")),
            notes=clean_text(lead.get("notes")),
            source=clean_text(lead.get("source")) or DEFAULT_LEAD_SOURCE,
            status=DEFAULT_LEAD_STATUS,
        )
        canonical, table = await self._open(dealer_id)
        result = await table.append(record)
        logger.info("Recorded lead %s for dealer %s at row %d", record.lead_id, canonical, result.row)
        return dataclasses.replace(result.record, dealer_id=canonical)

    async def update_lead_status(self, dealer_id: str, lead_id: str, status: str) -> Lead:
        """Rewrite only the status cell of one lead row."""
        new_status = clean_text(status).lower()
        if not new_status:
            raise ValidationError("status required", details={"field": "status"})
        if not clean_text(lead_id):
            raise ValidationError("leadId required", details={"field": "leadId"})
        canonical, table = await self._open(dealer_id)
        updated = await table.update_field(clean_text(lead_id), "status", new_status)
        return dataclasses.replace(updated, dealer_id=canonical)


class SettingsRepository:
    """Storefront-wide settings, one row per allowed key."""

    def __init__(
        self,
        store: SheetStore,
        config: StorefrontConfig,
        *,
        provisioner: TabProvisioner | None = None,
        locks: KeyLocks | None = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._config = config
        self._provisioner = provisioner or TabProvisioner(store)
        self._table: KeyIndexedTable[Setting] = KeyIndexedTable(
            store,
            SETTING_SCHEMA,
            TableRegion(config.settings_tab, header_row=1, data_start_row=2),
            locks=locks,
            clock=clock,
        )

    async def ensure_tab(self) -> None:
        await self._provisioner.ensure_tab(self._config.settings_tab, self._config.settings_min_rows)
        await self._provisioner.ensure_header_row(
            self._config.settings_tab, 1, SETTING_SCHEMA.last_column, SETTING_SCHEMA.headers
        )

    async def get_settings(self) -> dict[str, str]:
        await self.ensure_tab()
        settings = {key: "" for key in SETTINGS_KEYS}
        for row in await self._table.list_all():
            if row.key in settings:
                settings[row.key] = row.value
        return settings

    async def update_settings(self, values: Mapping[str, Any]) -> dict[str, str]:
        unknown = sorted(k for k in values if k not in SETTINGS_KEYS)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}", details={"keys": unknown})
        cleaned: dict[str, str] = {}
        for key, raw in values.items():
            value = clean_text(raw)
            if value and not is_http_url(value):
                raise ValidationError(f"{key} must be an http(s) URL", details={"field": key})
            cleaned[key] = value

        await self.ensure_tab()
        for key, value in cleaned.items():
            await self._table.upsert(Setting(key=key, value=value))
        return await self.get_settings()


@dataclass(frozen=True)
class Repositories:
    config: StorefrontConfig
    dealers: DealerRepository
    vehicles: VehicleRepository
    leads: LeadRepository
    settings: SettingsRepository

    @classmethod
    def build(
        cls,
        store: SheetStore,
        config: StorefrontConfig,
        *,
        locks: KeyLocks | None = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> Repositories:
        locks = locks if locks is not None else KeyLocks()
        provisioner = TabProvisioner(store)
        layout = DealerTabLayout(store, config, provisioner=provisioner, locks=locks, clock=clock)
        dealers = DealerRepository(
            store, config, layout=layout, provisioner=provisioner, locks=locks, clock=clock
        )
        return cls(
            config=config,
            dealers=dealers,
            vehicles=VehicleRepository(config, dealers=dealers, layout=layout),
            leads=LeadRepository(dealers=dealers, layout=layout, clock=clock),
            settings=SettingsRepository(
                store, config, provisioner=provisioner, locks=locks, clock=clock
            ),
        )
