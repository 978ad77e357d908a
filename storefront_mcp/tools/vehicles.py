"""Vehicle tool implementations: dealer inventory, admin rollup, public listing."""

from __future__ import annotations

from typing import Any

from storefront_mcp.data.records import Dealer, Vehicle
from storefront_mcp.data.repositories import filter_public_vehicles, for_each_dealer
from storefront_mcp.data.storefront import list_vehicles, open_repositories, upsert_vehicle
from storefront_mcp.tools.responses import ok_response


async def list_dealer_vehicles_impl(dealer_id: str) -> str:
    vehicles = await list_vehicles(dealer_id)
    return ok_response(vehicles=[v.to_dict() for v in vehicles])


async def save_vehicle_impl(dealer_id: str, vehicle: dict[str, Any]) -> str:
    saved = await upsert_vehicle(dealer_id, vehicle)
    return ok_response(vehicle=saved.to_dict())


async def get_inventory_impl() -> str:
    """Every dealer's vehicles in one list, tagged with dealer id and name."""
    async with open_repositories() as repos:
        dealers = await repos.dealers.list_dealers()
        results = await for_each_dealer(
            dealers, repos.vehicles.list_for_dealer, limit=repos.config.rollup_concurrency
        )
    inventory = [
        {**v.to_dict(), "dealerName": dealer.name}
        for dealer, vehicles in results
        for v in vehicles or []
    ]
    return ok_response(vehicles=inventory)


async def list_public_vehicles_impl(dealer_id: str | None = None) -> str:
    """Publicly listable vehicles of active dealers.

    With ``dealer_id`` only that dealer is read; a paused dealer lists nothing.
    """
    async with open_repositories() as repos:
        if dealer_id:
            dealer = await repos.dealers.require_dealer(dealer_id)
            dealers = [dealer] if dealer.is_active else []
        else:
            dealers = [d for d in await repos.dealers.list_dealers() if d.is_active]

        async def _public(dealer: Dealer) -> list[Vehicle]:
            return filter_public_vehicles(await repos.vehicles.list_for_dealer(dealer))

        results = await for_each_dealer(dealers, _public, limit=repos.config.rollup_concurrency)
    listing = [
        {**v.to_dict(), "dealerName": dealer.name, "whatsapp": dealer.whatsapp}
        for dealer, vehicles in results
        for v in vehicles or []
    ]
    return ok_response(vehicles=listing)
