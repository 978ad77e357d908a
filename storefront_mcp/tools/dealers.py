"""Dealer management tool implementations (admin console, dealer login, storefront profile)."""

from __future__ import annotations

from typing import Any

from storefront_mcp.data.records import Dealer
from storefront_mcp.data.repositories import for_each_dealer
from storefront_mcp.data.storefront import get_dealer, open_repositories, upsert_dealer
from storefront_mcp.tools.responses import fail_response, ok_response


async def list_dealers_impl() -> str:
    """All dealers (without credentials) with their vehicle counts."""
    async with open_repositories() as repos:
        dealers = await repos.dealers.list_dealers()

        async def _count(dealer: Dealer) -> int:
            return len(await repos.vehicles.list_for_dealer(dealer))

        counted = await for_each_dealer(dealers, _count, limit=repos.config.rollup_concurrency)
    return ok_response(
        dealers=[{**d.public_dict(), "vehicleCount": count or 0} for d, count in counted]
    )


async def save_dealer_impl(
    *,
    dealer_id: str,
    name: str | None = None,
    status: str | None = None,
    whatsapp: str | None = None,
    logo_url: str | None = None,
    passcode: str | None = None,
) -> str:
    record = {
        "dealerId": dealer_id,
        "name": name,
        "status": status,
        "whatsapp": whatsapp,
        "logoUrl": logo_url,
        "passcode": passcode,
    }
    result = await upsert_dealer({k: v for k, v in record.items() if v is not None})
    payload: dict[str, Any] = {"dealer": result.dealer.public_dict(), "created": result.created}
    if result.passcode:
        payload["passcode"] = result.passcode
    return ok_response(**payload)


async def reset_passcode_impl(dealer_id: str) -> str:
    async with open_repositories() as repos:
        result = await repos.dealers.reset_passcode(dealer_id)
    return ok_response(dealerId=result.dealer.dealer_id, passcode=result.passcode)


async def dealer_login_impl(dealer_id: str, passcode: str) -> str:
    if not dealer_id.strip() or not passcode.strip():
        return fail_response("dealerId and passcode required", code="VALIDATION_ERROR")
    async with open_repositories() as repos:
        dealer = await repos.dealers.authenticate(dealer_id, passcode.strip())
    if dealer is None:
        return fail_response("Invalid credentials", code="INVALID_CREDENTIALS")
    return ok_response(dealerId=dealer.dealer_id, dealerName=dealer.name)


async def get_public_dealer_impl(dealer_id: str) -> str:
    dealer = await get_dealer(dealer_id)
    return ok_response(dealer=dealer.public_dict() if dealer else None)
