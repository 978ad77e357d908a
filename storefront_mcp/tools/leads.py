"""Lead tool implementations: storefront submissions and dealer/admin follow-up."""

from __future__ import annotations

from typing import Any

from storefront_mcp.data.repositories import for_each_dealer
from storefront_mcp.data.storefront import append_lead, list_leads, open_repositories, update_lead_status
from storefront_mcp.tools.responses import ok_response


async def list_dealer_leads_impl(dealer_id: str) -> str:
    leads = await list_leads(dealer_id)
    return ok_response(leads=[lead.to_dict() for lead in leads])


async def submit_lead_impl(dealer_id: str, lead: dict[str, Any]) -> str:
    saved = await append_lead(dealer_id, lead)
    return ok_response(leadId=saved.lead_id, lead=saved.to_dict())


async def update_lead_status_impl(dealer_id: str, lead_id: str, status: str) -> str:
    updated = await update_lead_status(dealer_id, lead_id, status)
    return ok_response(lead=updated.to_dict())


async def list_requests_impl() -> str:
    """Leads across all dealers, newest first."""
    async with open_repositories() as repos:
        dealers = await repos.dealers.list_dealers()
        results = await for_each_dealer(
            dealers, repos.leads.list_for_dealer, limit=repos.config.rollup_concurrency
        )
    requests = [
        {**lead.to_dict(), "dealerName": dealer.name}
        for dealer, leads in results
        for lead in leads or []
    ]
    # ISO-8601 UTC timestamps sort lexically
    requests.sort(key=lambda r: r["createdAt"], reverse=True)
    return ok_response(requests=requests)
