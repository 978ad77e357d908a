"""Typed records for the four sheet-backed entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from storefront_mcp.constants import (
    DEFAULT_DEALER_STATUS,
    DEFAULT_LEAD_STATUS,
    PUBLIC_VEHICLE_STATUSES,
)


@dataclass
class Dealer:
    """One row of the admin tab.

    ``passcode`` keeps the plaintext next to the hash for operator convenience;
    :meth:`public_dict` omits both and is the only dict view of a dealer.
    """
    dealer_id: str
    name: str = ""
    status: str = DEFAULT_DEALER_STATUS
    passcode_hash: str = ""
    passcode: str = ""
    whatsapp: str = ""
    logo_url: str = ""
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == DEFAULT_DEALER_STATUS

    def public_dict(self) -> dict[str, Any]:
        return {
            "dealerId": self.dealer_id,
            "name": self.name,
            "status": self.status,
            "whatsapp": self.whatsapp,
            "logoUrl": self.logo_url,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class Vehicle:
    vehicle_id: str
    title: str = ""
    make: str = ""
    model: str = ""
    year: int | None = None
    price: float = 0
    status: str = ""
    notes: str = ""
    hero_image: str = ""
    hero_video: str = ""
    images: list[str] = field(default_factory=list)
    updated_at: str = ""
    # Owning dealer; implied by the tab, never stored in the row.
    dealer_id: str = field(default="", compare=False)

    @property
    def is_public(self) -> bool:
        return self.status.strip().lower() in PUBLIC_VEHICLE_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicleId": self.vehicle_id,
            "title": self.title,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "price": self.price,
            "status": self.status,
            "notes": self.notes,
            "heroImage": self.hero_image,
            "heroVideo": self.hero_video,
            "images": list(self.images),
            "updatedAt": self.updated_at,
            "dealerId": self.dealer_id,
        }


@dataclass
class Lead:
    created_at: str = ""
    lead_id: str = ""
    vehicle_id: str = ""
    type: str = ""
    name: str = ""
    phone: str = ""
    email: str = ""
    preferred_date: str = ""
    preferred_time: str = ""
    notes: str = ""
    source: str = ""
    status: str = DEFAULT_LEAD_STATUS
    dealer_id: str = field(default="", compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "createdAt": self.created_at,
            "leadId": self.lead_id,
            "vehicleId": self.vehicle_id,
            "type": self.type,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "preferredDate": self.preferred_date,
            "preferredTime": self.preferred_time,
            "notes": self.notes,
            "source": self.source,
            "status": self.status,
            "dealerId": self.dealer_id,
        }


@dataclass
class Setting:
    key: str
    value: str = ""
    updated_at: str = ""
