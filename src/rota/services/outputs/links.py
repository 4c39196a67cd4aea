"""Deep links into external map and messaging applications."""

from __future__ import annotations

from typing import Sequence
from urllib.parse import quote

from ...config import settings
from ...models.domain import Customer
from ..customers.book import digits_only

GOOGLE_MAPS_DIRECTIONS = "https://www.google.com/maps/dir/current+location"


def waypoint_for(customer: Customer) -> str:
    """``lat,lng`` when the customer is geocoded, otherwise the encoded address line."""
    if customer.has_coordinates:
        return f"{customer.latitude},{customer.longitude}"
    return quote(customer.full_address(), safe="")


def google_maps_directions_url(customers: Sequence[Customer]) -> str | None:
    """Directions from the device's current location through every customer in order."""
    if not customers:
        return None
    waypoints = "/".join(waypoint_for(customer) for customer in customers)
    return f"{GOOGLE_MAPS_DIRECTIONS}/{waypoints}"


def whatsapp_url(phone: str, country_code: str | None = None) -> str | None:
    digits = digits_only(phone)
    if not digits:
        return None
    return f"https://wa.me/{country_code or settings.whatsapp_country_code}{digits}"


def phone_url(phone: str) -> str | None:
    digits = digits_only(phone)
    return f"tel:{digits}" if digits else None
