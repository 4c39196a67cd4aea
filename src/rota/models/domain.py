"""Domain models for customers and geographic points."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..services.geospatial import is_valid_coordinate


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A latitude/longitude pair in signed decimal degrees."""

    latitude: float
    longitude: float


@dataclass(slots=True)
class Customer:
    """Represents a customer in the sales consultant's book."""

    id: str
    name: str
    address: str
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phones: list[str] = field(default_factory=list)
    secondary_addresses: list[str] = field(default_factory=list)
    status: Optional[str] = None
    last_visit: Optional[str] = None
    notes: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)

    def full_address(self) -> str:
        """Address line used for geocoding and map waypoints."""
        return f"{self.address}, {self.neighborhood or ''}, {self.city or ''}"
