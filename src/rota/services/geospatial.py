"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional

from shapely.geometry import Point, box

EARTH_RADIUS_KM = 6371.0

# (lng_min, lat_min, lng_max, lat_max)
BRAZIL_BOUNDS = box(-75.0, -34.0, -34.0, 6.0)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def is_valid_coordinate(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """Return True when both values are present, finite and inside the lat/lng ranges."""

    if latitude is None or longitude is None:
        return False
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def coordinates_in_brazil(lat: float, lng: float) -> bool:
    """Coarse bounding-box check used to reject geocoder answers abroad."""

    return BRAZIL_BOUNDS.intersects(Point(lng, lat))
