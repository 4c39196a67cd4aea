"""Address geocoding through Nominatim, with an optional Google fallback.

Nominatim's usage policy allows one request per second, so every lookup
waits on a :class:`RateLimiter` owned by the geocoder instance.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from geopy.exc import GeopyError
from geopy.geocoders import GoogleV3, Nominatim

from ..config import settings
from ..models.domain import Customer, GeoPoint
from .geospatial import coordinates_in_brazil

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class RateLimiter:
    """Enforces a minimum interval between consecutive calls to :meth:`wait`."""

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    def wait(self) -> None:
        now = self._clock()
        if self._last_call is not None:
            elapsed = now - self._last_call
            if elapsed < self.min_interval:
                self._sleep(self.min_interval - elapsed)
                now = self._clock()
        self._last_call = now


@dataclass(slots=True)
class GeocodeReport:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0


class Geocoder:
    def __init__(
        self,
        *,
        primary=None,
        fallback=None,
        rate_limiter: RateLimiter | None = None,
        timeout: float | None = None,
        bounds_check: bool | None = None,
    ) -> None:
        self.primary = primary or Nominatim(user_agent=settings.geocoder_user_agent)
        if fallback is None and settings.google_maps_api_key:
            fallback = GoogleV3(api_key=settings.google_maps_api_key)
        self.fallback = fallback
        self.rate_limiter = rate_limiter or RateLimiter(settings.geocoder_min_interval_seconds)
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.bounds_check = settings.geocoder_bounds_check if bounds_check is None else bounds_check

    def _accept(self, location, query: str) -> Optional[GeoPoint]:
        if location is None:
            return None
        point = GeoPoint(float(location.latitude), float(location.longitude))
        if self.bounds_check and not coordinates_in_brazil(point.latitude, point.longitude):
            logger.warning(f"Discarding geocode outside Brazil for '{query}': {point}")
            return None
        return point

    def geocode(
        self,
        address: str,
        city: str | None = None,
        state: str | None = None,
        country: str | None = None,
    ) -> Optional[GeoPoint]:
        """Resolve an address to a point, or ``None`` when nothing usable is found."""
        query = ", ".join(
            [
                address,
                city or settings.geocoder_default_city,
                state or settings.geocoder_default_state,
                country or settings.geocoder_default_country,
            ]
        )

        self.rate_limiter.wait()
        try:
            point = self._accept(
                self.primary.geocode(query, exactly_one=True, timeout=self.timeout),
                query,
            )
        except GeopyError as exc:
            logger.warning(f"Geocoding failed for '{query}': {exc}")
            point = None

        if point is None and self.fallback is not None:
            try:
                point = self._accept(self.fallback.geocode(query, exactly_one=True, timeout=self.timeout), query)
            except GeopyError as exc:
                logger.warning(f"Fallback geocoding failed for '{query}': {exc}")
                point = None

        if point is None:
            logger.warning(f"No coordinates found for '{query}'")
        else:
            logger.debug(f"Geocoded '{query}' -> {point.latitude}, {point.longitude}")
        return point

    def geocode_batch(
        self,
        addresses: Sequence[tuple[str, str | None, str | None]],
        on_progress: ProgressCallback | None = None,
    ) -> list[Optional[GeoPoint]]:
        """Geocode ``(address, city, state)`` tuples in order, one request at a time."""
        results: list[Optional[GeoPoint]] = []
        total = len(addresses)
        for index, (address, city, state) in enumerate(addresses, start=1):
            if on_progress:
                on_progress(index, total, address)
            results.append(self.geocode(address, city, state))
        return results

    def geocode_missing(
        self,
        customers: Sequence[Customer],
        on_progress: ProgressCallback | None = None,
    ) -> GeocodeReport:
        """Fill coordinates in place for every customer that lacks them."""
        pending = [customer for customer in customers if not customer.has_coordinates]
        report = GeocodeReport()
        if not pending:
            return report

        logger.info(f"Geocoding {len(pending)} customer(s) without coordinates")
        points = self.geocode_batch(
            [(customer.address, customer.city or None, customer.state or None) for customer in pending],
            on_progress,
        )
        for customer, point in zip(pending, points):
            report.processed += 1
            if point is None:
                report.failed += 1
                continue
            customer.latitude = point.latitude
            customer.longitude = point.longitude
            report.succeeded += 1

        logger.info(f"Geocoding finished: {report.succeeded} found, {report.failed} missing")
        return report
