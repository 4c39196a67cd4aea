"""Distance oracle: driving distance with a per-call cache and great-circle fallback."""

from __future__ import annotations

import logging
import math
from typing import Protocol, Sequence

import httpx

from ...config import settings
from ...models.domain import GeoPoint
from ..geospatial import haversine_km
from .models import OptimizationStats

logger = logging.getLogger(__name__)

# After this many failed requests in a row the oracle stops calling the
# routing service until the next reset.
MAX_CONSECUTIVE_FAILURES = 3

CacheKey = tuple[float, float, float, float]


class DistanceSource(Protocol):
    def distance_km(self, points: Sequence[GeoPoint]) -> float: ...


class DistanceOracle:
    """Answers ``cost(a, b)`` in kilometres.

    Network answers are cached under a key made of both endpoints rounded to
    ``precision`` decimals (order matters). Failed queries fall back to the
    Haversine distance, which is never cached; a pair that failed is not sent
    to the service again in the same run. The cache lives until the next
    :meth:`reset`, which the route optimizer calls at the start of every run.
    """

    def __init__(
        self,
        source: DistanceSource | None = None,
        *,
        precision: int | None = None,
        network_budget: int | None = None,
    ) -> None:
        self.source = source
        self.precision = precision if precision is not None else settings.distance_cache_precision
        self.network_budget = network_budget if network_budget is not None else settings.distance_network_budget
        self._cache: dict[CacheKey, float] = {}
        self._failed: set[CacheKey] = set()
        self._consecutive_failures = 0
        self.stats = OptimizationStats()

    def reset(self) -> None:
        self._cache.clear()
        self._failed.clear()
        self._consecutive_failures = 0
        self.stats = OptimizationStats()

    def _network_available(self, key: CacheKey) -> bool:
        return (
            self.source is not None
            and key not in self._failed
            and self._consecutive_failures < MAX_CONSECUTIVE_FAILURES
            and self.stats.network_queries < self.network_budget
        )

    def cache_key(self, a: GeoPoint, b: GeoPoint) -> CacheKey:
        p = self.precision
        return (
            round(a.latitude, p),
            round(a.longitude, p),
            round(b.latitude, p),
            round(b.longitude, p),
        )

    def cost(self, a: GeoPoint, b: GeoPoint) -> float:
        for point in (a, b):
            if not (math.isfinite(point.latitude) and math.isfinite(point.longitude)):
                raise ValueError(f"Distance requested for non-finite coordinate {point}.")

        key = self.cache_key(a, b)
        cached = self._cache.get(key)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        if self._network_available(key):
            self.stats.network_queries += 1
            try:
                distance = self.source.distance_km([a, b])
            except (httpx.HTTPError, ConnectionError, ValueError, KeyError, TypeError, AttributeError) as exc:
                logger.warning(f"Routing service distance failed ({exc}); using great-circle distance.")
            else:
                if math.isfinite(distance) and distance >= 0:
                    self._consecutive_failures = 0
                    self._cache[key] = distance
                    return distance
                logger.warning(f"Routing service returned unusable distance {distance!r}; using great-circle distance.")
            self._failed.add(key)
            self._consecutive_failures += 1
            if self._consecutive_failures == MAX_CONSECUTIVE_FAILURES:
                logger.warning("Routing service keeps failing; great-circle distances for the rest of this run.")

        self.stats.fallbacks += 1
        return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)

    def path_length(self, points: Sequence[GeoPoint]) -> float:
        """Sum of consecutive costs along ``points``."""
        return sum(self.cost(points[i], points[i + 1]) for i in range(len(points) - 1))


def build_distance_oracle() -> DistanceOracle:
    """Oracle backed by the configured routing service, or great-circle only when unconfigured."""
    from .routing_client import RoutingServiceClient

    try:
        source: DistanceSource | None = RoutingServiceClient()
    except ValueError as e:
        logger.info(f"Routing service unavailable ({e}); distances will be great-circle.")
        source = None
    return DistanceOracle(source)
