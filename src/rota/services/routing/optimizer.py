"""Route assembly: the single entry point of the ordering engine."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...models.domain import GeoPoint
from .clustering import cluster_by_locality, sequence_clusters
from .distance import DistanceOracle, build_distance_oracle
from .models import OptimizedRoute, RouteStop

logger = logging.getLogger(__name__)


class RouteOptimizer:
    """Orders stops for a single traveller starting at an origin.

    Locatable stops are clustered by neighborhood, clusters are visited
    nearest-first and each one is ordered by nearest neighbor followed by
    2-opt. Stops without coordinates are appended, in their input order,
    after every locatable stop. Nothing here raises because a distance
    lookup failed; the oracle degrades to great-circle distances instead.
    """

    def __init__(self, oracle: DistanceOracle | None = None, *, max_passes: int | None = None) -> None:
        self.oracle = oracle or build_distance_oracle()
        self.max_passes = max_passes

    def optimize(self, origin: Optional[GeoPoint], stops: Sequence[RouteStop]) -> OptimizedRoute:
        locatable = [stop for stop in stops if stop.is_locatable]
        unlocatable = [stop for stop in stops if not stop.is_locatable]

        if len(locatable) <= 1:
            return OptimizedRoute(stops=[*locatable, *unlocatable], origin=origin)

        self.oracle.reset()
        start = origin if origin is not None else locatable[0].point

        clusters = cluster_by_locality(locatable)
        ordered, visit_order = sequence_clusters(
            self.oracle,
            start,
            clusters,
            max_passes=self.max_passes,
        )

        stats = self.oracle.stats
        logger.info(
            f"Optimized {len(ordered)} stops in {len(visit_order)} cluster(s), "
            f"{len(unlocatable)} without coordinates appended "
            f"(network={stats.network_queries}, cache_hits={stats.cache_hits}, fallbacks={stats.fallbacks})"
        )
        return OptimizedRoute(
            stops=[*ordered, *unlocatable],
            origin=start,
            cluster_order=visit_order,
            optimized=True,
            stats=stats,
        )


def optimize_route(
    origin: Optional[GeoPoint],
    stops: Sequence[RouteStop],
    oracle: DistanceOracle | None = None,
) -> list[RouteStop]:
    """Convenience wrapper returning only the ordered stops."""
    return RouteOptimizer(oracle).optimize(origin, stops).stops
