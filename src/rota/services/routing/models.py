"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from ...models.domain import GeoPoint
from ..geospatial import is_valid_coordinate

GENERAL_CLUSTER = "GENERAL"


@dataclass(eq=False, slots=True)
class RouteStop:
    """A stop handed to the ordering engine.

    Identity matters: the engine returns the very objects it was given,
    reordered. ``payload`` is carried through untouched.
    """

    stop_id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    locality: Optional[str] = None
    payload: Any = None

    @property
    def is_locatable(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)

    @property
    def point(self) -> GeoPoint:
        if not self.is_locatable:
            raise ValueError(f"Stop '{self.stop_id}' has no usable coordinates.")
        return GeoPoint(float(self.latitude), float(self.longitude))


@dataclass(slots=True)
class OptimizationStats:
    network_queries: int = 0
    cache_hits: int = 0
    fallbacks: int = 0


@dataclass(slots=True)
class OptimizedRoute:
    stops: List[RouteStop]
    origin: Optional[GeoPoint]
    cluster_order: List[str] = field(default_factory=list)
    optimized: bool = False
    stats: OptimizationStats = field(default_factory=OptimizationStats)
