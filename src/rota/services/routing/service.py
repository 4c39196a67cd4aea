"""Route planning orchestration for the API layer."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ...models.domain import Customer, GeoPoint
from ...persistence.customers import CustomerStore
from ...schemas.routing import PlannedStopModel, RoutePlanRequest, RoutePlanResponse
from ..extraction import ExtractionError, GeminiClient
from ..outputs.links import google_maps_directions_url
from .distance import DistanceOracle
from .models import RouteStop
from .optimizer import RouteOptimizer

logger = logging.getLogger(__name__)


def _to_stop(customer: Customer) -> RouteStop:
    return RouteStop(
        stop_id=customer.id,
        latitude=customer.latitude,
        longitude=customer.longitude,
        locality=customer.neighborhood,
        payload=customer,
    )


def _first_point(stops: Iterable[RouteStop]) -> Optional[GeoPoint]:
    return next((stop.point for stop in stops if stop.is_locatable), None)


def _normalize_address(value: str) -> str:
    return " ".join(value.lower().split())


def _apply_ai_order(customers: Sequence[Customer], ordered_addresses: Sequence[str]) -> list[Customer]:
    """Map the model's address list back onto customers.

    Unknown addresses are ignored; customers the model left out keep their
    input order at the end.
    """
    remaining = list(customers)
    ordered: list[Customer] = []
    for address in ordered_addresses:
        wanted = _normalize_address(address)
        for index, customer in enumerate(remaining):
            if _normalize_address(customer.full_address()) == wanted:
                ordered.append(remaining.pop(index))
                break
    return ordered + remaining


def _build_stops(
    oracle: DistanceOracle,
    start: Optional[GeoPoint],
    customers: Sequence[Customer],
) -> tuple[list[PlannedStopModel], float]:
    planned: list[PlannedStopModel] = []
    total = 0.0
    current = start
    for sequence, customer in enumerate(customers, start=1):
        leg: Optional[float] = None
        stop = _to_stop(customer)
        if stop.is_locatable:
            point = stop.point
            leg = oracle.cost(current, point) if current is not None else 0.0
            total += leg
            current = point
        planned.append(
            PlannedStopModel(
                sequence=sequence,
                customer_id=customer.id,
                name=customer.name,
                address=customer.address,
                neighborhood=customer.neighborhood,
                latitude=customer.latitude,
                longitude=customer.longitude,
                distance_from_prev_km=leg,
            )
        )
    return planned, total


def plan_route(payload: RoutePlanRequest) -> RoutePlanResponse:
    store = CustomerStore()
    customer_ids = list(dict.fromkeys(cid.strip() for cid in payload.customer_ids))
    customers = store.get_many(customer_ids)
    origin = GeoPoint(payload.origin.lat, payload.origin.lng) if payload.origin else None

    optimizer = RouteOptimizer()
    metadata: dict = {
        "strategy": payload.strategy,
        "requested_stops": len(customers),
        "unlocatable_stops": sum(1 for customer in customers if not customer.has_coordinates),
    }

    if payload.strategy == "ai":
        addresses = [customer.full_address() for customer in customers]
        try:
            suggested = GeminiClient().suggest_order(addresses)
            ordered = _apply_ai_order(customers, suggested)
            metadata["ai_fallback"] = False
        except ExtractionError as exc:
            logger.warning(f"AI reordering failed ({exc}); keeping the selected order")
            ordered = list(customers)
            metadata["ai_fallback"] = True
        optimizer.oracle.reset()
        start = origin or _first_point(_to_stop(customer) for customer in ordered)
        metadata["optimized"] = False
    else:
        result = optimizer.optimize(origin, [_to_stop(customer) for customer in customers])
        ordered = [stop.payload for stop in result.stops]
        start = result.origin or _first_point(result.stops)
        metadata["optimized"] = result.optimized
        metadata["cluster_order"] = result.cluster_order

    planned, total = _build_stops(optimizer.oracle, start, ordered)
    stats = optimizer.oracle.stats
    metadata.update(
        {
            "origin_source": "request" if origin is not None else ("first_stop" if start is not None else "none"),
            "network_queries": stats.network_queries,
            "cache_hits": stats.cache_hits,
            "fallbacks": stats.fallbacks,
        }
    )

    return RoutePlanResponse(
        strategy=payload.strategy,
        stops=planned,
        total_distance_km=total,
        maps_url=google_maps_directions_url(ordered),
        metadata=metadata,
    )
