"""Neighborhood clustering and nearest-cluster-first sequencing."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ...models.domain import GeoPoint
from .distance import DistanceOracle
from .models import GENERAL_CLUSTER, RouteStop
from .tour import build_initial_tour, two_opt

logger = logging.getLogger(__name__)


def locality_key(label: Optional[str]) -> str:
    normalized = (label or "").strip().upper()
    return normalized or GENERAL_CLUSTER


def cluster_by_locality(stops: Sequence[RouteStop]) -> dict[str, list[RouteStop]]:
    """Group stops by normalized locality, keeping first-appearance order of keys and members."""
    clusters: dict[str, list[RouteStop]] = {}
    for stop in stops:
        clusters.setdefault(locality_key(stop.locality), []).append(stop)
    return clusters


def sequence_clusters(
    oracle: DistanceOracle,
    origin: GeoPoint,
    clusters: dict[str, list[RouteStop]],
    *,
    max_passes: int | None = None,
) -> tuple[list[RouteStop], list[str]]:
    """Visit clusters nearest-first and order the stops inside each one.

    The representative of a cluster is its first member. After a cluster is
    ordered, the search for the next one starts from its last stop. Returns
    the ordered stops and the cluster keys in visiting order.
    """
    pending: dict[str, list[RouteStop]] = {}
    deferred: list[tuple[str, list[RouteStop]]] = []
    for key, members in clusters.items():
        if not members:
            continue
        if members[0].is_locatable:
            pending[key] = members
        else:
            deferred.append((key, members))

    ordered: list[RouteStop] = []
    visit_order: list[str] = []
    current = origin

    while pending:
        best_key = None
        best_distance = math.inf
        for key, members in pending.items():
            distance = oracle.cost(current, members[0].point)
            if distance < best_distance:
                best_distance = distance
                best_key = key
        if best_key is None:
            best_key = next(iter(pending))

        members = pending.pop(best_key)
        draft = build_initial_tour(oracle, current, members)
        refined = two_opt(oracle, current, draft, max_passes=max_passes)
        logger.debug(f"Cluster {best_key}: {len(refined)} stops")

        ordered.extend(refined)
        visit_order.append(best_key)
        current = refined[-1].point

    for key, members in deferred:
        logger.warning(f"Cluster {key} has no locatable representative; appending it unordered")
        ordered.extend(members)
        visit_order.append(key)

    return ordered, visit_order
