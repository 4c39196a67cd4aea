"""Tour construction heuristics: nearest-neighbor draft and 2-opt refinement.

Both functions work on locatable stops only and ask the distance oracle for
every edge cost, so a single run sees one consistent notion of distance.
"""

from __future__ import annotations

import logging
import math
from typing import List, Sequence

from ...config import settings
from ...models.domain import GeoPoint
from .distance import DistanceOracle
from .models import RouteStop

logger = logging.getLogger(__name__)


def build_initial_tour(oracle: DistanceOracle, origin: GeoPoint, stops: Sequence[RouteStop]) -> List[RouteStop]:
    """Construct a visiting order by repeatedly moving to the nearest pending stop.

    Ties keep the first stop encountered in input order.
    """
    pending = list(stops)
    tour: List[RouteStop] = []
    current = origin

    while pending:
        best_index = -1
        best_distance = math.inf
        for index, stop in enumerate(pending):
            distance = oracle.cost(current, stop.point)
            if distance < best_distance:
                best_distance = distance
                best_index = index
        if best_index < 0:
            # No comparable distance (e.g. NaN from a source); keep going in input order
            best_index = 0
        chosen = pending.pop(best_index)
        tour.append(chosen)
        current = chosen.point

    return tour


def tour_length(oracle: DistanceOracle, anchor: GeoPoint, stops: Sequence[RouteStop]) -> float:
    """Length of the open path anchor -> stops[0] -> ... -> stops[-1]."""
    return oracle.path_length([anchor, *(stop.point for stop in stops)])


def two_opt(
    oracle: DistanceOracle,
    anchor: GeoPoint,
    stops: Sequence[RouteStop],
    max_passes: int | None = None,
) -> List[RouteStop]:
    """Improve an open tour with first-improvement 2-opt.

    The anchor sits at position 0 and never moves, so the edge leading into
    the first stop is reconsidered too. Each pass scans reversals of
    ``order[i:j]`` with ``i >= 1`` and ``j - i >= 2`` (reversing a single
    stop changes nothing). The path is open, so the tail may be reversed as
    well. This is wider than the classic inclusive ``1 <= i < j <= n - 2``
    move set, which never touches the last stop and so cannot untangle a
    crossed pair such as ``anchor, far, near``. The first strictly shorter
    candidate is adopted and the scan restarts. Stops after a pass with no
    improvement or after ``max_passes`` passes.
    """
    max_passes = settings.two_opt_max_passes if max_passes is None else max_passes
    points = [anchor, *(stop.point for stop in stops)]
    order = list(range(len(points)))
    n = len(order)

    def length(candidate: List[int]) -> float:
        return oracle.path_length([points[k] for k in candidate])

    best_length = length(order)
    passes = 0
    improved = True
    while improved and passes < max_passes:
        improved = False
        passes += 1
        for i in range(1, n - 1):
            for j in range(i + 2, n + 1):
                candidate = order[:i] + order[i:j][::-1] + order[j:]
                candidate_length = length(candidate)
                if candidate_length < best_length:
                    order = candidate
                    best_length = candidate_length
                    improved = True
                    break
            if improved:
                break

    if improved:
        logger.debug(f"2-opt stopped at the pass cap ({max_passes}) with {n - 1} stops")
    return [stops[k - 1] for k in order[1:]]
