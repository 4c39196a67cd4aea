"""Serializers for planned routes."""

from __future__ import annotations

import csv
import io

from ...schemas.routing import RoutePlanResponse


def route_plan_to_csv(plan: RoutePlanResponse) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "customer_id",
        "name",
        "address",
        "neighborhood",
        "latitude",
        "longitude",
        "distance_from_prev_km",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for stop in plan.stops:
        writer.writerow(stop.model_dump(include=set(fieldnames)))
    return buffer.getvalue()
