"""Route planning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status

from ...persistence.customers import CustomerNotFoundError
from ...schemas.routing import RoutePlanRequest, RoutePlanResponse
from ...services.outputs.routing_formatter import route_plan_to_csv
from ...services.routing.service import plan_route

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


def _plan(payload: RoutePlanRequest) -> RoutePlanResponse:
    try:
        return plan_route(payload)
    except CustomerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error planning route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to plan route: {str(exc)}",
        ) from exc


@router.post("/plan", response_model=RoutePlanResponse, status_code=status.HTTP_200_OK)
def plan(payload: RoutePlanRequest) -> RoutePlanResponse:
    return _plan(payload)


@router.post("/plan.csv", status_code=status.HTTP_200_OK)
def plan_csv(payload: RoutePlanRequest) -> Response:
    """Same plan as ``/plan``, rendered as CSV for download."""
    content = route_plan_to_csv(_plan(payload))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="route.csv"'},
    )
