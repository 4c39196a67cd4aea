"""Route planning request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class OriginModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RoutePlanRequest(BaseModel):
    customer_ids: List[str] = Field(..., min_length=1, description="Selected customers, in the order picked.")
    origin: Optional[OriginModel] = Field(
        default=None,
        description="Device location. When absent the first geocoded customer is the starting point.",
    )
    strategy: Literal["engine", "ai"] = Field(
        default="engine",
        description="'engine' runs the local ordering engine; 'ai' asks the generative model for an order.",
    )


class PlannedStopModel(BaseModel):
    sequence: int
    customer_id: str
    name: str
    address: str
    neighborhood: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_from_prev_km: Optional[float] = None


class RoutePlanResponse(BaseModel):
    strategy: str
    stops: List[PlannedStopModel]
    total_distance_km: float
    maps_url: Optional[str] = None
    metadata: dict
