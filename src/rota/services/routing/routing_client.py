"""HTTP client for the driving-distance routing service (OpenRouteService)."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx

from ...config import settings
from ...models.domain import GeoPoint

logger = logging.getLogger(__name__)


class RoutingServiceClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        profile: str | None = None,
        preference: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.routing_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Routing service base URL is not configured.")
        self.api_key = api_key if api_key is not None else settings.routing_api_key
        if not self.api_key:
            raise ValueError("Routing service API key is not configured.")
        self.profile = profile or settings.routing_profile
        self.preference = preference or settings.routing_preference
        self.timeout = timeout if timeout is not None else settings.routing_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.routing_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.routing_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            headers={
                "Authorization": self.api_key,
                "Accept": "application/json",
            },
            transport=self._transport,
        )

    def _build_payload(self, points: Sequence[GeoPoint]) -> dict:
        # The service expects [lng, lat] pairs
        return {
            "coordinates": [[point.longitude, point.latitude] for point in points],
            "preference": self.preference,
            "units": "km",
            "instructions": False,
            "geometry": False,
        }

    @staticmethod
    def _parse_distance(data: Any) -> float:
        routes = data.get("routes") if isinstance(data, dict) else None
        if not isinstance(routes, list) or not routes:
            raise ValueError("Routing response contains no routes.")
        summary = routes[0].get("summary") if isinstance(routes[0], dict) else None
        if not isinstance(summary, dict):
            raise ValueError("Routing response is missing the route summary.")
        # Zero-length routes come back without a distance field
        raw_distance = summary.get("distance", 0.0)
        if isinstance(raw_distance, bool) or not isinstance(raw_distance, (int, float)):
            raise ValueError(f"Routing response has a non-numeric distance ({raw_distance!r}).")
        distance = float(raw_distance)
        if distance < 0:
            raise ValueError(f"Routing service returned a negative distance ({distance}).")
        return distance

    def distance_km(self, points: Sequence[GeoPoint]) -> float:
        """Total driving distance in kilometres along ``points`` in the given order."""
        if len(points) < 2:
            raise ValueError("At least two coordinates are required for a route.")

        url = f"{self.base_url}/v2/directions/{self.profile}"
        payload = self._build_payload(points)

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=payload)
                    response.raise_for_status()
                    return self._parse_distance(response.json())
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    # Client errors other than rate limiting will not succeed on retry
                    if 400 <= status_code < 500 and status_code != 429:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.debug(f"Routing request timed out after {attempt} attempt(s): {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Routing request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to routing service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Routing network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()


def check_health(client: RoutingServiceClient | None = None) -> bool:
    """Check the routing service by requesting a short route in Natal."""
    try:
        routing_client = client or RoutingServiceClient()
    except ValueError:
        return False
    try:
        routing_client.distance_km([GeoPoint(-5.7945, -35.2110), GeoPoint(-5.8123, -35.2065)])
        return True
    except (httpx.HTTPError, ConnectionError, ValueError, KeyError, TypeError, AttributeError):
        return False
