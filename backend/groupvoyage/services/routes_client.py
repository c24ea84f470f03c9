"""Google Directions adapter — duration and distance of a hop for one travel mode."""

import logging

import httpx

from groupvoyage.config import settings
from groupvoyage.services.cache_service import cache_service

logger = logging.getLogger(__name__)


class RoutesClient:
    """Single-mode route summaries between two coordinates."""

    def __init__(self):
        self._client: httpx.AsyncClient | None = None
        self._disabled = not settings.google_api_key

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
        return self._client

    async def route_summary(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
        mode: str,
    ) -> dict | None:
        """{"duration", "distance"} of the first route's first leg, or None when there is no route."""
        if self._disabled:
            return None

        key = cache_service.route_key(origin, destination, mode)
        cached = await cache_service.get(key)
        if cached:
            return cached

        client = await self._get_client()
        resp = await client.get(
            f"{settings.google_maps_base_url}/directions/json",
            params={
                "origin": f"{origin[0]},{origin[1]}",
                "destination": f"{destination[0]},{destination[1]}",
                "mode": mode,
                "alternatives": "false",
                "key": settings.google_api_key,
            },
        )
        resp.raise_for_status()
        routes = resp.json().get("routes") or []
        if not routes or not routes[0].get("legs"):
            return None

        leg = routes[0]["legs"][0]
        duration = (leg.get("duration") or {}).get("text")
        distance = (leg.get("distance") or {}).get("text")
        if not duration or not distance:
            return None

        summary = {"duration": duration, "distance": distance}
        await cache_service.set(key, summary)
        return summary

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


routes_client = RoutesClient()
