"""Google Places adapter — representative photos and coordinates for free-text queries."""

import logging

import httpx

from groupvoyage.config import settings
from groupvoyage.services.cache_service import cache_service

logger = logging.getLogger(__name__)

PHOTO_FIELD_MASK = "places.photos,places.displayName,places.id"
PHOTO_MAX_HEIGHT = 1000
PHOTO_MAX_WIDTH = 1900


class PlacesClient:
    """Photo lookup (Places API text search) and geocoding (find-place-from-text).

    Both lookups return None for "no result". Transport and HTTP errors
    propagate; the enrichment service decides what a failure means.
    """

    def __init__(self):
        self._client: httpx.AsyncClient | None = None
        self._disabled = not settings.google_api_key
        if self._disabled:
            logger.warning("GOOGLE_API_KEY not set — photo and coordinate lookups disabled")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
        return self._client

    async def photo_url(self, query: str) -> str | None:
        """URL of the first photo of the best text-search match."""
        if self._disabled:
            return None

        key = cache_service.photo_key(query)
        cached = await cache_service.get(key)
        if cached:
            return cached

        client = await self._get_client()
        resp = await client.post(
            f"{settings.google_places_base_url}/places:searchText",
            json={"textQuery": query},
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": settings.google_api_key,
                "X-Goog-FieldMask": PHOTO_FIELD_MASK,
            },
        )
        resp.raise_for_status()
        places = resp.json().get("places") or []
        photos = places[0].get("photos") if places else None
        photo_ref = photos[0].get("name") if photos else None
        if not photo_ref:
            return None

        url = (
            f"{settings.google_places_base_url}/{photo_ref}/media"
            f"?maxHeightPx={PHOTO_MAX_HEIGHT}&maxWidthPx={PHOTO_MAX_WIDTH}&key={settings.google_api_key}"
        )
        await cache_service.set(key, url)
        return url

    async def coordinates(self, query: str) -> dict | None:
        """{"lat", "lng"} of the best find-place match."""
        if self._disabled:
            return None

        key = cache_service.geocode_key(query)
        cached = await cache_service.get(key)
        if cached:
            return cached

        client = await self._get_client()
        resp = await client.get(
            f"{settings.google_maps_base_url}/place/findplacefromtext/json",
            params={
                "input": query,
                "inputtype": "textquery",
                "fields": "geometry",
                "key": settings.google_api_key,
            },
        )
        resp.raise_for_status()
        candidates = resp.json().get("candidates") or []
        location = (candidates[0].get("geometry") or {}).get("location") if candidates else None
        if not location or "lat" not in location or "lng" not in location:
            return None

        coords = {"lat": float(location["lat"]), "lng": float(location["lng"])}
        await cache_service.set(key, coords)
        return coords

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


places_client = PlacesClient()
