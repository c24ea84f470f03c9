"""Flight scraping service client — sends a booking URL, gets raw flight-offer cards back."""

import logging
import uuid

import httpx

from groupvoyage.config import settings

logger = logging.getLogger(__name__)


class FlightScraperClient:
    """Async client for the external browser-based flight scraper.

    The scraper answers ``{"flight_options": [{"index", "text_content", ...}]}``.
    Any failure is reported as None so callers can tell "failed" from "no offers".
    """

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.flight_scraping_timeout_seconds)
        return self._client

    @property
    def configured(self) -> bool:
        return bool(settings.flight_scraping_api_url)

    async def fetch_offers(self, booking_url: str, group_id: uuid.UUID | None = None) -> list[dict] | None:
        if not self.configured:
            logger.warning("FLIGHT_SCRAPING_API_URL not configured, skipping flight fetch")
            return None

        headers = {"Content-Type": "application/json"}
        if settings.flight_scraping_api_key:
            headers["Authorization"] = f"Bearer {settings.flight_scraping_api_key}"
        payload = {"flight_url": booking_url, "headless": True}
        if group_id:
            payload["group_id"] = str(group_id)

        try:
            client = await self._get_client()
            resp = await client.post(settings.flight_scraping_api_url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Flight scraping API returned {e.response.status_code}: {e.response.text[:300]}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Flight scraping request failed: {e}")
            return None

        offers = data.get("flight_options") if isinstance(data, dict) else None
        if not isinstance(offers, list):
            logger.warning("Flight scraping API answered without a flight_options list")
            return []
        logger.info(f"Flight scraper returned {len(offers)} offers")
        return offers

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


flight_scraper_client = FlightScraperClient()
