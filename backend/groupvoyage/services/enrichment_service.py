"""Itinerary enrichment — photos, coordinates and travel modes from external providers.

Every provider call is independent and bounded by a timeout. A failed or
empty lookup never aborts the run:

- images fall back to the default stock photo (or keep the image a
  previous run already stored);
- a missing coordinate keeps whatever coordinate the place already had,
  and a hop without coordinates on both ends simply gets no travel modes;
- a failed travel mode is left out of the hop's mode map.

Enrichment only fills fields on existing list entries, so day and place
order, and list lengths, are never changed. Running the same day twice
is safe.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from groupvoyage.config import settings
from groupvoyage.schemas.itinerary import (
    TRAVEL_MODES,
    Coordinates,
    Day,
    Hotel,
    ItineraryDocument,
    Place,
    TravelModeSummary,
)
from groupvoyage.services.errors import InputValidationError
from groupvoyage.services.places_client import places_client
from groupvoyage.services.routes_client import routes_client

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentStats:
    places: int = 0
    images: int = 0
    coordinates: int = 0
    hops: int = 0
    hops_with_modes: int = 0
    hotels: int = 0
    hotel_images: int = 0


def validate_day_index(document: ItineraryDocument, day_index: Any) -> int:
    if isinstance(day_index, bool) or not isinstance(day_index, int):
        raise InputValidationError("dayIndex must be an integer")
    if day_index < 0 or day_index >= len(document.itinerary):
        raise InputValidationError(f"Invalid dayIndex {day_index}")
    return day_index


class EnrichmentService:
    """Fills images, coordinates and travel modes into an itinerary document."""

    def __init__(
        self,
        places=None,
        routes=None,
        *,
        timeout: float | None = None,
        concurrency: int | None = None,
        default_image_url: str | None = None,
    ):
        self.places = places or places_client
        self.routes = routes or routes_client
        self.timeout = timeout or settings.provider_timeout_seconds
        self.concurrency = concurrency or settings.enrichment_concurrency
        self.default_image_url = default_image_url or settings.default_image_url

    # ─── Public API ───

    async def enrich_day(
        self,
        document: ItineraryDocument,
        day_index: int,
        destination: str,
        *,
        include_hotels: bool = False,
        include_travel_modes: bool = True,
    ) -> ItineraryDocument:
        """Enrich one day (and optionally the hotels). Returns an updated copy."""
        validate_day_index(document, day_index)
        doc = document.model_copy(deep=True)
        stats = EnrichmentStats()
        semaphore = asyncio.Semaphore(self.concurrency)

        tasks = [self._enrich_day(doc.itinerary[day_index], destination, semaphore, stats, include_travel_modes)]
        if include_hotels:
            tasks.append(self._enrich_hotels(doc.hotels, destination, semaphore, stats))
        await asyncio.gather(*tasks)

        doc.rebuild_map_locations()
        logger.info(f"Enriched day {day_index} for {destination!r}: {stats}")
        return doc

    async def enrich_all(self, document: ItineraryDocument, destination: str) -> ItineraryDocument:
        """Enrich every day and every hotel. Returns an updated copy."""
        doc = document.model_copy(deep=True)
        stats = EnrichmentStats()
        semaphore = asyncio.Semaphore(self.concurrency)

        await asyncio.gather(
            *(self._enrich_day(day, destination, semaphore, stats, True) for day in doc.itinerary),
            self._enrich_hotels(doc.hotels, destination, semaphore, stats),
        )

        doc.rebuild_map_locations()
        logger.info(f"Enriched {len(doc.itinerary)} days for {destination!r}: {stats}")
        return doc

    # ─── Days & places ───

    async def _enrich_day(
        self,
        day: Day,
        destination: str,
        semaphore: asyncio.Semaphore,
        stats: EnrichmentStats,
        include_travel_modes: bool,
    ) -> None:
        await asyncio.gather(*(self._enrich_place(p, destination, semaphore, stats) for p in day.places))

        if day.places:
            day.places[0].travel_modes = None
        if not include_travel_modes:
            return

        hops = [
            (prev, curr)
            for prev, curr in zip(day.places, day.places[1:])
            if prev.coordinates and curr.coordinates
        ]
        await asyncio.gather(*(self._enrich_hop(prev, curr, semaphore, stats) for prev, curr in hops))

    async def _enrich_place(
        self,
        place: Place,
        destination: str,
        semaphore: asyncio.Semaphore,
        stats: EnrichmentStats,
    ) -> None:
        stats.places += 1
        image, coords = await asyncio.gather(
            self._call(semaphore, lambda: self.places.photo_url(f"{place.name} {destination}"), f"photo {place.name!r}"),
            self._place_coordinates(place.name, destination, semaphore),
        )

        if image:
            place.image = image
            stats.images += 1
        elif not place.image:
            place.image = self.default_image_url

        if coords:
            place.coordinates = Coordinates(lat=coords["lat"], lng=coords["lng"])
            stats.coordinates += 1

    async def _place_coordinates(self, name: str, destination: str, semaphore: asyncio.Semaphore) -> dict | None:
        coords = await self._call(
            semaphore, lambda: self.places.coordinates(f"{name}, {destination}"), f"coordinates {name!r}"
        )
        if coords:
            return coords
        return await self._call(semaphore, lambda: self.places.coordinates(name), f"coordinates {name!r} (bare)")

    async def _enrich_hop(
        self,
        prev: Place,
        curr: Place,
        semaphore: asyncio.Semaphore,
        stats: EnrichmentStats,
    ) -> None:
        stats.hops += 1
        origin = (prev.coordinates.lat, prev.coordinates.lng)
        dest = (curr.coordinates.lat, curr.coordinates.lng)

        summaries = await asyncio.gather(*(
            self._call(
                semaphore,
                lambda mode=mode: self.routes.route_summary(origin, dest, mode),
                f"{mode} route {prev.name!r} -> {curr.name!r}",
            )
            for mode in TRAVEL_MODES
        ))

        modes = {
            mode: TravelModeSummary(duration=s["duration"], distance=s["distance"])
            for mode, s in zip(TRAVEL_MODES, summaries)
            if s
        }
        if modes:
            curr.travel_modes = {**(curr.travel_modes or {}), **modes}
            stats.hops_with_modes += 1

    # ─── Hotels ───

    async def _enrich_hotels(
        self,
        hotels: list[Hotel],
        destination: str,
        semaphore: asyncio.Semaphore,
        stats: EnrichmentStats,
    ) -> None:
        async def enrich(hotel: Hotel):
            stats.hotels += 1
            image = await self._call(
                semaphore,
                lambda: self.places.photo_url(f"{hotel.name} hotel {destination}"),
                f"hotel photo {hotel.name!r}",
            )
            if image:
                hotel.image = image
                stats.hotel_images += 1
            elif not hotel.image:
                hotel.image = self.default_image_url

        await asyncio.gather(*(enrich(h) for h in hotels))

    # ─── Guarded provider call ───

    async def _call(
        self,
        semaphore: asyncio.Semaphore,
        factory: Callable[[], Awaitable[Any]],
        what: str,
    ) -> Any | None:
        """Run one provider call under the concurrency bound and timeout; None on any failure."""
        async with semaphore:
            try:
                return await asyncio.wait_for(factory(), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Enrichment lookup timed out after {self.timeout}s: {what}")
            except Exception as e:
                logger.warning(f"Enrichment lookup failed: {what}: {e}")
        return None


enrichment_service = EnrichmentService()
