"""Trip pipeline — sequences parsing, enrichment and group votes against the stored group record.

Each operation follows the same shape: read the rows it needs, run the pure
computation, call external providers with bounded failure, then persist
only the fields it owns. Results say explicitly what happened.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from groupvoyage.models.group import PREFERENCE_FIELDS, GroupMember, TravelGroup
from groupvoyage.schemas.flight import ParsedFlight
from groupvoyage.schemas.itinerary import ItineraryDocument
from groupvoyage.services import consensus
from groupvoyage.services.booking_url import build_booking_url
from groupvoyage.services.enrichment_service import enrichment_service, validate_day_index
from groupvoyage.services.errors import (
    GenerationError,
    InputValidationError,
    NotReadyError,
    PersistenceError,
)
from groupvoyage.services.flight_parser import parse_flight_options
from groupvoyage.services.flight_scraper_client import flight_scraper_client
from groupvoyage.services.group_store import group_store
from groupvoyage.services.itinerary_generator import (
    cabin_class_for,
    itinerary_generator,
    parse_itinerary_response,
)

logger = logging.getLogger(__name__)


# ─── Results ───

@dataclass
class RegenerateVoteResult:
    triggered: bool
    votes: int
    total: int
    threshold: int
    # "collecting", "regenerated", "regenerated_reset_pending", "in_progress" or "failed"
    status: str
    error: str | None = None


@dataclass
class HotelVoteResult:
    winner_hotel_id: str | None
    tally: dict[str, int] = field(default_factory=dict)
    tie_broken_by: str | None = None
    votes_cast: int = 0
    total: int = 0


@dataclass
class PlaceVoteResult:
    place_id: str
    accept: bool
    all_places_voted: bool


@dataclass
class EnrichDayResult:
    # "enriched", or "stale" when the itinerary changed underneath
    status: str
    day_index: int
    num_days: int
    day: dict


@dataclass
class EnrichAllResult:
    # "enriched", or "stale" when the itinerary changed underneath
    status: str
    itinerary: dict


@dataclass
class FlightOptionsResult:
    ready: bool
    # "ready", "pending" or "failed"
    status: str
    flights: list[ParsedFlight] = field(default_factory=list)


@dataclass
class LeaveResult:
    group_deleted: bool
    new_host_id: uuid.UUID | None = None


# ─── Input checks ───

def require_id(value: Any, label: str) -> uuid.UUID:
    if value is None or value == "":
        raise InputValidationError(f"{label} is required")
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise InputValidationError(f"Invalid {label}: {value!r}") from e


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class TripPipeline:
    """Group-record level operations. Collaborators are injectable for tests."""

    def __init__(self, generator=None, enrichment=None, store=None, scraper=None):
        self.generator = generator or itinerary_generator
        self.enrichment = enrichment or enrichment_service
        self.store = store or group_store
        self.scraper = scraper or flight_scraper_client

    # ─── Group lifecycle ───

    async def create_group(
        self,
        db: AsyncSession,
        host_id: Any,
        destination: str,
        destination_display: str | None = None,
        destination_iata_code: str | None = None,
        host_display_name: str | None = None,
    ) -> TravelGroup:
        host_id = require_id(host_id, "Host ID")
        if not destination or not destination.strip():
            raise InputValidationError("Destination is required")
        if destination_iata_code:
            destination_iata_code = destination_iata_code.strip().upper()
        return await self.store.create_group(
            db, host_id, destination.strip(), destination_display, destination_iata_code, host_display_name
        )

    async def join_group(
        self, db: AsyncSession, group_id: Any, user_id: Any, display_name: str | None = None
    ) -> GroupMember:
        return await self.store.add_member(
            db, require_id(group_id, "Group ID"), require_id(user_id, "User ID"), display_name
        )

    async def leave_group(self, db: AsyncSession, group_id: Any, user_id: Any) -> LeaveResult:
        """Remove a member. The host role moves to a random remaining member; the last one out deletes the group."""
        group_id = require_id(group_id, "Group ID")
        user_id = require_id(user_id, "User ID")
        group = await self.store.get_group(db, group_id)
        await self.store.get_member(db, group_id, user_id)

        remaining = [m for m in await self.store.list_members(db, group_id) if m.user_id != user_id]
        if not remaining:
            await self.store.delete_group(db, group_id)
            logger.info(f"Last member {user_id} left, deleted group {group_id}")
            return LeaveResult(group_deleted=True)

        new_host_id = None
        if group.host_id == user_id:
            new_host_id = random.choice(remaining).user_id
            await self.store.update_group(db, group_id, host_id=new_host_id)
            logger.info(f"Host transferred from {user_id} to {new_host_id} for group {group_id}")
        await self.store.remove_member(db, group_id, user_id)
        return LeaveResult(group_deleted=False, new_host_id=new_host_id)

    async def update_preferences(self, db: AsyncSession, group_id: Any, user_id: Any, **preferences) -> None:
        unknown = set(preferences) - set(PREFERENCE_FIELDS)
        if unknown:
            raise InputValidationError(f"Unknown preference fields: {sorted(unknown)}")
        fields = {k: v for k, v in preferences.items() if v is not None}
        if not fields:
            return
        if fields.get("flight_preference"):
            fields["flight_preference"] = fields["flight_preference"].strip().upper()
        await self.store.update_member(
            db, require_id(group_id, "Group ID"), require_id(user_id, "User ID"), **fields
        )

    # ─── Dates, booking URL & flights ───

    async def determine_travel_dates(self, db: AsyncSession, group_id: Any) -> dict:
        """Ask the LLM for dates and departure airport, then store them with cabin class and booking URL."""
        group_id = require_id(group_id, "Group ID")
        group = await self.store.get_group(db, group_id)
        if not group.destination_iata_code:
            raise NotReadyError("Group has no destination airport")
        members = await self.store.list_members(db, group_id)
        if not members:
            raise NotReadyError("Group has no members")

        proposal = await self.generator.determine_travel_dates(group, members)
        flight_class = cabin_class_for([m.flight_preference for m in members])
        booking_url = build_booking_url(
            proposal.departure_iata_code,
            group.destination_iata_code,
            proposal.departure_date,
            proposal.return_date,
            adult_count=len(members),
            cabin_class=flight_class,
        )
        await self.store.update_group(
            db,
            group_id,
            departure_date=proposal.departure_date,
            return_date=proposal.return_date,
            trip_duration_days=proposal.trip_duration_days,
            departure_location=proposal.departure_location,
            departure_iata_code=proposal.departure_iata_code,
            majority_departure_location=proposal.majority_departure_location,
            flight_class=flight_class,
            booking_url=booking_url,
            travel_dates_determined=True,
        )
        return {**proposal.model_dump(mode="json"), "flight_class": flight_class, "booking_url": booking_url}

    async def generate_booking_url(self, db: AsyncSession, group_id: Any) -> str:
        group_id = require_id(group_id, "Group ID")
        group = await self.store.get_group(db, group_id)
        if not (group.departure_iata_code and group.destination_iata_code):
            raise NotReadyError("Departure or destination airport not determined")
        if not (group.departure_date and group.return_date):
            raise NotReadyError("Travel dates not determined")

        members = await self.store.list_members(db, group_id)
        url = build_booking_url(
            group.departure_iata_code,
            group.destination_iata_code,
            group.departure_date,
            group.return_date,
            adult_count=max(1, len(members)),
            cabin_class=group.flight_class,
        )
        await self.store.update_group(db, group_id, booking_url=url)
        return url

    async def fetch_flight_options(self, db: AsyncSession, group_id: Any) -> FlightOptionsResult:
        group_id = require_id(group_id, "Group ID")
        group = await self.store.get_group(db, group_id)
        if not group.booking_url:
            raise NotReadyError("Booking URL not found for group")

        offers = await self.scraper.fetch_offers(group.booking_url, group_id)
        if offers is None:
            return FlightOptionsResult(ready=False, status="failed")
        await self.store.update_group(db, group_id, flight_options=offers)
        return FlightOptionsResult(ready=True, status="ready", flights=parse_flight_options(offers))

    async def check_flight_options(self, db: AsyncSession, group_id: Any) -> FlightOptionsResult:
        group = await self.store.get_group(db, require_id(group_id, "Group ID"))
        if group.flight_options is None:
            return FlightOptionsResult(ready=False, status="pending")
        return FlightOptionsResult(ready=True, status="ready", flights=parse_flight_options(group.flight_options))

    # ─── Itinerary ───

    async def generate_itinerary(self, db: AsyncSession, group_id: Any) -> dict:
        """First itinerary for the group. Enrichment runs separately, day by day."""
        group_id = require_id(group_id, "Group ID")
        group = await self.store.get_group(db, group_id)
        if not group.travel_dates_determined:
            raise NotReadyError("Travel dates not determined")
        if not group.booking_url:
            await self.generate_booking_url(db, group_id)

        members = await self.store.list_members(db, group_id)
        document, record = await self.generator.generate(group, members, group.flight_options)

        fields = {"itinerary": document.to_json(), "most_recent_api_call": record.model_dump()}
        if document.selected_flight:
            fields["selected_flight"] = document.selected_flight
        await self.store.update_group(db, group_id, **fields)
        logger.info(f"Generated {len(document.itinerary)}-day itinerary for group {group_id}")
        return fields["itinerary"]

    async def get_itinerary(self, db: AsyncSession, group_id: Any) -> dict:
        group = await self.store.get_group(db, require_id(group_id, "Group ID"))
        if group.itinerary:
            return group.itinerary
        response = (group.most_recent_api_call or {}).get("response")
        if not response:
            raise NotReadyError("Itinerary not generated yet")
        return parse_itinerary_response(response).to_json()

    async def num_itinerary_days(self, db: AsyncSession, group_id: Any) -> int:
        group = await self.store.get_group(db, require_id(group_id, "Group ID"))
        return len(self._document(group).itinerary)

    async def enrich_day(
        self,
        db: AsyncSession,
        group_id: Any,
        day_index: Any,
        *,
        include_hotels: bool | None = None,
    ) -> EnrichDayResult:
        """Enrich one day and merge it into the stored itinerary.

        Hotels are enriched along with the first day unless told otherwise.
        """
        group_id = require_id(group_id, "Group ID")
        if day_index is None:
            raise InputValidationError("dayIndex is required")
        group = await self.store.get_group(db, group_id)
        document = self._document(group)
        validate_day_index(document, day_index)
        if include_hotels is None:
            include_hotels = day_index == 0

        enriched = await self.enrichment.enrich_day(
            document, day_index, group.destination_label, include_hotels=include_hotels
        )
        day = _dump(enriched.itinerary[day_index])
        written = await self.store.merge_itinerary_day(
            db,
            group_id,
            day_index,
            day,
            hotels=[_dump(h) for h in enriched.hotels] if include_hotels else None,
            map_locations=[_dump(m) for m in enriched.map_locations],
        )
        if not written:
            logger.info(f"Itinerary of group {group_id} changed during enrichment of day {day_index}, discarded")
        return EnrichDayResult(
            status="enriched" if written else "stale",
            day_index=day_index,
            num_days=len(enriched.itinerary),
            day=day,
        )

    async def enrich_all(self, db: AsyncSession, group_id: Any) -> EnrichAllResult:
        group_id = require_id(group_id, "Group ID")
        group = await self.store.get_group(db, group_id)
        enriched = await self.enrichment.enrich_all(self._document(group), group.destination_label)
        itinerary = enriched.to_json()
        if not await self.store.replace_enriched_itinerary(db, group_id, itinerary):
            logger.info(f"Itinerary of group {group_id} changed during enrichment, discarded")
            return EnrichAllResult(status="stale", itinerary=(await self.store.get_group(db, group_id)).itinerary)
        return EnrichAllResult(status="enriched", itinerary=itinerary)

    # ─── Regeneration vote ───

    async def cast_regenerate_vote(
        self, db: AsyncSession, group_id: Any, user_id: Any, feedback: str | None = None
    ) -> RegenerateVoteResult:
        """Record a member's vote; regenerate once the group majority is reached.

        Votes are reset only after the new itinerary is stored. Failed
        generation or persistence leaves every vote as it was. Votes cast
        before the last regeneration never count again, even if their reset
        did not land.
        """
        group_id = require_id(group_id, "Group ID")
        user_id = require_id(user_id, "User ID")
        group = await self.store.get_group(db, group_id)
        if not (group.itinerary or group.most_recent_api_call):
            raise NotReadyError("Itinerary not generated yet")

        await self.store.update_member(
            db,
            group_id,
            user_id,
            regenerate_vote=True,
            regenerate_voted_at=datetime.now(timezone.utc),
            itinerary_feedback=feedback or None,
        )
        members = await self.store.list_members(db, group_id)
        votes, total = _count_votes(members, group.regenerated_at)
        threshold = consensus.regeneration_threshold(total)
        if not consensus.regeneration_reached(votes, total):
            return RegenerateVoteResult(False, votes, total, threshold, status="collecting")

        token = await self.store.acquire_regeneration_lock(db, group_id)
        if token is None:
            logger.info(f"Regeneration already running for group {group_id}, vote recorded only")
            return RegenerateVoteResult(False, votes, total, threshold, status="in_progress")

        try:
            # Votes may have moved while the lock was contended
            group = await self.store.get_group(db, group_id)
            members = await self.store.list_members(db, group_id)
            votes, total = _count_votes(members, group.regenerated_at)
            threshold = consensus.regeneration_threshold(total)
            if not consensus.regeneration_reached(votes, total):
                return RegenerateVoteResult(False, votes, total, threshold, status="collecting")

            logger.info(f"Regenerating itinerary for group {group_id} ({votes}/{total} votes)")
            await self._regenerate(db, group, members, token)
        except (GenerationError, PersistenceError) as e:
            logger.error(f"Regeneration failed for group {group_id}: {e}")
            return RegenerateVoteResult(False, votes, total, threshold, status="failed", error=str(e))
        else:
            status = await self._reset_votes(db, group_id)
        finally:
            await self._release(db, group_id, token)

        return RegenerateVoteResult(True, votes, total, threshold, status=status)

    async def _regenerate(self, db: AsyncSession, group: TravelGroup, members: list[GroupMember], token: str) -> None:
        original = (group.most_recent_api_call or {}).get("response")
        if not original:
            original = ItineraryDocument.model_validate(group.itinerary).model_dump_json(by_alias=True, exclude_none=True)

        document, record = await self.generator.regenerate(group, members, original)
        document = await self.enrichment.enrich_all(document, group.destination_label)
        await self.store.save_regenerated_itinerary(
            db, group.group_id, token, document.to_json(), record.model_dump()
        )

    async def _reset_votes(self, db: AsyncSession, group_id: uuid.UUID) -> str:
        try:
            await self.store.reset_regenerate_votes(db, group_id)
        except PersistenceError as e:
            # The new itinerary is stored; its regenerated_at already retires these votes
            logger.error(f"Regenerated group {group_id} but could not reset votes: {e}")
            return "regenerated_reset_pending"
        return "regenerated"

    async def _release(self, db: AsyncSession, group_id: uuid.UUID, token: str) -> None:
        try:
            await self.store.release_regeneration_lock(db, group_id, token)
        except PersistenceError as e:
            # The token goes stale after regeneration_lock_ttl_seconds
            logger.error(f"Could not release regeneration lock for group {group_id}: {e}")

    # ─── Hotel & place votes ───

    async def cast_hotel_vote(self, db: AsyncSession, group_id: Any, user_id: Any, hotel_id: str) -> HotelVoteResult:
        group_id = require_id(group_id, "Group ID")
        user_id = require_id(user_id, "User ID")
        if not hotel_id:
            raise InputValidationError("Hotel ID is required")
        group = await self.store.get_group(db, group_id)
        if self._document(group).hotel(hotel_id) is None:
            raise InputValidationError(f"Unknown hotel id {hotel_id!r}")

        await self.store.update_member(db, group_id, user_id, selected_hotel=hotel_id)
        return await self.aggregate_hotel_vote(db, group_id)

    async def aggregate_hotel_vote(self, db: AsyncSession, group_id: Any) -> HotelVoteResult:
        group_id = require_id(group_id, "Group ID")
        group = await self.store.get_group(db, group_id)
        document = self._document(group)
        members = await self.store.list_members(db, group_id)

        # Selections of hotels dropped by a regeneration no longer count
        offered = {h.id for h in document.hotels}
        selections = [m.selected_hotel for m in members if m.selected_hotel in offered]
        tally = consensus.pick_hotel_winner(selections, document.hotels)
        return HotelVoteResult(
            winner_hotel_id=tally.winner,
            tally=tally.counts,
            tie_broken_by=tally.tie_broken_by,
            votes_cast=sum(tally.counts.values()),
            total=len(members),
        )

    async def cast_place_vote(
        self, db: AsyncSession, group_id: Any, user_id: Any, place_id: str, accept: bool
    ) -> PlaceVoteResult:
        group_id = require_id(group_id, "Group ID")
        user_id = require_id(user_id, "User ID")
        if not place_id:
            raise InputValidationError("Place ID is required")
        group = await self.store.get_group(db, group_id)
        place_ids = self._document(group).place_ids()
        if place_id not in place_ids:
            raise InputValidationError(f"Unknown place id {place_id!r}")

        member = await self.store.get_member(db, group_id, user_id)
        place_votes = {**(member.place_votes or {}), place_id: bool(accept)}
        all_voted = all(pid in place_votes for pid in place_ids)
        await self.store.update_member(
            db, group_id, user_id, place_votes=place_votes, all_places_voted=all_voted
        )
        return PlaceVoteResult(place_id=place_id, accept=bool(accept), all_places_voted=all_voted)

    # ─── Helpers ───

    @staticmethod
    def _document(group: TravelGroup) -> ItineraryDocument:
        if not group.itinerary:
            raise NotReadyError("Itinerary not generated yet")
        try:
            return ItineraryDocument.model_validate(group.itinerary)
        except ValidationError as e:
            raise PersistenceError(f"Stored itinerary for group {group.group_id} is invalid: {e}") from e


def _count_votes(members: list[GroupMember], regenerated_at: datetime | None) -> tuple[int, int]:
    return sum(1 for m in members if _live_vote(m, regenerated_at)), len(members)


def _live_vote(member: GroupMember, regenerated_at: datetime | None) -> bool:
    if not member.regenerate_vote:
        return False
    if regenerated_at is None:
        return True
    return member.regenerate_voted_at is not None and member.regenerate_voted_at > regenerated_at


trip_pipeline = TripPipeline()
