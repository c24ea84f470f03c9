import copy
import json
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from fakes import GOLDEN_CARD, FakeGenerator, FakePlaces, FakeRoutes, FakeScraper, failing_generator
from groupvoyage.services.enrichment_service import EnrichmentService
from groupvoyage.services.errors import (
    GroupNotFoundError,
    InputValidationError,
    MemberNotFoundError,
    NotReadyError,
    PersistenceError,
)
from groupvoyage.services.group_store import GroupStore
from groupvoyage.services.trip_pipeline import TripPipeline

store = GroupStore()


class FailingSaveStore(GroupStore):
    async def save_regenerated_itinerary(self, db, group_id, token, itinerary, api_call):
        raise PersistenceError("disk full")


class FailingResetStore(GroupStore):
    async def reset_regenerate_votes(self, db, group_id):
        raise PersistenceError("connection reset")


def _enrichment():
    return EnrichmentService(FakePlaces(), FakeRoutes(), timeout=1.0, concurrency=4,
                             default_image_url="https://images.test/default.jpg")


def _regenerated(itinerary_json):
    doc = copy.deepcopy(itinerary_json)
    doc["itinerary"][0]["places"][0] = {
        "id": "p9", "name": "Elliot's Beach", "description": "Quieter beach", "duration": "1 hour", "type": "nature",
    }
    doc["budgetRange"] = "$900 - $1200 per person"
    return doc


def _pipeline(itinerary_json, generator=None, store_=None, scraper=None):
    return TripPipeline(
        generator=generator or FakeGenerator(_regenerated(itinerary_json)),
        enrichment=_enrichment(),
        store=store_ or store,
        scraper=scraper or FakeScraper([]),
    )


async def _group(db, itinerary_json, members=2, with_itinerary=True):
    host = uuid.uuid4()
    group = await store.create_group(db, host, "Chennai", "Chennai", "MAA", "Host")
    users = [host]
    for i in range(members - 1):
        user = uuid.uuid4()
        await store.add_member(db, group.group_id, user, f"Traveler {i + 2}")
        users.append(user)
    if with_itinerary:
        await store.update_group(
            db,
            group.group_id,
            itinerary=itinerary_json,
            most_recent_api_call={"prompt": "p", "response": json.dumps(itinerary_json), "type": "generation"},
        )
    return group.group_id, users


async def _votes(db, group_id):
    return {m.user_id: (m.regenerate_vote, m.itinerary_feedback) for m in await store.list_members(db, group_id)}


# ─── Regeneration vote ───

@pytest.mark.asyncio
async def test_two_member_group_regenerates_on_second_vote(db, itinerary_json):
    generator = FakeGenerator(_regenerated(itinerary_json))
    pipeline = _pipeline(itinerary_json, generator)
    group_id, (a, b) = await _group(db, itinerary_json, members=2)

    first = await pipeline.cast_regenerate_vote(db, group_id, a, "More beaches")
    assert (first.triggered, first.votes, first.total, first.threshold) == (False, 1, 2, 2)
    assert first.status == "collecting"
    assert generator.regenerate_calls == 0

    second = await pipeline.cast_regenerate_vote(db, group_id, b, "Less walking")
    assert second.triggered is True
    assert second.status == "regenerated"
    assert generator.regenerate_calls == 1
    # Both members' feedback reached the generator
    assert set(generator.last_feedback) == {"More beaches", "Less walking"}

    group = await store.get_group(db, group_id)
    assert group.itinerary["budgetRange"] == "$900 - $1200 per person"
    assert group.itinerary["itinerary"][0]["places"][0]["id"] == "p9"
    # Regenerated documents come back enriched
    assert group.itinerary["itinerary"][0]["places"][0]["image"].startswith("https://photos.test/")
    assert group.most_recent_api_call["type"] == "regeneration"
    assert group.regeneration_token is None

    assert set((await _votes(db, group_id)).values()) == {(False, None)}


@pytest.mark.asyncio
async def test_five_member_group_needs_three_votes(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json, members=5)

    assert (await pipeline.cast_regenerate_vote(db, group_id, users[0])).status == "collecting"
    second = await pipeline.cast_regenerate_vote(db, group_id, users[1])
    assert (second.triggered, second.votes, second.threshold) == (False, 2, 3)

    third = await pipeline.cast_regenerate_vote(db, group_id, users[2])
    assert third.triggered is True
    assert third.votes == 3


@pytest.mark.asyncio
async def test_feedback_is_overwritten_not_appended(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json, members=3)

    await pipeline.cast_regenerate_vote(db, group_id, users[0], "first thought")
    result = await pipeline.cast_regenerate_vote(db, group_id, users[0], "second thought")
    assert result.votes == 1
    assert (await _votes(db, group_id))[users[0]] == (True, "second thought")


@pytest.mark.asyncio
async def test_generation_failure_leaves_votes_and_document(db, itinerary_json):
    pipeline = _pipeline(itinerary_json, failing_generator(_regenerated(itinerary_json)))
    group_id, (a, b) = await _group(db, itinerary_json, members=2)

    await pipeline.cast_regenerate_vote(db, group_id, a, "x")
    result = await pipeline.cast_regenerate_vote(db, group_id, b, "y")
    assert result.status == "failed"
    assert result.triggered is False
    assert "Failed to parse AI response" in result.error

    group = await store.get_group(db, group_id)
    assert group.itinerary == itinerary_json
    assert group.regeneration_token is None
    assert await _votes(db, group_id) == {a: (True, "x"), b: (True, "y")}


@pytest.mark.asyncio
async def test_persistence_failure_leaves_votes_untouched(db, itinerary_json):
    pipeline = _pipeline(itinerary_json, store_=FailingSaveStore())
    group_id, (a, b) = await _group(db, itinerary_json, members=2)

    await pipeline.cast_regenerate_vote(db, group_id, a, "x")
    before = await _votes(db, group_id)
    result = await pipeline.cast_regenerate_vote(db, group_id, b, "y")

    assert result.status == "failed"
    after = await _votes(db, group_id)
    assert after[a] == before[a] == (True, "x")
    assert after[b] == (True, "y")
    assert (await store.get_group(db, group_id)).itinerary == itinerary_json


@pytest.mark.asyncio
async def test_failed_vote_reset_reports_regeneration_and_spends_votes(db, itinerary_json):
    generator = FakeGenerator(_regenerated(itinerary_json))
    pipeline = _pipeline(itinerary_json, generator, store_=FailingResetStore())
    group_id, (a, b) = await _group(db, itinerary_json, members=2)

    await pipeline.cast_regenerate_vote(db, group_id, a)
    result = await pipeline.cast_regenerate_vote(db, group_id, b)
    assert result.triggered is True
    assert result.status == "regenerated_reset_pending"
    group = await store.get_group(db, group_id)
    assert group.itinerary["itinerary"][0]["places"][0]["id"] == "p9"
    assert group.regeneration_token is None

    # The flags are still set, but they were spent on the regeneration above
    again = await pipeline.cast_regenerate_vote(db, group_id, a)
    assert (again.status, again.votes) == ("collecting", 1)
    assert generator.regenerate_calls == 1


@pytest.mark.asyncio
async def test_running_regeneration_makes_vote_a_no_op(db, itinerary_json):
    generator = FakeGenerator(_regenerated(itinerary_json))
    pipeline = _pipeline(itinerary_json, generator)
    group_id, (a, b) = await _group(db, itinerary_json, members=2)
    await store.update_group(
        db, group_id, regeneration_token="other-request", regeneration_started_at=datetime.now(timezone.utc)
    )

    await pipeline.cast_regenerate_vote(db, group_id, a)
    result = await pipeline.cast_regenerate_vote(db, group_id, b)
    assert result.status == "in_progress"
    assert result.triggered is False
    assert generator.regenerate_calls == 0
    group = await store.get_group(db, group_id)
    assert group.regeneration_token == "other-request"
    assert set((await _votes(db, group_id)).values()) == {(True, None)}


@pytest.mark.asyncio
async def test_abandoned_regeneration_lock_is_taken_over(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, (a, b) = await _group(db, itinerary_json, members=2)
    await store.update_group(
        db,
        group_id,
        regeneration_token="crashed-request",
        regeneration_started_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )

    await pipeline.cast_regenerate_vote(db, group_id, a)
    assert (await pipeline.cast_regenerate_vote(db, group_id, b)).status == "regenerated"


@pytest.mark.asyncio
async def test_regenerate_vote_input_checks(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json)

    with pytest.raises(InputValidationError):
        await pipeline.cast_regenerate_vote(db, None, uuid.uuid4())
    with pytest.raises(InputValidationError):
        await pipeline.cast_regenerate_vote(db, "not-a-uuid", uuid.uuid4())
    with pytest.raises(GroupNotFoundError):
        await pipeline.cast_regenerate_vote(db, uuid.uuid4(), uuid.uuid4())
    with pytest.raises(MemberNotFoundError):
        await pipeline.cast_regenerate_vote(db, group_id, uuid.uuid4())


@pytest.mark.asyncio
async def test_regenerate_vote_needs_an_itinerary(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json, with_itinerary=False)
    with pytest.raises(NotReadyError):
        await pipeline.cast_regenerate_vote(db, group_id, users[0])
    assert (await _votes(db, group_id))[users[0]] == (False, None)


# ─── Hotel & place votes ───

@pytest.mark.asyncio
async def test_hotel_tie_goes_to_cheaper_hotel(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json, members=4)

    for user, hotel in zip(users, ["h1", "h1", "h2", "h2"]):
        result = await pipeline.cast_hotel_vote(db, group_id, user, hotel)

    assert result.winner_hotel_id == "h2"
    assert result.tally == {"h1": 2, "h2": 2}
    assert result.tie_broken_by == "price"
    assert (result.votes_cast, result.total) == (4, 4)


@pytest.mark.asyncio
async def test_hotel_vote_changes_are_last_write_wins(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, (a, b) = await _group(db, itinerary_json, members=2)

    await pipeline.cast_hotel_vote(db, group_id, a, "h1")
    await pipeline.cast_hotel_vote(db, group_id, b, "h3")
    result = await pipeline.cast_hotel_vote(db, group_id, b, "h1")
    assert result.winner_hotel_id == "h1"
    assert result.tally == {"h1": 2}


@pytest.mark.asyncio
async def test_unknown_hotel_rejected(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json)
    with pytest.raises(InputValidationError):
        await pipeline.cast_hotel_vote(db, group_id, users[0], "h404")


@pytest.mark.asyncio
async def test_aggregate_without_votes(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json)
    result = await pipeline.aggregate_hotel_vote(db, group_id)
    assert result.winner_hotel_id is None
    assert result.votes_cast == 0


@pytest.mark.asyncio
async def test_selections_of_dropped_hotels_are_ignored(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json, members=3)
    await store.update_member(db, group_id, users[0], selected_hotel="h-gone")
    await store.update_member(db, group_id, users[1], selected_hotel="h-gone")
    await store.update_member(db, group_id, users[2], selected_hotel="h2")

    result = await pipeline.aggregate_hotel_vote(db, group_id)
    assert result.winner_hotel_id == "h2"
    assert result.tally == {"h2": 1}
    assert (result.votes_cast, result.total) == (1, 3)


@pytest.mark.asyncio
async def test_place_votes_mark_all_voted(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json)

    for place_id in ["p1", "p2", "p3", "p4"]:
        result = await pipeline.cast_place_vote(db, group_id, users[0], place_id, True)
        assert result.all_places_voted is False
    result = await pipeline.cast_place_vote(db, group_id, users[0], "p5", False)
    assert result.all_places_voted is True

    member = await store.get_member(db, group_id, users[0])
    assert member.place_votes["p5"] is False
    assert member.all_places_voted is True

    with pytest.raises(InputValidationError):
        await pipeline.cast_place_vote(db, group_id, users[0], "p99", True)


# ─── Enrichment ───

@pytest.mark.asyncio
async def test_enrich_day_persists_only_that_day(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json)

    result = await pipeline.enrich_day(db, group_id, 0)
    assert result.status == "enriched"
    assert result.num_days == 2

    stored = (await store.get_group(db, group_id)).itinerary
    assert stored["itinerary"][0]["places"][1]["travelModes"]["driving"]["distance"] == "1.2 km"
    assert "image" not in stored["itinerary"][1]["places"][0]
    # Hotels ride along with the first day
    assert all(h["image"].startswith("https://photos.test/") for h in stored["hotels"])

    await pipeline.enrich_day(db, group_id, 1)
    stored = (await store.get_group(db, group_id)).itinerary
    assert stored["itinerary"][0]["places"][0]["image"].startswith("https://photos.test/")
    assert stored["itinerary"][1]["places"][0]["image"].startswith("https://photos.test/")
    assert len(stored["mapLocations"]) == 5


@pytest.mark.asyncio
async def test_enrich_day_discards_result_after_regeneration(db, itinerary_json):
    replacement = _regenerated(itinerary_json)

    class RegeneratedMidway:
        def __init__(self, inner):
            self.inner = inner

        async def enrich_day(self, document, day_index, destination, **kwargs):
            enriched = await self.inner.enrich_day(document, day_index, destination, **kwargs)
            await store.update_group(db, group_id, itinerary=replacement)
            return enriched

    group_id, _ = await _group(db, itinerary_json)
    pipeline = TripPipeline(FakeGenerator(replacement), RegeneratedMidway(_enrichment()), store, FakeScraper([]))

    result = await pipeline.enrich_day(db, group_id, 0)
    assert result.status == "stale"
    assert (await store.get_group(db, group_id)).itinerary == replacement


@pytest.mark.asyncio
async def test_enrich_day_validates_before_calling_providers(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json)
    with pytest.raises(InputValidationError):
        await pipeline.enrich_day(db, group_id, None)
    with pytest.raises(InputValidationError):
        await pipeline.enrich_day(db, group_id, 7)

    group_id, _ = await _group(db, itinerary_json, with_itinerary=False)
    with pytest.raises(NotReadyError):
        await pipeline.enrich_day(db, group_id, 0)


@pytest.mark.asyncio
async def test_enrich_all(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json)
    result = await pipeline.enrich_all(db, group_id)
    assert result.status == "enriched"
    assert len(result.itinerary["mapLocations"]) == 5
    assert (await store.get_group(db, group_id)).itinerary == result.itinerary


@pytest.mark.asyncio
async def test_enrich_all_discards_result_after_regeneration(db, itinerary_json):
    replacement = _regenerated(itinerary_json)

    class RegeneratedMidway:
        def __init__(self, inner):
            self.inner = inner

        async def enrich_all(self, document, destination):
            enriched = await self.inner.enrich_all(document, destination)
            await store.update_group(db, group_id, itinerary=replacement)
            return enriched

    group_id, _ = await _group(db, itinerary_json)
    pipeline = TripPipeline(FakeGenerator(replacement), RegeneratedMidway(_enrichment()), store, FakeScraper([]))

    result = await pipeline.enrich_all(db, group_id)
    assert result.status == "stale"
    assert result.itinerary == replacement
    assert (await store.get_group(db, group_id)).itinerary["itinerary"][0]["places"][0]["id"] == "p9"


# ─── Booking URL & flights ───

async def _with_dates(db, group_id):
    await store.update_group(
        db,
        group_id,
        departure_iata_code="JFK",
        departure_date=date(2025, 7, 26),
        return_date=date(2025, 8, 2),
        trip_duration_days=7,
        travel_dates_determined=True,
    )


@pytest.mark.asyncio
async def test_generate_booking_url_counts_members(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json, members=3)

    with pytest.raises(NotReadyError):
        await pipeline.generate_booking_url(db, group_id)

    await _with_dates(db, group_id)
    url = await pipeline.generate_booking_url(db, group_id)
    assert url.startswith("https://flights.booking.com/flights/JFK.AIRPORT-MAA.AIRPORT/?type=ROUNDTRIP&adults=3")
    assert "fromCountry=US&toCountry=IN" in url
    assert (await store.get_group(db, group_id)).booking_url == url


@pytest.mark.asyncio
async def test_fetch_and_check_flight_options(db, itinerary_json):
    scraper = FakeScraper([{"index": 0, "text_content": GOLDEN_CARD}, {"index": 1, "text_content": "Sold out"}])
    pipeline = _pipeline(itinerary_json, scraper=scraper)
    group_id, _ = await _group(db, itinerary_json)

    with pytest.raises(NotReadyError):
        await pipeline.fetch_flight_options(db, group_id)
    pending = await pipeline.check_flight_options(db, group_id)
    assert (pending.ready, pending.status) == (False, "pending")

    await _with_dates(db, group_id)
    await pipeline.generate_booking_url(db, group_id)
    fetched = await pipeline.fetch_flight_options(db, group_id)
    assert fetched.ready is True
    assert [f.price for f in fetched.flights] == ["86,414.00", "Price not available"]
    assert scraper.requests == [(await store.get_group(db, group_id)).booking_url]

    checked = await pipeline.check_flight_options(db, group_id)
    assert checked.ready is True
    assert checked.flights[0].outbound.departure_airport == "MAA"


@pytest.mark.asyncio
async def test_failed_scrape_is_reported_and_not_stored(db, itinerary_json):
    pipeline = _pipeline(itinerary_json, scraper=FakeScraper(None))
    group_id, _ = await _group(db, itinerary_json)
    await _with_dates(db, group_id)
    await pipeline.generate_booking_url(db, group_id)

    result = await pipeline.fetch_flight_options(db, group_id)
    assert (result.ready, result.status) == (False, "failed")
    assert (await store.get_group(db, group_id)).flight_options is None


# ─── Group lifecycle ───

@pytest.mark.asyncio
async def test_host_leaving_transfers_host(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, (host, a, b) = await _group(db, itinerary_json, members=3)

    result = await pipeline.leave_group(db, group_id, host)
    assert result.group_deleted is False
    assert result.new_host_id in {a, b}
    assert (await store.get_group(db, group_id)).host_id == result.new_host_id

    result = await pipeline.leave_group(db, group_id, result.new_host_id)
    remaining = [m.user_id for m in await store.list_members(db, group_id)]
    assert len(remaining) == 1
    assert (await store.get_group(db, group_id)).host_id == remaining[0]


@pytest.mark.asyncio
async def test_last_member_leaving_deletes_group(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, (host,) = await _group(db, itinerary_json, members=1)

    result = await pipeline.leave_group(db, group_id, host)
    assert result.group_deleted is True
    with pytest.raises(GroupNotFoundError):
        await store.get_group(db, group_id)


@pytest.mark.asyncio
async def test_update_preferences(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, users = await _group(db, itinerary_json)

    await pipeline.update_preferences(
        db, group_id, users[1], interests_and_activities="temples, food", flight_preference="business"
    )
    member = await store.get_member(db, group_id, users[1])
    assert member.interests_and_activities == "temples, food"
    assert member.flight_preference == "BUSINESS"

    with pytest.raises(InputValidationError):
        await pipeline.update_preferences(db, group_id, users[1], shoe_size="42")


@pytest.mark.asyncio
async def test_get_itinerary_falls_back_to_generation_record(db, itinerary_json):
    pipeline = _pipeline(itinerary_json)
    group_id, _ = await _group(db, itinerary_json, with_itinerary=False)

    with pytest.raises(NotReadyError):
        await pipeline.get_itinerary(db, group_id)

    await store.update_group(
        db, group_id, most_recent_api_call={"response": "Sure!\n" + json.dumps(itinerary_json)}
    )
    itinerary = await pipeline.get_itinerary(db, group_id)
    assert [d["month"] for d in itinerary["itinerary"]] == ["Day 1", "Day 2"]
