import uuid
from datetime import date

from pydantic import BaseModel


class GroupCreate(BaseModel):
    host_id: uuid.UUID
    destination: str
    destination_display: str | None = None
    destination_iata_code: str | None = None
    host_display_name: str | None = None


class GroupJoin(BaseModel):
    user_id: uuid.UUID
    display_name: str | None = None


class MemberAction(BaseModel):
    user_id: uuid.UUID


class PreferencesUpdate(BaseModel):
    user_id: uuid.UUID
    deal_breakers_and_strong_preferences: str | None = None
    interests_and_activities: str | None = None
    nice_to_haves_and_openness: str | None = None
    travel_motivations: str | None = None
    must_do_experiences: str | None = None
    learning_interests: str | None = None
    schedule_and_logistics: str | None = None
    budget_and_spending: str | None = None
    travel_style_preferences: str | None = None
    flight_preference: str | None = None


class RegenerateVoteRequest(BaseModel):
    user_id: uuid.UUID
    feedback: str | None = None


class HotelVoteRequest(BaseModel):
    user_id: uuid.UUID
    hotel_id: str


class PlaceVoteRequest(BaseModel):
    user_id: uuid.UUID
    place_id: str
    accept: bool


class EnrichDayRequest(BaseModel):
    day_index: int


class TravelGroupResponse(BaseModel):
    group_id: uuid.UUID
    host_id: uuid.UUID
    destination: str
    destination_display: str | None
    travel_dates_determined: bool
    departure_date: date | None
    return_date: date | None
    trip_duration_days: int | None
    departure_iata_code: str | None
    destination_iata_code: str | None
    flight_class: str
    booking_url: str | None

    model_config = {"from_attributes": True}
