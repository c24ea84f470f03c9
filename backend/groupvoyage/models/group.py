"""Travel group and group member models."""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from groupvoyage.database import Base, JSONType

PREFERENCE_FIELDS = (
    "deal_breakers_and_strong_preferences",
    "interests_and_activities",
    "nice_to_haves_and_openness",
    "travel_motivations",
    "must_do_experiences",
    "learning_interests",
    "schedule_and_logistics",
    "budget_and_spending",
    "travel_style_preferences",
    "flight_preference",
)


class TravelGroup(Base):
    __tablename__ = "travel_groups"

    group_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    destination_display: Mapped[str | None] = mapped_column(String(255))

    # Travel dates (set by date determination)
    travel_dates_determined: Mapped[bool] = mapped_column(Boolean, default=False)
    departure_date: Mapped[date | None] = mapped_column(Date)
    return_date: Mapped[date | None] = mapped_column(Date)
    trip_duration_days: Mapped[int | None] = mapped_column(Integer)
    departure_location: Mapped[str | None] = mapped_column(String(255))
    majority_departure_location: Mapped[str | None] = mapped_column(String(255))
    departure_iata_code: Mapped[str | None] = mapped_column(String(3))
    destination_iata_code: Mapped[str | None] = mapped_column(String(3))
    flight_class: Mapped[str] = mapped_column(String(20), default="ECONOMY")

    # Flights
    booking_url: Mapped[str | None] = mapped_column(Text)
    flight_options: Mapped[list | None] = mapped_column(JSONType)
    selected_flight: Mapped[dict | None] = mapped_column(JSONType)

    # Itinerary
    itinerary: Mapped[dict | None] = mapped_column(JSONType)
    most_recent_api_call: Mapped[dict | None] = mapped_column(JSONType)

    # Regeneration fencing token
    regeneration_token: Mapped[str | None] = mapped_column(String(64))
    regeneration_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Votes cast before this were spent on that regeneration
    regenerated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def destination_label(self) -> str:
        return self.destination_display or self.destination


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("travel_groups.group_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255))

    # Preferences (free text, extracted from the onboarding conversation)
    deal_breakers_and_strong_preferences: Mapped[str | None] = mapped_column(Text)
    interests_and_activities: Mapped[str | None] = mapped_column(Text)
    nice_to_haves_and_openness: Mapped[str | None] = mapped_column(Text)
    travel_motivations: Mapped[str | None] = mapped_column(Text)
    must_do_experiences: Mapped[str | None] = mapped_column(Text)
    learning_interests: Mapped[str | None] = mapped_column(Text)
    schedule_and_logistics: Mapped[str | None] = mapped_column(Text)
    budget_and_spending: Mapped[str | None] = mapped_column(Text)
    travel_style_preferences: Mapped[str | None] = mapped_column(Text)
    flight_preference: Mapped[str | None] = mapped_column(String(20))

    # Votes
    regenerate_vote: Mapped[bool] = mapped_column(Boolean, default=False)
    regenerate_voted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    itinerary_feedback: Mapped[str | None] = mapped_column(Text)
    selected_hotel: Mapped[str | None] = mapped_column(String(64))
    place_votes: Mapped[dict | None] = mapped_column(JSONType)
    all_places_voted: Mapped[bool] = mapped_column(Boolean, default=False)

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
