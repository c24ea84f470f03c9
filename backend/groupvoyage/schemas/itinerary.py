"""Itinerary document — the JSON value stored on a travel group.

The generator emits camelCase keys (``visitTime``, ``travelModes``,
``mapLocations``); models accept either spelling and dump with aliases so
the persisted shape stays the one the generator and the frontend share.
Unknown keys are kept so a round trip through these models never drops
data the generator added.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

TRAVEL_MODES = ("walking", "bicycling", "driving", "transit")


class _DocModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class PlaceType(str, Enum):
    MONUMENT = "monument"
    MUSEUM = "museum"
    PARK = "park"
    FOOD = "food"
    SHOPPING = "shopping"
    PHOTO_SPOT = "photo_spot"
    HISTORICAL = "historical"
    ENTERTAINMENT = "entertainment"
    CULTURAL = "cultural"
    NATURE = "nature"


class Coordinates(_DocModel):
    lat: float
    lng: float


class TravelModeSummary(_DocModel):
    duration: str
    distance: str


class Place(_DocModel):
    id: str
    name: str
    description: str = ""
    duration: str = ""
    type: PlaceType | None = None
    visit_time: str | None = None
    image: str | None = None
    coordinates: Coordinates | None = None
    # Hop from the previous place of the same day
    travel_modes: dict[str, TravelModeSummary] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("type", mode="before")
    @classmethod
    def _lenient_type(cls, v):
        if v is None or isinstance(v, PlaceType):
            return v
        value = str(v).strip().lower().replace(" ", "_")
        if value in {t.value for t in PlaceType}:
            return value
        logger.warning(f"Unknown place type {v!r}, dropping")
        return None


class Day(_DocModel):
    date: str = ""
    day: str = ""
    # The generator puts the "Day N" label here
    month: str = ""
    places: list[Place] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_places(self):
        ids = [p.id for p in self.places]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate place ids in day {self.month or self.date!r}")
        if self.places:
            self.places[0].travel_modes = None
        return self


class Hotel(_DocModel):
    id: str
    name: str
    rating: float | None = None
    price: str = ""
    amenities: list[str] = Field(default_factory=list)
    image: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v):
        if v is None:
            return ""
        return str(v)


class Flight(_DocModel):
    id: str = ""
    airline: str = ""
    departure: str = ""
    arrival: str = ""
    duration: str = ""
    price: str = ""
    stops: str = ""

    @field_validator("id", "price", "stops", mode="before")
    @classmethod
    def _stringify(cls, v):
        if v is None:
            return ""
        return str(v)


class MapLocation(_DocModel):
    id: str
    name: str
    lat: float = 0
    lng: float = 0
    day: str = ""
    type: str | None = None
    visit_time: str | None = None
    duration: str | None = None


class ItineraryDocument(_DocModel):
    itinerary: list[Day] = Field(default_factory=list)
    hotels: list[Hotel] = Field(default_factory=list)
    flights: list[Flight] = Field(default_factory=list)
    budget_range: str | None = None
    map_locations: list[MapLocation] = Field(default_factory=list)
    selected_flight: dict | None = None

    @model_validator(mode="after")
    def _check_hotels(self):
        ids = [h.id for h in self.hotels]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate hotel ids")
        return self

    def hotel(self, hotel_id: str) -> Hotel | None:
        return next((h for h in self.hotels if h.id == hotel_id), None)

    def place_ids(self) -> list[str]:
        return [p.id for day in self.itinerary for p in day.places]

    def rebuild_map_locations(self) -> None:
        """Project every place onto the map, 0/0 for unresolved coordinates."""
        self.map_locations = [
            MapLocation(
                id=place.id,
                name=place.name,
                lat=place.coordinates.lat if place.coordinates else 0,
                lng=place.coordinates.lng if place.coordinates else 0,
                day=day.month,
                type=place.type.value if place.type else None,
                visit_time=place.visit_time,
                duration=place.duration,
            )
            for day in self.itinerary
            for place in day.places
        ]

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GenerationRecord(BaseModel):
    """Most recent call to the text-generation collaborator."""
    prompt: str
    response: str
    timestamp: str
    model: str | None = None
    type: str = "generation"
