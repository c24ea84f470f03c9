from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "Unknown"
PRICE_NOT_AVAILABLE = "Price not available"


class FlightOfferCard(BaseModel):
    """One flight card as returned by the scraping service."""
    index: int = 0
    text_content: str = ""
    tag_name: str | None = None
    aria_label: str | None = None
    aria_describedby: str | None = None

    model_config = {"extra": "ignore"}


class FlightLeg(BaseModel):
    departure_time: str = UNKNOWN
    departure_date: str = UNKNOWN
    departure_airport: str = UNKNOWN
    arrival_time: str = UNKNOWN
    arrival_date: str = UNKNOWN
    arrival_airport: str = UNKNOWN
    duration: str = UNKNOWN
    stops: str = UNKNOWN
    airline: str = UNKNOWN


class ParsedFlight(BaseModel):
    index: int
    outbound: FlightLeg
    return_leg: FlightLeg = Field(alias="return")
    airlines: list[str]
    price: str
    currency: str
    ticket_type: str | None = None

    model_config = ConfigDict(populate_by_name=True)
