"""Booking deep links — round-trip flight search URLs for the booking site."""

from datetime import date
from urllib.parse import urlencode

from groupvoyage.config import settings
from groupvoyage.data.gazetteer import resolve_country

TRIP_TYPE = "ROUNDTRIP"
DEFAULT_CABIN_CLASS = "ECONOMY"


def _iso_date(value: date | str, name: str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} is required")
    # Raises ValueError for anything but YYYY-MM-DD
    return date.fromisoformat(value.strip()).isoformat()


def _iata(value: str | None, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} is required")
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"{name} must be a 3-letter IATA code, got {value!r}")
    return code


def build_booking_url(
    departure_iata: str,
    destination_iata: str,
    depart_date: date | str,
    return_date: date | str,
    adult_count: int = 1,
    cabin_class: str | None = None,
    base_url: str | None = None,
) -> str:
    """Build the booking search URL.

    Parameter order is fixed, so identical input always yields a byte-identical URL.
    """
    origin = _iata(departure_iata, "departure_iata")
    dest = _iata(destination_iata, "destination_iata")
    depart = _iso_date(depart_date, "depart_date")
    ret = _iso_date(return_date, "return_date")
    if isinstance(adult_count, bool) or not isinstance(adult_count, int) or adult_count < 1:
        raise ValueError("adult_count must be a positive integer")

    params = [
        ("type", TRIP_TYPE),
        ("adults", str(adult_count)),
        ("cabinClass", (cabin_class or DEFAULT_CABIN_CLASS).upper()),
        ("children", ""),
        ("from", f"{origin}.AIRPORT"),
        ("to", f"{dest}.AIRPORT"),
        ("fromCountry", resolve_country(origin)),
        ("toCountry", resolve_country(dest)),
        ("depart", depart),
        ("return", ret),
        ("sort", "BEST"),
        ("travelPurpose", "leisure"),
        ("ca_source", "flights_index_sb"),
    ]
    root = (base_url or settings.booking_base_url).rstrip("/")
    return f"{root}/{origin}.AIRPORT-{dest}.AIRPORT/?{urlencode(params)}"
