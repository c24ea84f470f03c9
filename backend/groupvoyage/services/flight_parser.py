"""Flight card parser — turns scraped flight-card text into structured round trips.

A card reads as one run-on string, e.g.::

    Flexible ticket upgrade available01:00MAA · 26 Jul1 stop9h 15m10:15IXZ · 26 Jul
    13:25IXZ · 2 Aug2 stops15h 55m05:20MAA · 3 AugAir IndiaINR86,414.00View details

The scanner walks the text once and cuts it into tokens of a fixed grammar
(waypoint, duration, stop count, price, ticket class, details marker, free
text). Assembly is positional: waypoints 0-1 are the outbound leg, 2-3 the
return leg, the first duration/stop token belongs to outbound and the second
to return, and the free text between the last waypoint and the price is the
airline list.

Parsing is total. Anything that cannot be resolved becomes the ``Unknown``
sentinel (or ``Price not available``); nothing in here raises for bad text.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable

from groupvoyage.schemas.flight import (
    PRICE_NOT_AVAILABLE,
    UNKNOWN,
    FlightLeg,
    FlightOfferCard,
    ParsedFlight,
)

logger = logging.getLogger(__name__)

CURRENCY = "INR"
TICKET_CLASSES = ("Economy Basic", "Eco Value", "Business", "First")

# Token kinds
WAYPOINT = "waypoint"
DURATION = "duration"
STOPS = "stops"
PRICE = "price"
TICKET_CLASS = "ticket_class"
DETAILS = "details"
TEXT = "text"

# Tried in order at every position; first match wins.
_TOKEN_PATTERNS: list[tuple[str, re.Pattern]] = [
    (WAYPOINT, re.compile(r"(\d{2}:\d{2})([A-Z]{3})\s*·\s*(\d{1,2}\s+[A-Za-z]{3})")),
    (DURATION, re.compile(r"\d+h(?:\s*\d+m)?")),
    (STOPS, re.compile(r"\d+\s+stops?|Direct")),
    (PRICE, re.compile(CURRENCY + r"\s?([\d,]+(?:\.\d+)?)")),
    (TICKET_CLASS, re.compile("|".join(re.escape(c) for c in TICKET_CLASSES))),
    (DETAILS, re.compile(r"View details")),
]

_OPERATED_BY = re.compile(r"^operated\b", re.IGNORECASE)


@dataclass
class Token:
    kind: str
    value: str
    groups: tuple[str, ...] = ()


@dataclass
class Waypoint:
    time: str
    airport: str
    date: str


def tokenize(text: str) -> list[Token]:
    """Cut card text into grammar tokens. Unmatched characters collapse into TEXT tokens."""
    tokens: list[Token] = []
    buffer: list[str] = []
    pos = 0

    def flush():
        if buffer:
            tokens.append(Token(TEXT, "".join(buffer)))
            buffer.clear()

    while pos < len(text):
        for kind, pattern in _TOKEN_PATTERNS:
            m = pattern.match(text, pos)
            if m and m.end() > pos:
                flush()
                tokens.append(Token(kind, m.group(0), m.groups()))
                pos = m.end()
                break
        else:
            buffer.append(text[pos])
            pos += 1
    flush()
    return tokens


def split_airlines(segment: str) -> list[str]:
    """Split an airline run on commas; an "operated by ..." part stays with the airline before it."""
    airlines: list[str] = []
    for part in segment.split(","):
        name = part.strip()
        if not name:
            continue
        if _OPERATED_BY.match(name) and airlines:
            airlines[-1] = f"{airlines[-1]}, {name}"
        else:
            airlines.append(name)
    return airlines


class FlightTextParser:
    """Assembles a ParsedFlight from the token stream of one card."""

    def parse(self, text: str | None, index: int = 0) -> ParsedFlight:
        tokens = tokenize(text or "")

        waypoints = [
            Waypoint(time=t.groups[0], airport=t.groups[1], date=" ".join(t.groups[2].split()))
            for t in tokens if t.kind == WAYPOINT
        ]
        durations = [" ".join(t.value.split()) for t in tokens if t.kind == DURATION]
        stops = [" ".join(t.value.split()) for t in tokens if t.kind == STOPS]
        price_token = next((t for t in tokens if t.kind == PRICE), None)
        ticket_token = next((t for t in tokens if t.kind == TICKET_CLASS), None)
        airlines = self._airlines(tokens)

        outbound_airline = airlines[0] if airlines else UNKNOWN
        return_airline = airlines[1] if len(airlines) > 1 else outbound_airline

        if len(waypoints) == 4:
            outbound = self._leg(waypoints[0], waypoints[1], durations, stops, 0, outbound_airline)
            return_leg = self._leg(waypoints[2], waypoints[3], durations, stops, 1, return_airline)
        else:
            if waypoints:
                logger.debug(f"Flight card {index}: {len(waypoints)} waypoints, legs left unknown")
            outbound = FlightLeg()
            return_leg = FlightLeg()

        return ParsedFlight(
            index=index,
            outbound=outbound,
            return_leg=return_leg,
            airlines=airlines or [UNKNOWN],
            price=price_token.groups[0] if price_token else PRICE_NOT_AVAILABLE,
            currency=CURRENCY if price_token else UNKNOWN,
            ticket_type=ticket_token.value if ticket_token else None,
        )

    @staticmethod
    def _leg(
        departure: Waypoint,
        arrival: Waypoint,
        durations: list[str],
        stops: list[str],
        position: int,
        airline: str,
    ) -> FlightLeg:
        return FlightLeg(
            departure_time=departure.time,
            departure_date=departure.date,
            departure_airport=departure.airport,
            arrival_time=arrival.time,
            arrival_date=arrival.date,
            arrival_airport=arrival.airport,
            duration=durations[position] if len(durations) > position else UNKNOWN,
            stops=stops[position] if len(stops) > position else UNKNOWN,
            airline=airline,
        )

    @staticmethod
    def _airlines(tokens: list[Token]) -> list[str]:
        """Free text after the last waypoint and before the price/details marker."""
        last_waypoint = max((i for i, t in enumerate(tokens) if t.kind == WAYPOINT), default=None)
        if last_waypoint is None:
            return []

        parts: list[str] = []
        for token in tokens[last_waypoint + 1:]:
            if token.kind in (PRICE, DETAILS):
                break
            if token.kind == TEXT:
                parts.append(token.value)
        return split_airlines("".join(parts))


flight_text_parser = FlightTextParser()


def _card_fields(offer: Any, position: int) -> tuple[int, str]:
    if isinstance(offer, FlightOfferCard):
        return offer.index, offer.text_content or ""
    if isinstance(offer, dict):
        index = offer.get("index")
        text = offer.get("text_content")
    else:
        index = getattr(offer, "index", None)
        text = getattr(offer, "text_content", None)
    if not isinstance(index, int) or isinstance(index, bool):
        index = position
    return index, text if isinstance(text, str) else ""


def parse_flight_options(offers: Iterable[Any] | None) -> list[ParsedFlight]:
    """Parse every scraped card; always one record per card, never raises for card content."""
    if offers is None:
        return []
    results = []
    for position, offer in enumerate(offers):
        index, text = _card_fields(offer, position)
        results.append(flight_text_parser.parse(text, index))
    return results
