"""Itinerary generator — prompts the LLM (OpenAI primary, Anthropic fallback) for group itineraries and travel dates."""

import logging
from datetime import date, datetime, timezone

from pydantic import BaseModel, ValidationError, field_validator

from groupvoyage.models.group import GroupMember, TravelGroup
from groupvoyage.schemas.itinerary import GenerationRecord, ItineraryDocument
from groupvoyage.services.errors import GenerationError
from groupvoyage.services.llm_client import extract_json_object, llm_client

logger = logging.getLogger(__name__)

MAX_PROMPT_FLIGHTS = 5
CABIN_CLASSES = ("ECONOMY", "BUSINESS", "FIRST")

SYSTEM_PROMPT = "You are a professional travel planner for groups. Respond with a single JSON object and nothing else."

_PREFERENCE_LABELS = (
    ("Deal Breakers", "deal_breakers_and_strong_preferences"),
    ("Interests", "interests_and_activities"),
    ("Nice to Haves", "nice_to_haves_and_openness"),
    ("Motivations", "travel_motivations"),
    ("Must Do", "must_do_experiences"),
    ("Learning Interests", "learning_interests"),
    ("Schedule", "schedule_and_logistics"),
    ("Budget", "budget_and_spending"),
    ("Travel Style", "travel_style_preferences"),
    ("Flight Preference", "flight_preference"),
)

ITINERARY_FORMAT = """{
  "itinerary": [
    {
      "date": "15",
      "day": "Jun",
      "month": "Day 1",
      "places": [
        {
          "id": "p1",
          "name": "Attraction Name",
          "description": "Detailed description of the place and why it's included",
          "duration": "2 hours",
          "type": "monument",
          "visitTime": "09:00"
        }
      ]
    }
  ],
  "flights": [
    {
      "id": "1",
      "airline": "Airline Name",
      "departure": "10:30 AM",
      "arrival": "2:45 PM",
      "duration": "8h 15m",
      "price": "$650",
      "stops": "Direct"
    }
  ],
  "hotels": [
    {
      "id": "1",
      "name": "Hotel Name",
      "rating": 4.8,
      "price": "$180/night",
      "amenities": ["Free WiFi", "Breakfast", "Gym", "Spa"]
    }
  ],
  "budgetRange": "$1500 - $2500 per person",
  "selectedFlight": {"index": 0, "reason": "Why this flight suits the group"}
}"""

GENERATION_PROMPT = """Create a detailed group itinerary for {destination} based on the group member preferences below.

TRAVEL DATES AND DURATION:
- Departure Date: {departure_date}
- Return Date: {return_date}
- Trip Duration: {duration} days
- You MUST create an itinerary for exactly {duration} days

GROUP MEMBER PREFERENCES:
{preferences}
{flights}
Return the response in the following EXACT JSON format (no additional text, just the JSON):

{format}

Requirements:
- Create exactly {duration} days of itinerary
- Include 2-4 places per day, ordered the way the group will visit them
- Place ids must be unique across the whole itinerary; hotel ids must be unique
- "type" is one of: monument, museum, park, food, shopping, photo_spot, historical, entertainment, cultural, nature
- Include 3 hotel options with a currency-prefixed price
- If flight options are listed, set "selectedFlight" to the index of the best one for the group
- Consider all group member preferences and explain in each description why the place was chosen
- Do not include image URLs, coordinates or travel times; they are added afterwards"""

REGENERATION_PROMPT = """I need you to update an existing itinerary based on group voting feedback.

TRAVEL DATES AND DURATION:
- Departure Date: {departure_date}
- Return Date: {return_date}
- Trip Duration: {duration} days
- You MUST maintain exactly {duration} days in the itinerary

GROUP MEMBER PREFERENCES:
{preferences}

ORIGINAL ITINERARY RESPONSE:
{original}

GROUP FEEDBACK:
{feedback}

INSTRUCTIONS:
1. Carefully analyze the group feedback to understand what they liked and what they want changed.
2. Keep elements that received positive feedback.
3. Replace or modify elements that received negative feedback or suggestions for improvement.
4. Maintain the same JSON structure as the original response.
5. Keep the same budget range, hotels, and flights unless specifically mentioned in feedback.
6. Ensure new places align with group preferences and feedback.
7. CRITICAL: Maintain the exact same dates from {departure_date} to {return_date}
8. CRITICAL: Keep exactly {duration} days in the itinerary
9. Address each piece of feedback thoughtfully while maintaining overall trip coherence.

Return the updated itinerary in the EXACT same JSON format as the original response."""

TRAVEL_DATES_PROMPT = """Analyze the group's schedule and logistics information to determine the best travel dates for their trip to {destination}. Today is {today}.

GROUP MEMBER SCHEDULES AND LOGISTICS:
{schedules}

HOST FALLBACK LOCATION: {fallback}

INSTRUCTIONS:
1. Analyze all member schedules to find common available dates
2. Determine optimal departure and return dates that work for everyone
3. Calculate trip duration in days
4. Identify the most common departure location mentioned by members
5. If no departure locations are mentioned, use the host's location as fallback
6. Provide the IATA airport code for the departure location

Return your response in the following EXACT JSON format:

{{
  "departure_date": "2025-07-26",
  "return_date": "2025-08-02",
  "trip_duration_days": 7,
  "departure_location": "Chennai",
  "departure_iata_code": "MAA",
  "majority_departure_location": "Chennai, Tamil Nadu, India",
  "reasoning": "Brief explanation of why these dates and location were chosen"
}}

REQUIREMENTS:
- Dates must be in YYYY-MM-DD format
- Trip duration should be realistic (3-14 days typically)
- IATA code must be a valid 3-letter airport code
- If multiple departure locations, choose the one mentioned by majority
- If tied or unclear, use the host location as fallback"""


class TravelDatesProposal(BaseModel):
    departure_date: date
    return_date: date
    trip_duration_days: int
    departure_location: str | None = None
    departure_iata_code: str
    majority_departure_location: str | None = None
    reasoning: str | None = None

    @field_validator("departure_iata_code")
    @classmethod
    def _iata(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"not an IATA code: {v!r}")
        return v


def cabin_class_for(preferences: list[str | None]) -> str:
    """Group cabin class: the cheapest class any member asked for, ECONOMY by default."""
    wanted = {p.strip().upper() for p in preferences if p}
    for cabin in CABIN_CLASSES:
        if cabin in wanted:
            return cabin
    return "ECONOMY"


def format_member_preferences(members: list[GroupMember]) -> str:
    blocks = []
    for i, member in enumerate(members, 1):
        lines = [f"**{member.display_name or f'Traveler {i}'}:**"]
        for label, attr in _PREFERENCE_LABELS:
            lines.append(f"- {label}: {getattr(member, attr) or 'None specified'}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_flight_cards(cards: list[dict] | None) -> str:
    if not cards:
        return ""
    lines = ["", "AVAILABLE FLIGHT OPTIONS:"]
    for card in cards[:MAX_PROMPT_FLIGHTS]:
        lines.append(f"\nIndex: {card.get('index')}\nFlight Details: {card.get('text_content', '')}")
    return "\n".join(lines) + "\n"


def format_feedback(members: list[GroupMember]) -> str:
    blocks = [
        f"**{m.display_name or f'Traveler {i}'}:**\n{m.itinerary_feedback}"
        for i, m in enumerate(members, 1)
        if m.itinerary_feedback
    ]
    return "\n\n".join(blocks) or "No written feedback; the group voted to regenerate."


def parse_itinerary_response(text: str) -> ItineraryDocument:
    """Validate the document in an LLM reply.

    Images are dropped: they only ever come from enrichment.
    """
    raw = extract_json_object(text)
    for day in raw.get("itinerary") or []:
        for place in (day.get("places") if isinstance(day, dict) else None) or []:
            if isinstance(place, dict):
                place.pop("image", None)
    for hotel in raw.get("hotels") or []:
        if isinstance(hotel, dict):
            hotel.pop("image", None)
    try:
        return ItineraryDocument.model_validate(raw)
    except ValidationError as e:
        raise GenerationError(f"Failed to parse AI response: {e.error_count()} invalid fields") from e


class ItineraryGenerator:
    """Builds prompts from group state and turns replies into validated documents."""

    def __init__(self, llm=None):
        self.llm = llm or llm_client

    async def generate(
        self,
        group: TravelGroup,
        members: list[GroupMember],
        flight_cards: list[dict] | None = None,
    ) -> tuple[ItineraryDocument, GenerationRecord]:
        prompt = GENERATION_PROMPT.format(
            destination=group.destination_label,
            departure_date=group.departure_date,
            return_date=group.return_date,
            duration=group.trip_duration_days,
            preferences=format_member_preferences(members),
            flights=format_flight_cards(flight_cards),
            format=ITINERARY_FORMAT,
        )
        return await self._run(prompt, group, "generation")

    async def regenerate(
        self,
        group: TravelGroup,
        members: list[GroupMember],
        original_response: str,
    ) -> tuple[ItineraryDocument, GenerationRecord]:
        prompt = REGENERATION_PROMPT.format(
            departure_date=group.departure_date,
            return_date=group.return_date,
            duration=group.trip_duration_days,
            preferences=format_member_preferences(members),
            original=original_response,
            feedback=format_feedback(members),
        )
        return await self._run(prompt, group, "regeneration")

    async def determine_travel_dates(
        self,
        group: TravelGroup,
        members: list[GroupMember],
    ) -> TravelDatesProposal:
        schedules = "\n\n".join(
            f"**{m.display_name or f'Traveler {i}'}:**\n"
            f"- Schedule & Logistics: {m.schedule_and_logistics or 'No schedule information provided'}\n"
            f"- Flight Preference: {m.flight_preference or 'Not specified'}"
            for i, m in enumerate(members, 1)
        )
        prompt = TRAVEL_DATES_PROMPT.format(
            destination=group.destination_label,
            today=date.today().isoformat(),
            schedules=schedules,
            fallback=group.departure_location or "Not available",
        )
        text = await self.llm.complete(system=SYSTEM_PROMPT, user=prompt, max_tokens=1000, temperature=0)
        try:
            proposal = TravelDatesProposal.model_validate(extract_json_object(text))
        except ValidationError as e:
            raise GenerationError(f"Failed to parse AI response: {e.error_count()} invalid fields") from e

        if proposal.return_date < proposal.departure_date:
            raise GenerationError("Failed to parse AI response: return date before departure date")
        logger.info(
            f"Travel dates for group {group.group_id}: {proposal.departure_date} -> {proposal.return_date} "
            f"from {proposal.departure_iata_code}"
        )
        return proposal

    async def _run(self, prompt: str, group: TravelGroup, kind: str) -> tuple[ItineraryDocument, GenerationRecord]:
        text = await self.llm.complete(system=SYSTEM_PROMPT, user=prompt)
        record = GenerationRecord(
            prompt=prompt,
            response=text,
            timestamp=datetime.now(timezone.utc).isoformat(),
            model=getattr(self.llm, "model_name", None),
            type=kind,
        )
        document = parse_itinerary_response(text)
        if group.trip_duration_days and len(document.itinerary) != group.trip_duration_days:
            logger.warning(
                f"{kind.capitalize()} for group {group.group_id} returned {len(document.itinerary)} days, "
                f"expected {group.trip_duration_days}"
            )
        return document, record


itinerary_generator = ItineraryGenerator()
