"""Group consensus rules — regeneration majority and hotel plurality.

Both rules are pure: they look at vote values only and never touch storage.
The trip pipeline feeds them the freshest member rows and persists the outcome.
"""

import logging
import math
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from groupvoyage.schemas.itinerary import Hotel

logger = logging.getLogger(__name__)

_NON_PRICE_CHARS = re.compile(r"[^\d.]")


# ─── Regeneration vote ───

def regeneration_threshold(total_members: int) -> int:
    """Votes needed to regenerate.

    A two-person group needs both votes; everyone else needs ceil(n / 2).
    """
    if total_members < 0:
        raise ValueError("total_members cannot be negative")
    if total_members == 2:
        return 2
    return math.ceil(total_members / 2)


def regeneration_reached(votes: int, total_members: int) -> bool:
    return total_members > 0 and votes >= regeneration_threshold(total_members)


# ─── Hotel vote ───

def parse_hotel_price(price: str | None) -> float:
    """Numeric price from strings like "$180/night"; unparseable prices sort last."""
    cleaned = _NON_PRICE_CHARS.sub("", price or "")
    try:
        return float(cleaned)
    except ValueError:
        return math.inf


@dataclass
class HotelTally:
    counts: dict[str, int] = field(default_factory=dict)
    leaders: list[str] = field(default_factory=list)
    winner: str | None = None
    tie_broken_by: str | None = None  # None, "price" or "list_order"


def tally_hotel_votes(selections: Iterable[str | None]) -> Counter:
    return Counter(s for s in selections if s)


def pick_hotel_winner(selections: Iterable[str | None], hotels: Sequence[Hotel]) -> HotelTally:
    """Plurality winner with a deterministic tie-break.

    Ties go to the strictly cheapest hotel. Equal or unparseable prices fall
    back to the order of the hotel list; voted ids missing from the list come
    after every listed hotel, in the order they were first voted.
    """
    counts = tally_hotel_votes(selections)
    tally = HotelTally(counts=dict(counts))
    if not counts:
        return tally

    top = max(counts.values())
    leaders = [hotel_id for hotel_id, n in counts.items() if n == top]
    list_order = {h.id: i for i, h in enumerate(hotels)}
    leaders.sort(key=lambda hid: list_order.get(hid, len(list_order)))
    tally.leaders = leaders

    if len(leaders) == 1:
        tally.winner = leaders[0]
        return tally

    by_id = {h.id: h for h in hotels}
    prices = {hid: parse_hotel_price(by_id[hid].price) if hid in by_id else math.inf for hid in leaders}
    cheapest = min(prices.values())
    # min() keeps the first of equal keys, i.e. list order
    tally.winner = min(leaders, key=lambda hid: prices[hid])
    if math.isinf(cheapest) or sum(1 for p in prices.values() if p == cheapest) > 1:
        tally.tie_broken_by = "list_order"
        logger.info(f"Hotel vote tie not settled by price among {leaders}, taking {tally.winner}")
    else:
        tally.tie_broken_by = "price"
    return tally
