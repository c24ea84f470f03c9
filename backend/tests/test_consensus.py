import math

import pytest

from groupvoyage.schemas.itinerary import Hotel
from groupvoyage.services.consensus import (
    parse_hotel_price,
    pick_hotel_winner,
    regeneration_reached,
    regeneration_threshold,
)


def _hotels(*pairs):
    return [Hotel(id=hid, name=f"Hotel {hid}", price=price) for hid, price in pairs]


# ─── Regeneration threshold ───

@pytest.mark.parametrize(
    "total, expected",
    [(1, 1), (2, 2), (3, 2), (4, 2), (5, 3), (6, 3), (7, 4)],
)
def test_regeneration_threshold(total, expected):
    assert regeneration_threshold(total) == expected


def test_two_member_group_needs_both_votes():
    assert not regeneration_reached(1, 2)
    assert regeneration_reached(2, 2)


def test_five_member_group_needs_three_votes():
    assert not regeneration_reached(2, 5)
    assert regeneration_reached(3, 5)


def test_empty_group_never_triggers():
    assert not regeneration_reached(0, 0)


def test_negative_member_count_is_a_contract_error():
    with pytest.raises(ValueError):
        regeneration_threshold(-1)


# ─── Hotel vote ───

@pytest.mark.parametrize(
    "price, expected",
    [("$180/night", 180.0), ("₹12,500.50", 12500.5), ("200", 200.0), ("Contact hotel", math.inf), (None, math.inf)],
)
def test_parse_hotel_price(price, expected):
    assert parse_hotel_price(price) == expected


def test_tie_goes_to_cheaper_hotel():
    hotels = _hotels(("A", "$200"), ("B", "$150"))
    tally = pick_hotel_winner(["A", "A", "B", "B"], hotels)
    assert tally.winner == "B"
    assert tally.tie_broken_by == "price"
    assert tally.counts == {"A": 2, "B": 2}


def test_plurality_winner_without_price_lookup():
    hotels = _hotels(("A", "$900"), ("B", "$150"))
    tally = pick_hotel_winner(["A", "A", "B", None], hotels)
    assert tally.winner == "A"
    assert tally.tie_broken_by is None


def test_unparseable_price_loses_to_valid_price():
    hotels = _hotels(("A", "Contact hotel"), ("B", "$400"))
    assert pick_hotel_winner(["A", "B"], hotels).winner == "B"


def test_all_prices_unparseable_falls_back_to_list_order():
    hotels = _hotels(("A", "n/a"), ("B", "ask"), ("C", "tbd"))
    tally = pick_hotel_winner(["C", "B"], hotels)
    assert tally.winner == "B"
    assert tally.tie_broken_by == "list_order"


def test_equal_prices_fall_back_to_list_order():
    hotels = _hotels(("A", "$150"), ("B", "$150"))
    tally = pick_hotel_winner(["B", "A"], hotels)
    assert tally.winner == "A"
    assert tally.tie_broken_by == "list_order"


def test_no_votes_no_winner():
    tally = pick_hotel_winner([None, None], _hotels(("A", "$1")))
    assert tally.winner is None
    assert tally.counts == {}


def test_voted_hotel_missing_from_list_ranks_last():
    hotels = _hotels(("A", "$300"))
    tally = pick_hotel_winner(["ghost", "A"], hotels)
    assert tally.leaders == ["A", "ghost"]
    assert tally.winner == "A"
