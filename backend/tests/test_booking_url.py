from datetime import date

import pytest

from groupvoyage.services.booking_url import build_booking_url

GOLDEN_URL = (
    "https://flights.booking.com/flights/MAA.AIRPORT-JFK.AIRPORT/"
    "?type=ROUNDTRIP&adults=1&cabinClass=ECONOMY&children="
    "&from=MAA.AIRPORT&to=JFK.AIRPORT&fromCountry=IN&toCountry=US"
    "&depart=2025-07-26&return=2025-08-02&sort=BEST&travelPurpose=leisure&ca_source=flights_index_sb"
)


def test_golden_url():
    url = build_booking_url("MAA", "JFK", "2025-07-26", "2025-08-02", 1, "ECONOMY")
    assert url == GOLDEN_URL


def test_dates_and_strings_give_identical_urls():
    a = build_booking_url("MAA", "JFK", date(2025, 7, 26), date(2025, 8, 2))
    b = build_booking_url("maa", "jfk", "2025-07-26", "2025-08-02", adult_count=1, cabin_class="economy")
    assert a == b == GOLDEN_URL


def test_repeated_calls_are_byte_identical():
    urls = {build_booking_url("DEL", "LHR", "2025-09-01", "2025-09-10", 4, "BUSINESS") for _ in range(20)}
    assert len(urls) == 1
    [url] = urls
    assert "adults=4&cabinClass=BUSINESS" in url
    assert "fromCountry=IN&toCountry=GB" in url


def test_unknown_airport_country_defaults_to_us():
    url = build_booking_url("MAA", "QQQ", "2025-07-26", "2025-08-02")
    assert "toCountry=US" in url


def test_custom_base_url():
    url = build_booking_url("MAA", "JFK", "2025-07-26", "2025-08-02", base_url="https://example.test/f/")
    assert url.startswith("https://example.test/f/MAA.AIRPORT-JFK.AIRPORT/?type=ROUNDTRIP")


@pytest.mark.parametrize(
    "args",
    [
        ("", "JFK", "2025-07-26", "2025-08-02"),
        ("MAA", None, "2025-07-26", "2025-08-02"),
        ("MAAX", "JFK", "2025-07-26", "2025-08-02"),
        ("MAA", "JFK", "26/07/2025", "2025-08-02"),
        ("MAA", "JFK", "2025-07-26", None),
    ],
)
def test_broken_call_contract_raises(args):
    with pytest.raises(ValueError):
        build_booking_url(*args)


@pytest.mark.parametrize("adults", [0, -1, True, "2"])
def test_adult_count_must_be_positive_int(adults):
    with pytest.raises(ValueError):
        build_booking_url("MAA", "JFK", "2025-07-26", "2025-08-02", adults)
