import pytest

from planora.core.geo_utils import haversine_distance, walking_minutes
from planora.core.travel_time_utils import (
    add_minutes_to_time,
    determine_best_mode,
    estimate_leg_cost,
    format_distance,
    time_to_minutes,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("08:30", 510),
        ("8:05", 485),
        ("12:00 PM", 720),
        ("12:15 AM", 15),
        ("7:45 pm", 1185),
        ("Morning", None),
        ("25:00", None),
        ("", None),
        (None, None),
    ],
)
def test_time_to_minutes(text, expected):
    assert time_to_minutes(text) == expected


def test_add_minutes_wraps_and_keeps_unparseable():
    assert add_minutes_to_time("23:45", 30) == "00:15"
    assert add_minutes_to_time("Flexible", 30) == "Flexible"


@pytest.mark.parametrize(
    "meters, city, expected",
    [
        (500, "Jakarta", "walking"),
        (5000, "Jakarta, Indonesia", "transit"),
        (5000, "Surabaya", "taxi"),
        (25000, "Tokyo", "driving"),
    ],
)
def test_determine_best_mode(meters, city, expected):
    assert determine_best_mode(meters, city) == expected


def test_estimate_leg_cost():
    assert estimate_leg_cost("walking", 300, "ID") == "Free"
    assert estimate_leg_cost("transit", 5000, "JP") == "¥200-400"
    assert estimate_leg_cost("taxi", 5000, "ID") == "~Rp27000"


def test_distance_helpers():
    # Monas to Istiqlal is roughly 1 km
    meters = haversine_distance(-6.1754, 106.8272, -6.1702, 106.8314)
    assert 600 < meters < 1000
    assert format_distance(meters).endswith(" m")
    assert format_distance(1500) == "1.5 km"
    assert walking_minutes(800) == 10
