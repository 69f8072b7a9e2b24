"""
Utilities for display times and travel estimates between activities.
"""

import math
import re

_TWELVE_HOUR = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM|am|pm)$")
_TWENTY_FOUR_HOUR = re.compile(r"^(\d{1,2}):(\d{2})$")


def time_to_minutes(time_str: str | None) -> int | None:
    """
    Parse a display time into minutes after midnight.

    Accepts "HH:MM" and "H:MM AM/PM". Returns None for anything else
    (e.g. "Morning", "Flexible").
    """
    if not time_str:
        return None
    text = time_str.strip()

    match = _TWENTY_FOUR_HOUR.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return hour * 60 + minute

    match = _TWELVE_HOUR.match(text)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 12 or minute > 59:
            return None
        meridiem = match.group(3).upper()
        if meridiem == "AM":
            if hour == 12:
                hour = 0
        elif hour != 12:
            hour += 12
        return hour * 60 + minute

    return None


def minutes_to_time(minutes: int) -> str:
    """Format minutes after midnight as "HH:MM", wrapping past midnight."""
    minutes = minutes % (24 * 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes_to_time(time_str: str, minutes: int) -> str:
    """Shift a display time; unparseable times are returned unchanged."""
    parsed = time_to_minutes(time_str)
    if parsed is None:
        return time_str
    return minutes_to_time(parsed + minutes)


# =============================================================================
# Travel estimates
# =============================================================================

METRO_CITIES = [
    "Tokyo",
    "Paris",
    "London",
    "New York",
    "Singapore",
    "Hong Kong",
    "Seoul",
    "Bangkok",
    "Kuala Lumpur",
    "Dubai",
    "Barcelona",
    "Madrid",
    "Berlin",
    "Rome",
    "Milan",
    "Jakarta",
]

TRANSIT_FARES: dict[str, str] = {
    "JP": "¥200-400",
    "FR": "€1.90",
    "GB": "£2.50",
    "US": "$2.75",
    "SG": "S$1.50",
    "MY": "RM2-4",
    "TH": "฿15-45",
    "ID": "Rp3500-14000",
    "AE": "AED3-7",
    "HK": "HK$10",
    "KR": "₩1,350",
    "ES": "€2.40",
    "DE": "€3.00",
    "IT": "€1.50",
    "default": "$2-5",
}

# (base fare, per km, symbol)
TAXI_TARIFFS: dict[str, tuple[float, float, str]] = {
    "JP": (500, 80, "¥"),
    "FR": (7, 1.5, "€"),
    "GB": (3, 2, "£"),
    "US": (3, 2, "$"),
    "SG": (3.5, 0.55, "S$"),
    "MY": (4, 0.8, "RM"),
    "TH": (35, 7, "฿"),
    "ID": (7000, 4000, "Rp"),
    "AE": (12, 1.8, "AED"),
    "default": (5, 1.5, "$"),
}

COUNTRY_CODES: dict[str, str] = {
    "Tokyo": "JP",
    "Japan": "JP",
    "Osaka": "JP",
    "Kyoto": "JP",
    "Paris": "FR",
    "France": "FR",
    "London": "GB",
    "United Kingdom": "GB",
    "New York": "US",
    "USA": "US",
    "Singapore": "SG",
    "Kuala Lumpur": "MY",
    "Malaysia": "MY",
    "Penang": "MY",
    "Bangkok": "TH",
    "Thailand": "TH",
    "Phuket": "TH",
    "Jakarta": "ID",
    "Indonesia": "ID",
    "Bali": "ID",
    "Dubai": "AE",
    "UAE": "AE",
    "Hong Kong": "HK",
    "Seoul": "KR",
    "Korea": "KR",
    "Barcelona": "ES",
    "Madrid": "ES",
    "Spain": "ES",
    "Berlin": "DE",
    "Germany": "DE",
    "Rome": "IT",
    "Milan": "IT",
    "Italy": "IT",
}

# meters per hour
TRAVEL_SPEEDS = {
    "walking": 5000,
    "transit": 30000,
    "taxi": 40000,
    "driving": 50000,
}

MODE_NAMES = {
    "walking": "Walk",
    "transit": "Public Transit",
    "taxi": "Taxi",
    "driving": "Drive",
    "bicycle": "Bicycle",
    "ferry": "Ferry",
    "flight": "Flight",
}


def get_country_code(destination: str) -> str:
    dest = destination.lower()
    for keyword, code in COUNTRY_CODES.items():
        if keyword.lower() in dest:
            return code
    return "default"


def has_metro(city_name: str) -> bool:
    city = city_name.lower()
    return any(metro.lower() in city for metro in METRO_CITIES)


def determine_best_mode(distance_m: float, city_name: str) -> str:
    """Pick walking / transit / taxi / driving from straight-line distance."""
    if distance_m < 800:
        return "walking"
    if distance_m < 20000:
        return "transit" if has_metro(city_name) else "taxi"
    return "driving"


def estimate_duration_minutes(distance_m: float, mode: str) -> int:
    speed = TRAVEL_SPEEDS.get(mode, TRAVEL_SPEEDS["taxi"])
    return max(1, math.ceil(distance_m / speed * 60))


def estimate_leg_cost(mode: str, distance_m: float, country_code: str) -> str:
    if mode == "walking":
        return "Free"
    if mode == "transit":
        return TRANSIT_FARES.get(country_code, TRANSIT_FARES["default"])
    if mode in ("taxi", "driving"):
        base, per_km, symbol = TAXI_TARIFFS.get(country_code, TAXI_TARIFFS["default"])
        return f"~{symbol}{math.ceil(base + distance_m / 1000 * per_km)}"
    return "N/A"


def format_distance(distance_m: float) -> str:
    if distance_m >= 1000:
        return f"{distance_m / 1000:.1f} km"
    return f"{round(distance_m)} m"
