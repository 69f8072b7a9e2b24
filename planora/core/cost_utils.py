"""
Cost normalization for free-form, multi-currency price strings, plus the
keyword heuristics used to estimate a trip's total cost.
"""

import re
from collections.abc import Mapping

from planora.core.schemas import ActivityType, Day, TripCostBreakdown

REFERENCE_CURRENCY = "USD"

# Units of each currency per 1 USD
STATIC_EXCHANGE_RATES: dict[str, float] = {
    "USD": 1.0,
    "JPY": 149.50,
    "EUR": 0.92,
    "GBP": 0.79,
    "INR": 83.12,
    "IDR": 15678.0,
    "MYR": 4.72,
    "THB": 35.20,
    "CNY": 7.24,
    "SGD": 1.34,
    "AUD": 1.52,
    "AED": 3.67,
}

# Scanned in order; first match wins.
CURRENCY_SYMBOLS: list[tuple[str, str]] = [
    ("¥", "JPY"),
    ("€", "EUR"),
    ("£", "GBP"),
    ("₹", "INR"),
    ("Rp", "IDR"),
    ("RM", "MYR"),
    ("฿", "THB"),
    ("$", "USD"),
]

DESTINATION_CURRENCIES: dict[str, str] = {
    "Indonesia": "IDR",
    "Jakarta": "IDR",
    "Bali": "IDR",
    "Malaysia": "MYR",
    "Kuala Lumpur": "MYR",
    "Thailand": "THB",
    "Bangkok": "THB",
    "Singapore": "SGD",
    "Japan": "JPY",
    "Tokyo": "JPY",
    "France": "EUR",
    "Paris": "EUR",
    "Spain": "EUR",
    "Barcelona": "EUR",
    "Italy": "EUR",
    "Rome": "EUR",
    "Germany": "EUR",
    "United Kingdom": "GBP",
    "England": "GBP",
    "London": "GBP",
    "UK": "GBP",
    "UAE": "AED",
    "Dubai": "AED",
    "Australia": "AUD",
    "Sydney": "AUD",
    "United States": "USD",
    "New York": "USD",
    "USA": "USD",
}

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def detect_currency(text: str) -> str:
    """Return the currency code of the first known symbol found in ``text``."""
    for symbol, code in CURRENCY_SYMBOLS:
        if symbol in text:
            return code
    return REFERENCE_CURRENCY


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_cost(text: str | None, rates: Mapping[str, float] | None = None) -> float:
    """
    Parse a free-form cost string into an amount in the reference currency.

    Examples:
        "$20" -> 20.0
        "¥1000" -> 1000 / 149.5
        "€15-25" -> 20 / 0.92
        "free", "" -> 0.0

    Never raises; anything unparseable is 0.
    """
    if not text:
        return 0.0

    currency = detect_currency(text)
    cleaned = _NON_NUMERIC.sub("", text).strip()

    if "-" in cleaned:
        low, _, high = cleaned.partition("-")
        high = high.split("-")[0]
        amount = (_to_float(low) + _to_float(high)) / 2
    else:
        amount = _to_float(cleaned)

    table = rates if rates is not None else STATIC_EXCHANGE_RATES
    rate = table.get(currency) or 1.0
    return amount / rate


def estimate_meal_cost(price_level: int | None) -> float:
    """Midpoint of the USD bracket for a Places price level (1-4)."""
    brackets = {1: 7.5, 2: 17.5, 3: 37.5, 4: 75.0}
    return brackets.get(price_level, 15.0)


FREE_ACTIVITY_KEYWORDS = (
    "walk",
    "explore",
    "stroll",
    "view",
    "photo",
    "check-in",
    "check-out",
    "arrive",
    "depart",
)
EXPERIENCE_KEYWORDS = ("tour", "cruise", "experience")
ATTRACTION_KEYWORDS = ("museum", "temple", "palace", "tower", "shrine", "visit")
SHOPPING_KEYWORDS = ("shop", "market")


def estimate_activity_cost(activity) -> float:
    """Heuristic USD cost of a non-meal, non-hotel activity by title keyword."""
    activity_type = getattr(activity, "type", None)
    if activity_type in (ActivityType.MEAL, ActivityType.HOTEL, ActivityType.MOSQUE):
        return 0.0

    title = (getattr(activity, "title", "") or "").lower()

    if any(k in title for k in FREE_ACTIVITY_KEYWORDS):
        return 0.0
    if any(k in title for k in EXPERIENCE_KEYWORDS):
        return 40.0
    if any(k in title for k in ATTRACTION_KEYWORDS):
        return 20.0
    if any(k in title for k in SHOPPING_KEYWORDS):
        return 30.0
    return 25.0


def estimate_transport_cost(mode: str | None) -> float:
    """Heuristic USD cost of one transport leg by mode keyword."""
    if not mode:
        return 0.0

    mode = mode.lower()
    if "walk" in mode:
        return 0.0
    if "transit" in mode or "train" in mode or "subway" in mode:
        return 3.0
    if "taxi" in mode or "uber" in mode or "grab" in mode:
        return 15.0
    if "drive" in mode or "driving" in mode or "car" in mode:
        return 10.0
    return 5.0


def calculate_trip_costs(
    days: list[Day],
    hotel_price_per_night: float = 0.0,
    number_of_travelers: int = 1,
    currency: str = REFERENCE_CURRENCY,
    rates: Mapping[str, float] | None = None,
) -> TripCostBreakdown:
    """Aggregate accommodation, activity, meal and transport costs (USD)."""
    nights = max(len(days) - 1, 1)
    accommodation = hotel_price_per_night * nights
    activities_cost = 0.0
    meals_cost = 0.0
    transport_cost = 0.0

    for day in days:
        for activity in day.activities:
            if activity.type == ActivityType.MEAL:
                options = activity.restaurant_options or []
                if options:
                    meals_cost += sum(estimate_meal_cost(r.price_level) for r in options) / len(
                        options
                    )
                else:
                    meals_cost += 15.0
            else:
                activities_cost += estimate_activity_cost(activity)

            leg = activity.transport_to_next
            if leg:
                if leg.cost:
                    transport_cost += parse_cost(leg.cost, rates)
                else:
                    transport_cost += estimate_transport_cost(leg.mode)

    total = accommodation + activities_cost + meals_cost + transport_cost

    return TripCostBreakdown(
        accommodation=round(accommodation, 2),
        activities=round(activities_cost, 2),
        meals=round(meals_cost, 2),
        transportation=round(transport_cost, 2),
        total=round(total, 2),
        currency=currency,
        per_person=round(total / number_of_travelers, 2) if number_of_travelers > 1 else None,
        per_day=round(total / len(days), 2) if days else None,
    )


def detect_currency_from_destination(destination: str) -> str:
    dest = destination.lower()
    for keyword, code in DESTINATION_CURRENCIES.items():
        if keyword.lower() in dest:
            return code
    return REFERENCE_CURRENCY


def convert_currency(
    amount: float,
    from_currency: str,
    to_currency: str,
    rates: Mapping[str, float] | None = None,
) -> float:
    """Convert via USD, rounding the way each currency is usually displayed."""
    table = rates if rates is not None else STATIC_EXCHANGE_RATES
    usd = amount / (table.get(from_currency) or 1.0)
    converted = usd * (table.get(to_currency) or 1.0)

    if to_currency in ("IDR", "JPY"):
        return round(converted / 100) * 100
    if to_currency in ("MYR", "SGD", "THB"):
        return round(converted)
    return round(converted, 2)
