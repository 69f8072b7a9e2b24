"""
Keyword classification of free-text activities.

Generator output is free text, so these checks are heuristic by nature.
Every stage that needs to know "is this a meal / check-out / arrival" goes
through here so they agree on the vocabulary.
"""

import re
from enum import Enum

from planora.core.schemas import Activity, ActivityType, MealType


class ActivityKind(str, Enum):
    ARRIVAL = "arrival"
    CHECK_IN = "check_in"
    MEAL = "meal"
    MOSQUE = "mosque"
    SIGHTSEEING = "sightseeing"
    CHECK_OUT = "check_out"
    DEPARTURE = "departure"


MEAL_KEYWORDS: dict[MealType, tuple[str, ...]] = {
    MealType.BREAKFAST: ("breakfast", "brunch", "morning meal", "sarapan"),
    MealType.LUNCH: ("lunch", "makan siang"),
    MealType.DINNER: ("dinner", "supper", "makan malam"),
}

GENERIC_MEAL_KEYWORDS = ("snack", "eat at", "dine at", "meal at", "food at")

CHECK_IN_KEYWORDS = (
    "check-in",
    "check in",
    "check into",
    "transfer to hotel",
    "hotel arrival",
    "settle into hotel",
    "arrive at accommodation",
)

# Two-word "check out" only before of/from/and, punctuation or the end, or after "hotel"
CHECK_OUT_PATTERN = re.compile(
    r"\bcheck-?out\b"
    r"|\bcheck out\b(?=\s*(?:$|of\b|from\b|and\b|&|,|\(|-))"
    r"|\bhotel\b.*\bcheck out\b"
)

DEPARTURE_PATTERN = re.compile(r"\bdepart(?:s|ed|ing|ure)?\b")


def _title(activity: Activity) -> str:
    return (activity.title or "").lower()


def _location(activity: Activity) -> str:
    return (activity.location or "").lower()


def detect_meal_type(activity: Activity) -> MealType | None:
    if activity.meal_type is not None:
        return activity.meal_type

    title = _title(activity)
    for meal_type, keywords in MEAL_KEYWORDS.items():
        if any(k in title for k in keywords):
            return meal_type
    return None


def is_meal_activity(activity: Activity) -> bool:
    if activity.type == ActivityType.MEAL or activity.restaurant_options:
        return True
    if detect_meal_type(activity) is not None:
        return True
    title = _title(activity)
    return any(k in title for k in GENERIC_MEAL_KEYWORDS)


def is_breakfast(activity: Activity) -> bool:
    return detect_meal_type(activity) == MealType.BREAKFAST


def is_arrival_activity(activity: Activity) -> bool:
    title = _title(activity)
    return (
        "arrive at" in title
        or "arrival" in title
        or ("airport" in title and "arrive" in title)
        or ("airport" in _location(activity) and "arrive" in title)
    )


def is_departure_activity(activity: Activity) -> bool:
    title = _title(activity)
    return (
        DEPARTURE_PATTERN.search(title) is not None
        or ("airport" in title and ("leave" in title or "fly" in title))
        or ("fly home" in title)
    )


def is_check_in_activity(activity: Activity) -> bool:
    title = _title(activity)
    return any(k in title for k in CHECK_IN_KEYWORDS)


def is_check_out_activity(activity: Activity) -> bool:
    title = _title(activity)
    return CHECK_OUT_PATTERN.search(title) is not None


def classify_activity(activity: Activity) -> ActivityKind:
    """Map an activity onto the closed set of kinds the pipeline orders by."""
    if activity.type == ActivityType.MOSQUE:
        return ActivityKind.MOSQUE
    if is_meal_activity(activity):
        return ActivityKind.MEAL
    if is_departure_activity(activity):
        return ActivityKind.DEPARTURE
    if is_check_out_activity(activity):
        return ActivityKind.CHECK_OUT
    if is_arrival_activity(activity):
        return ActivityKind.ARRIVAL
    if is_check_in_activity(activity):
        return ActivityKind.CHECK_IN
    return ActivityKind.SIGHTSEEING


def activity_type_for(kind: ActivityKind) -> ActivityType:
    if kind == ActivityKind.MEAL:
        return ActivityType.MEAL
    if kind == ActivityKind.MOSQUE:
        return ActivityType.MOSQUE
    if kind in (ActivityKind.CHECK_IN, ActivityKind.CHECK_OUT):
        return ActivityType.HOTEL
    return ActivityType.ACTIVITY


def normalize_activity(activity: Activity) -> Activity:
    """Fill in ``type`` and ``meal_type`` on a generator activity."""
    kind = classify_activity(activity)
    updates: dict = {}
    if activity.type == ActivityType.ACTIVITY and activity_type_for(kind) != ActivityType.ACTIVITY:
        updates["type"] = activity_type_for(kind)
    if kind == ActivityKind.MEAL and activity.meal_type is None:
        meal_type = detect_meal_type(activity)
        if meal_type is not None:
            updates["meal_type"] = meal_type
    return activity.model_copy(update=updates) if updates else activity
