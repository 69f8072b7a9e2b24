"""
Meal slot selection and restaurant insertion for a single day.

The planner never mutates the cross-day ledger: it reads exclusions from it
and reports what it used, and the orchestrator folds that back in once the
day has resolved.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from planora.core.activity_classifier import (
    detect_meal_type,
    is_arrival_activity,
    is_departure_activity,
    is_meal_activity,
)
from planora.core.async_utils import with_timeout
from planora.core.dietary_filters import passes_dietary_filters
from planora.core.providers import RestaurantProvider
from planora.core.schemas import (
    MEAL_ORDER,
    Activity,
    ActivityType,
    Coordinates,
    DietaryPreferences,
    MealType,
    Restaurant,
)
from planora.core.travel_time_utils import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

MAX_RESTAURANT_OPTIONS = 3

PRICE_LEVEL_TEXT = {1: "$", 2: "$$", 3: "$$$", 4: "$$$$"}


# =============================================================================
# Meal times
# =============================================================================


@dataclass(frozen=True)
class MealTimePolicy:
    """Slot heuristics, in minutes after midnight unless noted."""

    skip_arrival_breakfast: bool = True
    breakfast_time: int = 8 * 60
    breakfast_cutoff: int = 9 * 60
    breakfast_lead: int = 30

    lunch_time: int = 12 * 60 + 30
    lunch_window: tuple[int, int] = (11 * 60, 14 * 60)
    min_lunch_gap: int = 60
    departure_lunch_time: int = 14 * 60

    dinner_time: int = 19 * 60
    evening_start: int = 18 * 60
    evening_end: int = 20 * 60
    dinner_offset: int = 30
    latest_dinner_floor: int = 20 * 60 + 30


DEFAULT_MEAL_TIME_POLICY = MealTimePolicy()


@dataclass
class MealTimes:
    breakfast: str | None = None
    lunch: str | None = None
    dinner: str | None = None

    def get(self, meal_type: MealType) -> str | None:
        return getattr(self, meal_type.value)


def _existing_meal_types(activities: list[Activity]) -> set[MealType]:
    found = set()
    for activity in activities:
        if is_meal_activity(activity):
            meal_type = detect_meal_type(activity)
            if meal_type is not None:
                found.add(meal_type)
    return found


def determine_meal_times(
    activities: list[Activity], policy: MealTimePolicy = DEFAULT_MEAL_TIME_POLICY
) -> MealTimes:
    """
    Pick breakfast/lunch/dinner times from the gaps in a day's schedule.

    A slot is None when the day does not get that meal: no breakfast on the
    arrival day or before an early start, no dinner on the departure
    day, and none for a meal the day already has.
    """
    timed = [(a, time_to_minutes(a.time)) for a in activities]
    timed = [(a, t) for a, t in timed if t is not None]

    if not timed:
        times = MealTimes(
            breakfast=minutes_to_time(policy.breakfast_time),
            lunch=minutes_to_time(policy.lunch_time),
            dinner=minutes_to_time(policy.dinner_time),
        )
        if activities and policy.skip_arrival_breakfast and is_arrival_activity(activities[0]):
            times.breakfast = None
        return _drop_existing(times, activities)

    first_activity, first_time = timed[0]
    _, last_time = timed[-1]
    times = MealTimes()

    if not (policy.skip_arrival_breakfast and is_arrival_activity(first_activity)):
        if first_time >= policy.breakfast_cutoff:
            times.breakfast = minutes_to_time(policy.breakfast_time)
        elif first_time >= policy.breakfast_time:
            times.breakfast = minutes_to_time(first_time - policy.breakfast_lead)

    if any(is_departure_activity(a) for a, _ in timed):
        # Departure is moved to the early evening, so the day ends after lunch
        times.lunch = minutes_to_time(policy.departure_lunch_time)
        return _drop_existing(times, activities)

    times.lunch = minutes_to_time(_lunch_minutes(timed, policy))

    if last_time < policy.evening_start:
        times.dinner = minutes_to_time(policy.dinner_time)
    elif last_time <= policy.evening_end:
        times.dinner = minutes_to_time(last_time + policy.dinner_offset)
    else:
        times.dinner = minutes_to_time(
            max(last_time + policy.dinner_offset, policy.latest_dinner_floor)
        )

    return _drop_existing(times, activities)


def _lunch_minutes(timed: list[tuple[Activity, int]], policy: MealTimePolicy) -> int:
    window_start, window_end = policy.lunch_window
    pairs = list(zip(timed, timed[1:]))

    # A gap spanning the whole window gets the standard lunch time
    for (_, current), (_, following) in pairs:
        if current <= window_start and following >= window_end:
            return policy.lunch_time

    for (_, current), (_, following) in pairs:
        gap = following - current
        if window_start <= current <= window_end and gap >= policy.min_lunch_gap:
            return current + gap // 2

    return policy.lunch_time


def _drop_existing(times: MealTimes, activities: list[Activity]) -> MealTimes:
    for meal_type in _existing_meal_types(activities):
        setattr(times, meal_type.value, None)
    return times


# =============================================================================
# Cross-day ledger
# =============================================================================


def _restaurant_keys(restaurant: Restaurant) -> list[str]:
    return [restaurant.place_id, restaurant.name.lower()]


class RestaurantLedger:
    """
    Restaurants already used per meal type across the itinerary.

    Keys are place ids and lowercased names, kept in insertion order.
    """

    def __init__(self) -> None:
        self._used: dict[MealType, dict[str, None]] = {m: {} for m in MEAL_ORDER}

    def exclusions(self, meal_type: MealType) -> frozenset[str]:
        return frozenset(self._used[meal_type])

    def record(self, used: dict[MealType, list[str]]) -> None:
        for meal_type, keys in used.items():
            for key in keys:
                self._used[meal_type].setdefault(key, None)

    def as_dict(self) -> dict[str, list[str]]:
        return {m.value: list(self._used[m]) for m in MEAL_ORDER}


@dataclass
class MealPlanResult:
    activities: list[Activity]
    used_restaurants: dict[MealType, list[str]] = field(
        default_factory=lambda: {m: [] for m in MEAL_ORDER}
    )


# =============================================================================
# Selection and insertion
# =============================================================================


def select_restaurants(
    candidates: list[Restaurant],
    dietary: DietaryPreferences,
    excluded: frozenset[str],
    used_today: set[str],
) -> tuple[list[Restaurant], bool]:
    """
    Choose up to three options in source order.

    Returns ``(options, repeated)``. Ledger exclusions are relaxed only when
    nothing else is left, in which case ``repeated`` is True; a restaurant
    already used earlier the same day is never offered again.
    """
    eligible = [
        c
        for c in candidates
        if passes_dietary_filters(c, dietary)
        and not any(k in used_today for k in _restaurant_keys(c))
    ]
    fresh = [c for c in eligible if not any(k in excluded for k in _restaurant_keys(c))]

    if fresh:
        return fresh[:MAX_RESTAURANT_OPTIONS], False
    if eligible:
        return eligible[:MAX_RESTAURANT_OPTIONS], True
    return [], False


def meal_anchor(activities: list[Activity], meal_type: MealType) -> Coordinates | None:
    """First, middle or last non-meal activity with coordinates."""
    anchors = [a for a in activities if a.coordinates is not None and not is_meal_activity(a)]
    if not anchors:
        return None
    if meal_type == MealType.BREAKFAST:
        return anchors[0].coordinates
    if meal_type == MealType.LUNCH:
        return anchors[len(anchors) // 2].coordinates
    return anchors[-1].coordinates


def find_insert_position(activities: list[Activity], meal_time: str) -> int:
    """Index of the first activity scheduled after ``meal_time``."""
    meal_minutes = time_to_minutes(meal_time)
    if meal_minutes is None:
        return len(activities)
    for index, activity in enumerate(activities):
        minutes = time_to_minutes(activity.time)
        if minutes is not None and minutes > meal_minutes:
            return index
    return len(activities)


def build_meal_activity(
    meal_type: MealType,
    time: str,
    options: list[Restaurant],
    day_index: int,
    repeated: bool = False,
) -> Activity:
    top = options[0]
    details = [", ".join(top.cuisine), PRICE_LEVEL_TEXT.get(top.price_level or 0, ""), top.distance]
    return Activity(
        id=f"meal-{meal_type.value}-day{day_index}",
        title=f"{meal_type.value.capitalize()} at {top.name}",
        time=time,
        location=top.vicinity,
        type=ActivityType.MEAL,
        meal_type=meal_type,
        description=" • ".join(d for d in details if d),
        coordinates=top.coordinates,
        restaurant_options=options,
        repeated_restaurant=repeated,
        rating=top.rating,
        photo_reference=top.photo_reference,
        place_id=top.place_id,
    )


async def insert_meals_for_day(
    activities: list[Activity],
    day_index: int,
    destination: str,
    budget: str,
    dietary: DietaryPreferences,
    interests: list[str],
    meal_times: MealTimes,
    ledger: RestaurantLedger,
    provider: RestaurantProvider,
    lookup_timeout: float,
) -> MealPlanResult:
    """
    Insert a meal activity for every due slot of one day.

    A slot whose lookup fails, times out or finds nothing inserts nothing
    and reports no used restaurants.
    """
    result = MealPlanResult(activities=list(activities))
    used_today: set[str] = set()

    for meal_type in MEAL_ORDER:
        meal_time = meal_times.get(meal_type)
        if meal_time is None:
            continue

        near = meal_anchor(result.activities, meal_type)
        candidates = await with_timeout(
            asyncio.to_thread(
                provider.search_restaurants,
                destination,
                meal_type,
                budget,
                dietary,
                interests,
                near,
            ),
            lookup_timeout,
            None,
            label=f"Day {day_index} {meal_type.value} lookup",
        )
        if candidates is None:
            continue

        options, repeated = select_restaurants(
            candidates, dietary, ledger.exclusions(meal_type), used_today
        )
        if not options:
            logger.info(f"No restaurant available for day {day_index} {meal_type.value}")
            continue
        if repeated:
            logger.info(f"Day {day_index} {meal_type.value}: candidates exhausted, repeating")

        meal = build_meal_activity(meal_type, meal_time, options, day_index, repeated)
        result.activities.insert(find_insert_position(result.activities, meal_time), meal)

        for option in options:
            keys = _restaurant_keys(option)
            used_today.update(keys)
            result.used_restaurants[meal_type].extend(keys)

    return result
