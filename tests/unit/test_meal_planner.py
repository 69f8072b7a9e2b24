import pytest

from planora.core.meal_planner import (
    MealTimePolicy,
    MealTimes,
    RestaurantLedger,
    determine_meal_times,
    find_insert_position,
    insert_meals_for_day,
    select_restaurants,
)
from planora.core.schemas import ActivityType, DietaryPreferences, MealType
from tests.fakes import JAKARTA, FakeRestaurants, make_activity, make_restaurant, offset


def _times(*pairs):
    return [make_activity(title, t) for title, t in pairs]


# =============================================================================
# Meal times
# =============================================================================


def test_meal_times_for_empty_day():
    assert determine_meal_times([]) == MealTimes("08:00", "12:30", "19:00")


def test_arrival_day_skips_breakfast_and_uses_midday_gap():
    activities = _times(
        ("Arrive at Soekarno-Hatta Airport", "10:00"),
        ("Hotel check-in", "12:00"),
        ("National Monument", "15:00"),
        ("Kota Tua", "17:00"),
    )
    assert determine_meal_times(activities) == MealTimes(None, "13:30", "19:00")


def test_full_day_with_late_evening():
    activities = _times(
        ("National Monument", "09:30"),
        ("National Museum", "10:30"),
        ("Ancol Beach", "15:00"),
        ("Night market", "20:30"),
    )
    assert determine_meal_times(activities) == MealTimes("08:00", "12:30", "21:00")


@pytest.mark.parametrize(
    "first, expected",
    [("09:00", "08:00"), ("08:30", "08:00"), ("08:45", "08:15"), ("07:30", None)],
)
def test_breakfast_depends_on_first_activity(first, expected):
    activities = _times(("Morning walk", first), ("Museum", "16:00"))
    assert determine_meal_times(activities).breakfast == expected


def test_evening_end_puts_dinner_after_last_activity():
    activities = _times(("Museum", "10:00"), ("Sunset at the harbour", "19:00"))
    assert determine_meal_times(activities).dinner == "19:30"


@pytest.mark.parametrize("departure", ["10:00", "19:00", "21:00"])
def test_departure_day_has_no_dinner(departure):
    activities = _times(("Hotel check-out", "08:30"), ("Depart for the airport", departure))
    times = determine_meal_times(activities)
    assert times.lunch == "14:00"
    assert times.dinner is None


def test_departure_day_detected_when_not_last():
    activities = _times(
        ("Depart for the airport", "10:00"),
        ("Grand Indonesia", "13:00"),
    )
    assert determine_meal_times(activities).dinner is None


def test_existing_meal_is_not_scheduled_again():
    activities = _times(
        ("National Monument", "09:30"),
        ("Lunch at Sate Khas Senayan", "12:30"),
        ("National Museum", "14:00"),
    )
    times = determine_meal_times(activities)
    assert times.lunch is None
    assert times.breakfast == "08:00"
    assert times.dinner == "19:00"


def test_policy_is_configurable():
    policy = MealTimePolicy(dinner_time=18 * 60, skip_arrival_breakfast=False)
    activities = _times(("Arrival in Jakarta", "09:00"), ("Museum", "15:00"))
    times = determine_meal_times(activities, policy)
    assert times.breakfast == "08:00"
    assert times.dinner == "18:00"


def test_find_insert_position_skips_unparseable_times():
    activities = _times(("A", "09:00"), ("B", "Afternoon"), ("C", "15:00"))
    assert find_insert_position(activities, "12:30") == 2
    assert find_insert_position(activities, "08:00") == 0
    assert find_insert_position(activities, "20:00") == 3


# =============================================================================
# Ledger and selection
# =============================================================================


def test_ledger_keeps_insertion_order_per_meal_type():
    ledger = RestaurantLedger()
    ledger.record({MealType.LUNCH: ["b", "a"]})
    ledger.record({MealType.LUNCH: ["a", "c"], MealType.DINNER: ["z"]})

    assert ledger.as_dict() == {"breakfast": [], "lunch": ["b", "a", "c"], "dinner": ["z"]}
    assert ledger.exclusions(MealType.LUNCH) == frozenset({"a", "b", "c"})


def test_select_restaurants_prefers_unused_in_source_order():
    candidates = [make_restaurant(str(i)) for i in range(5)]
    options, repeated = select_restaurants(candidates, DietaryPreferences(), frozenset({"0", "2"}), set())
    assert [r.place_id for r in options] == ["1", "3", "4"]
    assert repeated is False


def test_select_restaurants_matches_ledger_by_name():
    candidates = [make_restaurant("new-id", "Sate Khas Senayan"), make_restaurant("x", "Other")]
    options, _ = select_restaurants(candidates, DietaryPreferences(), frozenset({"sate khas senayan"}), set())
    assert [r.place_id for r in options] == ["x"]


def test_select_restaurants_falls_back_to_repeat_but_not_same_day():
    candidates = [make_restaurant("a"), make_restaurant("b")]
    options, repeated = select_restaurants(candidates, DietaryPreferences(), frozenset({"a", "b"}), {"b"})
    assert [r.place_id for r in options] == ["a"]
    assert repeated is True


def test_select_restaurants_applies_dietary_filters():
    candidates = [
        make_restaurant("1", "Skybar Jakarta", types=["bar", "restaurant"]),
        make_restaurant("2", "Wine Cellar"),
        make_restaurant("3", "Sushi Tei"),
        make_restaurant("4", "Bakmi GM"),
    ]
    options, _ = select_restaurants(
        candidates, DietaryPreferences(halal=True, seafood_allergy=True), frozenset(), set()
    )
    assert [r.place_id for r in options] == ["4"]


# =============================================================================
# Insertion
# =============================================================================


def _sightseeing_day():
    return [
        make_activity("National Monument", "09:30", offset(JAKARTA, 0.01)),
        make_activity("National Museum", "11:00", offset(JAKARTA, 0.02)),
        make_activity("Kota Tua", "16:00", offset(JAKARTA, 0.03)),
    ]


async def _insert(activities, provider, ledger=None, timeout=1.0, dietary=None):
    return await insert_meals_for_day(
        activities,
        2,
        "Jakarta, Indonesia",
        "medium",
        dietary or DietaryPreferences(),
        ["Food"],
        determine_meal_times(activities),
        ledger or RestaurantLedger(),
        provider,
        timeout,
    )


@pytest.mark.asyncio
async def test_meals_are_inserted_in_time_order():
    provider = FakeRestaurants()
    result = await _insert(_sightseeing_day(), provider)

    titles = [a.title for a in result.activities]
    assert titles == [
        "Breakfast at Restaurant breakfast-0",
        "National Monument",
        "National Museum",
        "Lunch at Restaurant lunch-0",
        "Kota Tua",
        "Dinner at Restaurant dinner-0",
    ]
    meals = [a for a in result.activities if a.type == ActivityType.MEAL]
    assert [m.id for m in meals] == ["meal-breakfast-day2", "meal-lunch-day2", "meal-dinner-day2"]
    assert all(len(m.restaurant_options) == 3 for m in meals)
    assert "breakfast-2" in result.used_restaurants[MealType.BREAKFAST]


@pytest.mark.asyncio
async def test_meal_searches_are_anchored_to_first_middle_last_activity():
    provider = FakeRestaurants()
    day = _sightseeing_day()
    await _insert(day, provider)

    anchors = {meal: near for meal, near in provider.searches}
    assert anchors[MealType.BREAKFAST] == day[0].coordinates
    assert anchors[MealType.LUNCH] == day[1].coordinates
    assert anchors[MealType.DINNER] == day[2].coordinates


@pytest.mark.asyncio
async def test_ledger_exclusions_are_respected_and_not_mutated():
    ledger = RestaurantLedger()
    ledger.record({MealType.LUNCH: ["lunch-0", "lunch-1"]})

    result = await _insert(_sightseeing_day(), FakeRestaurants(), ledger=ledger)

    lunch = next(a for a in result.activities if a.meal_type == MealType.LUNCH)
    assert [r.place_id for r in lunch.restaurant_options] == ["lunch-2", "lunch-3", "lunch-4"]
    assert lunch.repeated_restaurant is False
    assert ledger.as_dict()["lunch"] == ["lunch-0", "lunch-1"]


@pytest.mark.asyncio
async def test_exhausted_candidates_repeat_instead_of_skipping_meal():
    ledger = RestaurantLedger()
    ledger.record({MealType.DINNER: ["dinner-0", "dinner-1"]})
    provider = FakeRestaurants(count=2)

    result = await _insert(_sightseeing_day(), provider, ledger=ledger)

    dinner = next(a for a in result.activities if a.meal_type == MealType.DINNER)
    assert dinner.repeated_restaurant is True
    assert dinner.restaurant_options[0].place_id == "dinner-0"


@pytest.mark.asyncio
async def test_no_same_day_duplicate_even_when_exhausted():
    shared = [make_restaurant(f"shared-{i}") for i in range(3)]
    provider = FakeRestaurants(per_meal={m: shared for m in MealType})

    result = await _insert(_sightseeing_day(), provider)

    meals = [a for a in result.activities if a.type == ActivityType.MEAL]
    assert [m.meal_type for m in meals] == [MealType.BREAKFAST]
    assert result.used_restaurants[MealType.LUNCH] == []


@pytest.mark.asyncio
async def test_lookup_timeout_inserts_nothing_and_records_nothing():
    day = _sightseeing_day()
    result = await _insert(day, FakeRestaurants(delay=0.3), timeout=0.05)

    assert result.activities == day
    assert result.used_restaurants == {m: [] for m in MealType}


@pytest.mark.asyncio
async def test_empty_search_result_is_not_an_error():
    result = await _insert(_sightseeing_day(), FakeRestaurants(per_meal={}))
    assert len(result.activities) == 3


class DinnerOutage(FakeRestaurants):
    def search_restaurants(self, destination, meal_type, *args, **kwargs):
        if meal_type == MealType.DINNER:
            raise RuntimeError("places quota exceeded")
        return super().search_restaurants(destination, meal_type, *args, **kwargs)


@pytest.mark.asyncio
async def test_failed_meal_lookup_only_drops_that_meal():
    ledger = RestaurantLedger()
    result = await _insert(_sightseeing_day(), DinnerOutage(), ledger=ledger)

    meals = [a for a in result.activities if a.type == ActivityType.MEAL]
    assert [m.meal_type for m in meals] == [MealType.BREAKFAST, MealType.LUNCH]
    assert result.used_restaurants[MealType.DINNER] == []
    assert result.used_restaurants[MealType.BREAKFAST][:2] == ["breakfast-0", "restaurant breakfast-0"]
    assert result.used_restaurants[MealType.LUNCH]

    ledger.record(result.used_restaurants)
    assert ledger.exclusions(MealType.DINNER) == frozenset()
    assert "lunch-0" in ledger.exclusions(MealType.LUNCH)
