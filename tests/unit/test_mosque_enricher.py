import pytest

from planora.core.mosque_enricher import MosqueSearchPolicy, enrich_day_with_mosques, enrich_with_mosques
from planora.core.schemas import ActivityType, Day, MealType, NearbyPlace
from tests.fakes import JAKARTA, FakeMosques, make_activity, offset

POLICY = MosqueSearchPolicy(lookup_delay=0.0, meal_timeout=1.0)


def _meal(meal_type: MealType, time: str, coords=JAKARTA):
    return make_activity(
        f"{meal_type.value.capitalize()} at Warung {time}",
        time,
        coords,
        type=ActivityType.MEAL,
        meal_type=meal_type,
    )


def _day(number: int = 1) -> Day:
    return Day(
        day=number,
        activities=[
            _meal(MealType.BREAKFAST, "08:00"),
            make_activity("National Monument", "09:30", offset(JAKARTA, 0.01)),
            _meal(MealType.LUNCH, "12:30"),
            make_activity("Kota Tua", "15:00", offset(JAKARTA, 0.02)),
            _meal(MealType.DINNER, "19:00"),
        ],
    )


def _mosques(day: Day):
    return [a for a in day.activities if a.type == ActivityType.MOSQUE]


@pytest.mark.asyncio
async def test_mosque_follows_each_non_breakfast_meal():
    day = await enrich_day_with_mosques(_day(), FakeMosques(), POLICY)

    titles = [a.title for a in day.activities]
    assert titles[:4] == ["Breakfast at Warung 08:00", "National Monument", "Lunch at Warung 12:30", "Nearby Mosque: Masjid 0"]
    assert titles[5:] == ["Dinner at Warung 19:00", "Nearby Mosque: Masjid 1"]

    lunch_mosque = day.activities[3]
    assert lunch_mosque.id == "mosque-day1-mosque-0"
    assert lunch_mosque.time == "12:30"
    assert lunch_mosque.walking_time == "6 min walk"
    assert lunch_mosque.description == "0.4 km from Lunch at Warung 12:30"


@pytest.mark.asyncio
async def test_radius_expands_until_a_mosque_is_found():
    far = NearbyPlace(name="Masjid Jauh", place_id="far", coordinates=offset(JAKARTA, 0.05))
    provider = FakeMosques(places=[(far, 6000)])
    day = Day(day=1, activities=[_meal(MealType.LUNCH, "12:30")])

    day = await enrich_day_with_mosques(day, provider, POLICY)

    assert provider.radii == [2000, 4000, 6000]
    assert _mosques(day)[0].place_id == "far"


@pytest.mark.asyncio
async def test_no_mosque_repeats_within_a_day():
    only = NearbyPlace(name="Masjid Istiqlal", place_id="istiqlal", coordinates=JAKARTA)
    provider = FakeMosques(places=[(only, 2000)])

    day = await enrich_day_with_mosques(_day(), provider, POLICY)

    assert [m.place_id for m in _mosques(day)] == ["istiqlal"]
    # Dinner searched every radius up to the cap before giving up
    assert provider.radii[1:] == [2000, 4000, 6000, 8000, 10000]


@pytest.mark.asyncio
async def test_used_set_resets_each_day():
    days = await enrich_with_mosques([_day(1), _day(2)], True, FakeMosques(), POLICY)
    assert [m.place_id for m in _mosques(days[0])] == ["mosque-0", "mosque-1"]
    assert [m.place_id for m in _mosques(days[1])] == ["mosque-0", "mosque-1"]


@pytest.mark.asyncio
async def test_missing_walking_distance_skips_the_mosque():
    day = await enrich_day_with_mosques(_day(), FakeMosques(walk_ok=False), POLICY)
    assert _mosques(day) == []


@pytest.mark.asyncio
async def test_meal_without_coordinates_is_skipped():
    day = Day(day=1, activities=[_meal(MealType.LUNCH, "12:30", coords=None)])
    provider = FakeMosques()

    day = await enrich_day_with_mosques(day, provider, POLICY)

    assert _mosques(day) == []
    assert provider.radii == []


@pytest.mark.asyncio
async def test_enrichment_is_idempotent():
    once = await enrich_with_mosques([_day()], True, FakeMosques(), POLICY)
    twice = await enrich_with_mosques(once, True, FakeMosques(), POLICY)
    assert twice == once


@pytest.mark.asyncio
async def test_identity_when_not_halal_or_no_provider():
    days = [_day()]
    assert await enrich_with_mosques(days, False, FakeMosques(), POLICY) is days
    assert await enrich_with_mosques(days, True, None, POLICY) is days
