"""
Nearby mosque insertion after meals for halal trips.
"""

import asyncio
import logging
from dataclasses import dataclass

from planora.core.activity_classifier import is_breakfast, is_meal_activity
from planora.core.async_utils import with_timeout
from planora.core.providers import MosqueProvider
from planora.core.schemas import Activity, ActivityType, Coordinates, Day, NearbyPlace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MosqueSearchPolicy:
    initial_radius: int = 2000
    radius_step: int = 2000
    max_radius: int = 10000
    lookup_delay: float = 0.3
    meal_timeout: float = 8.0


def _place_keys(place_id: str | None, name: str | None) -> list[str]:
    return [k for k in (place_id, (name or "").lower()) if k]


def _is_used(place: NearbyPlace, used: set[str]) -> bool:
    # Identifier first, name second
    if place.place_id and place.place_id in used:
        return True
    return place.name.lower() in used


def _walking_time(duration: str) -> str:
    return f"{duration.replace('mins', 'min')} walk"


async def find_unique_mosque(
    provider: MosqueProvider,
    location: Coordinates,
    used: set[str],
    policy: MosqueSearchPolicy,
) -> NearbyPlace | None:
    """Widen the search radius until a mosque not in ``used`` turns up."""
    radius = policy.initial_radius
    while radius <= policy.max_radius:
        places = await asyncio.to_thread(provider.find_nearby_mosques, location, radius)
        for place in places:
            if not _is_used(place, used):
                return place
        radius += policy.radius_step
    return None


def build_mosque_activity(
    place: NearbyPlace, meal: Activity, distance: str, duration: str, day_index: int
) -> Activity:
    return Activity(
        id=f"mosque-day{day_index}-{place.place_id or place.name.lower().replace(' ', '-')}",
        title=f"Nearby Mosque: {place.name}",
        time=meal.time,
        location=place.address or place.name,
        type=ActivityType.MOSQUE,
        description=f"{distance} from {meal.title}",
        coordinates=place.coordinates,
        distance=distance,
        walking_time=_walking_time(duration),
        rating=place.rating,
        photo_reference=place.photo_reference,
        place_id=place.place_id,
    )


async def _mosque_for_meal(
    provider: MosqueProvider,
    meal: Activity,
    used: set[str],
    policy: MosqueSearchPolicy,
    day_index: int,
) -> Activity | None:
    place = await find_unique_mosque(provider, meal.coordinates, used, policy)
    if place is None:
        logger.info(f"No unused mosque within {policy.max_radius}m of '{meal.title}'")
        return None

    walk = await asyncio.to_thread(provider.walking_distance, meal.coordinates, place.coordinates)
    if walk is None or not walk.distance:
        logger.info(f"No walking distance to {place.name}, skipping")
        return None

    return build_mosque_activity(place, meal, walk.distance, walk.duration, day_index)


async def enrich_day_with_mosques(
    day: Day, provider: MosqueProvider, policy: MosqueSearchPolicy
) -> Day:
    """Insert a mosque after every non-breakfast meal with coordinates."""
    used: set[str] = set()
    activities: list[Activity] = []
    source = day.activities
    lookups = 0

    for index, activity in enumerate(source):
        activities.append(activity)
        if activity.type == ActivityType.MOSQUE:
            used.update(_place_keys(activity.place_id, activity.title.removeprefix("Nearby Mosque: ")))
            continue
        if not is_meal_activity(activity) or is_breakfast(activity) or activity.coordinates is None:
            continue

        following = source[index + 1] if index + 1 < len(source) else None
        if following is not None and following.type == ActivityType.MOSQUE:
            continue

        if lookups and policy.lookup_delay:
            await asyncio.sleep(policy.lookup_delay)
        lookups += 1

        mosque = await with_timeout(
            _mosque_for_meal(provider, activity, used, policy, day.day),
            policy.meal_timeout,
            None,
            label=f"Day {day.day} mosque lookup after '{activity.title}'",
        )
        if mosque is None:
            continue

        activities.append(mosque)
        used.update(_place_keys(mosque.place_id, mosque.title.removeprefix("Nearby Mosque: ")))

    return day.model_copy(update={"activities": activities})


async def enrich_with_mosques(
    days: list[Day],
    halal_required: bool,
    provider: MosqueProvider | None,
    policy: MosqueSearchPolicy | None = None,
) -> list[Day]:
    """
    Add mosques to every day of a halal trip.

    Identity when halal is not required or no provider is configured. Days
    are processed in order; the used set is reset for each day.
    """
    if not halal_required or provider is None:
        return days

    policy = policy or MosqueSearchPolicy()
    enriched = []
    for day in days:
        enriched.append(await enrich_day_with_mosques(day, provider, policy))
    return enriched
