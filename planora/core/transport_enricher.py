"""
Per-day transportation legs between consecutive activities.
"""

import asyncio
import logging

from planora.core.async_utils import with_timeout
from planora.core.providers import TransportProvider
from planora.core.schemas import Activity

logger = logging.getLogger(__name__)


async def enrich_day_with_transportation(
    activities: list[Activity],
    destination: str,
    provider: TransportProvider,
    request_delay: float = 0.0,
) -> list[Activity]:
    """
    Annotate each activity with the leg to the one after it.

    Works on copies, so the input list is never modified. Activities missing
    coordinates are geocoded first. Every leg is recomputed: re-running on an
    already enriched day (e.g. after meals were inserted) overwrites stale
    legs, and ``transport_to_next`` is cleared where no leg can be computed.
    """
    enriched = [a.model_copy(deep=True) for a in activities]

    for activity in enriched:
        if activity.coordinates is None and activity.location:
            try:
                activity.coordinates = await asyncio.to_thread(
                    provider.geocode, activity.location, destination
                )
            except Exception as e:
                logger.warning(f"Geocoding failed for '{activity.location}': {e}")

    for index, current in enumerate(enriched):
        following = enriched[index + 1] if index + 1 < len(enriched) else None
        if following is None or current.coordinates is None or following.coordinates is None:
            current.transport_to_next = None
            continue

        if index > 0 and request_delay:
            await asyncio.sleep(request_delay)

        try:
            current.transport_to_next = await asyncio.to_thread(
                provider.lookup, current.coordinates, following.coordinates, destination
            )
        except Exception as e:
            logger.warning(f"Transport lookup failed after '{current.title}': {e}")
            current.transport_to_next = None

    return enriched


async def enrich_day_with_timeout(
    activities: list[Activity],
    destination: str,
    provider: TransportProvider,
    timeout: float,
    request_delay: float = 0.0,
    label: str = "transport",
) -> list[Activity]:
    """Enrich one day, returning ``activities`` unchanged on timeout or error."""
    return await with_timeout(
        enrich_day_with_transportation(activities, destination, provider, request_delay),
        timeout,
        activities,
        label=label,
    )
