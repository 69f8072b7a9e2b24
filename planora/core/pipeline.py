"""
Enrichment pipeline: transport, meals, mosques, ordering.

Every external call is bounded by a timeout with a pre-stage fallback, so a
slow or failing provider costs at most that stage's data for one day (or
one meal) and never the whole itinerary.
"""

import asyncio
import logging
import time
from contextlib import contextmanager

from planora.core.activity_classifier import normalize_activity
from planora.core.async_utils import with_timeout
from planora.core.meal_planner import (
    DEFAULT_MEAL_TIME_POLICY,
    MealPlanResult,
    MealTimePolicy,
    RestaurantLedger,
    determine_meal_times,
    insert_meals_for_day,
)
from planora.core.mosque_enricher import MosqueSearchPolicy, enrich_with_mosques
from planora.core.order_enforcer import enforce_order
from planora.core.providers import MosqueProvider, RestaurantProvider, TransportProvider
from planora.core.schemas import Day, TripPreferences
from planora.core.settings import Settings, get_settings
from planora.core.transport_enricher import enrich_day_with_timeout

logger = logging.getLogger(__name__)


@contextmanager
def _timed(stage: str):
    started = time.perf_counter()
    yield
    logger.info(f"{stage} finished in {time.perf_counter() - started:.2f}s")


class ItineraryPipeline:
    """
    Runs the enrichment stages over a generated skeleton.

    Providers are optional; a missing provider turns its stage into a no-op.
    The restaurant ledger lives for one ``run`` call and is only mutated
    here, after each day's meal stage has resolved.
    """

    def __init__(
        self,
        transport: TransportProvider | None = None,
        restaurants: RestaurantProvider | None = None,
        mosques: MosqueProvider | None = None,
        settings: Settings | None = None,
        meal_time_policy: MealTimePolicy = DEFAULT_MEAL_TIME_POLICY,
    ):
        self.transport = transport
        self.restaurants = restaurants
        self.mosques = mosques
        self.settings = settings or get_settings()
        self.meal_time_policy = meal_time_policy

    @property
    def mosque_policy(self) -> MosqueSearchPolicy:
        s = self.settings
        return MosqueSearchPolicy(
            initial_radius=s.mosque_initial_radius,
            radius_step=s.mosque_radius_step,
            max_radius=s.mosque_max_radius,
            lookup_delay=s.mosque_lookup_delay,
            meal_timeout=s.mosque_meal_timeout,
        )

    async def run(self, days: list[Day], prefs: TripPreferences) -> list[Day]:
        days = self.normalize(days)

        with _timed("Transport enrichment"):
            days = await self.enrich_transport(days, prefs.destination)

        with _timed("Meal planning"):
            days = await self.plan_meals(days, prefs)

        with _timed("Mosque enrichment"):
            days = await self.enrich_mosques(days, prefs)

        return enforce_order(days)

    def normalize(self, days: list[Day]) -> list[Day]:
        return [
            day.model_copy(update={"activities": [normalize_activity(a) for a in day.activities]})
            for day in days
        ]

    async def enrich_transport(
        self, days: list[Day], destination: str, timeout: float | None = None
    ) -> list[Day]:
        """All days in parallel; a failed day keeps its activities as they were."""
        if self.transport is None:
            return days

        timeout = timeout if timeout is not None else self.settings.transport_day_timeout
        results = await asyncio.gather(
            *(
                enrich_day_with_timeout(
                    day.activities,
                    destination,
                    self.transport,
                    timeout,
                    request_delay=self.settings.transport_request_delay,
                    label=f"Day {day.day} transport",
                )
                for day in days
            )
        )
        return [day.model_copy(update={"activities": acts}) for day, acts in zip(days, results)]

    async def plan_meals(self, days: list[Day], prefs: TripPreferences) -> list[Day]:
        """Days in order, carrying the restaurant ledger from one day to the next."""
        if self.restaurants is None:
            return days

        ledger = RestaurantLedger()
        planned = []
        for day in days:
            meal_times = determine_meal_times(day.activities, self.meal_time_policy)
            result = await with_timeout(
                insert_meals_for_day(
                    day.activities,
                    day.day,
                    prefs.destination,
                    prefs.budget,
                    prefs.dietary_preferences,
                    prefs.interests,
                    meal_times,
                    ledger,
                    self.restaurants,
                    self.settings.meal_lookup_timeout,
                ),
                self.settings.meal_day_timeout,
                MealPlanResult(activities=day.activities),
                label=f"Day {day.day} meals",
            )
            ledger.record(result.used_restaurants)

            activities = result.activities
            if self.transport is not None and activities != day.activities:
                activities = await enrich_day_with_timeout(
                    activities,
                    prefs.destination,
                    self.transport,
                    self.settings.transport_reenrich_timeout,
                    request_delay=self.settings.transport_request_delay,
                    label=f"Day {day.day} transport re-enrichment",
                )
            planned.append(day.model_copy(update={"activities": activities}))

        return planned

    async def enrich_mosques(self, days: list[Day], prefs: TripPreferences) -> list[Day]:
        if not prefs.dietary_preferences.halal or self.mosques is None:
            return days

        return await with_timeout(
            enrich_with_mosques(days, True, self.mosques, self.mosque_policy),
            self.settings.mosque_stage_timeout,
            days,
            label="Mosque enrichment",
        )
