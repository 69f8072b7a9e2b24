"""
Request-level flow: generate, enrich, build the draft document, persist.
"""

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from functools import lru_cache

from pymongo.errors import PyMongoError

from planora.core.cost_utils import (
    REFERENCE_CURRENCY,
    calculate_trip_costs,
    convert_currency,
    detect_currency_from_destination,
)
from planora.core.errors import PersistenceError
from planora.core.itinerary_generator import ItineraryGenerator
from planora.core.llm_provider import LLMProvider
from planora.core.pipeline import ItineraryPipeline
from planora.core.places_service import GooglePlacesService
from planora.core.repository import ItineraryRepository, get_repo, new_itinerary_id
from planora.core.schemas import Day, ItineraryDocument, TripCostBreakdown, TripPreferences
from planora.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings) -> ItineraryPipeline:
    """Pipeline with Google providers when a Maps key is configured, else no enrichment."""
    if not settings.google_maps_api_key:
        logger.warning("GOOGLE_MAPS_API_KEY not set, itineraries will not be enriched")
        return ItineraryPipeline(settings=settings)

    places = GooglePlacesService(settings.google_maps_api_key)
    return ItineraryPipeline(
        transport=places, restaurants=places, mosques=places, settings=settings
    )


def build_draft(
    prefs: TripPreferences,
    days: list[Day],
    user_id: str | None,
    ttl_days: int,
    now: datetime | None = None,
) -> ItineraryDocument:
    now = now or datetime.utcnow()
    return ItineraryDocument(
        id=new_itinerary_id(),
        user_id=user_id,
        prefs=prefs,
        days=days,
        currency=detect_currency_from_destination(prefs.destination),
        status="draft",
        expires_at=now + timedelta(days=ttl_days),
        created_at=now,
        updated_at=now,
    )


class ItineraryService:
    def __init__(
        self,
        generator: ItineraryGenerator,
        pipeline: ItineraryPipeline,
        repo: ItineraryRepository,
        settings: Settings,
    ):
        self.generator = generator
        self.pipeline = pipeline
        self.repo = repo
        self.settings = settings

    async def generate_itinerary(
        self, prefs: TripPreferences, user_id: str | None = None
    ) -> ItineraryDocument:
        """
        Generate, enrich and store a draft itinerary.

        Raises:
            ItineraryGenerationError: generator failed; nothing is stored
            PersistenceError: the itinerary was built but could not be stored
        """
        skeleton = await self.generator.generate(prefs)
        days = await self.pipeline.run(skeleton.days, prefs)
        doc = build_draft(prefs, days, user_id, self.settings.draft_ttl_days)

        try:
            await asyncio.to_thread(self.repo.create, doc)
        except PyMongoError as e:
            logger.error(f"Failed to store itinerary {doc.id}: {e}", exc_info=True)
            raise PersistenceError("Could not save itinerary", cause=e, itinerary_id=doc.id) from e

        logger.info(f"Stored draft itinerary {doc.id} ({len(days)} days, user={user_id})")
        return doc


def trip_costs(
    doc: ItineraryDocument,
    hotel_price_per_night: float = 0.0,
    rates: Mapping[str, float] | None = None,
) -> TripCostBreakdown:
    """Cost breakdown in the itinerary's currency; the hotel price is in that currency too."""
    currency = doc.currency or REFERENCE_CURRENCY
    hotel_usd = convert_currency(hotel_price_per_night, currency, REFERENCE_CURRENCY, rates)
    usd = calculate_trip_costs(
        doc.days, hotel_usd, doc.prefs.number_of_travelers, REFERENCE_CURRENCY, rates
    )
    if currency == REFERENCE_CURRENCY:
        return usd

    def convert(amount: float | None) -> float | None:
        if amount is None:
            return None
        return convert_currency(amount, REFERENCE_CURRENCY, currency, rates)

    return TripCostBreakdown(
        accommodation=convert(usd.accommodation),
        activities=convert(usd.activities),
        meals=convert(usd.meals),
        transportation=convert(usd.transportation),
        total=convert(usd.total),
        currency=currency,
        per_person=convert(usd.per_person),
        per_day=convert(usd.per_day),
    )


@lru_cache
def get_itinerary_service() -> ItineraryService:
    settings = get_settings()
    return ItineraryService(
        generator=ItineraryGenerator(LLMProvider(settings.llm_model, settings.google_api_key)),
        pipeline=build_pipeline(settings),
        repo=get_repo(),
        settings=settings,
    )
