import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from planora.core.currency_service import ExchangeRateCache, get_rate_cache
from planora.core.errors import (
    InvalidPreferencesError,
    ItineraryGenerationError,
    PersistenceError,
)
from planora.core.itinerary_service import ItineraryService, get_itinerary_service, trip_costs
from planora.core.repository import ItineraryRepository, get_repo
from planora.core.schemas import (
    ClaimItineraryRequest,
    ItineraryDocument,
    ItineraryUpdate,
    TripCostBreakdown,
    TripPreferences,
)
from planora.core.security import get_current_user_id, get_optional_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])

ITINERARY_ID = Path(
    ...,
    min_length=1,
    max_length=50,
    pattern="^[a-zA-Z0-9_-]+$",
    description="Itinerary ID",
)


def _dump(doc: ItineraryDocument) -> dict[str, Any]:
    return doc.model_dump(mode="json", by_alias=True)


@router.post("/generate")
async def generate_itinerary(
    prefs: TripPreferences,
    user_id: str | None = Depends(get_optional_user_id),
    service: ItineraryService = Depends(get_itinerary_service),
):
    """Generate, enrich and store a draft itinerary. Guests get an unclaimed draft."""
    try:
        doc = await service.generate_itinerary(prefs, user_id)
    except InvalidPreferencesError as e:
        raise HTTPException(status_code=400, detail={"field": e.field_name, "message": e.message})
    except ItineraryGenerationError as e:
        raise HTTPException(
            status_code=502,
            detail={"provider_error": e.message, "raw": e.raw_response},
        )
    except PersistenceError as e:
        raise HTTPException(
            status_code=503,
            detail={"message": e.message, "itineraryId": e.itinerary_id},
        )
    return _dump(doc)


@router.get("/user/me")
def get_user_itineraries(
    user_id: str = Depends(get_current_user_id),
    repo: ItineraryRepository = Depends(get_repo),
):
    """Saved itineraries and unexpired drafts of the authenticated user."""
    return {"itineraries": [_dump(doc) for doc in repo.list_for_user(user_id)]}


@router.post("/claim")
def claim_itinerary(
    body: ClaimItineraryRequest,
    user_id: str = Depends(get_current_user_id),
    repo: ItineraryRepository = Depends(get_repo),
):
    doc = repo.claim(body.itinerary_id, user_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Itinerary not found or already claimed")
    return {"success": True, "itinerary": _dump(doc)}


@router.get("/{itinerary_id}")
def get_itinerary(
    itinerary_id: str = ITINERARY_ID,
    repo: ItineraryRepository = Depends(get_repo),
):
    doc = repo.get(itinerary_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="not found")
    return _dump(doc)


@router.patch("/{itinerary_id}")
def update_itinerary(
    updates: ItineraryUpdate,
    itinerary_id: str = ITINERARY_ID,
    user_id: str = Depends(get_current_user_id),
    repo: ItineraryRepository = Depends(get_repo),
):
    """Owner-only update of days, visibility or currency."""
    changes = updates.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No updatable fields provided")

    doc = repo.update(itinerary_id, user_id, changes)
    if doc is None:
        raise HTTPException(status_code=404, detail="Itinerary not found or unauthorized")
    return _dump(doc)


@router.post("/{itinerary_id}/save")
def save_itinerary(
    itinerary_id: str = ITINERARY_ID,
    user_id: str = Depends(get_current_user_id),
    repo: ItineraryRepository = Depends(get_repo),
):
    doc = repo.save(itinerary_id, user_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Itinerary not found or unauthorized")
    return _dump(doc)


@router.delete("/{itinerary_id}")
def delete_itinerary(
    itinerary_id: str = ITINERARY_ID,
    user_id: str = Depends(get_current_user_id),
    repo: ItineraryRepository = Depends(get_repo),
):
    if not repo.delete(itinerary_id, user_id):
        raise HTTPException(status_code=404, detail="Itinerary not found or unauthorized")
    return {"message": "Itinerary deleted successfully"}


@router.get("/{itinerary_id}/costs", response_model=TripCostBreakdown)
async def get_itinerary_costs(
    itinerary_id: str = ITINERARY_ID,
    hotel_price_per_night: float = Query(0.0, alias="hotelPricePerNight", ge=0),
    repo: ItineraryRepository = Depends(get_repo),
    rate_cache: ExchangeRateCache = Depends(get_rate_cache),
):
    """Estimated trip cost in the itinerary's currency."""
    doc = await asyncio.to_thread(repo.get, itinerary_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="not found")

    rates = await asyncio.to_thread(rate_cache.rates)
    return trip_costs(doc, hotel_price_per_night, rates)
