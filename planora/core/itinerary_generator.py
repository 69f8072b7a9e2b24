"""
Skeleton itinerary generation through a chat model.

The model only produces days of timed activities; meals, transport and
mosques are added by the enrichment pipeline afterwards.
"""

import json
import logging
from typing import Any, Protocol

from pydantic import ValidationError

from planora.core.errors import InvalidPreferencesError, ItineraryGenerationError
from planora.core.schemas import GeneratedItinerary, TripPreferences

logger = logging.getLogger(__name__)

MAX_TRIP_DAYS = 30

SYSTEM_PROMPT = (
    "You are a travel planner. Respond with JSON only, no prose and no markdown. "
    'The JSON must have the shape {"days": [{"day": 1, "summary": "...", '
    '"activities": [{"title": "...", "time": "HH:MM", "location": "...", '
    '"coordinates": {"lat": 0.0, "lng": 0.0}}]}]}. '
    "Use 24-hour HH:MM times in schedule order. Start the first day with the "
    "arrival and hotel check-in and end the last day with check-out and "
    "departure. Do not schedule meals; they are added separately."
)


class ChatModel(Protocol):
    async def chat_async(self, messages: list[dict[str, Any]], temperature: float = 1.0) -> str:
        ...


def build_generation_messages(prefs: TripPreferences) -> list[dict[str, str]]:
    dietary = prefs.dietary_preferences
    constraints = [
        name
        for name, enabled in (
            ("halal", dietary.halal),
            ("nut allergy", dietary.nut_allergy),
            ("seafood allergy", dietary.seafood_allergy),
            ("vegetarian", dietary.vegetarian),
            ("vegan", dietary.vegan),
            ("wheelchair accessible venues only", dietary.wheelchair_accessible),
        )
        if enabled
    ]

    lines = [
        f"Destination: {prefs.destination}",
        f"Dates: {prefs.start_date} to {prefs.end_date}",
        f"Budget: {prefs.budget}",
        f"Travelers: {prefs.number_of_travelers}",
    ]
    days = prefs.trip_length()
    if days:
        lines.append(f"Number of days: {days}")
    if prefs.interests:
        lines.append(f"Interests: {', '.join(prefs.interests)}")
    if constraints:
        lines.append(f"Constraints: {', '.join(constraints)}")
    if prefs.special_requirements:
        lines.append(f"Special requirements: {prefs.special_requirements}")

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(lines)},
    ]


def _strip_code_fences(text: str) -> str:
    if not text.startswith("```"):
        return text
    body = text.lstrip("`")
    if body.lower().startswith("json"):
        body = body[4:]
    body = body.lstrip("\n ")
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


def parse_generated_itinerary(raw_text: str) -> GeneratedItinerary:
    """Parse model output into a skeleton, tolerating code fences and surrounding prose."""
    text = _strip_code_fences(raw_text.strip())

    candidates = [text]
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start and (start, end) != (0, len(text) - 1):
        candidates.append(text[start : end + 1])

    last_error: Exception | None = None
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        if isinstance(data, list):
            data = {"days": data}
        try:
            return GeneratedItinerary.model_validate(data)
        except ValidationError as e:
            last_error = e

    raise ItineraryGenerationError(
        "Generator returned an unusable itinerary", cause=last_error, raw_response=raw_text
    )


class ItineraryGenerator:
    def __init__(self, llm: ChatModel, temperature: float = 0.7):
        self.llm = llm
        self.temperature = temperature

    async def generate(self, prefs: TripPreferences) -> GeneratedItinerary:
        days = prefs.trip_length()
        if days is not None and days > MAX_TRIP_DAYS:
            raise InvalidPreferencesError(
                f"Trips are limited to {MAX_TRIP_DAYS} days", field_name="endDate"
            )

        try:
            raw = await self.llm.chat_async(
                build_generation_messages(prefs), temperature=self.temperature
            )
        except Exception as e:
            logger.error(f"Itinerary generation failed for {prefs.destination}: {e}", exc_info=True)
            raise ItineraryGenerationError("Itinerary generator failed", cause=e) from e

        itinerary = parse_generated_itinerary(raw)
        logger.info(f"Generated {len(itinerary.days)} day(s) for {prefs.destination}")
        return itinerary
