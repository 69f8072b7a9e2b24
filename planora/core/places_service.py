"""
Google Maps integration: geocoding, directions, restaurant and mosque search.

One class implements the transport, restaurant and mosque provider contracts
so the pipeline can share a single API key and HTTP timeout.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from planora.core.dietary_filters import passes_dietary_filters
from planora.core.geo_utils import distance_between, walking_minutes
from planora.core.schemas import (
    Coordinates,
    DietaryPreferences,
    MealType,
    NearbyPlace,
    Restaurant,
    TransportDetails,
    WalkingDistance,
)
from planora.core.settings import get_settings
from planora.core.travel_time_utils import (
    MODE_NAMES,
    determine_best_mode,
    estimate_duration_minutes,
    estimate_leg_cost,
    format_distance,
    get_country_code,
)

logger = logging.getLogger(__name__)

MAPS_API_BASE = "https://maps.googleapis.com/maps/api"
PLACES_API_BASE = f"{MAPS_API_BASE}/place"

BUDGET_PRICE_LEVELS: dict[str, list[int]] = {
    "low": [1, 2],
    "medium": [2, 3],
    "high": [3, 4],
}

CUISINE_TYPES: dict[str, str] = {
    "japanese_restaurant": "Japanese",
    "italian_restaurant": "Italian",
    "chinese_restaurant": "Chinese",
    "french_restaurant": "French",
    "indian_restaurant": "Indian",
    "thai_restaurant": "Thai",
    "korean_restaurant": "Korean",
    "mexican_restaurant": "Mexican",
    "vietnamese_restaurant": "Vietnamese",
    "indonesian_restaurant": "Indonesian",
    "american_restaurant": "American",
    "mediterranean_restaurant": "Mediterranean",
    "cafe": "Cafe",
    "bakery": "Bakery",
    "fast_food_restaurant": "Fast Food",
    "ramen": "Ramen",
    "sushi": "Sushi",
    "pizza": "Pizza",
    "burger": "Burger",
}

MEAL_SEARCH_TERMS: dict[MealType, tuple[str, ...]] = {
    MealType.BREAKFAST: ("cafe", "coffee", "bakery"),
    MealType.LUNCH: ("casual dining", "quick lunch"),
    MealType.DINNER: ("fine dining", "dinner restaurant"),
}


@dataclass(frozen=True)
class SearchLevel:
    radius: int
    min_rating: float
    strict_budget: bool


# Widening search levels, tried in order until enough candidates are found.
RESTAURANT_SEARCH_LEVELS = (
    SearchLevel(2000, 4.0, True),
    SearchLevel(5000, 4.0, True),
    SearchLevel(10000, 3.5, True),
    SearchLevel(10000, 3.5, False),
    SearchLevel(15000, 3.0, False),
    SearchLevel(20000, 0.0, False),
)


def build_search_keywords(
    meal_type: MealType, dietary: DietaryPreferences, interests: list[str]
) -> str:
    keywords = [meal_type.value]
    if dietary.halal:
        keywords += ["halal", "muslim", "islamic", "muslim-friendly"]
    if dietary.vegetarian:
        keywords += ["vegetarian", "veg"]
    if dietary.vegan:
        keywords += ["vegan", "plant-based"]

    lowered = {i.lower() for i in interests}
    if "food" in lowered:
        keywords += ["local cuisine", "authentic"]
    if "culture" in lowered:
        keywords.append("traditional")

    keywords += MEAL_SEARCH_TERMS[meal_type]
    return " ".join(keywords)


def extract_cuisines(types: list[str], name: str) -> list[str]:
    detected: list[str] = []
    for t in types:
        if t in CUISINE_TYPES and CUISINE_TYPES[t] not in detected:
            detected.append(CUISINE_TYPES[t])

    lowered = name.lower()
    for key, label in CUISINE_TYPES.items():
        if key.replace("_restaurant", "") in lowered and label not in detected:
            detected.append(label)

    return detected or ["Restaurant"]


def detect_badges(place: dict[str, Any]) -> list[str]:
    text = f"{place.get('name', '')} {place.get('vicinity', '')}".lower()
    badges = []
    if "halal" in text or "muslim" in text:
        badges.append("halal")
    if "vegetarian" in text or "vegan" in text:
        badges.append("vegetarian")
    if "michelin" in text:
        badges.append("michelin")
    if (place.get("rating") or 0) >= 4.7 and (place.get("user_ratings_total") or 0) > 1000:
        badges.append("highly-rated")
    return badges


def _place_coordinates(place: dict[str, Any]) -> Coordinates | None:
    location = (place.get("geometry") or {}).get("location")
    if not location or location.get("lat") is None or location.get("lng") is None:
        return None
    return Coordinates(lat=location["lat"], lng=location["lng"])


def _photo_reference(place: dict[str, Any]) -> str | None:
    photos = place.get("photos") or []
    return photos[0].get("photo_reference") if photos else None


def _ranking_score(place: dict[str, Any], distance_m: float, radius: int) -> float:
    """Rating, popularity and proximity blended 40/30/30."""
    rating = place.get("rating") or 0
    reviews = place.get("user_ratings_total") or 1
    return rating * 0.4 + math.log(max(reviews, 1)) * 0.3 + (radius - distance_m) / radius * 0.3


class GooglePlacesService:
    """Transport, restaurant and mosque provider backed by Google Maps web APIs."""

    def __init__(self, api_key: str | None = None, timeout: float = 10):
        key = api_key if api_key is not None else get_settings().google_maps_api_key
        if not key:
            raise ValueError("GOOGLE_MAPS_API_KEY not found in environment variables")
        self.api_key = key
        self.timeout = timeout

    def _get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        response = requests.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    # =========================================================================
    # Geocoding / transport
    # =========================================================================

    def geocode(self, location: str, context: str) -> Coordinates | None:
        """
        Resolve an activity location to coordinates.

        Args:
            location: Activity location text (e.g., "Monas, Central Jakarta")
            context: Trip destination, appended to disambiguate

        Returns:
            Coordinates, or None if geocoding fails
        """
        address = f"{location}, {context}" if context else location
        try:
            data = self._get(f"{MAPS_API_BASE}/geocode/json", {"address": address})
        except requests.RequestException as e:
            logger.warning(f"Geocoding request failed for {address}: {e}")
            return None

        if data.get("status") != "OK" or not data.get("results"):
            logger.info(f"Geocoding failed for {address}: {data.get('status')}")
            return None

        return _place_coordinates(data["results"][0])

    def lookup(
        self, origin: Coordinates, destination: Coordinates, destination_context: str
    ) -> TransportDetails:
        """Directions for one leg, falling back to a straight-line estimate."""
        distance_m = distance_between(origin, destination)
        mode = determine_best_mode(distance_m, destination_context)
        country_code = get_country_code(destination_context)

        try:
            details = self._fetch_directions(origin, destination, mode, country_code)
        except (requests.RequestException, KeyError, IndexError, ValueError) as e:
            logger.info(f"Directions API failed, using estimate: {e}")
            details = None

        if details is not None:
            return details

        return TransportDetails(
            mode=mode,
            mode_name=MODE_NAMES[mode],
            duration=f"{estimate_duration_minutes(distance_m, mode)} min",
            distance=format_distance(distance_m),
            cost=estimate_leg_cost(mode, distance_m, country_code),
        )

    def _fetch_directions(
        self, origin: Coordinates, destination: Coordinates, mode: str, country_code: str
    ) -> TransportDetails | None:
        data = self._get(
            f"{MAPS_API_BASE}/directions/json",
            {
                "origin": f"{origin.lat},{origin.lng}",
                "destination": f"{destination.lat},{destination.lng}",
                "mode": "driving" if mode == "taxi" else mode,
            },
        )
        if data.get("status") != "OK" or not data.get("routes"):
            return None

        leg = data["routes"][0]["legs"][0]
        mode_name = MODE_NAMES[mode]
        steps: list[str] | None = None

        if mode == "transit":
            transit_steps = [s for s in leg.get("steps", []) if s.get("travel_mode") == "TRANSIT"]
            if transit_steps:
                line = transit_steps[0].get("transit_details", {}).get("line") or {}
                vehicle = (line.get("vehicle") or {}).get("name", "")
                if line.get("short_name"):
                    mode_name = f"{vehicle} {line['short_name']}".strip()
                elif line.get("name"):
                    mode_name = line["name"]
            steps = [s["html_instructions"] for s in leg.get("steps", []) if s.get("html_instructions")]

        fare = (data["routes"][0].get("fare") or {}).get("text")
        return TransportDetails(
            mode=mode,
            mode_name=mode_name,
            duration=leg["duration"]["text"],
            distance=leg["distance"]["text"],
            cost=fare or estimate_leg_cost(mode, leg["distance"]["value"], country_code),
            steps=steps or None,
        )

    # =========================================================================
    # Restaurants
    # =========================================================================

    def search_restaurants(
        self,
        destination: str,
        meal_type: MealType,
        budget: str,
        dietary: DietaryPreferences,
        interests: list[str],
        near: Coordinates | None = None,
        min_results: int = 5,
    ) -> list[Restaurant]:
        """
        Find restaurants for a meal slot.

        Nearby searches widen through ``RESTAURANT_SEARCH_LEVELS`` until
        ``min_results`` candidates pass the filters; a text search by
        destination name tops the list up (or is the only search when
        ``near`` is None). Results never include placeholders.
        """
        keywords = build_search_keywords(meal_type, dietary, interests)
        collected: dict[str, Restaurant] = {}

        if near is not None:
            for level in RESTAURANT_SEARCH_LEVELS:
                for restaurant in self._nearby_restaurants(near, keywords, budget, dietary, level):
                    collected.setdefault(restaurant.place_id, restaurant)
                if len(collected) >= min_results:
                    return list(collected.values())
                time.sleep(0.1)

        if destination:
            for restaurant in self._text_search_restaurants(destination, meal_type, dietary, near):
                collected.setdefault(restaurant.place_id, restaurant)

        if not collected:
            logger.info(f"No restaurants found for {meal_type.value} in {destination}")
        return list(collected.values())

    def _nearby_restaurants(
        self,
        near: Coordinates,
        keywords: str,
        budget: str,
        dietary: DietaryPreferences,
        level: SearchLevel,
    ) -> list[Restaurant]:
        try:
            data = self._get(
                f"{PLACES_API_BASE}/nearbysearch/json",
                {
                    "location": f"{near.lat},{near.lng}",
                    "radius": level.radius,
                    "type": "restaurant",
                    "keyword": keywords,
                },
            )
        except requests.RequestException as e:
            logger.warning(f"Restaurant search failed at {level.radius}m: {e}")
            return []

        if data.get("status") != "OK":
            return []

        allowed_prices = BUDGET_PRICE_LEVELS.get(budget, BUDGET_PRICE_LEVELS["medium"])
        scored: list[tuple[float, Restaurant]] = []
        for place in data.get("results", []):
            if (place.get("rating") or 0) < level.min_rating:
                continue
            price = place.get("price_level")
            if level.strict_budget and price and price not in allowed_prices:
                continue
            restaurant = self._to_restaurant(place, near)
            if restaurant is None or not passes_dietary_filters(restaurant, dietary):
                continue
            distance_m = distance_between(near, restaurant.coordinates)
            scored.append((_ranking_score(place, distance_m, level.radius), restaurant))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [restaurant for _, restaurant in scored]

    def _text_search_restaurants(
        self,
        destination: str,
        meal_type: MealType,
        dietary: DietaryPreferences,
        near: Coordinates | None,
    ) -> list[Restaurant]:
        query = f"{'halal ' if dietary.halal else ''}{meal_type.value} restaurant in {destination}"
        try:
            data = self._get(f"{PLACES_API_BASE}/textsearch/json", {"query": query})
        except requests.RequestException as e:
            logger.warning(f"Restaurant text search failed for {query}: {e}")
            return []

        if data.get("status") != "OK":
            return []

        results = []
        for place in data.get("results", []):
            restaurant = self._to_restaurant(place, near)
            if restaurant is not None and passes_dietary_filters(restaurant, dietary):
                results.append(restaurant)
        return results

    def _to_restaurant(self, place: dict[str, Any], origin: Coordinates | None) -> Restaurant | None:
        coordinates = _place_coordinates(place)
        if not place.get("place_id") or not place.get("name") or coordinates is None:
            return None

        distance = ""
        walking_time = ""
        if origin is not None:
            distance_m = distance_between(origin, coordinates)
            distance = f"{format_distance(distance_m)} away"
            walking_time = f"{walking_minutes(distance_m)} min walk"

        name = place["name"]
        return Restaurant(
            place_id=place["place_id"],
            name=name,
            vicinity=place.get("vicinity") or place.get("formatted_address") or "",
            rating=place.get("rating"),
            user_ratings_total=place.get("user_ratings_total") or 0,
            price_level=place.get("price_level") or None,
            cuisine=extract_cuisines(place.get("types", []), name),
            types=place.get("types", []),
            open_now=(place.get("opening_hours") or {}).get("open_now") is not False,
            distance=distance,
            walking_time=walking_time,
            badges=detect_badges(place),
            photo_reference=_photo_reference(place),
            google_maps_url=(
                "https://www.google.com/maps/search/?api=1"
                f"&query={quote(name)}&query_place_id={place['place_id']}"
            ),
            coordinates=coordinates,
        )

    # =========================================================================
    # Mosques
    # =========================================================================

    def find_nearby_mosques(self, location: Coordinates, radius: int) -> list[NearbyPlace]:
        data = self._get(
            f"{PLACES_API_BASE}/nearbysearch/json",
            {
                "location": f"{location.lat},{location.lng}",
                "radius": radius,
                "type": "mosque",
                "keyword": "masjid|mosque",
            },
        )
        status = data.get("status")
        if status not in ("OK", "ZERO_RESULTS"):
            logger.error(f"Mosque search failed: {status} {data.get('error_message', '')}")
            return []

        mosques = []
        for place in data.get("results", [])[:3]:
            coordinates = _place_coordinates(place)
            if coordinates is None or not place.get("name"):
                continue
            mosques.append(
                NearbyPlace(
                    name=place["name"],
                    address=place.get("vicinity") or place.get("formatted_address") or "",
                    coordinates=coordinates,
                    place_id=place.get("place_id"),
                    rating=place.get("rating"),
                    photo_reference=_photo_reference(place),
                )
            )
        return mosques

    def walking_distance(
        self, origin: Coordinates, destination: Coordinates
    ) -> WalkingDistance | None:
        try:
            data = self._get(
                f"{MAPS_API_BASE}/distancematrix/json",
                {
                    "origins": f"{origin.lat},{origin.lng}",
                    "destinations": f"{destination.lat},{destination.lng}",
                    "mode": "walking",
                },
            )
        except requests.RequestException as e:
            logger.warning(f"Distance matrix request failed: {e}")
            return None

        rows = data.get("rows") or [{}]
        elements = rows[0].get("elements") or [{}]
        element = elements[0]
        if data.get("status") != "OK" or element.get("status") != "OK":
            return None

        return WalkingDistance(
            distance=element["distance"]["text"],
            duration=element["duration"]["text"],
        )
