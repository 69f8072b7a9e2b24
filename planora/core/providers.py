"""
Contracts for the external data sources the enrichment stages consume.

Implementations are synchronous (blocking HTTP); the stages call them
through ``asyncio.to_thread`` so they can be bounded by a timeout.
"""

from __future__ import annotations

from typing import Protocol

from planora.core.schemas import (
    Coordinates,
    DietaryPreferences,
    MealType,
    NearbyPlace,
    Restaurant,
    TransportDetails,
    WalkingDistance,
)


class TransportProvider(Protocol):
    """Directions / distance data between two points of a day."""

    def geocode(self, location: str, context: str) -> Coordinates | None:
        """Resolve a location name within a destination, or None."""
        ...

    def lookup(
        self, origin: Coordinates, destination: Coordinates, destination_context: str
    ) -> TransportDetails:
        """Return the travel mode, duration and cost of one leg. May raise."""
        ...


class RestaurantProvider(Protocol):
    def search_restaurants(
        self,
        destination: str,
        meal_type: MealType,
        budget: str,
        dietary: DietaryPreferences,
        interests: list[str],
        near: Coordinates | None = None,
    ) -> list[Restaurant]:
        """
        Return candidates in ranking order.

        ``near`` anchors the search to the activity the meal sits next to;
        without it the search is by destination name.
        """
        ...


class MosqueProvider(Protocol):
    def find_nearby_mosques(self, location: Coordinates, radius: int) -> list[NearbyPlace]:
        """Places within ``radius`` meters, nearest/most relevant first."""
        ...

    def walking_distance(
        self, origin: Coordinates, destination: Coordinates
    ) -> WalkingDistance | None:
        """Walking distance and duration texts, or None when unavailable."""
        ...
