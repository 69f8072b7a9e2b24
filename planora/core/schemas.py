from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivityType(str, Enum):
    ACTIVITY = "activity"
    MEAL = "meal"
    HOTEL = "hotel"
    MOSQUE = "mosque"


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


MEAL_ORDER = (MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER)


class Coordinates(CamelModel):
    lat: float
    lng: float


class TransportDetails(CamelModel):
    mode: Literal["walking", "transit", "taxi", "driving", "ferry", "bicycle", "flight"]
    mode_name: str = Field(..., description="Display name, e.g. 'Public Transit' or 'MRT Line 1'")
    duration: str = Field(..., description="Free-form duration, e.g. '12 min'")
    distance: str = Field(..., description="Free-form distance, e.g. '1.4 km'")
    cost: str = Field(..., description="Free-form cost, e.g. '¥200-400', 'Free'")
    steps: list[str] | None = None


class Restaurant(CamelModel):
    place_id: str
    name: str
    vicinity: str = ""
    rating: float | None = None
    user_ratings_total: int = 0
    price_level: int | None = Field(None, ge=1, le=4)
    cuisine: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    open_now: bool = True
    wheelchair_accessible: bool | None = None
    distance: str = ""
    walking_time: str = ""
    badges: list[str] = Field(default_factory=list)
    photo_reference: str | None = None
    google_maps_url: str = ""
    coordinates: Coordinates | None = None


class Activity(CamelModel):
    # Generator activities have no id; enrichment-inserted ones are prefixed
    # "meal-" or "mosque-".
    id: str | None = None
    title: str
    time: str = Field(..., description="Display time, usually 'HH:MM'")
    location: str = ""
    type: ActivityType = ActivityType.ACTIVITY
    meal_type: MealType | None = None
    description: str | None = None
    coordinates: Coordinates | None = None
    transport_to_next: TransportDetails | None = None

    # Meal fields
    restaurant_options: list[Restaurant] | None = None
    repeated_restaurant: bool = False

    # Place metadata (mosque / restaurant entries)
    distance: str | None = None
    walking_time: str | None = None
    rating: float | None = None
    photo_reference: str | None = None
    place_id: str | None = None


class Day(CamelModel):
    day: int = Field(..., ge=1)
    summary: str | None = None
    activities: list[Activity] = Field(default_factory=list)


class DietaryPreferences(CamelModel):
    halal: bool = False
    nut_allergy: bool = False
    seafood_allergy: bool = False
    vegetarian: bool = False
    vegan: bool = False
    wheelchair_accessible: bool = False


class TripPreferences(CamelModel):
    destination: str = Field(..., min_length=1, max_length=200)
    start_date: str = Field(..., min_length=4)
    end_date: str = Field(..., min_length=4)
    budget: Literal["low", "medium", "high"] = "medium"
    interests: list[str] = Field(default_factory=list)
    dietary_preferences: DietaryPreferences = Field(default_factory=DietaryPreferences)
    special_requirements: str | None = Field(None, max_length=1000)
    number_of_travelers: int = Field(1, ge=1)

    @field_validator("budget", mode="before")
    @classmethod
    def normalize_budget(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_date_order(self):
        start, end = self.parsed_dates()
        if start and end and end < start:
            raise ValueError("endDate must not be before startDate")
        return self

    def parsed_dates(self) -> tuple[date | None, date | None]:
        try:
            return date.fromisoformat(self.start_date), date.fromisoformat(self.end_date)
        except ValueError:
            return None, None

    def trip_length(self) -> int | None:
        """Number of days in the trip, or None when the dates are not ISO."""
        start, end = self.parsed_dates()
        if start is None or end is None:
            return None
        return (end - start).days + 1


class GeneratedItinerary(CamelModel):
    """Skeleton returned by the itinerary generator."""

    days: list[Day] = Field(..., min_length=1)


class ItineraryDocument(CamelModel):
    id: str = Field(..., alias="_id")
    user_id: str | None = None
    prefs: TripPreferences
    days: list[Day] = Field(default_factory=list)
    currency: str = "USD"
    is_public: bool = False
    status: Literal["draft", "saved"] = "draft"
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class TripCostBreakdown(CamelModel):
    accommodation: float
    activities: float
    meals: float
    transportation: float
    total: float
    currency: str
    per_person: float | None = None
    per_day: float | None = None


# =============================================================================
# Provider Results
# =============================================================================


class NearbyPlace(CamelModel):
    """A place returned by a nearby search (e.g. a mosque)."""

    name: str
    address: str = ""
    coordinates: Coordinates
    place_id: str | None = None
    rating: float | None = None
    photo_reference: str | None = None


class WalkingDistance(CamelModel):
    distance: str
    duration: str


# =============================================================================
# Request Schemas
# =============================================================================


class ClaimItineraryRequest(CamelModel):
    itinerary_id: str = Field(..., min_length=1, max_length=50, pattern="^[a-zA-Z0-9_-]+$")


class ItineraryUpdate(CamelModel):
    """Fields an owner may change on a stored itinerary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    days: list[Day] | None = None
    is_public: bool | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
