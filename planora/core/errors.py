"""
Errors that end an itinerary request.

Enrichment failures are not represented here: they are converted into
fallback values at the timeout boundary and never propagate.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PlanoraError(Exception):
    """Base error carrying a message and an optional underlying cause."""

    message: str
    cause: Exception | None = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class InvalidPreferencesError(PlanoraError):
    """Preferences are structurally valid but unusable (e.g. end before start)."""

    field_name: str = ""


@dataclass
class ItineraryGenerationError(PlanoraError):
    """The itinerary generator failed or returned an unusable skeleton."""

    raw_response: str | None = field(default=None, repr=False)


@dataclass
class PersistenceError(PlanoraError):
    """The document store rejected a write after enrichment succeeded."""

    itinerary_id: str | None = None
