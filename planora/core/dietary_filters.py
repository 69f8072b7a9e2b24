"""
Hard dietary exclusions for restaurant candidates.
"""

from planora.core.schemas import DietaryPreferences, Restaurant

NON_HALAL_TYPES = {
    "bar",
    "pub",
    "night_club",
    "nightclub",
    "wine_bar",
    "cocktail_bar",
    "brewery",
    "liquor_store",
}

NON_HALAL_KEYWORDS = (
    "bar",
    "pub",
    "tavern",
    "ale house",
    "wine",
    "cocktail",
    "brewery",
    "beer garden",
    "whisky",
    "whiskey",
    "gin",
    "vodka",
    "liquor",
)

NUT_KEYWORDS = ("nut", "almond")

SEAFOOD_TYPES = {"seafood_restaurant"}
SEAFOOD_KEYWORDS = ("seafood", "sushi", "fish")

MEAT_TYPES = {"steak_house", "steakhouse", "barbecue_restaurant", "seafood_restaurant"}
MEAT_KEYWORDS = ("steak", "bbq", "barbecue", "grill house")


def _name_has(name: str, keywords) -> bool:
    return any(k in name for k in keywords)


def passes_dietary_filters(restaurant: Restaurant, prefs: DietaryPreferences) -> bool:
    """
    True when nothing about the candidate conflicts with the preferences.

    Matching is on Google place types and the lowercased name (and vicinity
    for peanuts), so a pass is "no known conflict" rather than a guarantee.
    """
    types = {t.lower() for t in restaurant.types}
    name = restaurant.name.lower()
    vicinity = restaurant.vicinity.lower()

    if prefs.halal:
        if types & NON_HALAL_TYPES or _name_has(name, NON_HALAL_KEYWORDS):
            return False

    if prefs.nut_allergy:
        if _name_has(name, NUT_KEYWORDS) or "peanut" in vicinity:
            return False

    if prefs.seafood_allergy:
        if types & SEAFOOD_TYPES or _name_has(name, SEAFOOD_KEYWORDS):
            return False

    if prefs.vegetarian or prefs.vegan:
        if types & MEAT_TYPES or _name_has(name, MEAT_KEYWORDS):
            return False

    if prefs.wheelchair_accessible and restaurant.wheelchair_accessible is False:
        return False

    return True
