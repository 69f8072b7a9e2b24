"""
Geographic utilities for distance calculations.
"""

import math

from planora.core.schemas import Coordinates

EARTH_RADIUS_M = 6371e3

# Average walking pace used for "N min walk" labels
WALKING_METERS_PER_MINUTE = 80


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lng1: Coordinates of point 1
        lat2, lng2: Coordinates of point 2

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_between(origin: Coordinates, destination: Coordinates) -> float:
    return haversine_distance(origin.lat, origin.lng, destination.lat, destination.lng)


def walking_minutes(distance_m: float) -> int:
    return math.ceil(distance_m / WALKING_METERS_PER_MINUTE)
