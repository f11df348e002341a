"""Geodesy helpers: Haversine distance and midpoint."""

from __future__ import annotations

import math

from proxalert.core.errors import InvalidCoordinates

EARTH_RADIUS_M = 6_371_000.0


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two lat/lng points in meters."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push `a` a hair above 1 for antipodal points
    a = min(1.0, a)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def midpoint(lat1: float, lon1: float, lat2: float, lon2: float) -> tuple[float, float]:
    """Coordinate midpoint between two points (good enough at meeting distances)."""
    return (lat1 + lat2) / 2, (lon1 + lon2) / 2


def validate_coordinates(latitude: float, longitude: float, accuracy: float | None = None) -> None:
    """Raise InvalidCoordinates unless the position is usable."""
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        raise InvalidCoordinates("Latitude and longitude must be numbers")
    if math.isnan(latitude) or not -90 <= latitude <= 90:
        raise InvalidCoordinates(f"Latitude out of range: {latitude}")
    if math.isnan(longitude) or not -180 <= longitude <= 180:
        raise InvalidCoordinates(f"Longitude out of range: {longitude}")
    if accuracy is not None and not accuracy > 0:
        raise InvalidCoordinates(f"Accuracy must be positive: {accuracy}")
