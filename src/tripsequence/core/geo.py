from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, isfinite, radians, sin, sqrt
from typing import Iterable, Sequence

"""
Geospatial helpers.

We keep a tiny geometry layer here so the optimizer and the cluster index can do
distance calculations without pulling in heavier GIS dependencies.

Invalid coordinates (NaN, infinities, out-of-range values) are rejected when a
`Coordinate` is constructed, so every function below can assume clean input.
"""

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371

WALKING_SPEED_KMH = 5.0
DRIVING_SPEED_KMH = 30.0


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        lat = float(self.lat)
        lng = float(self.lng)
        if not (isfinite(lat) and isfinite(lng)):
            raise ValueError(f"coordinate must be finite, got ({self.lat}, {self.lng})")
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"latitude {lat} is outside -90..90")
        if not -180.0 <= lng <= 180.0:
            raise ValueError(f"longitude {lng} is outside -180..180")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)


@dataclass(frozen=True)
class BoundingBox:
    """Tight axis-aligned box around a point set."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, c: Coordinate) -> bool:
        return self.min_lat <= c.lat <= self.max_lat and self.min_lng <= c.lng <= self.max_lng


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in kilometers between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lng)
    lat2 = radians(b.lat)
    lon2 = radians(b.lng)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(h)))


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a, b) * KM_TO_MILES


def path_distance_km(coords: Sequence[Coordinate]) -> float:
    """Sum of great-circle legs over consecutive points (0 for fewer than two)."""
    if len(coords) < 2:
        return 0.0
    return sum(haversine_km(coords[i], coords[i + 1]) for i in range(len(coords) - 1))


def path_distance_miles(coords: Sequence[Coordinate]) -> float:
    return path_distance_km(coords) * KM_TO_MILES


def centroid(coords: Iterable[Coordinate]) -> Coordinate | None:
    """Arithmetic mean of latitudes/longitudes, or None for an empty set."""
    points = list(coords)
    if not points:
        return None
    n = len(points)
    return Coordinate(
        lat=sum(p.lat for p in points) / n,
        lng=sum(p.lng for p in points) / n,
    )


def bounding_box(coords: Iterable[Coordinate]) -> BoundingBox | None:
    points = list(coords)
    if not points:
        return None
    return BoundingBox(
        min_lat=min(p.lat for p in points),
        max_lat=max(p.lat for p in points),
        min_lng=min(p.lng for p in points),
        max_lng=max(p.lng for p in points),
    )


def round_half_up(x: float) -> int:
    # Matches the usual "round half up" convention for display minutes (2.5 -> 3).
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def estimate_walking_minutes(distance_km: float, *, speed_kmh: float = WALKING_SPEED_KMH) -> int:
    """Travel time at a constant walking speed, rounded to the nearest minute."""
    if speed_kmh <= 0:
        raise ValueError("speed_kmh must be > 0")
    return round_half_up(distance_km / speed_kmh * 60)


def estimate_driving_minutes(distance_km: float, *, speed_kmh: float = DRIVING_SPEED_KMH) -> int:
    """Travel time at a constant city driving speed, rounded to the nearest minute."""
    if speed_kmh <= 0:
        raise ValueError("speed_kmh must be > 0")
    return round_half_up(distance_km / speed_kmh * 60)
