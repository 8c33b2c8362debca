"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- API/CLI inputs (`OptimizeRequest`, `ClusterQuery`, `ClusterExpandRequest`)
- itinerary entities (`Stop`) and map points (`GeoPoint`)
- optimizer and cluster index output (`OptimizationResult`, `ClusterFeature`)

Coordinates are the frozen `tripsequence.core.geo.Coordinate` dataclass, so invalid
latitudes/longitudes are rejected at validation time instead of being corrected.
"""

from __future__ import annotations

from datetime import time
from typing import Any, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tripsequence.core.geo import Coordinate, path_distance_km

TimeBlock = Literal["morning", "afternoon", "evening", "night", "unspecified"]

# Canonical order of the parts of a day; stops without a block go last.
TIME_BLOCK_ORDER: tuple[TimeBlock, ...] = ("morning", "afternoon", "evening", "night", "unspecified")


class OpeningHours(BaseModel):
    """Wall-clock opening window for a stop (`"09:00"`-style strings)."""

    start: time
    end: time

    @model_validator(mode="after")
    def _validate_order(self) -> "OpeningHours":
        if self.end <= self.start:
            raise ValueError("opening_hours.end must be after opening_hours.start")
        return self


class Stop(BaseModel):
    """A place the traveler wants to visit during the day."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    coordinate: Coordinate
    time_block: TimeBlock | None = None
    opening_hours: OpeningHours | None = None
    # Tie-break hint only (higher = earlier); the optimizer does not enforce it.
    priority: float | None = None

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("stop id must not be blank")
        return value

    @property
    def effective_time_block(self) -> TimeBlock:
        return self.time_block or "unspecified"


def ensure_unique_ids(ids: Sequence[str], *, kind: str) -> None:
    """Raise ValueError when `ids` contains duplicates."""
    seen: set[str] = set()
    dupes: list[str] = []
    for i in ids:
        if i in seen and i not in dupes:
            dupes.append(i)
        seen.add(i)
    if dupes:
        raise ValueError(f"duplicate {kind} ids: {', '.join(dupes)}")


class Route(BaseModel):
    """An ordered stop sequence plus its derived distance and id order."""

    model_config = ConfigDict(frozen=True)

    stops: list[Stop]
    total_distance_km: float = Field(..., ge=0)
    order: list[str]

    @classmethod
    def from_stops(cls, stops: Sequence[Stop]) -> "Route":
        stops = list(stops)
        return cls(
            stops=stops,
            total_distance_km=path_distance_km([s.coordinate for s in stops]),
            order=[s.id for s in stops],
        )


class Improvement(BaseModel):
    distance_saved_km: float = Field(..., ge=0)
    percent_improvement: float = Field(..., ge=0, le=100)
    time_saved_minutes: int = Field(..., ge=0)


class OptimizationResult(BaseModel):
    """Original vs optimized route plus the savings between them."""

    original_route: Route
    optimized_route: Route
    improvement: Improvement
    meta: dict[str, Any] = Field(default_factory=dict)


class SavingsEstimate(BaseModel):
    """Rough potential savings, computed without running the optimizer."""

    potential_savings_km: float = Field(..., ge=0)
    savings_percent: float = Field(..., ge=0)
    confidence: Literal["low", "medium", "high"]
    # Always True: this number is a heuristic estimate, not an optimizer result.
    is_estimate: Literal[True] = True


class OptimizeRequest(BaseModel):
    """Parameters for one route optimization run."""

    stops: list[Stop]
    respect_time_blocks: bool | None = None
    use_two_opt: bool | None = None
    start_location: Coordinate | None = None
    settings_overrides: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _unique_stop_ids(self) -> "OptimizeRequest":
        ensure_unique_ids([s.id for s in self.stops], kind="stop")
        return self


class GeoPoint(BaseModel):
    """A geo-tagged point for the cluster index; `properties` is caller data."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    coordinate: Coordinate
    properties: dict[str, Any] = Field(default_factory=dict)


class Bounds(BaseModel):
    """Map viewport in degrees; `west > east` means the box crosses the antimeridian."""

    west: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    south: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    east: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    north: float = Field(..., ge=-90, le=90, allow_inf_nan=False)

    @model_validator(mode="after")
    def _validate_lat_order(self) -> "Bounds":
        if self.south > self.north:
            raise ValueError("bounds.south must not exceed bounds.north")
        return self

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)


class ClusterFeature(BaseModel):
    """One map marker: either a single point or a merged cluster."""

    id: str
    coordinate: Coordinate
    count: int = Field(..., ge=1)
    cluster: bool
    cluster_id: int | None = None
    count_abbreviated: str
    properties: dict[str, Any] = Field(default_factory=dict)


class ClusterQuery(BaseModel):
    points: list[GeoPoint]
    bounds: Bounds
    zoom: float = Field(..., ge=0, allow_inf_nan=False)
    settings_overrides: dict[str, Any] | None = None


class ClusterExpandRequest(BaseModel):
    points: list[GeoPoint]
    cluster_id: int
    settings_overrides: dict[str, Any] | None = None
