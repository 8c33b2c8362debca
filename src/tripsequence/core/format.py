"""
Display formatting for distances, durations and cluster counts.

Callers render these strings verbatim, so the unit switch points are part of the
contract:
- kilometers below 1 km are shown in meters,
- miles below 0.1 mi are shown in feet,
- durations of an hour or more are split into hours and minutes.
"""

from __future__ import annotations

from typing import Literal

from tripsequence.core.geo import KM_TO_MILES, round_half_up

FEET_PER_MILE = 5280

DistanceUnit = Literal["km", "mi"]


def format_distance(distance_km: float, unit: DistanceUnit = "km") -> str:
    """Render a distance in kilometers as `"850 m"`, `"2.4 km"`, `"300 ft"` or `"1.5 mi"`."""
    if unit == "mi":
        miles = distance_km * KM_TO_MILES
        if miles < 0.1:
            return f"{round_half_up(miles * FEET_PER_MILE)} ft"
        return f"{miles:.1f} mi"
    if unit != "km":
        raise ValueError(f"Unknown distance unit '{unit}', expected 'km' or 'mi'")

    if distance_km < 1:
        return f"{round_half_up(distance_km * 1000)} m"
    return f"{distance_km:.1f} km"


def format_duration(minutes: int) -> str:
    """Render whole minutes as `"45 min"`, `"2 hr"` or `"1 hr 30 min"`."""
    minutes = int(minutes)
    if minutes < 60:
        return f"{minutes} min"

    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours} hr"
    return f"{hours} hr {mins} min"


def format_cluster_count(count: int) -> str:
    """Abbreviate a cluster marker count (`"999"`, `"1.2k"`, `"12k"`)."""
    if count < 1000:
        return str(count)
    if count < 10000:
        return f"{count / 1000:.1f}k"
    return f"{count // 1000}k"
