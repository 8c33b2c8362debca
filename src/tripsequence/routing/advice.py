"""
Advisory helpers for the "optimize my day?" hint in the UI.

Neither function runs the optimizer; both are cheap checks over the current order.
The savings number is a rough estimate and is labeled as such (`is_estimate=True`).
"""

from __future__ import annotations

from typing import Sequence

from tripsequence.config.settings import RoutingSettings, get_settings
from tripsequence.core.geo import haversine_km, path_distance_km
from tripsequence.domain.models import SavingsEstimate, Stop


def has_backtracking(stops: Sequence[Stop], *, ratio: float = 1.5) -> bool:
    """True if some consecutive triple detours by more than `ratio` x the direct hop."""
    for i in range(len(stops) - 2):
        a, b, c = (stops[i].coordinate, stops[i + 1].coordinate, stops[i + 2].coordinate)
        if haversine_km(a, b) + haversine_km(b, c) > haversine_km(a, c) * ratio:
            return True
    return False


def should_optimize(stops: Sequence[Stop], *, settings: RoutingSettings | None = None) -> bool:
    cfg = settings or get_settings().routing
    if len(stops) < 3:
        return False
    return len(stops) >= 4 or has_backtracking(stops, ratio=cfg.backtrack_ratio)


def estimate_optimization_savings(
    stops: Sequence[Stop], *, settings: RoutingSettings | None = None
) -> SavingsEstimate:
    """Guess the distance an optimizer could save, from the average pairwise distance.

    The optimal path is taken to be `factor * avg_pair_distance * (n - 1)`; confidence is
    bucketed by the resulting savings percentage.
    """
    cfg = settings or get_settings().routing
    n = len(stops)
    if n < 3:
        return SavingsEstimate(potential_savings_km=0.0, savings_percent=0.0, confidence="low")

    coords = [s.coordinate for s in stops]
    current = path_distance_km(coords)

    pair_total = 0.0
    pair_count = 0
    for i in range(n):
        for j in range(i + 1, n):
            pair_total += haversine_km(coords[i], coords[j])
            pair_count += 1
    avg_pair = pair_total / pair_count

    estimated_optimal = avg_pair * (n - 1) * cfg.savings_optimal_factor
    savings = max(0.0, current - estimated_optimal)
    percent = savings / current * 100 if current > 0 else 0.0

    if percent > cfg.confidence.high_percent:
        confidence = "high"
    elif percent > cfg.confidence.medium_percent:
        confidence = "medium"
    else:
        confidence = "low"

    return SavingsEstimate(potential_savings_km=savings, savings_percent=percent, confidence=confidence)
