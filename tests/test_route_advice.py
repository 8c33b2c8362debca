import pytest

from tripsequence.config.settings import ConfidenceThresholds, RoutingSettings
from tripsequence.core.geo import Coordinate
from tripsequence.domain.models import Stop
from tripsequence.routing.advice import estimate_optimization_savings, has_backtracking, should_optimize


def _line(*lngs: float) -> list[Stop]:
    # Stops along the equator, so leg lengths are proportional to longitude gaps.
    return [Stop(id=f"s{i}", coordinate=Coordinate(lat=0, lng=lng)) for i, lng in enumerate(lngs)]


def test_should_optimize_needs_three_stops():
    assert should_optimize([]) is False
    assert should_optimize(_line(0, 5)) is False


def test_should_optimize_detects_backtracking_in_short_routes():
    # Straight line: two hops equal the direct distance.
    assert should_optimize(_line(0, 1, 2)) is False
    # 0 -> 2 -> 1 doubles back: 2 + 1 > 1.5 * 1
    assert should_optimize(_line(0, 2, 1)) is True
    assert has_backtracking(_line(0, 2, 1))


def test_should_optimize_is_always_true_from_four_stops():
    assert should_optimize(_line(0, 1, 2, 3)) is True


def test_estimate_is_zero_and_low_confidence_for_short_routes():
    est = estimate_optimization_savings(_line(0, 1))

    assert est.potential_savings_km == 0
    assert est.confidence == "low"
    assert est.is_estimate is True


def test_estimate_flags_a_zigzag_route_with_high_confidence():
    # current = 3 + 2 + 1 = 6 units; avg pair = 10 / 6; estimate = 0.7 * avg * 3 = 3.5 units
    est = estimate_optimization_savings(_line(0, 3, 1, 2))

    assert est.savings_percent == pytest.approx(2.5 / 6 * 100, rel=1e-6)
    assert est.confidence == "high"
    assert est.is_estimate is True


def test_estimate_reports_nothing_for_an_already_straight_route():
    est = estimate_optimization_savings(_line(0, 1, 2, 3))

    assert est.potential_savings_km == 0
    assert est.savings_percent == 0
    assert est.confidence == "low"


def test_estimate_confidence_buckets_follow_settings():
    settings = RoutingSettings(confidence=ConfidenceThresholds(high_percent=50, medium_percent=30))

    est = estimate_optimization_savings(_line(0, 3, 1, 2), settings=settings)

    assert est.confidence == "medium"


def test_estimate_handles_all_stops_on_one_spot():
    est = estimate_optimization_savings(_line(1, 1, 1))

    assert est.potential_savings_km == 0
    assert est.savings_percent == 0
