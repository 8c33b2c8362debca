from __future__ import annotations

# We use pytest because the repository standardizes on it for automated checks.
import pytest

# We import the real Settings loader so tests run with the default YAML config structure.
from tripsequence.config.settings import get_settings

# The override helper is pure (no I/O) and guards what a request may change, so we test it directly.
from tripsequence.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    # Load the baseline settings once (this is a cached Pydantic model).
    settings = get_settings()

    # No overrides means a no-op and the same object back (fast path).
    assert apply_settings_overrides(settings, None) is settings
    assert apply_settings_overrides(settings, {}) is settings


def test_apply_settings_overrides_can_override_routing_and_clustering_knobs():
    settings = get_settings()

    overrides = {
        "routing": {"walking_speed_kmh": 4.0, "confidence": {"high_percent": 30}},
        "clustering": {"radius": 80, "max_zoom": 14},
    }

    out = apply_settings_overrides(settings, overrides)

    # Overrides take effect on the returned model; untouched siblings keep their defaults.
    assert out.routing.walking_speed_kmh == 4.0
    assert out.routing.confidence.high_percent == 30
    assert out.routing.confidence.medium_percent == settings.routing.confidence.medium_percent
    assert out.clustering.radius == 80
    assert out.clustering.max_zoom == 14

    # The shared settings must stay unchanged (no cross-request leakage).
    assert settings.routing.walking_speed_kmh != 4.0
    assert settings.clustering.radius != 80


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    # Only whitelisted clustering knobs may be changed per request.
    with pytest.raises(ValueError, match=r"clustering\.bogus"):
        apply_settings_overrides(settings, {"clustering": {"bogus": 1}})

    # The app section (name, log level) is never overridable.
    with pytest.raises(ValueError, match=r"'app'"):
        apply_settings_overrides(settings, {"app": {"log_level": "DEBUG"}})


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    # `clustering` is a restricted subtree, so its override must be a mapping, not a scalar.
    with pytest.raises(ValueError, match=r"settings_overrides key 'clustering' must be a mapping"):
        apply_settings_overrides(settings, {"clustering": 1})


def test_apply_settings_overrides_revalidates_values():
    settings = get_settings()

    # Pydantic's ValidationError subclasses ValueError, so callers can treat both alike.
    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"routing": {"walking_speed_kmh": -1}})

    with pytest.raises(ValueError):
        apply_settings_overrides(settings, {"clustering": {"min_zoom": 10, "max_zoom": 5}})
