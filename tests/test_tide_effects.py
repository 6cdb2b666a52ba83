"""Tests for the display-side tide effect calculator."""

from __future__ import annotations

import pytest

from features.tides.models.tide_types import TideKind, TideType
from features.tides.services import tide_effects

from tests.factories import NOW, sample


@pytest.mark.parametrize(
    "value,expected",
    [(0.5, 1), (1.5, 2), (2.4, 2), (-0.5, -1), (-2.5, -3), (0.0, 0)],
)
def test_round_half_away(value, expected):
    assert tide_effects.round_half_away(value) == expected


def test_classify_thresholds():
    assert tide_effects.classify(4.0) == TideType.HIGH
    assert tide_effects.classify(1.5) == TideType.LOW
    assert tide_effects.classify(2.75) == TideType.NORMAL


def test_high_tide_boosts_fishing_and_hurts_tourism():
    impact = tide_effects.calculate_tide_effect(5.0)
    assert impact.fishing_effect == 30
    assert impact.tourism_effect == -10
    assert impact.tide_type == TideType.HIGH


def test_low_tide_boosts_tourism_and_hurts_fishing():
    impact = tide_effects.calculate_tide_effect(0.5)
    assert impact.tourism_effect == 25
    assert impact.fishing_effect == -11
    assert impact.tide_type == TideType.LOW


def test_mid_tide_has_no_effect():
    impact = tide_effects.calculate_tide_effect(2.75)
    assert impact.fishing_effect == 0
    assert impact.tourism_effect == 0
    assert impact.tide_type == TideType.NORMAL


def test_partial_fishing_bonus():
    # (4.25 - 3.5) / 1.5 * 30 = 15
    assert tide_effects.fishing_effect(4.25) == 15


def test_trend_rising_when_next_high_comes_first():
    upcoming = [
        sample(2, 4.8, TideKind.HIGH, prediction=True),
        sample(8, 0.4, TideKind.LOW, prediction=True),
    ]
    assert tide_effects.classify_trend(2.5, upcoming, NOW) == TideType.RISING


def test_trend_falling_when_next_low_comes_first():
    upcoming = [
        sample(-1, 4.8, TideKind.HIGH, prediction=True),
        sample(3, 0.4, TideKind.LOW, prediction=True),
        sample(9, 4.9, TideKind.HIGH, prediction=True),
    ]
    assert tide_effects.classify_trend(2.5, upcoming, NOW) == TideType.FALLING


def test_trend_reports_high_or_low_level_first():
    upcoming = [sample(2, 4.8, TideKind.HIGH, prediction=True)]
    assert tide_effects.classify_trend(4.6, upcoming, NOW) == TideType.HIGH
    assert tide_effects.classify_trend(1.0, upcoming, NOW) == TideType.LOW


def test_trend_without_predictions_is_normal():
    assert tide_effects.classify_trend(None, [], NOW) == TideType.NORMAL


def test_extreme_high_severity():
    extreme = tide_effects.is_extreme(6.6)
    assert extreme.is_extreme
    assert extreme.type == TideType.HIGH
    assert extreme.severity_level == 2


def test_extreme_low_severity_is_capped():
    extreme = tide_effects.is_extreme(-1.0)
    assert extreme.type == TideType.LOW
    assert extreme.severity_level == 3


def test_not_extreme():
    extreme = tide_effects.is_extreme(3.0)
    assert not extreme.is_extreme
    assert extreme.severity_level == 0


@pytest.mark.parametrize(
    "severity,height,expected",
    [(3, 5.2, 23), (4, 4.0, 26), (2, 3.0, 11), (5, 1.0, 25)],
)
def test_storm_damage_potential(severity, height, expected):
    assert tide_effects.storm_damage_potential(severity, height) == expected


def test_describe_height():
    assert tide_effects.describe_height(5.6) == "Extreme High Tide"
    assert tide_effects.describe_height(2.0) == "Medium Tide"
    assert tide_effects.describe_height(0.2) == "Very Low Tide"


@pytest.mark.parametrize("height,severity", [(5.5, 0), (6.0, 1), (0.5, 0), (0.1, 2)])
def test_extreme_severity_examples(height, severity):
    extreme = tide_effects.is_extreme(height)
    assert extreme.is_extreme
    assert extreme.severity_level == severity


def test_effects_stay_within_caps():
    for tenths in range(0, 61):
        height = tenths / 10
        fishing = tide_effects.fishing_effect(height)
        tourism = tide_effects.tourism_effect(height)
        assert isinstance(fishing, int) and -15 <= fishing <= 30
        assert isinstance(tourism, int) and -10 <= tourism <= 25
