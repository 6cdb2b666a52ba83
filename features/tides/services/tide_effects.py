import math
from datetime import datetime
from typing import Iterable, Optional

from features.tides.models.tide_types import (
    ExtremeTide,
    TideImpact,
    TideKind,
    TideSample,
    TideType
)

# Display thresholds (feet above MLLW)
HIGH_TIDE_LEVEL = 4.0
LOW_TIDE_LEVEL = 1.5
FISHING_BONUS_START = 3.5
TOURISM_BONUS_START = 2.0
EXTREME_HIGH_LEVEL = 5.5
EXTREME_LOW_LEVEL = 0.5

def round_half_away(value: float) -> int:
    """Round to nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))

def classify(height: float) -> TideType:
    if height >= HIGH_TIDE_LEVEL:
        return TideType.HIGH
    if height <= LOW_TIDE_LEVEL:
        return TideType.LOW
    return TideType.NORMAL

def fishing_effect(height: float) -> int:
    """Percent change to fishing: up to +30 on high tides, down to -15 on low ones."""
    if height > FISHING_BONUS_START:
        return round_half_away(min(30, (height - FISHING_BONUS_START) / 1.5 * 30))
    if height < TOURISM_BONUS_START:
        return -round_half_away(min(15, (TOURISM_BONUS_START - height) / 2.0 * 15))
    return 0

def tourism_effect(height: float) -> int:
    """Percent change to tourism: up to +25 on low tides, down to -10 on high ones."""
    if height < TOURISM_BONUS_START:
        return round_half_away(min(25, (TOURISM_BONUS_START - height) / 1.5 * 25))
    if height > FISHING_BONUS_START:
        return -round_half_away(min(10, (height - FISHING_BONUS_START) / 1.5 * 10))
    return 0

def calculate_tide_effect(height: float) -> TideImpact:
    return TideImpact(
        fishing_effect=fishing_effect(height),
        tourism_effect=tourism_effect(height),
        tide_type=classify(height)
    )

def classify_trend(
    height: Optional[float],
    upcoming: Iterable[TideSample],
    now: datetime
) -> TideType:
    """Rising or falling from the next turning point, unless already high or low.

    The tide is rising when the next High comes before the next Low.
    """
    future = sorted(
        (s for s in upcoming if s.timestamp > now),
        key=lambda s: s.timestamp
    )
    next_high = next((s for s in future if s.kind == TideKind.HIGH), None)
    next_low = next((s for s in future if s.kind == TideKind.LOW), None)

    trend = TideType.NORMAL
    if next_high and next_low:
        trend = TideType.RISING if next_high.timestamp < next_low.timestamp else TideType.FALLING
    elif next_high:
        trend = TideType.RISING
    elif next_low:
        trend = TideType.FALLING

    if height is not None:
        level = classify(height)
        if level != TideType.NORMAL:
            return level
    return trend

def is_extreme(height: float) -> ExtremeTide:
    if height >= EXTREME_HIGH_LEVEL:
        severity = min(3, math.floor((height - EXTREME_HIGH_LEVEL) / 0.5))
        return ExtremeTide(is_extreme=True, type=TideType.HIGH, severity_level=severity)
    if height <= EXTREME_LOW_LEVEL:
        severity = min(3, math.floor((EXTREME_LOW_LEVEL - height) / 0.2))
        return ExtremeTide(is_extreme=True, type=TideType.LOW, severity_level=severity)
    return ExtremeTide(is_extreme=False, type=TideType.NORMAL, severity_level=0)

def storm_damage_potential(storm_severity: int, height: float) -> int:
    """Building health lost to a storm of the given severity (1-5) at this tide."""
    if height >= 5.0:
        tide_multiplier = 1.5
    elif height >= 4.0:
        tide_multiplier = 1.3
    elif height >= 3.0:
        tide_multiplier = 1.1
    else:
        tide_multiplier = 1.0
    return round_half_away(storm_severity * 5 * tide_multiplier)

def describe_height(height: float) -> str:
    if height >= 5.5:
        return "Extreme High Tide"
    if height >= 4.5:
        return "Very High Tide"
    if height >= 3.5:
        return "High Tide"
    if height >= 2.0:
        return "Medium Tide"
    if height >= 1.0:
        return "Low Tide"
    return "Very Low Tide"
