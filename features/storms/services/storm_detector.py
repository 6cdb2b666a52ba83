import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from features.storms.models.storm_types import StormEventCreate
from features.tides.models.tide_types import TideKind, TideSample

STORM_SURGE_THRESHOLD = 1.3
STORM_TITLE = "Storm Surge Warning"

def average_high_tide(history: Sequence[TideSample]) -> Optional[float]:
    highs = [s.height for s in history if s.kind == TideKind.HIGH]
    if not highs:
        return None
    return sum(highs) / len(highs)

def qualifying_predictions(
    predictions: Sequence[TideSample],
    history: Sequence[TideSample],
    now: datetime,
    threshold: float = STORM_SURGE_THRESHOLD
) -> List[TideSample]:
    """Upcoming High predictions well above the trailing average high tide."""
    avg_high = average_high_tide(history)
    if avg_high is None:
        return []
    return [
        p for p in predictions
        if p.kind == TideKind.HIGH
        and p.timestamp > now
        and p.height > avg_high * threshold
    ]

def detect_storm_surge(
    predictions: Sequence[TideSample],
    history: Sequence[TideSample],
    now: datetime,
    threshold: float = STORM_SURGE_THRESHOLD
) -> bool:
    return bool(qualifying_predictions(predictions, history, now, threshold))

def highest_qualifying_prediction(
    predictions: Sequence[TideSample],
    history: Sequence[TideSample],
    now: datetime,
    threshold: float = STORM_SURGE_THRESHOLD
) -> Optional[TideSample]:
    candidates = qualifying_predictions(predictions, history, now, threshold)
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.height)

def storm_severity(predicted_height: float) -> int:
    """Severity on a 1-5 scale, one step per 1.5 ft of predicted height."""
    return max(1, min(5, math.floor(predicted_height / 1.5)))

def build_storm_event(
    prediction: TideSample,
    now: datetime,
    duration_hours: int = 6
) -> StormEventCreate:
    return StormEventCreate(
        station_id=prediction.station_id,
        start_time=now,
        end_time=prediction.timestamp + timedelta(hours=duration_hours),
        severity=storm_severity(prediction.height),
        title=STORM_TITLE,
        description=(
            f"Unusually high tides of {prediction.height:.1f} ft expected. "
            "Prepare for potential coastal flooding."
        ),
        resolved=False
    )
