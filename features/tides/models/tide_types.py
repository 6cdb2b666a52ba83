from typing import List, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

class TideKind(str, Enum):
    HIGH = "H"
    LOW = "L"
    UNMARKED = "U"

class TideType(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    HIGH = "high"
    LOW = "low"
    NORMAL = "normal"

class TideStation(BaseModel):
    """Tide station details"""
    station_id: str = Field(..., description="NOAA station identifier")
    name: str = Field(..., description="Station name")
    state: Optional[str] = Field(None, description="State name")
    latitude: float = Field(..., description="Latitude")
    longitude: float = Field(..., description="Longitude")
    timezone_offset: Optional[str] = Field(None, description="Hours from UTC")

class TideSample(BaseModel):
    """A recorded water level. Predictions come tagged High or Low."""
    model_config = ConfigDict(frozen=True)

    station_id: str = Field(..., description="NOAA station identifier")
    timestamp: datetime = Field(..., description="Time of the sample (UTC)")
    height: float = Field(..., description="Height of tide in feet above MLLW")
    kind: TideKind = Field(TideKind.UNMARKED, description="High, Low or unmarked")
    is_prediction: bool = Field(False, description="True for provider predictions")

class TideImpact(BaseModel):
    """Percent effects of a tide height on production, for display."""
    fishing_effect: int
    tourism_effect: int
    tide_type: TideType

class ExtremeTide(BaseModel):
    is_extreme: bool
    type: TideType
    severity_level: int = Field(..., ge=0, le=3)

class StationDetail(BaseModel):
    station: TideStation
    current_tide_level: Optional[float] = None
    predictions: List[TideSample]
    next_high_tide: Optional[TideSample] = None
    next_low_tide: Optional[TideSample] = None

class TideEffectReport(BaseModel):
    station_id: str
    current_tide_level: Optional[float] = None
    description: Optional[str] = None
    impact: TideImpact
    extreme: Optional[ExtremeTide] = None
    storm_damage_potential: Optional[int] = None
