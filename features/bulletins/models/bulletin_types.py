from typing import Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field

from features.common.models.resource_types import ResourceBundle

class BulletinTone(str, Enum):
    CONCERNED = "concerned"
    EXCITED = "excited"
    OPTIMISTIC = "optimistic"
    INFORMATIVE = "informative"

class TideExtreme(BaseModel):
    """Highest High or lowest Low of the day, formatted for the prompt."""
    height: float
    time: str = Field(..., description="Local clock time, e.g. 4:12 PM")

class StormSummary(BaseModel):
    title: str
    severity: int
    description: str

class BulletinContext(BaseModel):
    city_name: str
    station_name: str
    resources: ResourceBundle
    buildings: Dict[str, int] = Field(default_factory=dict)
    highest_tide: Optional[TideExtreme] = None
    lowest_tide: Optional[TideExtreme] = None
    storm_event: Optional[StormSummary] = None

class BulletinText(BaseModel):
    """Structured output requested from the text generator."""
    title: str = Field(..., description="Brief bulletin headline, under 40 characters")
    message: str = Field(..., description="Bulletin body for citizens, under 200 words")
