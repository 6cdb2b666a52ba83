from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from features.common.models.resource_types import Resources, ResourceBundle
from features.storms.models.storm_types import StormEvent
from features.tides.models.tide_types import TideStation

class BuildingKind(str, Enum):
    FISHING_DOCK = "fishing_dock"
    BEACH_RESORT = "beach_resort"
    LIGHTHOUSE = "lighthouse"
    SEAWALL = "seawall"
    HOUSE = "house"
    POWER_PLANT = "power_plant"

class EventType(str, Enum):
    WELCOME = "welcome"
    BUILDING_CONSTRUCTED = "building_constructed"
    BUILDING_REMOVED = "building_removed"
    STORM_SURGE = "storm_surge"
    MAYORAL_BULLETIN = "mayoral_bulletin"

class BuildingTypeCreate(BaseModel):
    """Catalog entry as seeded. Cost cannot be negative, production can."""
    kind: BuildingKind
    name: str
    description: str
    cost: ResourceBundle
    production: Resources
    protection: int = Field(0, ge=0)
    icon: str

class BuildingType(BuildingTypeCreate):
    id: int

class BuildingCreate(BaseModel):
    city_id: int
    building_type_id: int
    pos_x: int = Field(..., ge=0)
    pos_y: int = Field(..., ge=0)
    health: int = Field(100, ge=0, le=100)

class Building(BuildingCreate):
    id: int
    created_at: datetime

class BuildingWithType(Building):
    type: BuildingType

class BuildingPlacement(BaseModel):
    """Request body for placing a building."""
    building_type_id: int
    pos_x: int = Field(..., ge=0)
    pos_y: int = Field(..., ge=0)

class CityCreate(BaseModel):
    user_id: int = 1
    name: str = Field(..., min_length=1, max_length=80)
    station_id: str

class City(BaseModel):
    id: int
    user_id: int
    name: str
    station_id: str
    resources: ResourceBundle
    last_updated: datetime
    created_at: datetime

class EventCreate(BaseModel):
    city_id: int
    type: EventType
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)

class Event(EventCreate):
    id: int
    read: bool = False
    created_at: datetime

class CityDetail(BaseModel):
    city: City
    station: Optional[TideStation] = None
    current_tide_level: Optional[float] = None
    production: Resources
    active_storms: List[StormEvent]

class SuccessResponse(BaseModel):
    success: bool = True
