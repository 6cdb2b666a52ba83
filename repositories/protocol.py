"""Persistence port for the game.

Services depend on this protocol only; `main.py` picks the implementation
(see `repositories.factory`). Timestamps are stored and returned as
timezone-aware UTC datetimes.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from features.city.models.city_types import (
    Building,
    BuildingCreate,
    BuildingType,
    BuildingTypeCreate,
    BuildingWithType,
    City,
    CityCreate,
    Event,
    EventCreate
)
from features.common.models.resource_types import ResourceBundle
from features.storms.models.storm_types import StormEvent, StormEventCreate
from features.tides.models.tide_types import TideSample, TideStation


@runtime_checkable
class GameRepository(Protocol):
    """Relational store for stations, tide samples, cities, buildings, events and storms."""

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    # Stations
    async def list_stations(self) -> List[TideStation]: ...

    async def get_station(self, station_id: str) -> Optional[TideStation]: ...

    async def save_station(self, station: TideStation) -> TideStation: ...

    # Tide samples
    async def save_tide_samples(self, samples: Sequence[TideSample]) -> List[TideSample]:
        """Insert samples, skipping any already stored. Returns the new ones."""
        ...

    async def get_latest_observation(self, station_id: str) -> Optional[TideSample]:
        """Most recent sample with is_prediction False."""
        ...

    async def get_tide_samples(
        self,
        station_id: str,
        start: datetime,
        end: datetime,
        prediction: Optional[bool] = None
    ) -> List[TideSample]:
        """Samples with start <= timestamp <= end, oldest first."""
        ...

    # Building types
    async def list_building_types(self) -> List[BuildingType]: ...

    async def get_building_type(self, building_type_id: int) -> Optional[BuildingType]: ...

    async def save_building_type(self, building_type: BuildingTypeCreate) -> BuildingType: ...

    # Cities
    async def list_city_ids(self) -> List[int]: ...

    async def list_cities_by_user(self, user_id: int) -> List[City]: ...

    async def list_cities_by_station(self, station_id: str) -> List[City]: ...

    async def get_city(self, city_id: int) -> Optional[City]: ...

    async def create_city(self, city: CityCreate, resources: ResourceBundle) -> City: ...

    async def update_city_resources(self, city_id: int, resources: ResourceBundle) -> City:
        """Replace the stockpile and refresh last_updated."""
        ...

    # Buildings
    async def list_city_buildings(self, city_id: int) -> List[BuildingWithType]: ...

    async def get_building(self, building_id: int) -> Optional[Building]: ...

    async def is_position_occupied(self, city_id: int, pos_x: int, pos_y: int) -> bool: ...

    async def add_building(self, building: BuildingCreate, remaining: ResourceBundle) -> Building:
        """Insert the building and write the city's remaining resources as one unit."""
        ...

    async def remove_building(self, building_id: int) -> bool: ...

    # Events
    async def list_city_events(self, city_id: int, limit: int = 20) -> List[Event]:
        """Newest first."""
        ...

    async def add_event(self, event: EventCreate) -> Event: ...

    async def mark_event_read(self, event_id: int) -> bool: ...

    # Storms
    async def get_active_storms(self, station_id: str, now: datetime) -> List[StormEvent]: ...

    async def get_storm_event(self, storm_id: int) -> Optional[StormEvent]: ...

    async def create_storm_event(self, storm: StormEventCreate) -> StormEvent: ...

    async def resolve_storm_event(self, storm_id: int) -> Optional[StormEvent]: ...
