"""In-memory GameRepository. Used by tests and single-process local runs."""

import itertools
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple

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
from features.common.exceptions.game_exceptions import (
    CityNotFoundError,
    PositionOccupiedError,
    UnknownBuildingTypeError
)
from features.common.models.resource_types import ResourceBundle
from features.storms.models.storm_types import StormEvent, StormEventCreate
from features.tides.models.tide_types import TideSample, TideStation

logger = logging.getLogger(__name__)

SampleKey = Tuple[str, datetime, bool]

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class InMemoryGameRepository:
    def __init__(self) -> None:
        self._stations: Dict[str, TideStation] = {}
        self._samples: List[TideSample] = []
        self._sample_keys: Set[SampleKey] = set()
        self._building_types: Dict[int, BuildingType] = {}
        self._cities: Dict[int, City] = {}
        self._buildings: Dict[int, Building] = {}
        self._events: Dict[int, Event] = {}
        self._storms: Dict[int, StormEvent] = {}
        self._ids = {
            name: itertools.count(1)
            for name in ("building_type", "city", "building", "event", "storm")
        }

    def _next_id(self, name: str) -> int:
        return next(self._ids[name])

    async def initialize(self) -> None:
        logger.info("Using in-memory repository")

    async def close(self) -> None:
        pass

    # Stations
    async def list_stations(self) -> List[TideStation]:
        return list(self._stations.values())

    async def get_station(self, station_id: str) -> Optional[TideStation]:
        return self._stations.get(station_id)

    async def save_station(self, station: TideStation) -> TideStation:
        self._stations[station.station_id] = station
        return station

    # Tide samples
    async def save_tide_samples(self, samples: Sequence[TideSample]) -> List[TideSample]:
        inserted = []
        for sample in samples:
            key = (sample.station_id, sample.timestamp, sample.is_prediction)
            if key in self._sample_keys:
                continue
            self._sample_keys.add(key)
            self._samples.append(sample)
            inserted.append(sample)
        return inserted

    async def get_latest_observation(self, station_id: str) -> Optional[TideSample]:
        observed = [
            s for s in self._samples
            if s.station_id == station_id and not s.is_prediction
        ]
        return max(observed, key=lambda s: s.timestamp, default=None)

    async def get_tide_samples(
        self,
        station_id: str,
        start: datetime,
        end: datetime,
        prediction: Optional[bool] = None
    ) -> List[TideSample]:
        return sorted(
            (
                s for s in self._samples
                if s.station_id == station_id
                and start <= s.timestamp <= end
                and (prediction is None or s.is_prediction == prediction)
            ),
            key=lambda s: s.timestamp
        )

    # Building types
    async def list_building_types(self) -> List[BuildingType]:
        return list(self._building_types.values())

    async def get_building_type(self, building_type_id: int) -> Optional[BuildingType]:
        return self._building_types.get(building_type_id)

    async def save_building_type(self, building_type: BuildingTypeCreate) -> BuildingType:
        saved = BuildingType(id=self._next_id("building_type"), **building_type.model_dump())
        self._building_types[saved.id] = saved
        return saved

    # Cities
    async def list_city_ids(self) -> List[int]:
        return sorted(self._cities)

    async def list_cities_by_user(self, user_id: int) -> List[City]:
        return [c for c in self._cities.values() if c.user_id == user_id]

    async def list_cities_by_station(self, station_id: str) -> List[City]:
        return [c for c in self._cities.values() if c.station_id == station_id]

    async def get_city(self, city_id: int) -> Optional[City]:
        return self._cities.get(city_id)

    async def create_city(self, city: CityCreate, resources: ResourceBundle) -> City:
        now = _utcnow()
        saved = City(
            id=self._next_id("city"),
            user_id=city.user_id,
            name=city.name,
            station_id=city.station_id,
            resources=resources,
            last_updated=now,
            created_at=now
        )
        self._cities[saved.id] = saved
        return saved

    async def update_city_resources(self, city_id: int, resources: ResourceBundle) -> City:
        city = self._cities.get(city_id)
        if city is None:
            raise CityNotFoundError(f"City {city_id} not found")
        updated = city.model_copy(update={"resources": resources, "last_updated": _utcnow()})
        self._cities[city_id] = updated
        return updated

    # Buildings
    async def list_city_buildings(self, city_id: int) -> List[BuildingWithType]:
        return [
            BuildingWithType(**b.model_dump(), type=self._building_types[b.building_type_id])
            for b in self._buildings.values()
            if b.city_id == city_id
        ]

    async def get_building(self, building_id: int) -> Optional[Building]:
        return self._buildings.get(building_id)

    async def is_position_occupied(self, city_id: int, pos_x: int, pos_y: int) -> bool:
        return any(
            b.city_id == city_id and b.pos_x == pos_x and b.pos_y == pos_y
            for b in self._buildings.values()
        )

    async def add_building(self, building: BuildingCreate, remaining: ResourceBundle) -> Building:
        if building.city_id not in self._cities:
            raise CityNotFoundError(f"City {building.city_id} not found")
        if building.building_type_id not in self._building_types:
            raise UnknownBuildingTypeError(f"Building type {building.building_type_id} not found")
        if await self.is_position_occupied(building.city_id, building.pos_x, building.pos_y):
            raise PositionOccupiedError("Position already occupied")

        saved = Building(id=self._next_id("building"), created_at=_utcnow(), **building.model_dump())
        self._buildings[saved.id] = saved
        await self.update_city_resources(building.city_id, remaining)
        return saved

    async def remove_building(self, building_id: int) -> bool:
        return self._buildings.pop(building_id, None) is not None

    # Events
    async def list_city_events(self, city_id: int, limit: int = 20) -> List[Event]:
        events = [e for e in self._events.values() if e.city_id == city_id]
        events.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return events[:limit]

    async def add_event(self, event: EventCreate) -> Event:
        saved = Event(id=self._next_id("event"), read=False, created_at=_utcnow(), **event.model_dump())
        self._events[saved.id] = saved
        return saved

    async def mark_event_read(self, event_id: int) -> bool:
        event = self._events.get(event_id)
        if event is None:
            return False
        self._events[event_id] = event.model_copy(update={"read": True})
        return True

    # Storms
    async def get_active_storms(self, station_id: str, now: datetime) -> List[StormEvent]:
        return [
            s for s in self._storms.values()
            if s.station_id == station_id and s.is_active(now)
        ]

    async def get_storm_event(self, storm_id: int) -> Optional[StormEvent]:
        return self._storms.get(storm_id)

    async def create_storm_event(self, storm: StormEventCreate) -> StormEvent:
        saved = StormEvent(id=self._next_id("storm"), **storm.model_dump())
        self._storms[saved.id] = saved
        return saved

    async def resolve_storm_event(self, storm_id: int) -> Optional[StormEvent]:
        storm = self._storms.get(storm_id)
        if storm is None:
            return None
        resolved = storm.model_copy(update={"resolved": True})
        self._storms[storm_id] = resolved
        return resolved
