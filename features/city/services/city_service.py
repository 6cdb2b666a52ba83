import logging
from datetime import datetime, timezone
from typing import List, Optional

from core.config import settings
from features.city.models.city_types import (
    Building,
    BuildingCreate,
    BuildingPlacement,
    BuildingType,
    BuildingWithType,
    City,
    CityCreate,
    CityDetail,
    Event,
    EventCreate,
    EventType
)
from features.city.services.production_engine import apply_production, calculate_production
from features.common.exceptions.game_exceptions import (
    BuildingNotFoundError,
    CityNotFoundError,
    EventNotFoundError,
    InsufficientResourcesError,
    OutOfBoundsError,
    PositionOccupiedError,
    StationNotFoundError,
    UnknownBuildingTypeError
)
from features.common.models.resource_types import Resources, ResourceBundle
from features.common.services.keyed_locks import KeyedLocks
from features.tides.services.tide_service import TideService
from repositories.protocol import GameRepository

logger = logging.getLogger(__name__)

class CityService:
    """Cities, their buildings and their event log.

    Every change to a city's stockpile happens under that city's lock, so
    placements and production ticks never overwrite each other.
    """

    def __init__(
        self,
        repository: GameRepository,
        tide_service: TideService,
        city_locks: Optional[KeyedLocks] = None,
        grid_size: Optional[int] = None
    ) -> None:
        self.repository = repository
        self.tide_service = tide_service
        self.city_locks = city_locks or KeyedLocks()
        self.grid_size = grid_size or settings.grid_size

    async def get_city(self, city_id: int) -> City:
        city = await self.repository.get_city(city_id)
        if not city:
            raise CityNotFoundError(f"City {city_id} not found")
        return city

    async def list_cities(self, user_id: int) -> List[City]:
        return await self.repository.list_cities_by_user(user_id)

    async def create_city(self, city_data: CityCreate) -> City:
        station = await self.tide_service.get_station(city_data.station_id)
        if not station:
            raise StationNotFoundError("Invalid station ID")

        city = await self.repository.create_city(
            city_data,
            ResourceBundle.model_validate(settings.starting_resources)
        )
        await self.repository.add_event(EventCreate(
            city_id=city.id,
            type=EventType.WELCOME,
            title="Welcome to your new coastal city!",
            message=f"You've established {city.name} at {station.name}. Build wisely with the tides!"
        ))
        logger.info(f"Founded city {city.id} ({city.name}) at station {station.station_id}")
        return city

    async def get_city_detail(self, city_id: int, now: Optional[datetime] = None) -> CityDetail:
        now = now or datetime.now(timezone.utc)
        city = await self.get_city(city_id)
        station = await self.tide_service.get_station(city.station_id)
        height = await self.tide_service.get_current_height(city.station_id, now)
        buildings = await self.repository.list_city_buildings(city_id)

        return CityDetail(
            city=city,
            station=station,
            current_tide_level=height,
            production=calculate_production(buildings, height),
            active_storms=await self.repository.get_active_storms(city.station_id, now)
        )

    async def list_building_types(self) -> List[BuildingType]:
        return await self.repository.list_building_types()

    async def list_buildings(self, city_id: int) -> List[BuildingWithType]:
        await self.get_city(city_id)
        return await self.repository.list_city_buildings(city_id)

    async def place_building(self, city_id: int, placement: BuildingPlacement) -> Building:
        """Build on a free cell and pay for it. Rejections leave the city untouched."""
        if not (0 <= placement.pos_x < self.grid_size and 0 <= placement.pos_y < self.grid_size):
            raise OutOfBoundsError(
                f"Position ({placement.pos_x}, {placement.pos_y}) is outside the {self.grid_size}x{self.grid_size} grid"
            )

        async with self.city_locks(city_id):
            city = await self.get_city(city_id)

            building_type = await self.repository.get_building_type(placement.building_type_id)
            if not building_type:
                raise UnknownBuildingTypeError("Invalid building type")

            if await self.repository.is_position_occupied(city_id, placement.pos_x, placement.pos_y):
                raise PositionOccupiedError("Position already occupied")

            if not city.resources.can_afford(building_type.cost):
                raise InsufficientResourcesError("Insufficient resources")

            building = await self.repository.add_building(
                BuildingCreate(
                    city_id=city_id,
                    building_type_id=building_type.id,
                    pos_x=placement.pos_x,
                    pos_y=placement.pos_y
                ),
                city.resources.deduct(building_type.cost)
            )

        await self.repository.add_event(EventCreate(
            city_id=city_id,
            type=EventType.BUILDING_CONSTRUCTED,
            title=f"New {building_type.name} Constructed",
            message=f"Your new {building_type.name} has been built and is now operational.",
            data={"building_id": building.id}
        ))
        logger.info(f"City {city_id} built {building_type.kind.value} at ({building.pos_x}, {building.pos_y})")
        return building

    async def remove_building(self, building_id: int) -> None:
        """Demolish a building. Its cost is not refunded."""
        building = await self.repository.get_building(building_id)
        if not building:
            raise BuildingNotFoundError(f"Building {building_id} not found")

        async with self.city_locks(building.city_id):
            if not await self.repository.remove_building(building_id):
                raise BuildingNotFoundError(f"Building {building_id} not found")

        await self.repository.add_event(EventCreate(
            city_id=building.city_id,
            type=EventType.BUILDING_REMOVED,
            title="Building Demolished",
            message=f"The building at ({building.pos_x}, {building.pos_y}) has been demolished.",
            data={"building_id": building_id}
        ))

    async def list_events(self, city_id: int, limit: Optional[int] = None) -> List[Event]:
        await self.get_city(city_id)
        return await self.repository.list_city_events(city_id, limit or settings.event_list_limit)

    async def mark_event_read(self, event_id: int) -> None:
        if not await self.repository.mark_event_read(event_id):
            raise EventNotFoundError(f"Event {event_id} not found")

    async def apply_production_tick(self, city_id: int, now: Optional[datetime] = None) -> Resources:
        """Add one tick of tide-adjusted production to the city's stockpile.

        A missing tide reading does not stall the economy; production then
        runs without tide bonuses.
        """
        now = now or datetime.now(timezone.utc)
        city = await self.get_city(city_id)
        height = await self.tide_service.get_current_height(city.station_id, now)

        async with self.city_locks(city_id):
            city = await self.get_city(city_id)
            buildings = await self.repository.list_city_buildings(city_id)
            production = calculate_production(buildings, height)
            await self.repository.update_city_resources(city_id, apply_production(city.resources, production))

        logger.info(
            f"Updated resources for city {city_id}: +{production.fish} fish, "
            f"+{production.tourism} tourism, +{production.energy} energy"
        )
        return production
