import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from core.config import settings
from features.city.models.city_types import EventCreate, EventType
from features.common.exceptions.game_exceptions import CityNotFoundError, StormNotFoundError
from features.common.services.keyed_locks import KeyedLocks
from features.storms.models.storm_types import StormEvent
from features.storms.services.storm_detector import (
    build_storm_event,
    highest_qualifying_prediction
)
from features.tides.services.tide_service import TideService
from repositories.protocol import GameRepository

logger = logging.getLogger(__name__)

class StormService:
    """Raises storm surge warnings for stations and notifies their cities."""

    def __init__(
        self,
        repository: GameRepository,
        tide_service: TideService,
        station_locks: Optional[KeyedLocks] = None
    ) -> None:
        self.repository = repository
        self.tide_service = tide_service
        self.station_locks = station_locks or KeyedLocks()

    async def get_active_storms(self, station_id: str, now: Optional[datetime] = None) -> List[StormEvent]:
        return await self.repository.get_active_storms(station_id, now or datetime.now(timezone.utc))

    async def check_station(self, station_id: str, now: Optional[datetime] = None) -> Optional[StormEvent]:
        """Create a storm event when a surge is predicted and none is active.

        Returns the new storm, or None when nothing was created.
        """
        now = now or datetime.now(timezone.utc)
        predictions = await self.tide_service.get_predictions(
            station_id, settings.storm_prediction_days, now
        )
        history = await self.repository.get_tide_samples(
            station_id, now - timedelta(days=settings.storm_history_days), now
        )

        target = highest_qualifying_prediction(
            predictions, history, now, settings.storm_surge_threshold
        )
        if target is None:
            return None

        async with self.station_locks(station_id):
            if await self.repository.get_active_storms(station_id, now):
                logger.debug(f"Storm already active for station {station_id}")
                return None

            storm = await self.repository.create_storm_event(
                build_storm_event(target, now, settings.storm_duration_hours)
            )

        for city in await self.repository.list_cities_by_station(station_id):
            await self.repository.add_event(EventCreate(
                city_id=city.id,
                type=EventType.STORM_SURGE,
                title=storm.title,
                message=storm.description,
                data={"storm_event_id": storm.id}
            ))
        logger.warning(
            f"⛈️ Created storm event {storm.id} for station {station_id} "
            f"(severity {storm.severity}, peak {target.height:.1f} ft)"
        )
        return storm

    async def check_city(self, city_id: int, now: Optional[datetime] = None) -> Optional[StormEvent]:
        city = await self.repository.get_city(city_id)
        if not city:
            raise CityNotFoundError(f"City {city_id} not found")
        return await self.check_station(city.station_id, now)

    async def resolve(self, storm_id: int) -> StormEvent:
        storm = await self.repository.resolve_storm_event(storm_id)
        if not storm:
            raise StormNotFoundError(f"Storm event {storm_id} not found")
        logger.info(f"Resolved storm event {storm_id} for station {storm.station_id}")
        return storm
