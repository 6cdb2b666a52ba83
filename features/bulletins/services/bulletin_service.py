import logging
from datetime import datetime, timezone
from typing import Optional

from features.bulletins.models.bulletin_types import BulletinText
from features.bulletins.services.bulletin_composer import BulletinComposer, build_context
from features.city.models.city_types import Event, EventCreate, EventType
from features.common.exceptions.game_exceptions import CityNotFoundError, StationNotFoundError
from features.tides.services.tide_service import TideService
from repositories.protocol import GameRepository

logger = logging.getLogger(__name__)

class BulletinService:
    def __init__(
        self,
        repository: GameRepository,
        tide_service: TideService,
        composer: BulletinComposer
    ) -> None:
        self.repository = repository
        self.tide_service = tide_service
        self.composer = composer

    async def publish_for_city(self, city_id: int, now: Optional[datetime] = None) -> Event:
        """Compose a bulletin for the city and post it to its event log."""
        now = now or datetime.now(timezone.utc)
        city = await self.repository.get_city(city_id)
        if not city:
            raise CityNotFoundError(f"City {city_id} not found")
        station = await self.tide_service.get_station(city.station_id)
        if not station:
            raise StationNotFoundError(f"Station {city.station_id} not found")

        predictions = await self.tide_service.get_predictions(city.station_id, 1, now)
        storms = await self.repository.get_active_storms(city.station_id, now)
        buildings = await self.repository.list_city_buildings(city_id)

        context = build_context(city, station, buildings, predictions, storms[0] if storms else None)
        bulletin: BulletinText = await self.composer.compose(context)

        event = await self.repository.add_event(EventCreate(
            city_id=city_id,
            type=EventType.MAYORAL_BULLETIN,
            title=bulletin.title,
            message=bulletin.message
        ))
        logger.info(f"📰 Generated mayoral bulletin for city {city_id}: {bulletin.title}")
        return event
