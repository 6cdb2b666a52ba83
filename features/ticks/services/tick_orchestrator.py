import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from features.bulletins.services.bulletin_service import BulletinService
from features.city.services.city_service import CityService
from features.common.services.rate_limiter import RateLimiter
from features.storms.services.storm_service import StormService
from features.tides.services.tide_service import TideService
from features.ticks.models.tick_types import CycleResult

logger = logging.getLogger(__name__)

class TickOrchestrator:
    """Runs the periodic game jobs over explicit lists of cities or stations.

    A failure for one city or station is logged and recorded in the result;
    the rest of the list is still processed.
    """

    def __init__(
        self,
        city_service: CityService,
        storm_service: StormService,
        bulletin_service: BulletinService,
        tide_service: TideService,
        rate_limiter: Optional[RateLimiter] = None
    ) -> None:
        self.city_service = city_service
        self.storm_service = storm_service
        self.bulletin_service = bulletin_service
        self.tide_service = tide_service
        self.rate_limiter = rate_limiter

    async def run_tick_cycle(self, city_ids: Sequence[int], now: Optional[datetime] = None) -> CycleResult:
        """Production tick and storm check, city by city.

        The storm check runs even when the production step fails. A city is
        recorded as failed if either step fails.
        """
        now = now or datetime.now(timezone.utc)
        result = CycleResult(job="tick")
        for city_id in city_ids:
            ok = True
            try:
                await self.city_service.apply_production_tick(city_id, now)
            except Exception as e:
                logger.error(f"Error in production tick for city {city_id}: {str(e)}")
                ok = False
            try:
                await self.storm_service.check_city(city_id, now)
            except Exception as e:
                logger.error(f"Error checking storms for city {city_id}: {str(e)}")
                ok = False
            if ok:
                result.succeeded.append(str(city_id))
            else:
                result.failed.append(str(city_id))
        logger.info(f"Tick cycle finished: {len(result.succeeded)} ok, {len(result.failed)} failed")
        return result

    async def run_bulletin_cycle(self, city_ids: Sequence[int], now: Optional[datetime] = None) -> CycleResult:
        now = now or datetime.now(timezone.utc)
        result = CycleResult(job="bulletins")
        for city_id in city_ids:
            try:
                await self.bulletin_service.publish_for_city(city_id, now)
                result.succeeded.append(str(city_id))
            except Exception as e:
                logger.error(f"Error generating mayoral update for city {city_id}: {str(e)}")
                result.failed.append(str(city_id))
        return result

    async def refresh_predictions(self, station_ids: Sequence[str], days: int = 3) -> CycleResult:
        result = CycleResult(job="refresh_predictions")
        for station_id in station_ids:
            try:
                if self.rate_limiter:
                    await self.rate_limiter.limit()
                await self.tide_service.refresh_predictions(station_id, days)
                result.succeeded.append(station_id)
            except Exception as e:
                logger.error(f"Error refreshing predictions for station {station_id}: {str(e)}")
                result.failed.append(station_id)
        return result
