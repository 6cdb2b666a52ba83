import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from core.config import settings
from features.tides.models.tide_types import (
    StationDetail,
    TideEffectReport,
    TideKind,
    TideSample,
    TideStation
)
from features.tides.services import tide_effects
from features.tides.services.noaa_tide_client import TideProvider
from repositories.protocol import GameRepository
from repositories.station_repo import StationRepository

logger = logging.getLogger(__name__)

class TideService:
    """Tide stations and samples, backed by the store with NOAA as fallback."""

    def __init__(self, repository: GameRepository, provider: TideProvider) -> None:
        self.repository = repository
        self.provider = provider

    async def seed_stations(self, station_repo: StationRepository) -> int:
        """Load the bundled station list into an empty store."""
        if await self.repository.list_stations():
            return 0
        stations = station_repo.load_stations()
        for station in stations:
            await self.repository.save_station(station)
        logger.info(f"🌊 Seeded {len(stations)} tide stations")
        return len(stations)

    async def list_stations(self) -> List[TideStation]:
        return await self.repository.list_stations()

    async def get_station(self, station_id: str) -> Optional[TideStation]:
        return await self.repository.get_station(station_id)

    async def get_current_height(
        self,
        station_id: str,
        now: Optional[datetime] = None
    ) -> Optional[float]:
        """Current water level in feet.

        Uses the latest stored observation while it is fresh, otherwise polls
        NOAA and records the reading. When NOAA has nothing, falls back to the
        latest observation of any age, then to None.
        """
        now = now or datetime.now(timezone.utc)
        latest = await self.repository.get_latest_observation(station_id)
        max_age = timedelta(minutes=settings.current_reading_max_age_minutes)
        if latest and now - latest.timestamp <= max_age:
            return latest.height

        height = await self.provider.fetch_current_height(station_id)
        if height is None:
            if latest:
                logger.warning(f"Using stale reading for station {station_id} from {latest.timestamp.isoformat()}")
                return latest.height
            logger.warning(f"No water level available for station {station_id}")
            return None

        await self.repository.save_tide_samples([
            TideSample(
                station_id=station_id,
                timestamp=now,
                height=height,
                kind=TideKind.UNMARKED,
                is_prediction=False
            )
        ])
        return height

    async def get_predictions(
        self,
        station_id: str,
        days: int = 1,
        now: Optional[datetime] = None
    ) -> List[TideSample]:
        """Stored predictions for the next `days`, fetching from NOAA when none are stored."""
        now = now or datetime.now(timezone.utc)
        end = now + timedelta(days=days)
        stored = await self.repository.get_tide_samples(station_id, now, end, prediction=True)
        if stored:
            return stored

        fetched = await self.provider.fetch_predictions(station_id, days)
        if not fetched:
            return []
        await self.repository.save_tide_samples(fetched)
        return await self.repository.get_tide_samples(station_id, now, end, prediction=True)

    async def refresh_predictions(self, station_id: str, days: int = 3) -> int:
        """Fetch and store predictions. Returns the number of new samples."""
        fetched = await self.provider.fetch_predictions(station_id, days)
        inserted = await self.repository.save_tide_samples(fetched)
        logger.info(f"Updated {days}-day tide predictions for station {station_id}: {len(inserted)} new")
        return len(inserted)

    async def get_history(
        self,
        station_id: str,
        days: int = 7,
        now: Optional[datetime] = None
    ) -> List[TideSample]:
        now = now or datetime.now(timezone.utc)
        return await self.repository.get_tide_samples(station_id, now - timedelta(days=days), now)

    async def get_station_detail(
        self,
        station: TideStation,
        now: Optional[datetime] = None
    ) -> StationDetail:
        now = now or datetime.now(timezone.utc)
        current = await self.get_current_height(station.station_id, now)
        predictions = await self.get_predictions(station.station_id, 1, now)

        upcoming = sorted((p for p in predictions if p.timestamp > now), key=lambda p: p.timestamp)
        return StationDetail(
            station=station,
            current_tide_level=current,
            predictions=predictions,
            next_high_tide=next((p for p in upcoming if p.kind == TideKind.HIGH), None),
            next_low_tide=next((p for p in upcoming if p.kind == TideKind.LOW), None)
        )

    async def get_tide_effects(
        self,
        station_id: str,
        storm_severity: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> TideEffectReport:
        """Display-side effects of the current tide. Unknown height reads as 0 ft."""
        now = now or datetime.now(timezone.utc)
        current = await self.get_current_height(station_id, now)
        predictions = await self.get_predictions(station_id, 1, now)
        height = current if current is not None else 0.0

        impact = tide_effects.calculate_tide_effect(height)
        impact.tide_type = tide_effects.classify_trend(current, predictions, now)

        return TideEffectReport(
            station_id=station_id,
            current_tide_level=current,
            description=tide_effects.describe_height(current) if current is not None else None,
            impact=impact,
            extreme=tide_effects.is_extreme(current) if current is not None else None,
            storm_damage_potential=(
                tide_effects.storm_damage_potential(storm_severity, height)
                if storm_severity is not None else None
            )
        )
