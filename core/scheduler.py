import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from core.config import Settings, settings as default_settings
from features.ticks.services.tick_orchestrator import TickOrchestrator
from repositories.protocol import GameRepository

logger = logging.getLogger(__name__)

class GameScheduler:
    """Owns the periodic game jobs. Each run reads the current city and
    station ids and hands them to the orchestrator explicitly."""

    def __init__(
        self,
        orchestrator: TickOrchestrator,
        repository: GameRepository,
        config: Optional[Settings] = None
    ):
        self.orchestrator = orchestrator
        self.repository = repository
        self.config = config or default_settings
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)

    async def tick_cycle(self) -> None:
        try:
            city_ids = await self.repository.list_city_ids()
            logger.info(f"Running {self.config.tick_interval_minutes}-minute tick for {len(city_ids)} cities")
            await self.orchestrator.run_tick_cycle(city_ids)
        except Exception as e:
            logger.error(f"Error in tick cycle: {str(e)}")

    async def bulletin_cycle(self) -> None:
        try:
            city_ids = await self.repository.list_city_ids()
            logger.info(f"Running {self.config.bulletin_interval_hours}-hour bulletin job for {len(city_ids)} cities")
            await self.orchestrator.run_bulletin_cycle(city_ids)
        except Exception as e:
            logger.error(f"Error in bulletin cycle: {str(e)}")

    async def refresh_predictions(self) -> None:
        try:
            stations = await self.repository.list_stations()
            logger.info(f"Running daily prediction refresh for {len(stations)} stations")
            await self.orchestrator.refresh_predictions(
                [s.station_id for s in stations],
                self.config.prediction_refresh_days
            )
        except Exception as e:
            logger.error(f"Error in prediction refresh: {str(e)}")

    def start(self) -> None:
        """Start the scheduler with configured jobs."""
        logger.info("Starting scheduler")
        now = datetime.now(timezone.utc)

        self.scheduler.add_job(
            self.tick_cycle,
            IntervalTrigger(minutes=self.config.tick_interval_minutes),
            id="tick_cycle",
            name="tick_cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        # Bulletins start after the first tick so they see fresh resources
        self.scheduler.add_job(
            self.bulletin_cycle,
            IntervalTrigger(hours=self.config.bulletin_interval_hours),
            id="bulletin_cycle",
            name="bulletin_cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=now + timedelta(minutes=self.config.tick_interval_minutes, seconds=30)
        )

        self.scheduler.add_job(
            self.refresh_predictions,
            CronTrigger(hour=self.config.prediction_refresh_hour, minute=0, timezone=timezone.utc),
            id="refresh_predictions",
            name="refresh_predictions",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        self.scheduler.start()
        logger.info("Scheduler started successfully")

    def get_next_run_time(self, job_id: str) -> Optional[str]:
        """Get the next run time for a scheduled job."""
        job = self.scheduler.get_job(job_id)
        if job and job.next_run_time:
            return job.next_run_time.isoformat()
        return None

    def shutdown(self) -> None:
        """Shutdown the scheduler."""
        if self.scheduler.running:
            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown complete")
