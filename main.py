from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from pathlib import Path
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from core.cache import init_cache
from core.config import settings
from core.logging_config import setup_logging
from core.scheduler import GameScheduler

# Feature routes
from features.tides.routes.tide_routes import router as tide_router
from features.city.routes.city_routes import router as city_router
from features.storms.routes.storm_routes import router as storm_router

# Services and clients
from features.bulletins.services.bulletin_composer import BulletinComposer
from features.bulletins.services.bulletin_service import BulletinService
from features.bulletins.services.text_generator import TextGenerator, build_text_generator
from features.city.services.building_catalog import seed_building_types
from features.city.services.city_service import CityService
from features.common.exceptions.game_exceptions import GameError
from features.common.routes.errors import to_http_exception
from features.common.services.keyed_locks import KeyedLocks
from features.common.services.rate_limiter import RateLimiter
from features.storms.services.storm_service import StormService
from features.ticks.services.tick_orchestrator import TickOrchestrator
from features.tides.services.noaa_tide_client import NOAATideClient, TideProvider
from features.tides.services.tide_service import TideService
from repositories.factory import build_repository
from repositories.protocol import GameRepository
from repositories.station_repo import StationRepository

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

async def init_services(
    state,
    repository: GameRepository,
    provider: TideProvider,
    text_generator: Optional[TextGenerator] = None
) -> None:
    """Seed the store and wire the game services onto the app state."""
    tide_service = TideService(repository, provider)
    stations_file = Path(settings.stations_file)
    if not stations_file.is_absolute():
        stations_file = Path(__file__).parent / stations_file
    await tide_service.seed_stations(StationRepository(stations_file))
    await seed_building_types(repository)

    # Placements and ticks lock per city, storm creation per station
    city_locks = KeyedLocks()
    station_locks = KeyedLocks()

    city_service = CityService(repository, tide_service, city_locks=city_locks)
    storm_service = StormService(repository, tide_service, station_locks=station_locks)
    bulletin_service = BulletinService(repository, tide_service, BulletinComposer(text_generator))

    state.repository = repository
    state.tide_service = tide_service
    state.city_service = city_service
    state.storm_service = storm_service
    state.bulletin_service = bulletin_service
    state.orchestrator = TickOrchestrator(
        city_service=city_service,
        storm_service=storm_service,
        bulletin_service=bulletin_service,
        tide_service=tide_service,
        rate_limiter=RateLimiter(
            requests_per_minute=settings.request["requests_per_minute"],
            batch_size=settings.request["batch_size"],
            batch_pause=settings.request["batch_pause"]
        )
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    repository = None
    noaa_client = None
    text_generator = None
    scheduler = None
    try:
        logger.info("🚀 Starting Tidewater API...")
        await init_cache()

        repository = build_repository(settings)
        await repository.initialize()

        noaa_client = NOAATideClient()
        text_generator = build_text_generator()
        await init_services(app.state, repository, noaa_client, text_generator)

        if settings.scheduler_enabled:
            scheduler = GameScheduler(app.state.orchestrator, repository)
            scheduler.start()
            app.state.scheduler = scheduler
        else:
            logger.info("Scheduler disabled")

        logger.info("\n✨ API startup complete - ready to serve requests")
        yield

    except Exception as e:
        logger.error(f"❌ Startup error: {str(e)}")
        raise
    finally:
        logger.info("\n🔄 Shutting down API...")
        if scheduler:
            scheduler.shutdown()
        if noaa_client:
            await noaa_client.close()
        if text_generator is not None and hasattr(text_generator, "close"):
            await text_generator.close()
        if repository:
            await repository.close()
        logger.info("👋 API shutdown complete")

app = FastAPI(
    title="Tidewater API",
    description="Coastal city-building game driven by real NOAA tides",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    """Maps every game error raised by a route onto its HTTP status."""
    error = to_http_exception(exc)
    logger.info(f"Rejected {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

# Include feature routers
app.include_router(tide_router)
app.include_router(city_router)
app.include_router(storm_router)

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "time": datetime.now(timezone.utc).isoformat()
    }

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5010))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info",
        workers=1
    )
