from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, Query, Request
from core.cache import cached
from features.tides.models.tide_types import (
    StationDetail,
    TideEffectReport,
    TideSample,
    TideStation
)
from features.tides.services.tide_service import TideService

router = APIRouter(
    prefix="/api/stations",
    tags=["Tides"]
)

def get_service(request: Request) -> TideService:
    """Dependency to get the TideService instance."""
    return request.app.state.tide_service

async def get_known_station(
    station_id: str,
    service: TideService = Depends(get_service)
) -> TideStation:
    station = await service.get_station(station_id)
    if not station:
        raise HTTPException(status_code=404, detail="Station not found")
    return station

@router.get(
    "",
    response_model=List[TideStation],
    summary="Get all tide stations",
    description="Returns the tide stations a city can be founded on"
)
@cached(namespace="tide_stations")
async def get_all_stations(
    service: TideService = Depends(get_service)
) -> List[TideStation]:
    """Get all tide stations."""
    return await service.list_stations()

@router.get(
    "/{station_id}",
    response_model=StationDetail,
    summary="Get station details",
    description="Returns the station with its current water level and the next day of high/low predictions"
)
async def get_station(
    station: TideStation = Depends(get_known_station),
    service: TideService = Depends(get_service)
) -> StationDetail:
    return await service.get_station_detail(station)

@router.get(
    "/{station_id}/tides",
    response_model=List[TideSample],
    summary="Get tide predictions for a station"
)
async def get_station_predictions(
    station: TideStation = Depends(get_known_station),
    days: int = Query(1, ge=1, le=7),
    service: TideService = Depends(get_service)
) -> List[TideSample]:
    return await service.get_predictions(station.station_id, days)

@router.get(
    "/{station_id}/history",
    response_model=List[TideSample],
    summary="Get recorded tide history for a station"
)
async def get_station_history(
    station: TideStation = Depends(get_known_station),
    days: int = Query(7, ge=1, le=30),
    service: TideService = Depends(get_service)
) -> List[TideSample]:
    return await service.get_history(station.station_id, days)

@router.get(
    "/{station_id}/effects",
    response_model=TideEffectReport,
    summary="Get the current tide's effect on a city",
    description="Fishing and tourism effects of the current tide, whether it is extreme, and the damage a storm of the given severity would do"
)
async def get_tide_effects(
    station: TideStation = Depends(get_known_station),
    storm_severity: Optional[int] = Query(None, ge=1, le=5),
    service: TideService = Depends(get_service)
) -> TideEffectReport:
    return await service.get_tide_effects(station.station_id, storm_severity)
