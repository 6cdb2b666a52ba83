from typing import List
from fastapi import APIRouter, Depends, Query, Request
from core.cache import cached
from features.city.models.city_types import (
    Building,
    BuildingPlacement,
    BuildingType,
    BuildingWithType,
    City,
    CityCreate,
    CityDetail,
    Event,
    SuccessResponse
)
from features.city.services.city_service import CityService

router = APIRouter(
    prefix="/api",
    tags=["Cities"]
)

def get_service(request: Request) -> CityService:
    """Dependency to get the CityService instance."""
    return request.app.state.city_service

@router.get(
    "/cities",
    response_model=List[City],
    summary="List a player's cities"
)
async def list_cities(
    user_id: int = Query(..., description="Owner of the cities"),
    service: CityService = Depends(get_service)
) -> List[City]:
    return await service.list_cities(user_id)

@router.post(
    "/cities",
    response_model=City,
    status_code=201,
    summary="Found a new city on a tide station"
)
async def create_city(
    city_data: CityCreate,
    service: CityService = Depends(get_service)
) -> City:
    return await service.create_city(city_data)

@router.get(
    "/cities/{city_id}",
    response_model=CityDetail,
    summary="Get a city with its station, tide level and production"
)
async def get_city(
    city_id: int,
    service: CityService = Depends(get_service)
) -> CityDetail:
    return await service.get_city_detail(city_id)

@router.get(
    "/building-types",
    response_model=List[BuildingType],
    summary="Get the building catalog"
)
@cached(namespace="building_types")
async def list_building_types(
    service: CityService = Depends(get_service)
) -> List[BuildingType]:
    return await service.list_building_types()

@router.get(
    "/cities/{city_id}/buildings",
    response_model=List[BuildingWithType],
    summary="List a city's buildings"
)
async def list_buildings(
    city_id: int,
    service: CityService = Depends(get_service)
) -> List[BuildingWithType]:
    return await service.list_buildings(city_id)

@router.post(
    "/cities/{city_id}/buildings",
    response_model=Building,
    status_code=201,
    summary="Place a building",
    description="Places a building on a free grid cell and deducts its cost from the city"
)
async def place_building(
    city_id: int,
    placement: BuildingPlacement,
    service: CityService = Depends(get_service)
) -> Building:
    return await service.place_building(city_id, placement)

@router.delete(
    "/buildings/{building_id}",
    response_model=SuccessResponse,
    summary="Demolish a building"
)
async def remove_building(
    building_id: int,
    service: CityService = Depends(get_service)
) -> SuccessResponse:
    await service.remove_building(building_id)
    return SuccessResponse(success=True)

@router.get(
    "/cities/{city_id}/events",
    response_model=List[Event],
    summary="Get a city's most recent events"
)
async def list_events(
    city_id: int,
    limit: int = Query(20, ge=1, le=100),
    service: CityService = Depends(get_service)
) -> List[Event]:
    return await service.list_events(city_id, limit)

@router.patch(
    "/events/{event_id}/read",
    response_model=SuccessResponse,
    summary="Mark an event as read"
)
async def mark_event_read(
    event_id: int,
    service: CityService = Depends(get_service)
) -> SuccessResponse:
    await service.mark_event_read(event_id)
    return SuccessResponse(success=True)
