from fastapi import APIRouter, Depends, Request
from features.storms.models.storm_types import StormEvent
from features.storms.services.storm_service import StormService

router = APIRouter(
    prefix="/api/storms",
    tags=["Storms"]
)

def get_service(request: Request) -> StormService:
    """Dependency to get the StormService instance."""
    return request.app.state.storm_service

@router.post(
    "/{storm_id}/resolve",
    response_model=StormEvent,
    summary="Resolve a storm event",
    description="Marks the storm as over so a new one can be raised for its station"
)
async def resolve_storm(
    storm_id: int,
    service: StormService = Depends(get_service)
) -> StormEvent:
    return await service.resolve(storm_id)
