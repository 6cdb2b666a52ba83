import logging
from typing import Any, Dict, List

from features.city.models.city_types import BuildingType, BuildingTypeCreate
from repositories.protocol import GameRepository

logger = logging.getLogger(__name__)

DEFAULT_BUILDING_TYPES: List[Dict[str, Any]] = [
    {
        "kind": "fishing_dock",
        "name": "Fishing Dock",
        "description": "Generates fishing resources. Production boosted by high tides.",
        "cost": {"fish": 50, "tourism": 20, "energy": 30},
        "production": {"fish": 15, "tourism": 0, "energy": -2},
        "protection": 0,
        "icon": "ri-ship-line"
    },
    {
        "kind": "beach_resort",
        "name": "Beach Resort",
        "description": "Generates tourism resources. Production boosted by low tides.",
        "cost": {"fish": 30, "tourism": 50, "energy": 40},
        "production": {"fish": 0, "tourism": 15, "energy": -3},
        "protection": 0,
        "icon": "ri-hotel-line"
    },
    {
        "kind": "lighthouse",
        "name": "Lighthouse",
        "description": "Helps protect ships during high tides and generates tourism.",
        "cost": {"fish": 80, "tourism": 100, "energy": 120},
        "production": {"fish": 5, "tourism": 10, "energy": -5},
        "protection": 15,
        "icon": "ri-lighthouse-line"
    },
    {
        "kind": "seawall",
        "name": "Seawall",
        "description": "Protects buildings from storm surge events.",
        "cost": {"fish": 60, "tourism": 20, "energy": 50},
        "production": {"fish": 0, "tourism": -5, "energy": 0},
        "protection": 25,
        "icon": "ri-layout-bottom-line"
    },
    {
        "kind": "house",
        "name": "House",
        "description": "Residential building for your citizens.",
        "cost": {"fish": 40, "tourism": 30, "energy": 20},
        "production": {"fish": 0, "tourism": 5, "energy": -1},
        "protection": 0,
        "icon": "ri-home-line"
    },
    {
        "kind": "power_plant",
        "name": "Power Plant",
        "description": "Generates energy for your city.",
        "cost": {"fish": 70, "tourism": 30, "energy": 50},
        "production": {"fish": -5, "tourism": -10, "energy": 20},
        "protection": 0,
        "icon": "ri-battery-charge-line"
    }
]

async def seed_building_types(
    repository: GameRepository,
    raw_types: List[Dict[str, Any]] = DEFAULT_BUILDING_TYPES
) -> List[BuildingType]:
    """Validate and store the building catalog if the store has none yet."""
    existing = await repository.list_building_types()
    if existing:
        return existing

    validated = [BuildingTypeCreate.model_validate(raw) for raw in raw_types]
    saved = [await repository.save_building_type(building_type) for building_type in validated]
    logger.info(f"🏗️ Seeded {len(saved)} building types")
    return saved
