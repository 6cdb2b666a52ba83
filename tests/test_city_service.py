"""Tests for cities, building placement and production ticks."""

from __future__ import annotations

import asyncio

import pytest

from features.city.models.city_types import BuildingPlacement, CityCreate, EventType
from features.common.exceptions.game_exceptions import (
    BuildingNotFoundError,
    CityNotFoundError,
    EventNotFoundError,
    InsufficientResourcesError,
    OutOfBoundsError,
    PositionOccupiedError,
    StationNotFoundError,
    UnknownBuildingTypeError,
)
from features.common.models.resource_types import ResourceBundle

from tests.factories import NOW, STATION_ID

DOCK, RESORT, LIGHTHOUSE = 1, 2, 3


@pytest.fixture
async def city(state):
    return await state.city_service.create_city(CityCreate(name="Harborview", station_id=STATION_ID))


async def test_new_city_gets_starting_resources_and_welcome(state, city):
    assert city.resources == ResourceBundle(fish=100, tourism=100, energy=100)
    events = await state.city_service.list_events(city.id)
    assert [e.type for e in events] == [EventType.WELCOME]
    assert "Harborview" in events[0].message


async def test_create_city_rejects_unknown_station(state):
    with pytest.raises(StationNotFoundError, match="Invalid station ID"):
        await state.city_service.create_city(CityCreate(name="Nowhere", station_id="0000000"))


async def test_list_cities_by_user(state, city):
    await state.city_service.create_city(CityCreate(user_id=7, name="Elsewhere", station_id=STATION_ID))
    assert [c.id for c in await state.city_service.list_cities(1)] == [city.id]


async def test_place_building_deducts_cost(state, city):
    building = await state.city_service.place_building(
        city.id, BuildingPlacement(building_type_id=DOCK, pos_x=2, pos_y=3)
    )
    assert (building.pos_x, building.pos_y) == (2, 3)
    assert building.health == 100

    updated = await state.city_service.get_city(city.id)
    assert updated.resources == ResourceBundle(fish=50, tourism=80, energy=70)

    events = await state.city_service.list_events(city.id)
    assert events[0].type == EventType.BUILDING_CONSTRUCTED
    assert events[0].data == {"building_id": building.id}


async def test_occupied_cell_is_rejected_without_charge(state, city):
    await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=DOCK, pos_x=0, pos_y=0))
    before = await state.city_service.get_city(city.id)

    with pytest.raises(PositionOccupiedError):
        await state.city_service.place_building(
            city.id, BuildingPlacement(building_type_id=RESORT, pos_x=0, pos_y=0)
        )

    after = await state.city_service.get_city(city.id)
    assert after.resources == before.resources
    assert len(await state.city_service.list_buildings(city.id)) == 1


async def test_insufficient_resources_leaves_city_untouched(state, city):
    with pytest.raises(InsufficientResourcesError):
        await state.city_service.place_building(
            city.id, BuildingPlacement(building_type_id=LIGHTHOUSE, pos_x=4, pos_y=4)
        )
    assert (await state.city_service.get_city(city.id)).resources == city.resources
    assert await state.city_service.list_buildings(city.id) == []


async def test_placement_validation(state, city):
    with pytest.raises(OutOfBoundsError):
        await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=DOCK, pos_x=10, pos_y=0))
    with pytest.raises(UnknownBuildingTypeError):
        await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=99, pos_x=1, pos_y=1))
    with pytest.raises(CityNotFoundError):
        await state.city_service.place_building(999, BuildingPlacement(building_type_id=DOCK, pos_x=1, pos_y=1))


async def test_concurrent_placements_never_overspend(state, city):
    # 100 fish only pays for two docks
    placements = [BuildingPlacement(building_type_id=DOCK, pos_x=x, pos_y=0) for x in range(3)]
    results = await asyncio.gather(
        *(state.city_service.place_building(city.id, p) for p in placements),
        return_exceptions=True,
    )
    assert sum(1 for r in results if isinstance(r, InsufficientResourcesError)) == 1
    assert (await state.city_service.get_city(city.id)).resources.fish == 0


async def test_remove_building_frees_the_cell(state, city):
    building = await state.city_service.place_building(
        city.id, BuildingPlacement(building_type_id=DOCK, pos_x=5, pos_y=5)
    )
    await state.city_service.remove_building(building.id)
    assert await state.city_service.list_buildings(city.id) == []

    events = await state.city_service.list_events(city.id)
    assert events[0].type == EventType.BUILDING_REMOVED

    with pytest.raises(BuildingNotFoundError):
        await state.city_service.remove_building(building.id)


async def test_mark_event_read(state, city):
    event = (await state.city_service.list_events(city.id))[0]
    await state.city_service.mark_event_read(event.id)
    assert (await state.city_service.list_events(city.id))[0].read

    with pytest.raises(EventNotFoundError):
        await state.city_service.mark_event_read(12345)


async def test_production_tick_uses_current_tide(state, city, provider):
    await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=DOCK, pos_x=0, pos_y=0))
    provider.height = 5.0

    production = await state.city_service.apply_production_tick(city.id, NOW)

    assert production.fish == 21
    updated = await state.city_service.get_city(city.id)
    # 50 left after paying for the dock, upkeep floors at zero per tick
    assert updated.resources == ResourceBundle(fish=71, tourism=80, energy=70)


async def test_production_tick_without_tide_data(state, city, provider):
    await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=DOCK, pos_x=0, pos_y=0))
    provider.height = None

    production = await state.city_service.apply_production_tick(city.id, NOW)
    assert production.fish == 15


async def test_city_detail(state, city, provider):
    provider.height = 1.0
    await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=RESORT, pos_x=1, pos_y=0))

    detail = await state.city_service.get_city_detail(city.id, NOW)
    assert detail.station.station_id == STATION_ID
    assert detail.current_tide_level == 1.0
    assert detail.production.tourism == 23
    assert detail.active_storms == []


async def test_city_locks_are_released_after_ticks(state, city):
    await asyncio.gather(*(state.city_service.apply_production_tick(city.id, NOW) for _ in range(3)))
    assert len(state.city_service.city_locks) == 0
