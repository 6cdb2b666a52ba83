"""Contract tests run against both repository backends."""

from __future__ import annotations

from datetime import timedelta

import pytest

from core.config import Settings
from features.city.models.city_types import (
    BuildingCreate,
    BuildingTypeCreate,
    CityCreate,
    EventCreate,
    EventType,
)
from features.city.services.building_catalog import DEFAULT_BUILDING_TYPES, seed_building_types
from features.common.exceptions.game_exceptions import PositionOccupiedError
from features.common.models.resource_types import ResourceBundle
from features.storms.models.storm_types import StormEventCreate
from features.tides.models.tide_types import TideKind, TideStation
from repositories.factory import build_repository
from repositories.memory_repo import InMemoryGameRepository
from repositories.protocol import GameRepository
from repositories.sqlite_repo import SQLiteGameRepository

from tests.factories import NOW, STATION_ID, sample

STARTING = ResourceBundle(fish=100, tourism=100, energy=100)


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        repo = InMemoryGameRepository()
    else:
        repo = SQLiteGameRepository(tmp_path / "db" / "tidewater.db")
    await repo.initialize()
    await repo.save_station(
        TideStation(
            station_id=STATION_ID,
            name="San Francisco, CA",
            state="California",
            latitude=37.8063,
            longitude=-122.4659,
            timezone_offset="-8",
        )
    )
    await seed_building_types(repo)
    yield repo
    await repo.close()


def test_backends_satisfy_protocol(tmp_path):
    assert isinstance(InMemoryGameRepository(), GameRepository)
    assert isinstance(SQLiteGameRepository(tmp_path / "x.db"), GameRepository)


def test_factory_selects_backend(tmp_path):
    assert isinstance(build_repository(Settings(repository_backend="memory")), InMemoryGameRepository)
    sqlite_repo = build_repository(Settings(repository_backend="sqlite", sqlite_path=str(tmp_path / "t.db")))
    assert isinstance(sqlite_repo, SQLiteGameRepository)
    with pytest.raises(ValueError):
        build_repository(Settings(repository_backend="postgres"))


async def test_station_roundtrip(store):
    station = await store.get_station(STATION_ID)
    assert station.name == "San Francisco, CA"
    assert station.timezone_offset == "-8"
    assert await store.get_station("nope") is None


async def test_duplicate_samples_are_ignored(store):
    samples = [
        sample(1, 5.0, TideKind.HIGH, prediction=True),
        sample(7, 0.5, TideKind.LOW, prediction=True),
    ]
    assert len(await store.save_tide_samples(samples)) == 2
    assert await store.save_tide_samples(samples) == []

    # Same instant, observed rather than predicted, is a different sample
    assert len(await store.save_tide_samples([sample(1, 4.8)])) == 1

    stored = await store.get_tide_samples(STATION_ID, NOW, NOW + timedelta(days=1), prediction=True)
    assert [(s.height, s.kind) for s in stored] == [(5.0, TideKind.HIGH), (0.5, TideKind.LOW)]
    assert stored[0].timestamp == NOW + timedelta(hours=1)


async def test_latest_observation_skips_predictions(store):
    await store.save_tide_samples([
        sample(-2, 2.0),
        sample(-1, 2.4),
        sample(3, 6.0, TideKind.HIGH, prediction=True),
    ])
    latest = await store.get_latest_observation(STATION_ID)
    assert latest.height == 2.4
    assert not latest.is_prediction


async def test_building_types_seeded_once(store):
    types = await store.list_building_types()
    assert len(types) == len(DEFAULT_BUILDING_TYPES)
    assert len(await seed_building_types(store)) == len(DEFAULT_BUILDING_TYPES)
    assert len(await store.list_building_types()) == len(DEFAULT_BUILDING_TYPES)

    dock = await store.get_building_type(types[0].id)
    assert dock.production.energy == -2
    assert dock.cost == ResourceBundle(fish=50, tourism=20, energy=30)


async def test_city_lifecycle(store):
    city = await store.create_city(CityCreate(name="Harborview", station_id=STATION_ID), STARTING)
    assert city.resources == STARTING
    assert await store.list_city_ids() == [city.id]
    assert [c.id for c in await store.list_cities_by_station(STATION_ID)] == [city.id]
    assert await store.list_cities_by_user(2) == []

    updated = await store.update_city_resources(city.id, ResourceBundle(fish=5, tourism=6, energy=7))
    assert (await store.get_city(city.id)).resources == updated.resources


async def test_add_building_is_atomic_with_payment(store):
    city = await store.create_city(CityCreate(name="Harborview", station_id=STATION_ID), STARTING)
    remaining = ResourceBundle(fish=50, tourism=80, energy=70)
    building = await store.add_building(
        BuildingCreate(city_id=city.id, building_type_id=1, pos_x=3, pos_y=4), remaining
    )

    assert await store.is_position_occupied(city.id, 3, 4)
    assert (await store.get_city(city.id)).resources == remaining
    listed = await store.list_city_buildings(city.id)
    assert [b.type.kind.value for b in listed] == ["fishing_dock"]

    with pytest.raises(PositionOccupiedError):
        await store.add_building(
            BuildingCreate(city_id=city.id, building_type_id=2, pos_x=3, pos_y=4),
            ResourceBundle(),
        )
    assert (await store.get_city(city.id)).resources == remaining

    assert await store.remove_building(building.id)
    assert not await store.remove_building(building.id)
    assert not await store.is_position_occupied(city.id, 3, 4)


async def test_events_newest_first_with_limit(store):
    city = await store.create_city(CityCreate(name="Harborview", station_id=STATION_ID), STARTING)
    for i in range(3):
        await store.add_event(EventCreate(
            city_id=city.id,
            type=EventType.MAYORAL_BULLETIN,
            title=f"Bulletin {i}",
            message="m",
            data={"n": i},
        ))

    events = await store.list_city_events(city.id, limit=2)
    assert [e.title for e in events] == ["Bulletin 2", "Bulletin 1"]
    assert events[0].data == {"n": 2}

    assert await store.mark_event_read(events[0].id)
    assert (await store.list_city_events(city.id, limit=1))[0].read
    assert not await store.mark_event_read(9999)


async def test_storm_activity_window(store):
    storm = await store.create_storm_event(StormEventCreate(
        station_id=STATION_ID,
        start_time=NOW,
        end_time=NOW + timedelta(hours=6),
        severity=3,
        title="Storm Surge Warning",
        description="d",
    ))
    assert [s.id for s in await store.get_active_storms(STATION_ID, NOW + timedelta(hours=1))] == [storm.id]
    assert await store.get_active_storms(STATION_ID, NOW + timedelta(hours=7)) == []

    resolved = await store.resolve_storm_event(storm.id)
    assert resolved.resolved
    assert (await store.get_storm_event(storm.id)).resolved
    assert await store.get_active_storms(STATION_ID, NOW + timedelta(hours=1)) == []
    assert await store.resolve_storm_event(999) is None
