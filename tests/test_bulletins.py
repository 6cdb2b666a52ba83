"""Tests for mayoral bulletin context, tone and fallbacks."""

from __future__ import annotations

from datetime import timedelta

import pytest

from features.bulletins.models.bulletin_types import BulletinContext, BulletinText, BulletinTone
from features.bulletins.services.bulletin_composer import (
    BulletinComposer,
    build_context,
    select_tone,
)
from features.bulletins.services.text_generator import (
    TextGenerationError,
    build_system_prompt,
    build_user_prompt,
)
from features.city.models.city_types import BuildingPlacement, City, CityCreate, EventType
from features.common.models.resource_types import ResourceBundle
from features.storms.models.storm_types import StormEventCreate
from features.tides.models.tide_types import TideKind, TideStation

from tests.factories import NOW, STATION_ID, FakeTextGenerator, catalog_building, sample

STATION = TideStation(
    station_id=STATION_ID,
    name="San Francisco, CA",
    state="California",
    latitude=37.8063,
    longitude=-122.4659,
    timezone_offset="-8",
)


def _context(**overrides) -> BulletinContext:
    values = dict(
        city_name="Harborview",
        station_name=STATION.name,
        resources=ResourceBundle(fish=100, tourism=100, energy=100),
    )
    values.update(overrides)
    return BulletinContext(**values)


def _storm() -> StormEventCreate:
    return StormEventCreate(
        station_id=STATION_ID,
        start_time=NOW,
        end_time=NOW + timedelta(hours=6),
        severity=4,
        title="Storm Surge Warning",
        description="Unusually high tides of 6.0 ft expected.",
    )


def test_build_context_picks_daily_extremes(city_model):
    predictions = [
        sample(1, 4.9, TideKind.HIGH, prediction=True),
        sample(7, 0.8, TideKind.LOW, prediction=True),
        sample(13, 5.4, TideKind.HIGH, prediction=True),
        sample(19, 1.1, TideKind.LOW, prediction=True),
    ]
    buildings = [catalog_building("fishing_dock", 0, 0), catalog_building("fishing_dock", 0, 1), catalog_building("house", 1, 0)]

    context = build_context(city_model, STATION, buildings, predictions)

    assert context.highest_tide.height == 5.4
    # NOW + 13h is 01:00 UTC, 5:00 PM at UTC-8
    assert context.highest_tide.time == "5:00 PM"
    assert context.lowest_tide.height == 0.8
    assert context.buildings == {"fishing_dock": 2, "house": 1}
    assert context.storm_event is None


def test_tone_selection():
    assert select_tone(_context(storm_event={"title": "t", "severity": 3, "description": "d"})) == BulletinTone.CONCERNED
    assert select_tone(_context(highest_tide={"height": 5.1, "time": "1:00 PM"})) == BulletinTone.EXCITED
    assert select_tone(_context(lowest_tide={"height": 0.9, "time": "1:00 AM"})) == BulletinTone.OPTIMISTIC
    assert select_tone(_context(highest_tide={"height": 5.0, "time": "1:00 PM"})) == BulletinTone.INFORMATIVE


async def test_no_generator_gives_unavailable_text():
    bulletin = await BulletinComposer().compose(_context())
    assert bulletin.title == "Mayoral Update"
    assert "Citizens of Harborview" in bulletin.message
    assert "Monitor our resources carefully" in bulletin.message


async def test_generator_failure_gives_fallback_text():
    composer = BulletinComposer(FakeTextGenerator(error=TextGenerationError("timeout")))
    bulletin = await composer.compose(_context())
    assert bulletin.title == "Mayoral Update"
    assert "Harborview" in bulletin.message
    assert "tide schedule" in bulletin.message


async def test_malformed_generator_result_gives_fallback_text(monkeypatch):
    generator = FakeTextGenerator()

    async def empty_compose(context, tone):
        return None

    monkeypatch.setattr(generator, "compose", empty_compose)
    bulletin = await BulletinComposer(generator).compose(_context())
    assert bulletin.title == "Mayoral Update"
    assert "Harborview" in bulletin.message
    assert "tide schedule" in bulletin.message


async def test_generated_text_is_tidied():
    generator = FakeTextGenerator(result=BulletinText(title="  " + "A" * 60, message="  "))
    bulletin = await BulletinComposer(generator).compose(_context(storm_event={"title": "t", "severity": 3, "description": "d"}))

    assert len(bulletin.title) == 39
    assert "Harborview" in bulletin.message
    assert generator.calls[0][1] == BulletinTone.CONCERNED


def test_prompts_carry_tone_and_context():
    assert "concerned" in build_system_prompt(BulletinTone.CONCERNED)
    prompt = build_user_prompt(_context())
    assert "Harborview" in prompt
    assert '"fish": 100' in prompt


async def test_publish_for_city_posts_event(state, repository, generator):
    city = await state.city_service.create_city(CityCreate(name="Harborview", station_id=STATION_ID))
    await state.city_service.place_building(city.id, BuildingPlacement(building_type_id=1, pos_x=0, pos_y=0))

    event = await state.bulletin_service.publish_for_city(city.id, NOW)

    assert event.type == EventType.MAYORAL_BULLETIN
    assert event.title == "High Water Ahead"
    context, tone = generator.calls[0]
    assert context.buildings == {"fishing_dock": 1}
    assert tone == BulletinTone.INFORMATIVE


async def test_publish_for_city_mentions_active_storm(state, repository, generator):
    city = await state.city_service.create_city(CityCreate(name="Harborview", station_id=STATION_ID))
    await repository.create_storm_event(_storm())

    await state.bulletin_service.publish_for_city(city.id, NOW)

    context, tone = generator.calls[0]
    assert context.storm_event.severity == 4
    assert tone == BulletinTone.CONCERNED


@pytest.fixture
def city_model():
    return City(
        id=1,
        user_id=1,
        name="Harborview",
        station_id=STATION_ID,
        resources=ResourceBundle(fish=100, tourism=100, energy=100),
        last_updated=NOW,
        created_at=NOW,
    )
