"""Tests for per-tick resource production."""

from __future__ import annotations

from features.city.services.production_engine import (
    apply_production,
    base_production,
    calculate_production,
    tide_bonus_fractions,
)
from features.common.models.resource_types import ResourceBundle, Resources

from tests.factories import catalog_building


def test_no_buildings_produce_nothing():
    assert calculate_production([], 5.0) == Resources(fish=0, tourism=0, energy=0)


def test_high_tide_boosts_fishing_dock():
    production = calculate_production([catalog_building("fishing_dock")], 5.0)
    # 15 * (1 + 1.5 / 3.5) = 21.43
    assert production.fish == 21
    assert production.tourism == 0
    # Upkeep never drives a tick negative
    assert production.energy == 0


def test_low_tide_boosts_beach_resort():
    production = calculate_production([catalog_building("beach_resort")], 1.0)
    # 15 * (1 + 0.5) = 22.5, rounded away from zero
    assert production.tourism == 23
    assert production.fish == 0


def test_tide_bonus_is_capped_at_half():
    assert tide_bonus_fractions(9.0) == (0.5, 0.0)
    assert tide_bonus_fractions(-3.0) == (0.0, 0.5)


def test_unknown_height_gives_base_production():
    buildings = [catalog_building("fishing_dock", 0, 0), catalog_building("power_plant", 0, 1)]
    assert tide_bonus_fractions(None) == (0.0, 0.0)
    assert calculate_production(buildings, None) == Resources(fish=10, tourism=0, energy=18)


def test_base_production_includes_upkeep():
    buildings = [catalog_building("lighthouse", 1, 1), catalog_building("seawall", 1, 2)]
    assert base_production(buildings) == Resources(fish=5, tourism=5, energy=-5)


def test_production_is_never_negative():
    buildings = [catalog_building("power_plant", x, 0) for x in range(3)]
    production = calculate_production(buildings, 0.0)
    assert production.fish == 0
    assert production.tourism == 0
    assert production.energy == 60


def test_apply_clamps_stockpile_at_zero():
    bundle = ResourceBundle(fish=3, tourism=10, energy=0)
    assert apply_production(bundle, Resources(fish=-5, tourism=2, energy=-1)) == ResourceBundle(fish=0, tourism=12, energy=0)


def test_can_afford_and_deduct():
    bundle = ResourceBundle(fish=100, tourism=100, energy=100)
    cost = ResourceBundle(fish=50, tourism=20, energy=30)
    assert bundle.can_afford(cost)
    assert bundle.deduct(cost) == ResourceBundle(fish=50, tourism=80, energy=70)
    assert not ResourceBundle(fish=10).can_afford(cost)
