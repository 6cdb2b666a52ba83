from typing import Iterable, Optional, Tuple

from features.city.models.city_types import BuildingWithType
from features.common.models.resource_types import Resources, ResourceBundle
from features.tides.services.tide_effects import round_half_away

MAX_TIDE_BONUS = 0.5

def base_production(buildings: Iterable[BuildingWithType]) -> Resources:
    """Sum of every building's production, upkeep included."""
    total = Resources()
    for building in buildings:
        total = total + building.type.production
    return total

def tide_bonus_fractions(height: Optional[float]) -> Tuple[float, float]:
    """Return (fish, tourism) bonus fractions for aggregate production.

    Fishing gains above 3.5 ft, tourism below 2 ft, each capped at 50%.
    An unknown height yields no bonus.
    """
    if height is None:
        return 0.0, 0.0
    fish_bonus = min(MAX_TIDE_BONUS, max(0.0, (height - 3.5) / 3.5))
    tourism_bonus = min(MAX_TIDE_BONUS, max(0.0, (2 - height) / 2))
    return fish_bonus, tourism_bonus

def calculate_production(
    buildings: Iterable[BuildingWithType],
    height: Optional[float]
) -> Resources:
    """Per-tick production for a city. No field is ever negative."""
    totals = base_production(buildings)
    fish_bonus, tourism_bonus = tide_bonus_fractions(height)

    return Resources(
        fish=max(0, round_half_away(totals.fish + fish_bonus * totals.fish)),
        tourism=max(0, round_half_away(totals.tourism + tourism_bonus * totals.tourism)),
        energy=max(0, round_half_away(totals.energy))
    )

def apply_production(bundle: ResourceBundle, production: Resources) -> ResourceBundle:
    """Credit one tick of production to a stockpile, clamping each field at zero."""
    return bundle.apply(production)
