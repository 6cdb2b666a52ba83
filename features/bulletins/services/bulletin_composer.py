import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from features.bulletins.models.bulletin_types import (
    BulletinContext,
    BulletinText,
    BulletinTone,
    StormSummary,
    TideExtreme
)
from features.bulletins.services.text_generator import TextGenerator
from features.city.models.city_types import BuildingWithType, City
from features.storms.models.storm_types import StormEvent
from features.tides.models.tide_types import TideKind, TideSample, TideStation

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Mayoral Update"
MAX_TITLE_LENGTH = 39

def unavailable_bulletin(city_name: str) -> BulletinText:
    return BulletinText(
        title=DEFAULT_TITLE,
        message=f"Citizens of {city_name}, our tide conditions are changing! Monitor our resources carefully."
    )

def failed_bulletin(city_name: str) -> BulletinText:
    return BulletinText(
        title=DEFAULT_TITLE,
        message=(
            f"Citizens of {city_name}, our tide conditions continue to affect our city's "
            "productivity. Please check the tide schedule and adjust your activities accordingly."
        )
    )

def _local_time(timestamp: datetime, station: TideStation) -> str:
    offset = 0
    try:
        offset = int(station.timezone_offset or 0)
    except ValueError:
        pass
    local = timestamp.astimezone(timezone(timedelta(hours=offset)))
    return local.strftime("%-I:%M %p")

def _extreme(sample: Optional[TideSample], station: TideStation) -> Optional[TideExtreme]:
    if sample is None:
        return None
    return TideExtreme(height=sample.height, time=_local_time(sample.timestamp, station))

def build_context(
    city: City,
    station: TideStation,
    buildings: Iterable[BuildingWithType],
    predictions: Sequence[TideSample],
    storm: Optional[StormEvent] = None
) -> BulletinContext:
    """Gather what the mayor talks about: stockpile, buildings, tide extremes and storms."""
    highs = [p for p in predictions if p.kind == TideKind.HIGH]
    lows = [p for p in predictions if p.kind == TideKind.LOW]
    highest = max(highs, key=lambda p: p.height, default=None)
    lowest = min(lows, key=lambda p: p.height, default=None)

    return BulletinContext(
        city_name=city.name,
        station_name=station.name,
        resources=city.resources,
        buildings=dict(Counter(b.type.kind.value for b in buildings)),
        highest_tide=_extreme(highest, station),
        lowest_tide=_extreme(lowest, station),
        storm_event=StormSummary(
            title=storm.title,
            severity=storm.severity,
            description=storm.description
        ) if storm else None
    )

def select_tone(context: BulletinContext) -> BulletinTone:
    if context.storm_event:
        return BulletinTone.CONCERNED
    if context.highest_tide and context.highest_tide.height > 5.0:
        return BulletinTone.EXCITED
    if context.lowest_tide and context.lowest_tide.height < 1.0:
        return BulletinTone.OPTIMISTIC
    return BulletinTone.INFORMATIVE

class BulletinComposer:
    """Turns a city's situation into a mayoral bulletin. Never raises."""

    def __init__(self, generator: Optional[TextGenerator] = None) -> None:
        self.generator = generator

    async def compose(self, context: BulletinContext) -> BulletinText:
        if self.generator is None:
            return unavailable_bulletin(context.city_name)

        tone = select_tone(context)
        fallback = unavailable_bulletin(context.city_name)
        try:
            result = await self.generator.compose(context, tone)
            title = (result.title or "").strip() or fallback.title
            message = (result.message or "").strip() or fallback.message
        except Exception as e:
            logger.error(f"Error generating mayoral bulletin for {context.city_name}: {str(e)}")
            return failed_bulletin(context.city_name)
        return BulletinText(title=title[:MAX_TITLE_LENGTH], message=message)
