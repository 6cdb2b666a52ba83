import logging
import aiohttp
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol

from core.config import settings
from features.tides.models.tide_types import TideKind, TideSample

logger = logging.getLogger(__name__)

NOAA_TIME_FORMAT = "%Y-%m-%d %H:%M"

class TideProvider(Protocol):
    """Source of observed water levels and high/low predictions."""

    async def fetch_current_height(self, station_id: str) -> Optional[float]: ...

    async def fetch_predictions(self, station_id: str, days: int = 1) -> List[TideSample]: ...

def parse_noaa_time(value: str) -> datetime:
    """Parse a CO-OPS timestamp requested with time_zone=gmt."""
    return datetime.strptime(value, NOAA_TIME_FORMAT).replace(tzinfo=timezone.utc)

def parse_predictions(station_id: str, data: Dict[str, Any]) -> List[TideSample]:
    """Convert a CO-OPS hilo predictions payload into samples, oldest first."""
    samples = []
    for p in data.get("predictions", []):
        try:
            kind = TideKind(p.get("type", "U"))
        except ValueError:
            kind = TideKind.UNMARKED
        try:
            samples.append(
                TideSample(
                    station_id=station_id,
                    timestamp=parse_noaa_time(p["t"]),
                    height=float(p["v"]),
                    kind=kind,
                    is_prediction=True
                )
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed prediction for station {station_id}: {p} ({str(e)})")
    samples.sort(key=lambda s: s.timestamp)
    return samples

def parse_water_level(data: Dict[str, Any]) -> Optional[float]:
    readings = data.get("data") or []
    if not readings:
        return None
    try:
        return float(readings[0]["v"])
    except (KeyError, ValueError, TypeError):
        return None

class NOAATideClient:
    """Client for the NOAA CO-OPS data API. Failures come back as no data."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = base_url or settings.coops_base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.request["timeout"])
        self._session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"Accept": "application/json"}
            )
        return self._session

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._init_session()
        async with session.get(self.base_url, params={**settings.coops_params, **params}) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)
            if "error" in data:
                raise ValueError(data["error"].get("message", "Unknown error from NOAA API"))
            return data

    async def fetch_current_height(self, station_id: str) -> Optional[float]:
        """Latest observed water level in feet, or None."""
        try:
            data = await self._get({
                "date": "latest",
                "station": station_id,
                "product": "water_level"
            })
            return parse_water_level(data)
        except Exception as e:
            logger.error(f"Error fetching current water level for station {station_id}: {str(e)}")
            return None

    async def fetch_predictions(self, station_id: str, days: int = 1) -> List[TideSample]:
        """High/low predictions from today through today + days, or an empty list."""
        try:
            start_date = datetime.now(timezone.utc)
            end_date = start_date + timedelta(days=days)
            data = await self._get({
                "begin_date": start_date.strftime("%Y%m%d"),
                "end_date": end_date.strftime("%Y%m%d"),
                "station": station_id,
                "product": "predictions",
                "interval": "hilo"
            })
            predictions = parse_predictions(station_id, data)
            if not predictions:
                logger.info(f"No predictions found for station {station_id}")
            return predictions
        except Exception as e:
            logger.error(f"Error fetching tide predictions for station {station_id}: {str(e)}")
            return []
