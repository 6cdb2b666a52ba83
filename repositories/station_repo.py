from pathlib import Path
import json
import logging
from typing import List, Optional

from features.tides.models.tide_types import TideStation

logger = logging.getLogger(__name__)

class StationRepository:
    """Reads the bundled list of supported NOAA tide stations."""

    def __init__(self, stations_file: Path):
        self.stations_file = stations_file
        self._stations: Optional[List[TideStation]] = None

    def load_stations(self) -> List[TideStation]:
        if self._stations is None:
            with open(self.stations_file) as f:
                raw = json.load(f)
            self._stations = [TideStation.model_validate(station) for station in raw]
            logger.info(f"Loaded {len(self._stations)} tide stations from {self.stations_file}")
        return self._stations

    def get_station(self, station_id: str) -> Optional[TideStation]:
        return next((s for s in self.load_stations() if s.station_id == station_id), None)
