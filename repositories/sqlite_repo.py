"""SQLite implementation of GameRepository for single-server deployments."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence

import aiosqlite

from features.city.models.city_types import (
    Building,
    BuildingCreate,
    BuildingType,
    BuildingTypeCreate,
    BuildingWithType,
    City,
    CityCreate,
    Event,
    EventCreate
)
from features.common.exceptions.game_exceptions import (
    CityNotFoundError,
    PersistenceError,
    PositionOccupiedError
)
from features.common.models.resource_types import Resources, ResourceBundle
from features.storms.models.storm_types import StormEvent, StormEventCreate
from features.tides.models.tide_types import TideKind, TideSample, TideStation

logger = logging.getLogger(__name__)

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS tide_stations (
        station_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        state TEXT,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        timezone_offset TEXT
    );

    CREATE TABLE IF NOT EXISTS tide_data (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        station_id TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        height REAL NOT NULL,
        kind TEXT NOT NULL DEFAULT 'U',
        prediction INTEGER NOT NULL DEFAULT 0,
        UNIQUE (station_id, timestamp, prediction)
    );

    CREATE TABLE IF NOT EXISTS building_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kind TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL,
        cost TEXT NOT NULL,
        production TEXT NOT NULL,
        protection INTEGER NOT NULL DEFAULT 0,
        icon TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS cities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        station_id TEXT NOT NULL,
        fish INTEGER NOT NULL,
        tourism INTEGER NOT NULL,
        energy INTEGER NOT NULL,
        last_updated TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS buildings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        city_id INTEGER NOT NULL,
        building_type_id INTEGER NOT NULL,
        pos_x INTEGER NOT NULL,
        pos_y INTEGER NOT NULL,
        health INTEGER NOT NULL DEFAULT 100,
        created_at TEXT NOT NULL,
        UNIQUE (city_id, pos_x, pos_y),
        FOREIGN KEY (city_id) REFERENCES cities(id),
        FOREIGN KEY (building_type_id) REFERENCES building_types(id)
    );

    CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        city_id INTEGER NOT NULL,
        type TEXT NOT NULL,
        title TEXT NOT NULL,
        message TEXT NOT NULL,
        data TEXT NOT NULL DEFAULT '{}',
        read INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (city_id) REFERENCES cities(id)
    );

    CREATE TABLE IF NOT EXISTS storm_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        station_id TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        severity INTEGER NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        resolved INTEGER NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_tide_data_station_time
        ON tide_data(station_id, timestamp);
    CREATE INDEX IF NOT EXISTS idx_cities_user
        ON cities(user_id);
    CREATE INDEX IF NOT EXISTS idx_buildings_city
        ON buildings(city_id);
    CREATE INDEX IF NOT EXISTS idx_events_city
        ON events(city_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_storm_events_station
        ON storm_events(station_id, resolved);
'''

def _to_db(dt: datetime) -> str:
    """Fixed-width UTC text so that string order matches time order."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")

def _from_db(value: str) -> datetime:
    return datetime.fromisoformat(value)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class SQLiteGameRepository:
    def __init__(self, db_path: Path = Path("data/tidewater.db")):
        self.db_path = db_path
        self._initialized = False

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except aiosqlite.IntegrityError:
            raise
        except aiosqlite.Error as e:
            logger.error(f"SQLite error on {self.db_path}: {str(e)}")
            raise PersistenceError(str(e)) from e

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        if self._initialized:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.executescript(SCHEMA)
            await db.commit()

        self._initialized = True
        logger.info(f"SQLite repository ready at {self.db_path}")

    async def close(self) -> None:
        # Connections are opened per operation
        pass

    # Row mappers
    def _row_to_station(self, row: aiosqlite.Row) -> TideStation:
        return TideStation(
            station_id=row['station_id'],
            name=row['name'],
            state=row['state'],
            latitude=row['latitude'],
            longitude=row['longitude'],
            timezone_offset=row['timezone_offset'],
        )

    def _row_to_sample(self, row: aiosqlite.Row) -> TideSample:
        return TideSample(
            station_id=row['station_id'],
            timestamp=_from_db(row['timestamp']),
            height=row['height'],
            kind=TideKind(row['kind']),
            is_prediction=bool(row['prediction']),
        )

    def _row_to_building_type(self, row: aiosqlite.Row) -> BuildingType:
        return BuildingType(
            id=row['id'],
            kind=row['kind'],
            name=row['name'],
            description=row['description'],
            cost=ResourceBundle.model_validate(json.loads(row['cost'])),
            production=Resources.model_validate(json.loads(row['production'])),
            protection=row['protection'],
            icon=row['icon'],
        )

    def _row_to_city(self, row: aiosqlite.Row) -> City:
        return City(
            id=row['id'],
            user_id=row['user_id'],
            name=row['name'],
            station_id=row['station_id'],
            resources=ResourceBundle(
                fish=row['fish'],
                tourism=row['tourism'],
                energy=row['energy'],
            ),
            last_updated=_from_db(row['last_updated']),
            created_at=_from_db(row['created_at']),
        )

    def _row_to_building(self, row: aiosqlite.Row) -> Building:
        return Building(
            id=row['id'],
            city_id=row['city_id'],
            building_type_id=row['building_type_id'],
            pos_x=row['pos_x'],
            pos_y=row['pos_y'],
            health=row['health'],
            created_at=_from_db(row['created_at']),
        )

    def _row_to_event(self, row: aiosqlite.Row) -> Event:
        return Event(
            id=row['id'],
            city_id=row['city_id'],
            type=row['type'],
            title=row['title'],
            message=row['message'],
            data=json.loads(row['data'] or '{}'),
            read=bool(row['read']),
            created_at=_from_db(row['created_at']),
        )

    def _row_to_storm(self, row: aiosqlite.Row) -> StormEvent:
        return StormEvent(
            id=row['id'],
            station_id=row['station_id'],
            start_time=_from_db(row['start_time']),
            end_time=_from_db(row['end_time']),
            severity=row['severity'],
            title=row['title'],
            description=row['description'],
            resolved=bool(row['resolved']),
        )

    # Stations
    async def list_stations(self) -> List[TideStation]:
        async with self._connect() as db:
            async with db.execute('SELECT * FROM tide_stations ORDER BY name') as cursor:
                return [self._row_to_station(row) for row in await cursor.fetchall()]

    async def get_station(self, station_id: str) -> Optional[TideStation]:
        async with self._connect() as db:
            async with db.execute(
                'SELECT * FROM tide_stations WHERE station_id = ?', (station_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_station(row) if row else None

    async def save_station(self, station: TideStation) -> TideStation:
        async with self._connect() as db:
            await db.execute(
                '''INSERT OR REPLACE INTO tide_stations
                   (station_id, name, state, latitude, longitude, timezone_offset)
                   VALUES (?, ?, ?, ?, ?, ?)''',
                (station.station_id, station.name, station.state,
                 station.latitude, station.longitude, station.timezone_offset)
            )
            await db.commit()
        return station

    # Tide samples
    async def save_tide_samples(self, samples: Sequence[TideSample]) -> List[TideSample]:
        inserted = []
        if not samples:
            return inserted
        async with self._connect() as db:
            for sample in samples:
                cursor = await db.execute(
                    '''INSERT OR IGNORE INTO tide_data
                       (station_id, timestamp, height, kind, prediction)
                       VALUES (?, ?, ?, ?, ?)''',
                    (sample.station_id, _to_db(sample.timestamp), sample.height,
                     sample.kind.value, int(sample.is_prediction))
                )
                if cursor.rowcount:
                    inserted.append(sample)
            await db.commit()
        return inserted

    async def get_latest_observation(self, station_id: str) -> Optional[TideSample]:
        async with self._connect() as db:
            async with db.execute(
                '''SELECT * FROM tide_data
                   WHERE station_id = ? AND prediction = 0
                   ORDER BY timestamp DESC LIMIT 1''',
                (station_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_sample(row) if row else None

    async def get_tide_samples(
        self,
        station_id: str,
        start: datetime,
        end: datetime,
        prediction: Optional[bool] = None
    ) -> List[TideSample]:
        query = 'SELECT * FROM tide_data WHERE station_id = ? AND timestamp >= ? AND timestamp <= ?'
        params: list = [station_id, _to_db(start), _to_db(end)]
        if prediction is not None:
            query += ' AND prediction = ?'
            params.append(int(prediction))
        query += ' ORDER BY timestamp'

        async with self._connect() as db:
            async with db.execute(query, params) as cursor:
                return [self._row_to_sample(row) for row in await cursor.fetchall()]

    # Building types
    async def list_building_types(self) -> List[BuildingType]:
        async with self._connect() as db:
            async with db.execute('SELECT * FROM building_types ORDER BY id') as cursor:
                return [self._row_to_building_type(row) for row in await cursor.fetchall()]

    async def get_building_type(self, building_type_id: int) -> Optional[BuildingType]:
        async with self._connect() as db:
            async with db.execute(
                'SELECT * FROM building_types WHERE id = ?', (building_type_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_building_type(row) if row else None

    async def save_building_type(self, building_type: BuildingTypeCreate) -> BuildingType:
        async with self._connect() as db:
            cursor = await db.execute(
                '''INSERT INTO building_types
                   (kind, name, description, cost, production, protection, icon)
                   VALUES (?, ?, ?, ?, ?, ?, ?)''',
                (building_type.kind.value, building_type.name, building_type.description,
                 building_type.cost.model_dump_json(), building_type.production.model_dump_json(),
                 building_type.protection, building_type.icon)
            )
            await db.commit()
            return BuildingType(id=cursor.lastrowid, **building_type.model_dump())

    # Cities
    async def list_city_ids(self) -> List[int]:
        async with self._connect() as db:
            async with db.execute('SELECT id FROM cities ORDER BY id') as cursor:
                return [row['id'] for row in await cursor.fetchall()]

    async def list_cities_by_user(self, user_id: int) -> List[City]:
        async with self._connect() as db:
            async with db.execute(
                'SELECT * FROM cities WHERE user_id = ? ORDER BY id', (user_id,)
            ) as cursor:
                return [self._row_to_city(row) for row in await cursor.fetchall()]

    async def list_cities_by_station(self, station_id: str) -> List[City]:
        async with self._connect() as db:
            async with db.execute(
                'SELECT * FROM cities WHERE station_id = ? ORDER BY id', (station_id,)
            ) as cursor:
                return [self._row_to_city(row) for row in await cursor.fetchall()]

    async def get_city(self, city_id: int) -> Optional[City]:
        async with self._connect() as db:
            async with db.execute('SELECT * FROM cities WHERE id = ?', (city_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_city(row) if row else None

    async def create_city(self, city: CityCreate, resources: ResourceBundle) -> City:
        now = _to_db(_utcnow())
        async with self._connect() as db:
            cursor = await db.execute(
                '''INSERT INTO cities
                   (user_id, name, station_id, fish, tourism, energy, last_updated, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)''',
                (city.user_id, city.name, city.station_id, resources.fish,
                 resources.tourism, resources.energy, now, now)
            )
            await db.commit()
            city_id = cursor.lastrowid
        return await self.get_city(city_id)

    async def _write_resources(self, db: aiosqlite.Connection, city_id: int, resources: ResourceBundle) -> None:
        cursor = await db.execute(
            '''UPDATE cities SET fish = ?, tourism = ?, energy = ?, last_updated = ?
               WHERE id = ?''',
            (resources.fish, resources.tourism, resources.energy, _to_db(_utcnow()), city_id)
        )
        if cursor.rowcount == 0:
            raise CityNotFoundError(f"City {city_id} not found")

    async def update_city_resources(self, city_id: int, resources: ResourceBundle) -> City:
        async with self._connect() as db:
            await self._write_resources(db, city_id, resources)
            await db.commit()
        return await self.get_city(city_id)

    # Buildings
    async def list_city_buildings(self, city_id: int) -> List[BuildingWithType]:
        async with self._connect() as db:
            async with db.execute(
                '''SELECT b.*, t.id AS type_id, t.kind, t.name, t.description, t.cost,
                          t.production, t.protection, t.icon
                   FROM buildings b
                   JOIN building_types t ON b.building_type_id = t.id
                   WHERE b.city_id = ?
                   ORDER BY b.id''',
                (city_id,)
            ) as cursor:
                rows = await cursor.fetchall()

        buildings = []
        for row in rows:
            building = self._row_to_building(row)
            building_type = BuildingType(
                id=row['type_id'],
                kind=row['kind'],
                name=row['name'],
                description=row['description'],
                cost=ResourceBundle.model_validate(json.loads(row['cost'])),
                production=Resources.model_validate(json.loads(row['production'])),
                protection=row['protection'],
                icon=row['icon'],
            )
            buildings.append(BuildingWithType(**building.model_dump(), type=building_type))
        return buildings

    async def get_building(self, building_id: int) -> Optional[Building]:
        async with self._connect() as db:
            async with db.execute('SELECT * FROM buildings WHERE id = ?', (building_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_building(row) if row else None

    async def is_position_occupied(self, city_id: int, pos_x: int, pos_y: int) -> bool:
        async with self._connect() as db:
            async with db.execute(
                'SELECT 1 FROM buildings WHERE city_id = ? AND pos_x = ? AND pos_y = ?',
                (city_id, pos_x, pos_y)
            ) as cursor:
                return await cursor.fetchone() is not None

    async def add_building(self, building: BuildingCreate, remaining: ResourceBundle) -> Building:
        created_at = _utcnow()
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    '''INSERT INTO buildings
                       (city_id, building_type_id, pos_x, pos_y, health, created_at)
                       VALUES (?, ?, ?, ?, ?, ?)''',
                    (building.city_id, building.building_type_id, building.pos_x,
                     building.pos_y, building.health, _to_db(created_at))
                )
                building_id = cursor.lastrowid
                try:
                    await self._write_resources(db, building.city_id, remaining)
                except CityNotFoundError:
                    await db.rollback()
                    raise
                await db.commit()
        except aiosqlite.IntegrityError as e:
            raise PositionOccupiedError("Position already occupied") from e

        return Building(id=building_id, created_at=created_at, **building.model_dump())

    async def remove_building(self, building_id: int) -> bool:
        async with self._connect() as db:
            cursor = await db.execute('DELETE FROM buildings WHERE id = ?', (building_id,))
            await db.commit()
            return cursor.rowcount > 0

    # Events
    async def list_city_events(self, city_id: int, limit: int = 20) -> List[Event]:
        async with self._connect() as db:
            async with db.execute(
                '''SELECT * FROM events WHERE city_id = ?
                   ORDER BY created_at DESC, id DESC LIMIT ?''',
                (city_id, limit)
            ) as cursor:
                return [self._row_to_event(row) for row in await cursor.fetchall()]

    async def add_event(self, event: EventCreate) -> Event:
        created_at = _utcnow()
        async with self._connect() as db:
            cursor = await db.execute(
                '''INSERT INTO events (city_id, type, title, message, data, read, created_at)
                   VALUES (?, ?, ?, ?, ?, 0, ?)''',
                (event.city_id, event.type.value, event.title, event.message,
                 json.dumps(event.data), _to_db(created_at))
            )
            await db.commit()
            return Event(id=cursor.lastrowid, read=False, created_at=created_at, **event.model_dump())

    async def mark_event_read(self, event_id: int) -> bool:
        async with self._connect() as db:
            cursor = await db.execute('UPDATE events SET read = 1 WHERE id = ?', (event_id,))
            await db.commit()
            return cursor.rowcount > 0

    # Storms
    async def get_active_storms(self, station_id: str, now: datetime) -> List[StormEvent]:
        stamp = _to_db(now)
        async with self._connect() as db:
            async with db.execute(
                '''SELECT * FROM storm_events
                   WHERE station_id = ? AND resolved = 0
                     AND start_time <= ? AND end_time >= ?
                   ORDER BY id''',
                (station_id, stamp, stamp)
            ) as cursor:
                return [self._row_to_storm(row) for row in await cursor.fetchall()]

    async def get_storm_event(self, storm_id: int) -> Optional[StormEvent]:
        async with self._connect() as db:
            async with db.execute('SELECT * FROM storm_events WHERE id = ?', (storm_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_storm(row) if row else None

    async def create_storm_event(self, storm: StormEventCreate) -> StormEvent:
        async with self._connect() as db:
            cursor = await db.execute(
                '''INSERT INTO storm_events
                   (station_id, start_time, end_time, severity, title, description, resolved)
                   VALUES (?, ?, ?, ?, ?, ?, ?)''',
                (storm.station_id, _to_db(storm.start_time), _to_db(storm.end_time),
                 storm.severity, storm.title, storm.description, int(storm.resolved))
            )
            await db.commit()
            return StormEvent(id=cursor.lastrowid, **storm.model_dump())

    async def resolve_storm_event(self, storm_id: int) -> Optional[StormEvent]:
        async with self._connect() as db:
            cursor = await db.execute(
                'UPDATE storm_events SET resolved = 1 WHERE id = ?', (storm_id,)
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        return await self.get_storm_event(storm_id)
