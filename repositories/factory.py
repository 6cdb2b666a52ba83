import logging
from pathlib import Path

from core.config import Settings
from repositories.memory_repo import InMemoryGameRepository
from repositories.protocol import GameRepository
from repositories.sqlite_repo import SQLiteGameRepository

logger = logging.getLogger(__name__)

def build_repository(config: Settings) -> GameRepository:
    """Create the configured GameRepository.

    Uses `repository_backend` to pick the implementation:
    - "memory": process-local, lost on restart (default)
    - "sqlite": file at `sqlite_path`
    """
    backend = config.repository_backend.lower()
    if backend == "sqlite":
        return SQLiteGameRepository(Path(config.sqlite_path))
    if backend == "memory":
        return InMemoryGameRepository()
    raise ValueError(f"Unknown repository backend: {config.repository_backend}")
