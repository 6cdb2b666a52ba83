from datetime import datetime
from pydantic import BaseModel, Field

class StormEventCreate(BaseModel):
    station_id: str
    start_time: datetime
    end_time: datetime
    severity: int = Field(..., ge=1, le=5)
    title: str
    description: str
    resolved: bool = False

class StormEvent(StormEventCreate):
    id: int

    def is_active(self, now: datetime) -> bool:
        """Unresolved and inside its time window."""
        return not self.resolved and self.start_time <= now <= self.end_time
