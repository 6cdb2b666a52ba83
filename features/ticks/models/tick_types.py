from typing import List
from pydantic import BaseModel, Field

class CycleResult(BaseModel):
    """Outcome of one scheduled pass over a list of cities or stations."""
    job: str
    succeeded: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)
