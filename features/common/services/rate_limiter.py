import asyncio
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

class RateLimiter:
    """Paces NOAA requests issued by background jobs.

    Requests are spaced `60 / requests_per_minute` seconds apart, with a
    longer pause after every `batch_size` requests.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        batch_size: int = 20,
        batch_pause: float = 10
    ):
        self.request_interval = 60 / requests_per_minute
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self._sent = 0
        self._last_sent: Optional[float] = None

    async def limit(self) -> None:
        """Wait until the next request may go out."""
        if self._last_sent is not None:
            if self._sent % self.batch_size == 0:
                logger.info(f"⏸️ Pausing {self.batch_pause}s after batch of {self.batch_size} NOAA requests")
                gap = self.batch_pause
            else:
                gap = self.request_interval
            wait = gap - (time.monotonic() - self._last_sent)
            if wait > 0:
                await asyncio.sleep(wait)

        self._sent += 1
        self._last_sent = time.monotonic()
