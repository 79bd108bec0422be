import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request

from wellbeing.config import WRITE_REQUESTS_PER_MINUTE

WINDOW_SECONDS = 60


class RateLimiter:
    """Fixed one-minute window per key, held in process memory."""

    def __init__(self, requests_per_minute: int = 60, timer: Callable[[], float] = time.time):
        self.requests_per_minute = requests_per_minute
        self.timer = timer
        # {key: (count, window_reset_time)}
        self.history: Dict[str, Tuple[int, float]] = {}
        self._call_count = 0

    def is_allowed(self, key: str) -> bool:
        now = self.timer()

        self._call_count += 1
        if self._call_count % 100 == 0:
            self._cleanup(now)

        count, reset_time = self.history.get(key, (0, now + WINDOW_SECONDS))
        if now > reset_time:
            count, reset_time = 0, now + WINDOW_SECONDS

        if count >= self.requests_per_minute:
            return False

        self.history[key] = (count + 1, reset_time)
        return True

    def reset(self):
        self.history.clear()

    def _cleanup(self, now: float):
        """Drop expired windows so the table doesn't grow without bound."""
        expired_keys = [k for k, v in self.history.items() if now > v[1]]
        for k in expired_keys:
            del self.history[k]


write_limiter = RateLimiter(requests_per_minute=WRITE_REQUESTS_PER_MINUTE)


async def limit_writes(request: Request):
    """FastAPI dependency for mutating routes, keyed by user id or client host."""
    user_id = request.path_params.get("user_id")
    key = user_id or (request.client.host if request.client else "anonymous")
    if not write_limiter.is_allowed(key):
        raise HTTPException(status_code=429, detail="TOO_MANY_REQUESTS")
