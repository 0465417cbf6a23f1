# ==============================================
# In-memory sliding-window rate limiting
# ==============================================

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from fastapi import HTTPException, Request, status

from src.config.settings import get_config
from src.utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Simple in-memory rate limiter.
    State is per process; a multi-instance deployment needs a shared store.
    Identifiers with no request inside the window are evicted once per window.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 900,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[datetime]] = {}
        self._next_sweep: Optional[datetime] = None
        self._lock = threading.Lock()

    def is_allowed(self, identifier: str) -> bool:
        """
        Check if a request is allowed and record it.

        Args:
            identifier: Unique identifier (client IP address)

        Returns:
            True if request is allowed, False if rate limited
        """
        now = self._clock()
        window_start = now - timedelta(seconds=self.window_seconds)

        with self._lock:
            self._sweep(now, window_start)
            recent = [t for t in self._requests.get(identifier, []) if t > window_start]

            if len(recent) >= self.max_requests:
                self._requests[identifier] = recent
                return False

            recent.append(now)
            self._requests[identifier] = recent
            return True

    def _sweep(self, now: datetime, window_start: datetime) -> None:
        """Drop identifiers whose requests all fell out of the window; caller holds the lock"""
        if self._next_sweep is not None and now < self._next_sweep:
            return

        stale = [key for key, timestamps in self._requests.items()
                 if not timestamps or timestamps[-1] <= window_start]
        for key in stale:
            del self._requests[key]

        if stale:
            logger.debug(f"Evicted {len(stale)} idle rate limit entries")
        self._next_sweep = now + timedelta(seconds=self.window_seconds)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._requests)

    def get_retry_after(self, identifier: str) -> int:
        """Seconds until the next request is allowed"""
        with self._lock:
            timestamps = self._requests.get(identifier)
            if not timestamps:
                return 0
            oldest = min(timestamps)

        window_end = oldest + timedelta(seconds=self.window_seconds)
        now = self._clock()

        if window_end > now:
            return int((window_end - now).total_seconds()) + 1
        return 0

    def reset(self):
        with self._lock:
            self._requests.clear()
            self._next_sweep = None


class RateLimit:
    """
    FastAPI dependency enforcing a per-client-IP limit

    Usage:
        @router.post("/generate", dependencies=[Depends(generation_limit)])
    """

    def __init__(self, name: str, message: str, max_requests: Optional[int] = None):
        self.name = name
        self.message = message
        self.max_requests = max_requests
        self._limiter: Optional[RateLimiter] = None

    @property
    def limiter(self) -> RateLimiter:
        if self._limiter is None:
            settings = get_config().rate_limit
            self._limiter = RateLimiter(
                max_requests=self.max_requests or settings.max_requests,
                window_seconds=settings.window_seconds
            )
        return self._limiter

    def __call__(self, request: Request):
        identifier = request.client.host if request.client else 'unknown'

        if not self.limiter.is_allowed(identifier):
            retry_after = self.limiter.get_retry_after(identifier)
            logger.warning(f"Rate limit '{self.name}' exceeded for {identifier}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={'Retry-After': str(retry_after)}
            )

    def reset(self):
        if self._limiter is not None:
            self._limiter.reset()


api_limit = RateLimit('api', "Too many requests from this IP, please try again later")
generation_limit = RateLimit('generation', "Too many generation requests, please try again later", 20)
creation_limit = RateLimit('creation', "Too many task creation requests, please try again later", 10)
url_analysis_limit = RateLimit('url_analysis', "Too many URL analysis requests, please try again later", 20)
historical_limit = RateLimit('historical', "Too many historical analysis requests, please try again later", 5)

ALL_LIMITS = (api_limit, generation_limit, creation_limit, url_analysis_limit, historical_limit)


def reset_rate_limits():
    """Forget all recorded requests (tests, admin tooling)"""
    for limit in ALL_LIMITS:
        limit.reset()
