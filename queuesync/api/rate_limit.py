"""
Per-client throttling of queue mutations.

Every peer that can change the queue (a REST caller or a WebSocket client
proposing deltas) draws from a token bucket keyed by its host. Reads are
never throttled.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.requests import HTTPConnection

from queuesync.config import get_settings

logger = logging.getLogger(__name__)

# HTTP methods that can change the queue
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

ANONYMOUS_CLIENT = "anonymous"


@dataclass
class TokenBucket:
    """
    Token bucket refilled continuously at `rate` tokens per second.

    Starts full.
    """

    capacity: float
    rate: float
    tokens: float = field(init=False)
    updated_at: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.tokens = self.capacity

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.updated_at)
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.updated_at = now

    def take(self, now: float | None = None) -> float:
        """
        Take one token if available.

        Returns:
            0.0 if a token was taken, otherwise the seconds until one will be.
        """
        self._refill(time.monotonic() if now is None else now)
        if self.tokens >= 1:
            self.tokens -= 1
            return 0.0
        return (1 - self.tokens) / self.rate


class MutationThrottle:
    """
    Token buckets keyed by client host.

    Each client may make `per_minute` mutations per minute on average and
    burst up to `burst` at once.
    """

    def __init__(self, per_minute: int, burst: int | None = None):
        if per_minute < 1:
            raise ValueError("per_minute must be at least 1")
        self.per_minute = per_minute
        self.burst = burst or per_minute * 2
        self._buckets: dict[str, TokenBucket] = {}

    def retry_after(self, client: str, now: float | None = None) -> float:
        """
        Charge one mutation to `client`.

        Returns:
            0.0 if the mutation may proceed, otherwise the seconds the
            client has to wait.
        """
        now = time.monotonic() if now is None else now
        bucket = self._buckets.get(client)
        if bucket is None:
            bucket = TokenBucket(capacity=self.burst, rate=self.per_minute / 60.0, updated_at=now)
            self._buckets[client] = bucket
        return bucket.take(now)

    def forget(self, client: str) -> None:
        """Drop any state kept for `client`."""
        self._buckets.pop(client, None)

    def __len__(self) -> int:
        return len(self._buckets)


_throttle: MutationThrottle | None = None


def get_throttle() -> MutationThrottle:
    """Get or create the process-wide mutation throttle."""
    global _throttle
    if _throttle is None:
        _throttle = MutationThrottle(per_minute=get_settings().rate_limit_requests_per_minute)
    return _throttle


def client_key(connection: HTTPConnection) -> str:
    """Throttle key for an HTTP request or WebSocket: the peer host."""
    if connection.client is None:
        return ANONYMOUS_CLIENT
    return connection.client.host


def create_rate_limit_middleware(
    throttle_factory: Callable[[], MutationThrottle] = get_throttle,
) -> Callable:
    """
    Build HTTP middleware that answers 429 to clients over their budget.

    Args:
        throttle_factory: Returns the throttle to charge, looked up per
            request so tests can swap it.

    Returns:
        The middleware function.
    """

    async def rate_limit_middleware(request: Request, call_next: Callable):
        if request.method not in MUTATING_METHODS:
            return await call_next(request)

        client = client_key(request)
        wait = throttle_factory().retry_after(client)
        if wait:
            logger.warning(
                "Mutation throttled",
                extra={"client": client, "path": request.url.path, "retry_after": wait},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": f"Rate limit exceeded. Retry after {wait:.1f} seconds"},
                headers={"Retry-After": str(int(wait) + 1)},
            )

        return await call_next(request)

    return rate_limit_middleware
