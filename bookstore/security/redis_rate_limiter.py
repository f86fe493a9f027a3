"""Login/register attempt limiter shared by every replica through Redis."""

from __future__ import annotations

import itertools
import logging
import time
from typing import Callable, Final

from redis import Redis, RedisError

from ..errors import ServiceUnavailable
from .rate_limiter import attempt_key

logger = logging.getLogger(__name__)


class RedisSlidingWindowRateLimiter:
    """Sorted-set sliding window keyed by action and normalised email.

    Each attempt is reserved first and withdrawn if it pushes the window over
    the limit, so concurrent replicas never admit more than ``max_requests``.
    Redis failures reject the attempt with ``ServiceUnavailable``.
    """

    _RESERVE_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local now_ms = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])
    local limit = tonumber(ARGV[3])
    local member = ARGV[4]

    redis.call('ZREMRANGEBYSCORE', key, '-inf', now_ms - window_ms)
    redis.call('ZADD', key, now_ms, member)
    redis.call('PEXPIRE', key, window_ms)
    if redis.call('ZCARD', key) > limit then
        redis.call('ZREM', key, member)
        return 0
    end
    return 1
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "bookstore:attempts",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._clock = clock
        self._sequence = itertools.count(1)
        self._reserve = client.register_script(self._RESERVE_SCRIPT)

    def _redis_key(self, action: str, email: str) -> str:
        return f"{self._key_prefix}:{attempt_key(action, email)}"

    def allow(self, action: str, email: str) -> bool:
        """Reserve an attempt slot; ``False`` once the window is full."""
        now_ms = int(self._clock() * 1000)
        member = f"{now_ms}:{id(self)}:{next(self._sequence)}"
        try:
            admitted = self._reserve(
                keys=[self._redis_key(action, email)],
                args=[now_ms, self._window_ms, self._max_requests, member],
            )
        except RedisError as exc:
            logger.error("rate limiter backend failed: %s", type(exc).__name__)
            raise ServiceUnavailable() from exc
        return int(admitted) == 1

    def reset(self, action: str, email: str) -> None:
        try:
            self._client.delete(self._redis_key(action, email))
        except RedisError as exc:
            logger.warning("rate limiter reset failed: %s", type(exc).__name__)
