# agrimarket/services/rate_limiter.py
import redis

from agrimarket.domain.errors import RateLimited, Unavailable
from agrimarket.utils.logging import get_logger
from agrimarket.utils.retry import redis_retry
from agrimarket.utils.settings import (
    REDIS_URL,
    REDIS_SOCKET_TIMEOUT_SECONDS,
    BACKEND_RETRY_AFTER_SECONDS,
    AI_RATE_LIMIT_MAX_REQUESTS,
    AI_RATE_LIMIT_WINDOW_SECONDS,
)

logger = get_logger(__name__)

# INCR and EXPIRE run as one step, so a window can never be left without a TTL
_HIT_LUA = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return {count, redis.call('TTL', KEYS[1])}
"""


class RateLimiter:
    """
    Fixed-window request counter per user, shared by every API process.

    The first hit opens a window of ``window`` seconds; hits past
    ``max_requests`` inside it are refused until the key expires.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        max_requests: int = AI_RATE_LIMIT_MAX_REQUESTS,
        window: int = AI_RATE_LIMIT_WINDOW_SECONDS,
        prefix: str = "ratelimit:ai",
    ):
        self.redis = client or redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        self.max_requests = max_requests
        self.window = window
        self.prefix = prefix

    def key(self, user_id: int) -> str:
        return f"{self.prefix}:{user_id}"

    @redis_retry()
    def _hit(self, key: str) -> tuple[int, int]:
        count, ttl = self.redis.eval(_HIT_LUA, 1, key, self.window)
        return int(count), int(ttl)

    def hit(self, user_id: int) -> int:
        """Count one request; returns how many are left in the window."""
        key = self.key(user_id)
        try:
            count, ttl = self._hit(key)
        except redis.RedisError as e:
            logger.error(f"Rate limit store unreachable for user {user_id}: {e}")
            raise Unavailable(
                "Service temporarily unavailable. Please try again later.",
                retry_after=BACKEND_RETRY_AFTER_SECONDS,
            ) from e

        if count > self.max_requests:
            retry_after = ttl if ttl > 0 else self.window
            logger.warning(f"User {user_id} over AI limit ({count}/{self.max_requests}), retry in {retry_after}s")
            raise RateLimited(
                "Too many AI requests. Please try again later.",
                retry_after=retry_after,
            )

        return self.max_requests - count
