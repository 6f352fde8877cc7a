"""Redis client configuration and rate limiting."""

from dataclasses import dataclass
from typing import cast

import redis
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check with the values needed for headers."""

    allowed: bool
    limit: int
    remaining: int
    retry_after: int  # Seconds until the window resets (0 if allowed)


class RateLimiter:
    """Redis-based fixed window rate limiter."""

    def __init__(self, redis_client: redis.Redis):
        """Initialize rate limiter with Redis client."""
        self.redis = redis_client

    def check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int = 60,
    ) -> RateLimitResult:
        """
        Count a request against a window and report whether it is allowed.

        Args:
            key: Rate limit key (e.g., user_id or IP)
            limit: Maximum number of requests
            window: Time window in seconds

        Returns:
            Result with allowed flag and remaining quota; allowed when Redis
            is unreachable (fail open)
        """
        try:
            current = cast(int, self.redis.incr(key))

            if current == 1:
                # First request opens the window
                self.redis.expire(key, window)
                ttl = window
            else:
                ttl = cast(int, self.redis.ttl(key))
                if ttl < 0:
                    # Key lost its expiry (e.g. crash between INCR and EXPIRE)
                    self.redis.expire(key, window)
                    ttl = window
        except redis.RedisError as e:
            logger.warning("redis_unavailable", operation="rate_limit", error=str(e))
            return RateLimitResult(allowed=True, limit=limit, remaining=limit, retry_after=0)

        allowed = current <= limit
        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - current),
            retry_after=0 if allowed else max(1, ttl),
        )

