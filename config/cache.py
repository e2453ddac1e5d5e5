# config/cache.py
from typing import Optional
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError
from config.settings import settings
import logging

logger = logging.getLogger(__name__)

_client: Optional[Redis] = None


async def get_redis() -> Redis:
    """
    Process-wide client. Raw page bytes are stored as-is, so responses are never
    decoded; callers decode text values themselves.
    """
    global _client
    if _client is None:
        _client = from_url(
            settings.REDIS_URL,
            decode_responses=False,
            socket_keepalive=True,
            socket_timeout=5.0,
            health_check_interval=30,
        )
        # Fail fast on startup if Redis is unreachable.
        await _client.ping()
        logger.info("redis.connected")
    return _client


async def redis_ok() -> bool:
    """Readiness probe: True when the shared client answers PING."""
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except (RedisError, OSError) as e:
        logger.warning("redis.ping.error err=%s", type(e).__name__)
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
