import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from safetyband.core.config import Settings
from safetyband.core.exceptions import RateLimited

logger = logging.getLogger(__name__)


async def check_rate_limit(redis: Redis, key: str, limit: int, window: int) -> bool:
    current = await redis.incr(key)
    if current == 1:
        await redis.expire(key, window)
    return current <= limit


async def enforce_ingest_rate(redis: Redis, device_id: str, settings: Settings) -> None:
    # Telemetry from a safety device is never dropped because the limiter backend is down.
    try:
        allowed = await check_rate_limit(
            redis, f"rl:ingest:{device_id}", settings.ingest_rate_limit, settings.ingest_rate_window_seconds
        )
    except RedisError:
        logger.warning("Rate limiter unavailable; accepting telemetry from %s", device_id, exc_info=True)
        return
    if not allowed:
        raise RateLimited(f"Too many telemetry uploads from {device_id}")
