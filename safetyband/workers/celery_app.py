import asyncio
import logging

from celery import Celery
from celery.signals import after_setup_logger
from redis import asyncio as aioredis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from safetyband.core.config import get_settings
from safetyband.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)

settings = get_settings()
celery = Celery(
    "safetyband",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    beat_schedule={
        "sweep-expired-telemetry": {
            "task": "sweep_expired_telemetry",
            "schedule": float(settings.retention_sweep_interval_seconds),
            # a late firing is dropped rather than stacked behind the previous one
            "options": {"expires": float(settings.retention_sweep_interval_seconds)},
        },
    },
)


@after_setup_logger.connect
def _configure_logging(logger, **kwargs):
    logger.setLevel(settings.log_level)


async def _sweep() -> int | None:
    engine = create_async_engine(settings.database_url, future=True)
    redis = aioredis.Redis.from_url(settings.redis_url, decode_responses=True)
    try:
        sweeper = RetentionSweeper(async_sessionmaker(engine, expire_on_commit=False), settings, redis=redis)
        return await sweeper.run_sweep()
    finally:
        await redis.aclose()
        await engine.dispose()


@celery.task(name="sweep_expired_telemetry")
def sweep_expired_telemetry() -> int | None:
    deleted = asyncio.run(_sweep())
    logger.info("sweep_expired_telemetry finished: %s", deleted)
    return deleted
