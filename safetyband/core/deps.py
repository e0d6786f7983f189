from collections.abc import AsyncGenerator
from functools import partial
from redis import asyncio as aioredis
from redis.asyncio import ConnectionPool, Redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.config import get_settings, Settings
from safetyband.db.session import async_session
from safetyband.services.activity import ActivityRecorder
from safetyband.services.ingestion import IngestionCoordinator
from safetyband.services.messaging import MessagingChannel
from safetyband.services.notifications import NotificationDispatcher
from safetyband.services.owners import resolve_owner
from safetyband.services.telemetry_store import TelemetryStore

_redis_pool: ConnectionPool | None = None


async def get_settings_dep() -> Settings:
    return get_settings()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


def _ensure_redis_pool(url: str) -> ConnectionPool:
    global _redis_pool
    settings = get_settings()
    if not url.startswith("rediss://") and settings.environment != "development":
        raise RuntimeError("Redis URL must use TLS (rediss://) for production safety")
    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            url,
            max_connections=64,
            decode_responses=True,
            socket_timeout=1.0,
            socket_connect_timeout=1.0,
            health_check_interval=30,
        )
    return _redis_pool


async def get_redis(settings: Settings = Depends(get_settings_dep)):
    pool = _ensure_redis_pool(settings.redis_url)
    client: Redis = aioredis.Redis(connection_pool=pool)
    try:
        yield client
    finally:
        # do not close the pool; just disconnect this client object
        await client.aclose()


async def get_telemetry_store(session: AsyncSession = Depends(get_db_session)) -> TelemetryStore:
    return TelemetryStore(session)


async def get_activity_recorder(session: AsyncSession = Depends(get_db_session)) -> ActivityRecorder:
    return ActivityRecorder(session)


async def get_ingestion_coordinator(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
) -> IngestionCoordinator:
    return IngestionCoordinator(
        TelemetryStore(session),
        ActivityRecorder(session),
        partial(resolve_owner, session, settings=settings),
        thresholds=settings.detection,
    )


async def get_messaging_channel(request: Request) -> MessagingChannel:
    return request.app.state.messaging_channel


async def get_notification_dispatcher(
    session: AsyncSession = Depends(get_db_session),
    channel: MessagingChannel = Depends(get_messaging_channel),
) -> NotificationDispatcher:
    return NotificationDispatcher(TelemetryStore(session), ActivityRecorder(session), channel)
