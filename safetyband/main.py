import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis import asyncio as aioredis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from safetyband.api.v1.router import api_router
from safetyband.core.config import get_settings
from safetyband.core.deps import _ensure_redis_pool
from safetyband.core.exceptions import register_exception_handlers
from safetyband.db.session import async_session, engine
from safetyband.models.all import Base
from safetyband.services.messaging import MessagingChannel
from safetyband.services.retention import RetentionSweeper

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers.update(
            {
                "X-Content-Type-Options": "nosniff",
                "X-Frame-Options": "DENY",
            }
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    channel = MessagingChannel(settings)
    await channel.connect()
    app.state.messaging_channel = channel

    sweeper = None
    redis = None
    if settings.retention_sweep_in_process:
        redis = aioredis.Redis(connection_pool=_ensure_redis_pool(settings.redis_url))
        sweeper = RetentionSweeper(async_session, settings, redis=redis)
        sweeper.start()
    app.state.retention_sweeper = sweeper

    try:
        yield
    finally:
        if sweeper is not None:
            await sweeper.stop()
        if redis is not None:
            await redis.aclose()
        await channel.aclose()
        await engine.dispose()


def get_application() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(SecurityHeadersMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health():
        sweeper = getattr(app.state, "retention_sweeper", None)
        channel = getattr(app.state, "messaging_channel", None)
        return {
            "status": "ok",
            "retentionSweeper": sweeper.state if sweeper else "disabled",
            "messaging": channel.state.value if channel else "disconnected",
        }

    return app


app = get_application()
