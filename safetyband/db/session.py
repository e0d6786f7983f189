from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from safetyband.core.config import get_settings

settings = get_settings()

if settings.database_url.startswith("sqlite"):
    engine = create_async_engine(
        settings.database_url, echo=settings.debug, connect_args={"check_same_thread": False}
    )
else:
    engine = create_async_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True, pool_size=10)

async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
