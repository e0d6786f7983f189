import datetime as dt

import pytest
from fakeredis import aioredis as fakeredis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from safetyband.core.config import Settings
from safetyband.core.security import hash_password
from safetyband.models.all import Base
from safetyband.models.telemetry import TelemetrySample
from safetyband.models.user import User

CONTACTS = [
    {"id": "1", "name": "Sunita Sharma", "phone": "+91 98765 43211", "relationship": "Mother"},
    {"id": "2", "name": "Amit Kumar", "phone": "+91 87654 32109", "relationship": "Friend"},
    {"id": "3", "name": "Emergency Services", "phone": "112", "relationship": "Emergency"},
]


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        redis_url="redis://localhost:6379/0",
        jwt_secret_key="test-secret",
        jwt_algorithm="HS256",
        jwt_issuer="https://issuer.test",
        jwt_audience="safetyband-api",
        jwt_clock_skew_seconds=30,
        demo_mode=False,
        demo_owner_email="demo@safetyband.test",
        retention_sweep_in_process=False,
        messaging_reconnect_delay_seconds=0,
    )


@pytest.fixture()
async def redis():
    client = fakeredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def user(session) -> User:
    user = User(
        name="Priya Nair",
        email="priya@example.com",
        phone="+91 99887 76655",
        password_hash=hash_password("secret123"),
        emergency_contacts=[dict(c) for c in CONTACTS],
    )
    session.add(user)
    await session.commit()
    return user


def make_sample(user_id: str, created_at: dt.datetime, device_id: str = "band-1", **fields) -> TelemetrySample:
    fields.setdefault("accel_z", 1.0)
    return TelemetrySample(
        user_id=user_id,
        device_id=device_id,
        timestamp=created_at,
        created_at=created_at,
        **fields,
    )


@pytest.fixture()
def sample_factory():
    return make_sample
