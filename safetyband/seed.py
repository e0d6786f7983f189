"""Reset the database to a single demo account with a little activity history.

    python -m safetyband.seed
"""
import asyncio
import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.config import get_settings
from safetyband.models.activity import Activity
from safetyband.models.device_registration import DeviceRegistration
from safetyband.models.user import User
from safetyband.services.activity import ActivityRecorder, ActivityStatus, ActivityType
from safetyband.services.owners import register_device
from safetyband.services.telemetry_store import TelemetryStore
from safetyband.services.users import get_or_create_demo_user

logger = logging.getLogger(__name__)

DEMO_DEVICE_ID = "band-demo-001"

SAMPLE_ACTIVITIES = [
    (ActivityType.SYSTEM, ActivityStatus.SUCCESS, "Safety band paired", {"deviceId": DEMO_DEVICE_ID}),
    (ActivityType.SYNC, ActivityStatus.SUCCESS, "Sensor data synced", {"deviceId": DEMO_DEVICE_ID}),
    (ActivityType.LOCATION, ActivityStatus.NORMAL, "Location updated", {"latitude": 28.6139, "longitude": 77.209}),
    (ActivityType.EMERGENCY, ActivityStatus.WARNING, "Low battery: 15%", {"batteryLevel": 15}),
]


async def seed_database(session: AsyncSession, demo_email: str) -> User:
    await TelemetryStore(session).clear()
    await session.execute(delete(Activity))
    await session.execute(delete(DeviceRegistration))
    await session.execute(delete(User))
    await session.commit()

    user = await get_or_create_demo_user(session, demo_email)
    await register_device(session, user.id, DEMO_DEVICE_ID, label="Demo band")

    recorder = ActivityRecorder(session)
    for activity_type, status, message, metadata in SAMPLE_ACTIVITIES:
        await recorder.record(user.id, activity_type, status, message, metadata)
    logger.info("Seeded demo user %s with %s activities", user.email, len(SAMPLE_ACTIVITIES))
    return user


async def main() -> None:
    from safetyband.db.session import async_session, engine
    from safetyband.models.all import Base

    settings = get_settings()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        await seed_database(session, settings.demo_owner_email)
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
