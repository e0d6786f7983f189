import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.config import Settings
from safetyband.core.exceptions import ConflictError, OwnerUnresolved, ValidationError
from safetyband.models.device_registration import DeviceRegistration
from safetyband.models.user import User
from safetyband.services.users import get_or_create_demo_user, get_user

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE_ID = "unknown-device"


@dataclass(frozen=True)
class DeviceContext:
    device_id: str | None = None
    user_id: str | None = None


async def get_device_registration(session: AsyncSession, device_id: str) -> DeviceRegistration | None:
    stmt = select(DeviceRegistration).where(DeviceRegistration.device_id == device_id)
    return (await session.execute(stmt)).scalar_one_or_none()


async def list_devices(session: AsyncSession, user_id: str) -> list[DeviceRegistration]:
    stmt = (
        select(DeviceRegistration)
        .where(DeviceRegistration.user_id == user_id)
        .order_by(DeviceRegistration.created_at.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def register_device(
    session: AsyncSession, user_id: str, device_id: str, label: str | None = None
) -> DeviceRegistration:
    reg = await get_device_registration(session, device_id)
    if reg:
        if reg.user_id != user_id:
            raise ConflictError("Device is registered to another user")
        return reg
    reg = DeviceRegistration(user_id=user_id, device_id=device_id, label=label)
    session.add(reg)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("Device is registered to another user") from exc
    logger.info("Registered device %s for user %s", device_id, user_id)
    return reg


async def resolve_owner(session: AsyncSession, context: DeviceContext, settings: Settings) -> tuple[User, str]:
    """
    Map a device context to (owner, device_id).

    Order: explicit user id, then the device registration, then the demo
    account when demo mode is enabled. Nothing is written on failure.
    """
    if not context.device_id and not context.user_id and not settings.demo_mode:
        raise ValidationError("A device identifier is required")
    device_id = context.device_id or UNKNOWN_DEVICE_ID

    if context.user_id:
        user = await get_user(session, context.user_id)
        if user is None:
            raise OwnerUnresolved(f"Unknown user {context.user_id}")
        return user, device_id

    if context.device_id:
        reg = await get_device_registration(session, context.device_id)
        if reg:
            user = await get_user(session, reg.user_id)
            if user is not None:
                return user, device_id

    if settings.demo_mode:
        logger.warning("Attributing telemetry from %s to the demo owner", device_id)
        return await get_or_create_demo_user(session, settings.demo_owner_email), device_id

    raise OwnerUnresolved(f"No user registered for device {device_id}")
