import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from safetyband.core.security import hash_password, verify_password
from safetyband.models.user import User
from safetyband.schemas.user import ProfileUpdate, RegisterIn

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

DEFAULT_EMERGENCY_CONTACTS = [
    {"id": "1", "name": "Emergency Services", "phone": "112", "relationship": "Emergency"},
]

DEMO_USER = {
    "name": "Rahul Sharma",
    "phone": "+91 98765 43210",
    "password": "demo123",
    "emergency_contacts": [
        {"id": "1", "name": "Sunita Sharma", "phone": "+91 98765 43211", "relationship": "Mother"},
        {"id": "2", "name": "Amit Kumar", "phone": "+91 87654 32109", "relationship": "Friend"},
        {"id": "3", "name": "Emergency Services", "phone": "112", "relationship": "Emergency"},
    ],
}


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == email.lower())
    return (await session.execute(stmt)).scalar_one_or_none()


async def register_user(session: AsyncSession, payload: RegisterIn) -> User:
    if await get_user_by_email(session, payload.email):
        raise ConflictError("User already exists")
    user = User(
        name=payload.name.strip(),
        email=payload.email.lower(),
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        emergency_contacts=[dict(c) for c in DEFAULT_EMERGENCY_CONTACTS],
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("User already exists") from exc
    logger.info("Registered user %s", user.id)
    return user


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return user


async def update_profile(session: AsyncSession, user_id: str, payload: ProfileUpdate) -> User:
    user = await get_user(session, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if payload.new_password:
        if not payload.current_password:
            raise ValidationError("Current password is required to change password")
        if not verify_password(payload.current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if len(payload.new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
        user.password_hash = hash_password(payload.new_password)

    if payload.email and payload.email.lower() != user.email:
        if await get_user_by_email(session, payload.email):
            raise ConflictError("Email is already registered")
        user.email = payload.email.lower()

    if payload.name:
        user.name = payload.name
    if payload.phone:
        user.phone = payload.phone
    if payload.emergency_contacts is not None:
        user.emergency_contacts = [c.model_dump() for c in payload.emergency_contacts]

    await session.commit()
    return user


async def get_or_create_demo_user(session: AsyncSession, email: str) -> User:
    user = await get_user_by_email(session, email)
    if user:
        return user
    user = User(
        name=DEMO_USER["name"],
        email=email.lower(),
        phone=DEMO_USER["phone"],
        password_hash=hash_password(DEMO_USER["password"]),
        emergency_contacts=[dict(c) for c in DEMO_USER["emergency_contacts"]],
    )
    session.add(user)
    await session.commit()
    logger.info("Created demo user %s", user.id)
    return user
