from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.auth import get_current_user
from safetyband.core.config import Settings
from safetyband.core.deps import get_db_session, get_settings_dep
from safetyband.core.security import create_access_token
from safetyband.models.user import User
from safetyband.schemas.user import AuthResponse, LoginIn, ProfileUpdate, RegisterIn, UserOut
from safetyband.services import users as user_service

router = APIRouter()


def _auth_response(user: User, settings: Settings) -> AuthResponse:
    return AuthResponse(token=create_access_token(user.id, settings), user=UserOut.model_validate(user))


@router.post("/register", response_model=AuthResponse)
async def register(
    payload: RegisterIn,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
):
    user = await user_service.register_user(session, payload)
    return _auth_response(user, settings)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginIn,
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
):
    user = await user_service.authenticate(session, payload.email, payload.password)
    return _auth_response(user, settings)


@router.post("/demo-login", response_model=AuthResponse)
async def demo_login(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings_dep),
):
    if not settings.demo_mode:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Demo mode is disabled")
    user = await user_service.get_or_create_demo_user(session, settings.demo_owner_email)
    return _auth_response(user, settings)


@router.get("/profile", response_model=UserOut)
async def get_profile(user: User = Depends(get_current_user)):
    return user


@router.put("/profile", response_model=UserOut)
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await user_service.update_profile(session, user.id, payload)
