from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.auth import get_current_user
from safetyband.core.deps import get_db_session
from safetyband.models.user import User
from safetyband.schemas.device import DeviceRegistrationIn, DeviceRegistrationOut
from safetyband.services.owners import list_devices, register_device

router = APIRouter()


@router.post("", response_model=DeviceRegistrationOut, status_code=status.HTTP_201_CREATED)
async def create_device(
    payload: DeviceRegistrationIn,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await register_device(session, user.id, payload.device_id, label=payload.label)


@router.get("", response_model=list[DeviceRegistrationOut])
async def get_devices(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await list_devices(session, user.id)
