import datetime as dt
from typing import Optional

from pydantic import Field

from safetyband.schemas.common import CamelModel


class DeviceRegistrationIn(CamelModel):
    device_id: str = Field(..., min_length=1, max_length=64)
    label: Optional[str] = Field(default=None, max_length=64)


class DeviceRegistrationOut(CamelModel):
    id: str
    device_id: str
    label: Optional[str] = None
    created_at: dt.datetime
