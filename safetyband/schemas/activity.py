import datetime as dt
from typing import Any, List

from pydantic import AliasChoices, Field

from safetyband.schemas.common import CamelModel
from safetyband.services.activity import ActivityStatus, ActivityType


class ActivityIn(CamelModel):
    type: ActivityType
    message: str = Field(..., min_length=1, max_length=512)
    status: ActivityStatus = ActivityStatus.NORMAL
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivityOut(CamelModel):
    id: str
    user_id: str
    type: ActivityType
    status: ActivityStatus
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("meta", "metadata"))
    created_at: dt.datetime


class ActivityPage(CamelModel):
    activities: List[ActivityOut]
    total: int
    has_more: bool


class ActivityStats(CamelModel):
    all: int = 0
    sync: int = 0
    location: int = 0
    emergency: int = 0
    system: int = 0
