import logging
from enum import Enum
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.exceptions import StoreWriteFailure
from safetyband.models.activity import Activity
from safetyband.services.paging import Page, clamp_page

logger = logging.getLogger(__name__)


class ActivityType(str, Enum):
    SYNC = "sync"
    LOCATION = "location"
    EMERGENCY = "emergency"
    SYSTEM = "system"


class ActivityStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    NORMAL = "normal"


class ActivityRecorder:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        user_id: str,
        type: ActivityType,
        status: ActivityStatus = ActivityStatus.NORMAL,
        message: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> Activity:
        activity = Activity(
            user_id=user_id,
            type=ActivityType(type).value,
            status=ActivityStatus(status).value,
            message=message,
            meta=metadata or {},
        )
        self.session.add(activity)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreWriteFailure("Failed to store activity") from exc
        return activity

    async def list(
        self,
        user_id: str,
        type: ActivityType | str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Page[Activity]:
        limit, offset = clamp_page(limit, offset)
        conditions = [Activity.user_id == user_id]
        if type is not None and type != "all":
            conditions.append(Activity.type == ActivityType(type).value)

        total = (await self.session.execute(select(func.count()).select_from(Activity).where(*conditions))).scalar_one()
        stmt = (
            select(Activity)
            .where(*conditions)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
            .offset(offset)
        )
        items = list((await self.session.execute(stmt)).scalars().all())
        return Page(items=items, total=total, limit=limit, offset=offset)

    async def counts_by_type(self, user_id: str) -> dict[str, int]:
        stmt = (
            select(Activity.type, func.count())
            .where(Activity.user_id == user_id)
            .group_by(Activity.type)
        )
        counts = {t.value: 0 for t in ActivityType}
        for activity_type, count in (await self.session.execute(stmt)).all():
            if activity_type in counts:
                counts[activity_type] = count
        return {"all": sum(counts.values()), **counts}
