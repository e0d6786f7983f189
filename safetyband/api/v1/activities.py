from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from safetyband.core.auth import get_current_user
from safetyband.core.deps import get_activity_recorder
from safetyband.models.user import User
from safetyband.schemas.activity import ActivityIn, ActivityOut, ActivityPage, ActivityStats
from safetyband.services.activity import ActivityRecorder, ActivityType

router = APIRouter()


@router.get("", response_model=ActivityPage)
async def list_activities(
    type: Optional[str] = Query(default=None, pattern="^(all|sync|location|emergency|system)$"),
    limit: int = Query(default=20, ge=1, le=500),
    skip: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    activity_type = ActivityType(type) if type and type != "all" else None
    page = await recorder.list(user.id, activity_type, limit=limit, offset=skip)
    return ActivityPage(
        activities=[ActivityOut.model_validate(a) for a in page.items],
        total=page.total,
        has_more=page.has_more,
    )


@router.post("", response_model=ActivityOut, status_code=status.HTTP_201_CREATED)
async def create_activity(
    payload: ActivityIn,
    user: User = Depends(get_current_user),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    activity = await recorder.record(user.id, payload.type, payload.status, payload.message, payload.metadata)
    return ActivityOut.model_validate(activity)


@router.get("/stats", response_model=ActivityStats)
async def activity_stats(
    user: User = Depends(get_current_user),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    return ActivityStats(**await recorder.counts_by_type(user.id))
