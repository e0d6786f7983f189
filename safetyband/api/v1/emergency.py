from fastapi import APIRouter, Depends

from safetyband.core.auth import get_current_user
from safetyband.core.deps import get_messaging_channel, get_notification_dispatcher
from safetyband.models.user import User
from safetyband.schemas.emergency import (
    ChannelStatusOut,
    ContactOutcomeOut,
    SharedLocation,
    ShareLocationOut,
    ShareSummary,
)
from safetyband.services.messaging import MessagingChannel
from safetyband.services.notifications import NotificationDispatcher

router = APIRouter()


@router.post("/share-location", response_model=ShareLocationOut)
async def share_location(
    user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    result = await dispatcher.share_location(user)
    summary = result.summary
    return ShareLocationOut(
        message=f"Location shared with {summary['successful']} of {summary['total']} emergency contacts",
        location=SharedLocation(**result.location),
        results=[ContactOutcomeOut.model_validate(o) for o in result.outcomes],
        summary=ShareSummary(**summary),
    )


@router.get("/channel", response_model=ChannelStatusOut)
async def channel_status(
    user: User = Depends(get_current_user),
    channel: MessagingChannel = Depends(get_messaging_channel),
):
    return ChannelStatusOut(**channel.status())
