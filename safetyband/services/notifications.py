import asyncio
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, List

from safetyband.core.exceptions import DeliveryFailure, NoLocationAvailable, StoreWriteFailure
from safetyband.models.telemetry import TelemetrySample
from safetyband.models.user import User
from safetyband.services.activity import ActivityRecorder, ActivityStatus, ActivityType
from safetyband.services.messaging import MessagingChannel
from safetyband.services.telemetry_store import TelemetryStore

logger = logging.getLogger(__name__)

MAPS_URL = "https://maps.google.com/?q={latitude},{longitude}"

ALERT_TEMPLATE = (
    "EMERGENCY ALERT\n\n"
    "{name} has shared their location with you and may need help.\n\n"
    "Location: {map_link}\n"
    "Coordinates: {latitude:.6f}, {longitude:.6f}\n"
    "Last updated: {updated}\n\n"
    "Sent by SafetyBand"
)


@dataclass
class ContactOutcome:
    contact_id: str | None
    name: str
    phone: str
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass
class ShareResult:
    location: dict[str, Any]
    outcomes: List[ContactOutcome] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        successful = sum(1 for o in self.outcomes if o.success)
        return {"total": len(self.outcomes), "successful": successful, "failed": len(self.outcomes) - successful}


def compose_alert_message(name: str, sample: TelemetrySample) -> str:
    updated = sample.timestamp or sample.created_at
    return ALERT_TEMPLATE.format(
        name=name,
        map_link=MAPS_URL.format(latitude=sample.latitude, longitude=sample.longitude),
        latitude=sample.latitude,
        longitude=sample.longitude,
        updated=updated.strftime("%Y-%m-%d %H:%M:%S UTC") if isinstance(updated, dt.datetime) else updated,
    )


class NotificationDispatcher:
    def __init__(self, store: TelemetryStore, recorder: ActivityRecorder, channel: MessagingChannel):
        self.store = store
        self.recorder = recorder
        self.channel = channel

    async def share_location(self, user: User) -> ShareResult:
        sample = await self.store.latest(user.id)
        if sample is None or not sample.has_location:
            raise NoLocationAvailable("No location data available")

        message = compose_alert_message(user.name, sample)
        contacts = list(user.emergency_contacts or [])
        outcomes = await asyncio.gather(*(self._deliver(contact, message) for contact in contacts))

        result = ShareResult(
            location={
                "latitude": sample.latitude,
                "longitude": sample.longitude,
                "accuracy": sample.accuracy,
                "mapLink": MAPS_URL.format(latitude=sample.latitude, longitude=sample.longitude),
            },
            outcomes=list(outcomes),
        )
        await self._record_summary(user.id, sample, result)
        return result

    async def _deliver(self, contact: dict[str, Any], message: str) -> ContactOutcome:
        name = contact.get("name") or ""
        phone = contact.get("phone") or ""
        try:
            receipt = await self.channel.send_text(phone, message)
        except DeliveryFailure as exc:
            logger.warning("Emergency alert to %s failed: %s", name or phone, exc.message)
            return ContactOutcome(contact.get("id"), name, phone, success=False, error=exc.message)
        return ContactOutcome(contact.get("id"), name, phone, success=True, message_id=receipt.message_id)

    async def _record_summary(self, user_id: str, sample: TelemetrySample, result: ShareResult) -> None:
        summary = result.summary
        if summary["total"] and not summary["failed"]:
            status = ActivityStatus.SUCCESS
        elif summary["successful"]:
            status = ActivityStatus.WARNING
        else:
            status = ActivityStatus.ERROR
        metadata = {
            "location": result.location,
            "sampleId": sample.id,
            "totalContacts": summary["total"],
            "successful": summary["successful"],
            "failed": summary["failed"],
            "results": [
                {"name": o.name, "phone": o.phone, "success": o.success, "error": o.error} for o in result.outcomes
            ],
        }
        try:
            await self.recorder.record(
                user_id,
                ActivityType.LOCATION,
                status,
                f"Location shared with {summary['successful']} of {summary['total']} emergency contacts",
                metadata,
            )
        except StoreWriteFailure:
            logger.exception("Failed to record location share for user %s", user_id)
