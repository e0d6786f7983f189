import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Mapping

from safetyband.core.config import DetectionThresholds
from safetyband.core.exceptions import StoreWriteFailure
from safetyband.models.telemetry import TelemetrySample
from safetyband.models.user import User
from safetyband.schemas.telemetry import Analysis, LocationOut
from safetyband.services.activity import ActivityRecorder, ActivityStatus, ActivityType
from safetyband.services.classifier import EmergencySignal, SignalKind, classify
from safetyband.services.metrics import DerivedMetrics, compute_derived_metrics
from safetyband.services.normalizer import NormalizedSample, normalize_sample
from safetyband.services.owners import DeviceContext

logger = logging.getLogger(__name__)

SIGNAL_TITLES = {
    SignalKind.FALL: "Fall detected",
    SignalKind.RAPID_MOTION: "Rapid motion detected",
    SignalKind.ABNORMAL_VITALS: "Abnormal heart rate",
    SignalKind.ABNORMAL_TEMPERATURE: "Abnormal temperature",
    SignalKind.LOW_BATTERY: "Low battery",
    SignalKind.EMERGENCY_BUTTON: "Emergency button pressed",
}


@dataclass
class IngestResult:
    sample: TelemetrySample
    analysis: Analysis
    signals: List[EmergencySignal] = field(default_factory=list)

    @property
    def activities_triggered(self) -> List[str]:
        return [s.kind.value for s in self.signals]


def build_sample(
    user_id: str, device_id: str, normalized: NormalizedSample, fall_detected: bool
) -> TelemetrySample:
    location = normalized.location
    return TelemetrySample(
        user_id=user_id,
        device_id=device_id,
        accel_x=normalized.accelerometer.x,
        accel_y=normalized.accelerometer.y,
        accel_z=normalized.accelerometer.z,
        gyro_x=normalized.gyroscope.x,
        gyro_y=normalized.gyroscope.y,
        gyro_z=normalized.gyroscope.z,
        heart_rate=normalized.heart_rate,
        temperature=normalized.temperature,
        battery_level=normalized.battery_level,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        accuracy=location.accuracy if location else None,
        emergency_triggered=normalized.emergency_triggered,
        fall_detected=fall_detected,
        timestamp=normalized.timestamp,
        created_at=normalized.received_at,
    )


def build_analysis(normalized: NormalizedSample, metrics: DerivedMetrics, fall_detected: bool) -> Analysis:
    location = normalized.location
    return Analysis(
        total_acceleration=metrics.total_acceleration,
        total_rotation=metrics.total_rotation,
        fall_detected=fall_detected,
        emergency_triggered=normalized.emergency_triggered,
        location=LocationOut(**location.as_dict()) if location else None,
        heart_rate=normalized.heart_rate,
        temperature=normalized.temperature,
        battery_level=normalized.battery_level,
    )


def sample_context(device_id: str, normalized: NormalizedSample, metrics: DerivedMetrics) -> dict[str, Any]:
    return {
        "deviceId": device_id,
        "accelerometer": normalized.accelerometer.as_dict(),
        "gyroscope": normalized.gyroscope.as_dict(),
        "location": normalized.location.as_dict() if normalized.location else None,
        "totalAcceleration": metrics.total_acceleration,
        "totalRotation": metrics.total_rotation,
        "heartRate": normalized.heart_rate,
        "temperature": normalized.temperature,
        "batteryLevel": normalized.battery_level,
        "timestamp": normalized.timestamp.isoformat(),
    }


class IngestionCoordinator:
    """normalize -> compute -> classify -> persist sample -> record activities."""

    def __init__(
        self,
        store,
        recorder: ActivityRecorder,
        resolve_owner: Callable[[DeviceContext], Awaitable[tuple[User, str]]],
        thresholds: DetectionThresholds | None = None,
    ):
        self.store = store
        self.recorder = recorder
        self.resolve_owner = resolve_owner
        self.thresholds = thresholds or DetectionThresholds()

    async def ingest(
        self,
        raw_payload: Mapping[str, Any] | None,
        context: DeviceContext,
        received_at: dt.datetime | None = None,
    ) -> IngestResult:
        owner, device_id = await self.resolve_owner(context)
        owner_id = owner.id
        normalized = normalize_sample(raw_payload, received_at)
        metrics = compute_derived_metrics(normalized)
        signals = classify(normalized, metrics, self.thresholds)

        fall_detected = normalized.fall_detected or any(s.kind is SignalKind.FALL for s in signals)
        # The only write the caller depends on; failures propagate.
        sample = await self.store.put(build_sample(owner_id, device_id, normalized, fall_detected))

        meta = sample_context(device_id, normalized, metrics)
        meta["sampleId"] = sample.id
        if normalized.metadata:
            meta["deviceMetadata"] = normalized.metadata

        for signal in signals:
            await self._record_safely(
                owner_id,
                ActivityType.EMERGENCY,
                ActivityStatus(signal.severity.value),
                f"{SIGNAL_TITLES[signal.kind]}: {signal.reason}",
                {**meta, "kind": signal.kind.value, "severity": signal.severity.value, "evidence": signal.evidence},
            )

        await self._record_safely(
            owner_id,
            ActivityType.SYNC,
            ActivityStatus.SUCCESS,
            f"Sensor data received from {device_id}",
            meta,
        )

        if signals:
            logger.info(
                "Sample %s from %s raised %s", sample.id, device_id, ",".join(s.kind.value for s in signals)
            )
        return IngestResult(sample=sample, analysis=build_analysis(normalized, metrics, fall_detected), signals=signals)

    async def _record_safely(self, user_id, type, status, message, metadata) -> None:
        try:
            await self.recorder.record(user_id, type, status, message, metadata)
        except StoreWriteFailure:
            logger.exception("Failed to record %s activity for user %s; continuing", type.value, user_id)
