from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

from safetyband.core.config import DetectionThresholds
from safetyband.services.metrics import DerivedMetrics
from safetyband.services.normalizer import NormalizedSample


class SignalKind(str, Enum):
    FALL = "fall"
    RAPID_MOTION = "rapid-motion"
    ABNORMAL_VITALS = "abnormal-vitals"
    ABNORMAL_TEMPERATURE = "abnormal-temperature"
    LOW_BATTERY = "low-battery"
    EMERGENCY_BUTTON = "emergency-button"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class EmergencySignal:
    kind: SignalKind
    severity: Severity
    reason: str
    evidence: dict[str, Any] = field(default_factory=dict)


DEFAULT_THRESHOLDS = DetectionThresholds()


def classify(
    sample: NormalizedSample,
    metrics: DerivedMetrics,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
) -> List[EmergencySignal]:
    """
    Evaluate every rule independently and return the signals in rule order.
    No rule suppresses another.
    """
    signals: List[EmergencySignal] = []

    accel = metrics.total_acceleration
    if accel > thresholds.fall_acceleration_high or accel < thresholds.fall_acceleration_low:
        reason = "High impact detected" if accel > thresholds.fall_acceleration_high else "Free fall detected"
        signals.append(
            EmergencySignal(
                SignalKind.FALL,
                Severity.WARNING,
                f"{reason} (total acceleration {accel:.2f}g)",
                {"totalAcceleration": accel, "accelerometer": sample.accelerometer.as_dict()},
            )
        )

    rotation = metrics.total_rotation
    if rotation > thresholds.rapid_rotation:
        signals.append(
            EmergencySignal(
                SignalKind.RAPID_MOTION,
                Severity.ERROR,
                f"Rapid rotation detected ({rotation:.1f}°/s)",
                {"totalRotation": rotation, "gyroscope": sample.gyroscope.as_dict()},
            )
        )

    hr = sample.heart_rate
    if hr is not None and (hr > thresholds.heart_rate_high or hr < thresholds.heart_rate_low):
        severity = Severity.ERROR if hr > thresholds.heart_rate_critical else Severity.WARNING
        label = "High" if hr > thresholds.heart_rate_high else "Low"
        signals.append(
            EmergencySignal(
                SignalKind.ABNORMAL_VITALS,
                severity,
                f"{label} heart rate: {hr:g} bpm",
                {"heartRate": hr},
            )
        )

    temp = sample.temperature
    if temp is not None and (temp > thresholds.temperature_high or temp < thresholds.temperature_low):
        label = "High" if temp > thresholds.temperature_high else "Low"
        signals.append(
            EmergencySignal(
                SignalKind.ABNORMAL_TEMPERATURE,
                Severity.WARNING,
                f"{label} body temperature: {temp:g}°C",
                {"temperature": temp},
            )
        )

    battery = sample.battery_level
    if battery is not None and battery < thresholds.battery_low:
        severity = Severity.ERROR if battery < thresholds.battery_critical else Severity.WARNING
        signals.append(
            EmergencySignal(
                SignalKind.LOW_BATTERY,
                severity,
                f"Low battery: {battery:g}%",
                {"batteryLevel": battery},
            )
        )

    if sample.emergency_triggered:
        signals.append(
            EmergencySignal(
                SignalKind.EMERGENCY_BUTTON,
                Severity.ERROR,
                "Emergency button pressed",
                {"emergencyTriggered": True},
            )
        )

    return signals
