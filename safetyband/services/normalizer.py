import datetime as dt
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

# Accepted ranges for scalar vitals; readings outside them are treated as absent.
HEART_RATE_RANGE = (0.0, 300.0)
TEMPERATURE_RANGE = (-50.0, 100.0)
BATTERY_RANGE = (0.0, 100.0)

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    accuracy: float | None = None

    def as_dict(self) -> dict[str, float | None]:
        return {"latitude": self.latitude, "longitude": self.longitude, "accuracy": self.accuracy}


@dataclass(frozen=True)
class NormalizedSample:
    accelerometer: Vector3
    gyroscope: Vector3
    timestamp: dt.datetime
    received_at: dt.datetime
    heart_rate: float | None = None
    temperature: float | None = None
    battery_level: float | None = None
    location: Location | None = None
    emergency_triggered: bool = False
    fall_detected: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


def parse_number(value: Any) -> float | None:
    """Coerce numbers and numeric strings to float; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_bounded(value: Any, bounds: tuple[float, float]) -> float | None:
    number = parse_number(value)
    if number is None:
        return None
    low, high = bounds
    if number < low or number > high:
        return None
    return number


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return False


def parse_vector(value: Any) -> Vector3:
    if isinstance(value, Mapping):
        axes = [value.get("x"), value.get("y"), value.get("z")]
    elif isinstance(value, (list, tuple)):
        axes = list(value[:3]) + [None] * (3 - len(value[:3]))
    else:
        return Vector3()
    x, y, z = ((parse_number(a) or 0.0) for a in axes)
    return Vector3(x, y, z)


def parse_timestamp(value: Any, received_at: dt.datetime) -> dt.datetime:
    """Epoch millis (number or numeric string) or ISO-8601; falls back to receipt time."""
    millis = parse_number(value)
    if millis is not None:
        try:
            return dt.datetime.fromtimestamp(millis / 1000.0, tz=dt.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return received_at
    if isinstance(value, str) and value.strip():
        try:
            parsed = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return received_at
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=dt.timezone.utc)
        return parsed
    return received_at


def parse_location(payload: Mapping[str, Any]) -> Location | None:
    source: Mapping[str, Any] = payload
    nested = payload.get("location")
    if isinstance(nested, Mapping) and "latitude" not in payload:
        source = nested
    latitude = parse_bounded(source.get("latitude"), (-90.0, 90.0))
    longitude = parse_bounded(source.get("longitude"), (-180.0, 180.0))
    if latitude is None or longitude is None:
        return None
    accuracy = parse_number(source.get("accuracy"))
    return Location(latitude=latitude, longitude=longitude, accuracy=accuracy)


def normalize_sample(payload: Mapping[str, Any] | None, received_at: dt.datetime | None = None) -> NormalizedSample:
    """
    Build a canonical sample from an arbitrary device payload.

    Missing vector axes become 0, a missing or unreadable timestamp becomes the
    receipt time, and scalars that fail to parse are dropped rather than
    rejecting the whole payload.
    """
    payload = payload or {}
    received_at = received_at or dt.datetime.now(dt.timezone.utc)
    metadata = payload.get("metadata")

    return NormalizedSample(
        accelerometer=parse_vector(payload.get("accelerometer")),
        gyroscope=parse_vector(payload.get("gyroscope")),
        timestamp=parse_timestamp(payload.get("timestamp"), received_at),
        received_at=received_at,
        heart_rate=parse_bounded(payload.get("heartRate"), HEART_RATE_RANGE),
        temperature=parse_bounded(payload.get("temperature"), TEMPERATURE_RANGE),
        battery_level=parse_bounded(payload.get("batteryLevel"), BATTERY_RANGE),
        location=parse_location(payload),
        emergency_triggered=parse_bool(payload.get("emergencyTriggered")),
        fall_detected=parse_bool(payload.get("fallDetected")),
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )
