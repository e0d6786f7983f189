import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from safetyband.schemas.common import CamelModel


class Vector3Out(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class LocationOut(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class SensorDataIn(CamelModel):
    """Device payload. Values are loosely typed; the normalizer coerces them."""

    accelerometer: Optional[Any] = None
    gyroscope: Optional[Any] = None
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    location: Optional[Any] = None
    timestamp: Optional[Any] = None
    heart_rate: Optional[Any] = None
    temperature: Optional[Any] = None
    battery_level: Optional[Any] = None


class DeviceSensorDataIn(SensorDataIn):
    device_id: str = Field(..., min_length=1, max_length=64)
    user_id: Optional[str] = Field(default=None, max_length=64)
    emergency_triggered: Optional[Any] = None
    fall_detected: Optional[Any] = None
    metadata: Optional[dict[str, Any]] = None


class Analysis(CamelModel):
    total_acceleration: float
    total_rotation: float
    fall_detected: bool
    emergency_triggered: bool
    location: Optional[LocationOut] = None
    heart_rate: Optional[float] = None
    temperature: Optional[float] = None
    battery_level: Optional[float] = None


class IngestResponse(CamelModel):
    status: str = "success"
    message: str
    data_id: str
    analysis: Analysis
    timestamp: dt.datetime


class DeviceIngestResponse(IngestResponse):
    activities_triggered: List[str] = Field(default_factory=list)


class TelemetrySampleOut(CamelModel):
    id: str
    device_id: str
    accelerometer: Vector3Out
    gyroscope: Vector3Out
    heart_rate: Optional[float] = None
    temperature: Optional[float] = None
    battery_level: Optional[float] = None
    location: Optional[LocationOut] = None
    emergency_triggered: bool = False
    fall_detected: bool = False
    timestamp: dt.datetime
    created_at: dt.datetime

    @classmethod
    def from_model(cls, sample) -> "TelemetrySampleOut":
        location = None
        if sample.has_location:
            location = LocationOut(latitude=sample.latitude, longitude=sample.longitude, accuracy=sample.accuracy)
        return cls(
            id=sample.id,
            device_id=sample.device_id,
            accelerometer=Vector3Out(x=sample.accel_x, y=sample.accel_y, z=sample.accel_z),
            gyroscope=Vector3Out(x=sample.gyro_x, y=sample.gyro_y, z=sample.gyro_z),
            heart_rate=sample.heart_rate,
            temperature=sample.temperature,
            battery_level=sample.battery_level,
            location=location,
            emergency_triggered=sample.emergency_triggered,
            fall_detected=sample.fall_detected,
            timestamp=sample.timestamp,
            created_at=sample.created_at,
        )


class HistoryPage(CamelModel):
    data: List[TelemetrySampleOut]
    total: int
    has_more: bool


class Stat(BaseModel):
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


class AnalyticsOut(CamelModel):
    period: str
    heart_rate: Stat
    temperature: Stat
    avg_battery_level: Optional[float] = None
    emergency_count: int = 0
    fall_count: int = 0
    total_readings: int = 0
