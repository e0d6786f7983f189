import datetime as dt
import uuid
from sqlalchemy import String, DateTime, Float, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from safetyband.models.base import Base


class TelemetrySample(Base):
    __tablename__ = "telemetry_sample"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), index=True)
    device_id: Mapped[str] = mapped_column(String(64), index=True)

    accel_x: Mapped[float] = mapped_column(Float, default=0.0)
    accel_y: Mapped[float] = mapped_column(Float, default=0.0)
    accel_z: Mapped[float] = mapped_column(Float, default=0.0)
    gyro_x: Mapped[float] = mapped_column(Float, default=0.0)
    gyro_y: Mapped[float] = mapped_column(Float, default=0.0)
    gyro_z: Mapped[float] = mapped_column(Float, default=0.0)

    heart_rate: Mapped[float | None] = mapped_column(Float, nullable=True)  # bpm
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)  # celsius
    battery_level: Mapped[float | None] = mapped_column(Float, nullable=True)  # percent

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    accuracy: Mapped[float | None] = mapped_column(Float, nullable=True)

    emergency_triggered: Mapped[bool] = mapped_column(Boolean, default=False)
    fall_detected: Mapped[bool] = mapped_column(Boolean, default=False)

    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc), index=True
    )

    __table_args__ = (
        Index("ix_telemetry_user_created", "user_id", "created_at"),
    )

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
