from functools import lru_cache
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class DetectionThresholds(BaseModel):
    fall_acceleration_high: float = 15.0  # g
    fall_acceleration_low: float = 2.0
    rapid_rotation: float = 200.0  # deg/s
    heart_rate_high: float = 120.0
    heart_rate_low: float = 50.0
    heart_rate_critical: float = 150.0
    temperature_high: float = 38.0
    temperature_low: float = 35.0
    battery_low: float = 20.0
    battery_critical: float = 10.0


class Settings(BaseSettings):
    app_name: str = "SafetyBand API"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./safetyband.db"
    redis_url: str = "redis://localhost:6379/0"

    # JWT
    jwt_secret_key: Optional[str] = "change-me"  # HS256 for dev; set JWT_PRIVATE_KEY/JWT_PUBLIC_KEY for RS256
    jwt_private_key: Optional[str] = None
    jwt_public_key: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None
    jwt_clock_skew_seconds: int = 30

    cors_origins: List[str] = Field(default_factory=list)

    # Telemetry retention
    telemetry_retention_minutes: int = 30
    retention_sweep_interval_seconds: int = 300
    retention_sweep_in_process: bool = True

    ingest_rate_limit: int = 600
    ingest_rate_window_seconds: int = 60

    # Demo account; also used as fallback owner for unidentified telemetry when demo_mode is on
    demo_mode: bool = False
    demo_owner_email: str = "rahul.sharma@smartsafetyband.com"

    # Messaging gateway
    default_country_code: str = "91"
    messaging_gateway_url: Optional[str] = None
    messaging_gateway_token: Optional[str] = None
    messaging_reconnect_delay_seconds: float = 5.0

    detection: DetectionThresholds = Field(default_factory=DetectionThresholds)

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
