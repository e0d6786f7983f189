import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.auth import get_current_user
from safetyband.core.config import Settings
from safetyband.core.deps import (
    get_db_session,
    get_ingestion_coordinator,
    get_redis,
    get_settings_dep,
    get_telemetry_store,
)
from safetyband.models.user import User
from safetyband.schemas.telemetry import (
    AnalyticsOut,
    DeviceIngestResponse,
    DeviceSensorDataIn,
    HistoryPage,
    IngestResponse,
    SensorDataIn,
    TelemetrySampleOut,
)
from safetyband.services.analytics import telemetry_analytics
from safetyband.services.ingestion import IngestionCoordinator
from safetyband.services.owners import UNKNOWN_DEVICE_ID, DeviceContext
from safetyband.services.rate_limit import enforce_ingest_rate
from safetyband.services.telemetry_store import TelemetryStore

router = APIRouter()


@router.post("", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest_sensor_data(
    payload: SensorDataIn,
    x_device_id: Optional[str] = Header(default=None, max_length=64),
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
    redis=Depends(get_redis),
    settings: Settings = Depends(get_settings_dep),
):
    await enforce_ingest_rate(redis, x_device_id or UNKNOWN_DEVICE_ID, settings)
    result = await coordinator.ingest(payload.model_dump(by_alias=True), DeviceContext(device_id=x_device_id))
    return IngestResponse(
        message="Sensor data received successfully",
        data_id=result.sample.id,
        analysis=result.analysis,
        timestamp=result.sample.created_at,
    )


@router.post("/device", response_model=DeviceIngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest_device_data(
    payload: DeviceSensorDataIn,
    coordinator: IngestionCoordinator = Depends(get_ingestion_coordinator),
    redis=Depends(get_redis),
    settings: Settings = Depends(get_settings_dep),
):
    await enforce_ingest_rate(redis, payload.device_id, settings)
    context = DeviceContext(device_id=payload.device_id, user_id=payload.user_id)
    result = await coordinator.ingest(payload.model_dump(by_alias=True), context)
    return DeviceIngestResponse(
        message="Device data processed successfully",
        data_id=result.sample.id,
        analysis=result.analysis,
        timestamp=result.sample.created_at,
        activities_triggered=result.activities_triggered,
    )


@router.get("/latest", response_model=Optional[TelemetrySampleOut])
async def latest_sample(
    device_id: Optional[str] = Query(default=None, alias="deviceId"),
    user: User = Depends(get_current_user),
    store: TelemetryStore = Depends(get_telemetry_store),
):
    sample = await store.latest(user.id, device_id)
    return TelemetrySampleOut.from_model(sample) if sample else None


@router.get("/history", response_model=HistoryPage)
async def sample_history(
    limit: int = Query(default=50, ge=1, le=500),
    skip: int = Query(default=0, ge=0),
    start_date: Optional[dt.datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[dt.datetime] = Query(default=None, alias="endDate"),
    user: User = Depends(get_current_user),
    store: TelemetryStore = Depends(get_telemetry_store),
):
    page = await store.range(user.id, start=start_date, end=end_date, limit=limit, offset=skip)
    return HistoryPage(
        data=[TelemetrySampleOut.from_model(s) for s in page.items],
        total=page.total,
        has_more=page.has_more,
    )


@router.get("/analytics", response_model=AnalyticsOut)
async def sample_analytics(
    period: str = Query(default="24h"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    return await telemetry_analytics(session, user.id, period)
