import datetime as dt

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.exceptions import ValidationError
from safetyband.models.telemetry import TelemetrySample
from safetyband.schemas.telemetry import AnalyticsOut, Stat

PERIODS = {
    "1h": dt.timedelta(hours=1),
    "24h": dt.timedelta(hours=24),
    "7d": dt.timedelta(days=7),
    "30d": dt.timedelta(days=30),
}


def _round(value, digits: int = 2):
    return round(float(value), digits) if value is not None else None


async def telemetry_analytics(
    session: AsyncSession, user_id: str, period: str = "24h", now: dt.datetime | None = None
) -> AnalyticsOut:
    if period not in PERIODS:
        raise ValidationError(f"Unsupported period {period!r}; expected one of {', '.join(PERIODS)}")
    since = (now or dt.datetime.now(dt.timezone.utc)) - PERIODS[period]

    ts = TelemetrySample
    stmt = select(
        func.avg(ts.heart_rate),
        func.min(ts.heart_rate),
        func.max(ts.heart_rate),
        func.avg(ts.temperature),
        func.min(ts.temperature),
        func.max(ts.temperature),
        func.avg(ts.battery_level),
        func.sum(case((ts.emergency_triggered.is_(True), 1), else_=0)),
        func.sum(case((ts.fall_detected.is_(True), 1), else_=0)),
        func.count(ts.id),
    ).where(ts.user_id == user_id, ts.created_at >= since)
    row = (await session.execute(stmt)).one()
    hr_avg, hr_min, hr_max, t_avg, t_min, t_max, battery_avg, emergencies, falls, total = row

    return AnalyticsOut(
        period=period,
        heart_rate=Stat(avg=_round(hr_avg), min=_round(hr_min), max=_round(hr_max)),
        temperature=Stat(avg=_round(t_avg), min=_round(t_min), max=_round(t_max)),
        avg_battery_level=_round(battery_avg),
        emergency_count=int(emergencies or 0),
        fall_count=int(falls or 0),
        total_readings=int(total or 0),
    )
