import datetime as dt
import logging

from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safetyband.core.exceptions import StoreWriteFailure
from safetyband.models.telemetry import TelemetrySample
from safetyband.services.paging import Page, clamp_page

logger = logging.getLogger(__name__)


class TelemetryStore:
    """Telemetry persistence; history views are always newest-first by creation time."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def put(self, sample: TelemetrySample) -> TelemetrySample:
        self.session.add(sample)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreWriteFailure("Failed to store sensor data") from exc
        # returned detached so a later rollback in this session leaves it loaded
        self.session.expunge(sample)
        return sample

    async def latest(self, user_id: str, device_id: str | None = None) -> TelemetrySample | None:
        stmt = select(TelemetrySample).where(TelemetrySample.user_id == user_id)
        if device_id:
            stmt = stmt.where(TelemetrySample.device_id == device_id)
        stmt = stmt.order_by(TelemetrySample.created_at.desc(), TelemetrySample.id.desc()).limit(1)
        return (await self.session.execute(stmt)).scalars().first()

    async def range(
        self,
        user_id: str,
        start: dt.datetime | None = None,
        end: dt.datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Page[TelemetrySample]:
        limit, offset = clamp_page(limit, offset)
        conditions = [TelemetrySample.user_id == user_id]
        if start is not None:
            conditions.append(TelemetrySample.created_at >= start)
        if end is not None:
            conditions.append(TelemetrySample.created_at <= end)

        total = (
            await self.session.execute(select(func.count()).select_from(TelemetrySample).where(*conditions))
        ).scalar_one()
        stmt = (
            select(TelemetrySample)
            .where(*conditions)
            .order_by(TelemetrySample.created_at.desc(), TelemetrySample.id.desc())
            .limit(limit)
            .offset(offset)
        )
        items = list((await self.session.execute(stmt)).scalars().all())
        return Page(items=items, total=total, limit=limit, offset=offset)

    async def delete_older_than(self, cutoff: dt.datetime) -> int:
        result = await self.session.execute(delete(TelemetrySample).where(TelemetrySample.created_at < cutoff))
        await self.session.commit()
        return result.rowcount or 0

    async def clear(self, user_id: str | None = None) -> int:
        stmt = delete(TelemetrySample)
        if user_id is not None:
            stmt = stmt.where(TelemetrySample.user_id == user_id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        logger.info("Cleared %s telemetry samples", result.rowcount)
        return result.rowcount or 0
