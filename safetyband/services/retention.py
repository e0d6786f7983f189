import asyncio
import datetime as dt
import logging
import uuid

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetyband.core.config import Settings
from safetyband.services.telemetry_store import TelemetryStore

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = "lock:telemetry-retention-sweep"


class RetentionSweeper:
    """
    Periodically deletes telemetry older than the retention horizon.

    States are idle and sweeping. A firing that arrives while a sweep is in
    progress is skipped: in-process via an asyncio lock, across processes via
    a Redis SET NX lock when a client is supplied. If Redis is unreachable the
    sweep still runs under the in-process lock.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        redis: Redis | None = None,
    ):
        self.session_factory = session_factory
        self.horizon = dt.timedelta(minutes=settings.telemetry_retention_minutes)
        self.interval = settings.retention_sweep_interval_seconds
        self.redis = redis
        self.last_swept_at: dt.datetime | None = None
        self.last_deleted: int | None = None
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> str:
        return "sweeping" if self._lock.locked() else "idle"

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self, now: dt.datetime | None = None) -> int | None:
        """Run one sweep. Returns rows deleted, or None when skipped."""
        if self._lock.locked():
            logger.info("Retention sweep already in progress; skipping")
            return None
        async with self._lock:
            token = await self._acquire_shared_lock()
            if token is False:
                logger.info("Retention sweep held by another worker; skipping")
                return None
            try:
                now = now or dt.datetime.now(dt.timezone.utc)
                cutoff = now - self.horizon
                async with self.session_factory() as session:
                    deleted = await TelemetryStore(session).delete_older_than(cutoff)
                self.last_swept_at = now
                self.last_deleted = deleted
                logger.info("Retention sweep removed %s samples older than %s", deleted, cutoff.isoformat())
                return deleted
            finally:
                if token:
                    await self._release_shared_lock(token)

    async def run_sweep(self, now: dt.datetime | None = None) -> int | None:
        """sweep_once that never raises; stale rows are left for the next cycle."""
        try:
            return await self.sweep_once(now)
        except Exception:
            logger.exception("Retention sweep failed")
            return None

    async def _acquire_shared_lock(self) -> str | bool | None:
        """Token when acquired, False when held elsewhere, None when there is no usable Redis."""
        if self.redis is None:
            return None
        token = str(uuid.uuid4())
        try:
            acquired = await self.redis.set(SWEEP_LOCK_KEY, token, nx=True, ex=max(60, self.interval))
        except RedisError:
            logger.warning("Sweep lock unavailable; sweeping under the in-process lock only", exc_info=True)
            return None
        return token if acquired else False

    async def _release_shared_lock(self, token: str) -> None:
        try:
            current = await self.redis.get(SWEEP_LOCK_KEY)
            if isinstance(current, bytes):
                current = current.decode()
            if current == token:
                await self.redis.delete(SWEEP_LOCK_KEY)
        except RedisError:
            logger.warning("Failed to release sweep lock; it expires on its own", exc_info=True)

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                await self.run_sweep()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name="telemetry-retention-sweeper")
        logger.info("Retention sweeper started (every %ss, horizon %s)", self.interval, self.horizon)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info("Retention sweeper stopped")
