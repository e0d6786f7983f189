import datetime as dt
from functools import partial

import pytest
from sqlalchemy.exc import SQLAlchemyError

from safetyband.core.exceptions import OwnerUnresolved, StoreWriteFailure, ValidationError
from safetyband.services.activity import ActivityRecorder, ActivityType
from safetyband.services.ingestion import IngestionCoordinator
from safetyband.services.owners import UNKNOWN_DEVICE_ID, DeviceContext, register_device, resolve_owner
from safetyband.services.telemetry_store import TelemetryStore

RECEIVED = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)
RESTING = {"accelerometer": {"x": 0, "y": 0, "z": 9.8}, "heartRate": 72, "batteryLevel": 80}


class FailingStore:
    async def put(self, sample):
        raise StoreWriteFailure("Failed to store sensor data")


def make_coordinator(session, settings, store=None, recorder=None):
    return IngestionCoordinator(
        store or TelemetryStore(session),
        recorder or ActivityRecorder(session),
        partial(resolve_owner, session, settings=settings),
        thresholds=settings.detection,
    )


@pytest.mark.asyncio
async def test_quiet_sample_writes_one_sync_activity(session, settings, user):
    coordinator = make_coordinator(session, settings)
    result = await coordinator.ingest(RESTING, DeviceContext("band-1", user.id), RECEIVED)

    assert result.signals == []
    assert result.activities_triggered == []
    assert result.sample.user_id == user.id
    assert result.sample.device_id == "band-1"
    assert result.analysis.total_acceleration == pytest.approx(9.8)

    counts = await ActivityRecorder(session).counts_by_type(user.id)
    assert counts["sync"] == 1
    assert counts["emergency"] == 0


@pytest.mark.asyncio
async def test_each_signal_recorded_plus_one_sync(session, settings, user):
    payload = {"accelerometer": {"x": 0, "y": 0, "z": 20}, "heartRate": 155, "emergencyTriggered": True}
    coordinator = make_coordinator(session, settings)
    result = await coordinator.ingest(payload, DeviceContext("band-1", user.id), RECEIVED)

    assert result.activities_triggered == ["fall", "abnormal-vitals", "emergency-button"]
    assert result.sample.fall_detected is True
    assert result.sample.emergency_triggered is True
    assert result.analysis.fall_detected is True

    recorder = ActivityRecorder(session)
    emergencies = await recorder.list(user.id, ActivityType.EMERGENCY)
    assert emergencies.total == 3
    statuses = sorted(a.status for a in emergencies.items)
    assert statuses == ["error", "error", "warning"]
    assert all(a.meta["sampleId"] == result.sample.id for a in emergencies.items)
    assert (await recorder.counts_by_type(user.id))["sync"] == 1


@pytest.mark.asyncio
async def test_device_asserted_fall_is_kept(session, settings, user):
    payload = {**RESTING, "fallDetected": True}
    result = await make_coordinator(session, settings).ingest(payload, DeviceContext("band-1", user.id), RECEIVED)
    assert result.activities_triggered == []
    assert result.sample.fall_detected is True


def fail_commit_number(session, monkeypatch, failing_call: int):
    """Make the n-th commit on this session raise, as a broken INSERT would."""
    original = session.commit
    calls = []

    async def flaky_commit():
        calls.append(1)
        if len(calls) == failing_call:
            raise SQLAlchemyError("activity table is locked")
        await original()

    monkeypatch.setattr(session, "commit", flaky_commit)
    return calls


@pytest.mark.asyncio
async def test_activity_write_failure_does_not_fail_ingest(session, settings, user, monkeypatch, caplog):
    user_id = user.id
    coordinator = make_coordinator(session, settings)
    payload = {**RESTING, "emergencyTriggered": True}
    # commit 1 stores the sample, commit 2 is the emergency activity
    calls = fail_commit_number(session, monkeypatch, 2)

    result = await coordinator.ingest(payload, DeviceContext("band-1", user_id), RECEIVED)

    assert len(calls) == 3
    assert result.activities_triggered == ["emergency-button"]
    assert result.sample.id
    assert result.sample.created_at == RECEIVED
    assert result.sample.user_id == user_id
    assert "Failed to record emergency activity" in caplog.text

    stored = await TelemetryStore(session).latest(user_id)
    assert stored.id == result.sample.id
    counts = await ActivityRecorder(session).counts_by_type(user_id)
    assert counts["emergency"] == 0
    assert counts["sync"] == 1


@pytest.mark.asyncio
async def test_sync_activity_failure_keeps_sample_readable(session, settings, user, monkeypatch):
    user_id = user.id
    coordinator = make_coordinator(session, settings)
    fail_commit_number(session, monkeypatch, 2)

    result = await coordinator.ingest(RESTING, DeviceContext("band-1", user_id), RECEIVED)

    assert result.activities_triggered == []
    assert result.sample.device_id == "band-1"
    assert result.sample.heart_rate == 72
    assert (await ActivityRecorder(session).counts_by_type(user_id))["all"] == 0


@pytest.mark.asyncio
async def test_sample_write_failure_aborts_without_activities(session, settings, user):
    coordinator = make_coordinator(session, settings, store=FailingStore())
    with pytest.raises(StoreWriteFailure):
        await coordinator.ingest({**RESTING, "emergencyTriggered": True}, DeviceContext("band-1", user.id), RECEIVED)
    assert (await ActivityRecorder(session).counts_by_type(user.id))["all"] == 0


@pytest.mark.asyncio
async def test_owner_resolved_from_registered_device(session, settings, user):
    await register_device(session, user.id, "band-registered")
    result = await make_coordinator(session, settings).ingest(RESTING, DeviceContext("band-registered"), RECEIVED)
    assert result.sample.user_id == user.id


@pytest.mark.asyncio
async def test_unregistered_device_is_unresolved(session, settings, user):
    with pytest.raises(OwnerUnresolved):
        await make_coordinator(session, settings).ingest(RESTING, DeviceContext("band-stray"), RECEIVED)
    assert await TelemetryStore(session).latest(user.id) is None


@pytest.mark.asyncio
async def test_unknown_user_id_is_unresolved(session, settings):
    with pytest.raises(OwnerUnresolved):
        await make_coordinator(session, settings).ingest(RESTING, DeviceContext("band-1", "missing-user"), RECEIVED)


@pytest.mark.asyncio
async def test_missing_identifier_rejected(session, settings):
    with pytest.raises(ValidationError):
        await make_coordinator(session, settings).ingest(RESTING, DeviceContext(), RECEIVED)


@pytest.mark.asyncio
async def test_demo_mode_attributes_to_demo_owner(session, settings):
    demo_settings = settings.model_copy(update={"demo_mode": True})
    result = await make_coordinator(session, demo_settings).ingest(RESTING, DeviceContext(), RECEIVED)
    assert result.sample.device_id == UNKNOWN_DEVICE_ID

    owner, _ = await resolve_owner(session, DeviceContext("band-x"), demo_settings)
    assert owner.email == demo_settings.demo_owner_email
    assert owner.id == result.sample.user_id
