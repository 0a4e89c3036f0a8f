import asyncio
import re

import pytest
from sqlalchemy import select

from app.core.exceptions import StorageError
from app.db.session import build_engine, build_session_factory
from app.models.activity_log import ActivityLogEntry
from app.models.monitoring_session import MonitoringSession
from app.services.results import (
    DeviceStatus,
    Refusal,
    RefusalReason,
    SessionEnded,
    SessionStarted,
)
from app.services.session_coordinator import SessionCoordinator

DEVICE = "DEV-KID0001"


@pytest.mark.asyncio
async def test_second_start_is_refused_while_session_open(coordinator):
    first = await coordinator.start_session(DEVICE, "parent-1")
    second = await coordinator.start_session(DEVICE, "parent-2")

    assert isinstance(first, SessionStarted)
    assert isinstance(second, Refusal)
    assert second.reason is RefusalReason.ALREADY_ACTIVE
    assert second.message == "device already has an active session"


@pytest.mark.asyncio
async def test_concurrent_starts_admit_exactly_one(coordinator, session_factory):
    results = await asyncio.gather(
        coordinator.start_session(DEVICE, "parent-1"),
        coordinator.start_session(DEVICE, "parent-2"),
        coordinator.start_session(DEVICE, "parent-3"),
    )

    started = [r for r in results if isinstance(r, SessionStarted)]
    refused = [r for r in results if isinstance(r, Refusal)]
    assert len(started) == 1
    assert len(refused) == 2
    assert all(r.reason is RefusalReason.ALREADY_ACTIVE for r in refused)

    async with session_factory() as db:
        res = await db.execute(
            select(MonitoringSession).where(MonitoringSession.ended_at.is_(None))
        )
        assert len(res.scalars().all()) == 1


@pytest.mark.asyncio
async def test_sessions_on_different_devices_are_independent(coordinator):
    a = await coordinator.start_session("DEV-A", "parent-1")
    b = await coordinator.start_session("DEV-B", "parent-1")

    assert isinstance(a, SessionStarted)
    assert isinstance(b, SessionStarted)
    assert a.session_id != b.session_id


@pytest.mark.asyncio
async def test_session_id_format(coordinator, clock):
    started = await coordinator.start_session(DEVICE, "parent-1")

    millis = int(clock.now.timestamp() * 1000)
    assert re.fullmatch(r"session-[0-9a-f]{16}-\d+", started.session_id)
    assert started.session_id.endswith(f"-{millis}")


@pytest.mark.asyncio
async def test_end_twice_returns_not_found_and_keeps_state(coordinator, clock, session_factory):
    started = await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(3)

    first = await coordinator.end_session(DEVICE, started.session_id)
    clock.advance(10)
    second = await coordinator.end_session(DEVICE, started.session_id)

    assert isinstance(first, SessionEnded)
    assert isinstance(second, Refusal)
    assert second.reason is RefusalReason.NOT_FOUND
    assert second.message == "not found"

    async with session_factory() as db:
        res = await db.execute(select(MonitoringSession))
        sessions = res.scalars().all()

    assert len(sessions) == 1
    assert sessions[0].duration_seconds == 3
    assert sessions[0].ended_by == "parent"


@pytest.mark.asyncio
async def test_concurrent_ends_close_once(coordinator):
    started = await coordinator.start_session(DEVICE, "parent-1")

    results = await asyncio.gather(
        coordinator.end_session(DEVICE, started.session_id),
        coordinator.end_session(DEVICE, started.session_id, ended_by="timeout"),
    )

    assert sum(isinstance(r, SessionEnded) for r in results) == 1
    assert sum(isinstance(r, Refusal) and r.reason is RefusalReason.NOT_FOUND for r in results) == 1


@pytest.mark.asyncio
async def test_end_with_wrong_session_id_leaves_session_open(coordinator):
    started = await coordinator.start_session(DEVICE, "parent-1")

    result = await coordinator.end_session(DEVICE, "session-deadbeef-1")

    assert isinstance(result, Refusal)
    assert result.reason is RefusalReason.NOT_FOUND
    assert await coordinator.has_active_session(DEVICE) is True
    assert await coordinator.is_session_valid(DEVICE, started.session_id) is True


@pytest.mark.asyncio
async def test_end_with_other_device_id_is_not_found(coordinator):
    started = await coordinator.start_session(DEVICE, "parent-1")

    result = await coordinator.end_session("DEV-OTHER", started.session_id)

    assert isinstance(result, Refusal)
    assert result.reason is RefusalReason.NOT_FOUND


@pytest.mark.asyncio
async def test_duration_accounting_matches_activity_log(coordinator, clock):
    started = await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(5)

    ended = await coordinator.end_session(DEVICE, started.session_id)

    assert isinstance(ended, SessionEnded)
    assert ended.duration_seconds == 5

    entries = await coordinator.query_activity_log(DEVICE)
    assert len(entries) == 1
    assert entries[0].status == "completed"
    assert entries[0].duration_seconds == 5
    assert entries[0].session_id == started.session_id
    assert entries[0].details["ended_by"] == "parent"


@pytest.mark.asyncio
async def test_duration_is_clamped_to_zero(coordinator, clock):
    started = await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(-30)  # relógio voltou

    ended = await coordinator.end_session(DEVICE, started.session_id)

    assert ended.duration_seconds == 0


@pytest.mark.asyncio
async def test_duration_is_floored_to_whole_seconds(coordinator, clock):
    started = await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(7.9)

    ended = await coordinator.end_session(DEVICE, started.session_id)

    assert ended.duration_seconds == 7


@pytest.mark.asyncio
async def test_session_validity_and_active_flag_follow_lifecycle(coordinator):
    assert await coordinator.has_active_session(DEVICE) is False

    started = await coordinator.start_session(DEVICE, "parent-1")
    assert await coordinator.has_active_session(DEVICE) is True
    assert await coordinator.is_session_valid(DEVICE, started.session_id) is True
    assert await coordinator.is_session_valid(DEVICE, "session-other-1") is False

    active = await coordinator.get_active_session(DEVICE)
    assert active.session_id == started.session_id
    assert active.parent_id == "parent-1"

    await coordinator.end_session(DEVICE, started.session_id)
    assert await coordinator.has_active_session(DEVICE) is False
    assert await coordinator.is_session_valid(DEVICE, started.session_id) is False
    assert await coordinator.get_active_session(DEVICE) is None


@pytest.mark.asyncio
async def test_device_status_is_derived(coordinator):
    assert await coordinator.device_status(DEVICE) is DeviceStatus.OFFLINE

    started = await coordinator.start_session(DEVICE, "parent-1")
    assert await coordinator.device_status(DEVICE) is DeviceStatus.ONLINE

    ended = await coordinator.end_session(DEVICE, started.session_id)
    assert ended.device_status is DeviceStatus.OFFLINE
    assert await coordinator.device_status(DEVICE) is DeviceStatus.OFFLINE


@pytest.mark.asyncio
async def test_start_updates_last_connection(coordinator, clock):
    await coordinator.start_session(DEVICE, "parent-1")

    device = await coordinator.get_device_settings(DEVICE)
    assert device.last_connection_at is not None
    assert device.last_connection_at.replace(tzinfo=None) == clock.now.replace(tzinfo=None)


@pytest.mark.asyncio
async def test_child_cannot_end_call_when_not_allowed(coordinator):
    await coordinator.update_device_settings(DEVICE, {"allow_end_call": False})
    started = await coordinator.start_session(DEVICE, "parent-1")

    refused = await coordinator.end_session(DEVICE, started.session_id, ended_by="child")
    assert isinstance(refused, Refusal)
    assert refused.reason is RefusalReason.END_CALL_NOT_ALLOWED
    assert await coordinator.has_active_session(DEVICE) is True

    # o pai sempre pode encerrar
    ended = await coordinator.end_session(DEVICE, started.session_id, ended_by="parent")
    assert isinstance(ended, SessionEnded)


@pytest.mark.asyncio
async def test_child_can_end_call_by_default(coordinator):
    started = await coordinator.start_session(DEVICE, "parent-1")

    ended = await coordinator.end_session(DEVICE, started.session_id, ended_by="child")

    assert isinstance(ended, SessionEnded)


@pytest.mark.asyncio
async def test_invalid_ended_by_raises(coordinator):
    with pytest.raises(ValueError):
        await coordinator.end_session(DEVICE, "session-x-1", ended_by="somebody")


@pytest.mark.asyncio
async def test_new_session_after_end_gets_new_id(coordinator, clock):
    first = await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(1)
    await coordinator.end_session(DEVICE, first.session_id)
    clock.advance(1)

    second = await coordinator.start_session(DEVICE, "parent-2")

    assert isinstance(second, SessionStarted)
    assert second.session_id != first.session_id


@pytest.mark.asyncio
async def test_activity_log_pairs_every_end_with_its_start(coordinator, clock, session_factory):
    for parent in ("parent-1", "parent-2", "parent-1"):
        started = await coordinator.start_session(DEVICE, parent)
        clock.advance(4)
        await coordinator.end_session(DEVICE, started.session_id)
        clock.advance(1)

    async with session_factory() as db:
        entries = (await db.execute(select(ActivityLogEntry))).scalars().all()
        sessions = {
            s.session_id: s
            for s in (await db.execute(select(MonitoringSession))).scalars().all()
        }

    assert len(entries) == 3
    assert not [e for e in entries if e.status == "ongoing"]
    for entry in entries:
        assert entry.status == "completed"
        assert entry.action == "start_monitoring"
        origin = sessions[entry.session_id]
        assert origin.device_id == entry.device_id
        assert origin.parent_id == entry.parent_id
        assert origin.started_at <= entry.ended_at
        assert origin.duration_seconds == entry.duration_seconds == 4


@pytest.mark.asyncio
async def test_open_session_has_one_ongoing_entry(coordinator):
    started = await coordinator.start_session(DEVICE, "parent-1")

    entries = await coordinator.query_activity_log(DEVICE)

    assert len(entries) == 1
    assert entries[0].status == "ongoing"
    assert entries[0].session_id == started.session_id
    assert entries[0].ended_at is None
    assert entries[0].duration_seconds is None


@pytest.mark.asyncio
async def test_activity_log_is_newest_first_and_limited(coordinator, clock):
    ids = []
    for _ in range(3):
        started = await coordinator.start_session(DEVICE, "parent-1")
        ids.append(started.session_id)
        clock.advance(2)
        await coordinator.end_session(DEVICE, started.session_id)
        clock.advance(60)

    entries = await coordinator.query_activity_log(DEVICE, limit=2)

    assert [e.session_id for e in entries] == [ids[2], ids[1]]


@pytest.mark.asyncio
async def test_list_sessions_newest_first(coordinator, clock):
    first = await coordinator.start_session(DEVICE, "parent-1")
    await coordinator.end_session(DEVICE, first.session_id)
    clock.advance(10)
    second = await coordinator.start_session(DEVICE, "parent-1")

    sessions = await coordinator.list_sessions(DEVICE)

    assert [s.session_id for s in sessions] == [second.session_id, first.session_id]
    assert sessions[0].ended_at is None


@pytest.mark.asyncio
async def test_storage_failure_is_propagated_as_storage_error(tmp_path):
    # banco sem tabelas: qualquer consulta falha no SQLAlchemy
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    coord = SessionCoordinator(build_session_factory(engine))
    try:
        with pytest.raises(StorageError):
            await coord.has_active_session(DEVICE)
        with pytest.raises(StorageError):
            await coord.start_session(DEVICE, "parent-1")
    finally:
        await coord.shutdown()
        await engine.dispose()


@pytest.mark.asyncio
async def test_concurrent_settings_reads_on_unseen_device(coordinator):
    devices = await asyncio.gather(
        *[coordinator.get_device_settings("DEV-NEW1") for _ in range(5)]
    )

    assert {d.id for d in devices} == {"DEV-NEW1"}
    assert len(await coordinator.list_sessions("DEV-NEW1")) == 0


@pytest.mark.asyncio
async def test_start_racing_settings_read_on_unseen_device(coordinator):
    started, device = await asyncio.gather(
        coordinator.start_session("DEV-NEW2", "parent-1"),
        coordinator.get_device_settings("DEV-NEW2"),
    )

    assert isinstance(started, SessionStarted)
    assert device.id == "DEV-NEW2"
    assert await coordinator.has_active_session("DEV-NEW2") is True


@pytest.mark.asyncio
async def test_concurrent_starts_on_unseen_device_admit_exactly_one(coordinator):
    results = await asyncio.gather(
        coordinator.start_session("DEV-NEW3", "parent-1"),
        coordinator.start_session("DEV-NEW3", "parent-2"),
        coordinator.update_device_settings("DEV-NEW3", {"name": "Tablet"}),
    )

    assert sum(isinstance(r, SessionStarted) for r in results[:2]) == 1
    assert results[2].name == "Tablet"


@pytest.mark.asyncio
async def test_device_locks_are_released_after_use(coordinator):
    started = await coordinator.start_session(DEVICE, "parent-1")
    await asyncio.gather(
        coordinator.end_session(DEVICE, started.session_id),
        coordinator.end_session(DEVICE, started.session_id),
        coordinator.reset_device("DEV-OTHER"),
    )

    assert coordinator._locks == {}
    assert coordinator._lock_users == {}
