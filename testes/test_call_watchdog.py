import asyncio

import pytest
from sqlalchemy import select

from app.models.monitoring_session import MonitoringSession
from app.services.call_watchdog import run_call_watchdog
from app.services.results import Refusal, RefusalReason, SessionEnded

DEVICE = "DEV-CAP0001"


@pytest.mark.asyncio
async def test_overdue_session_is_closed_by_timeout(coordinator, clock):
    await coordinator.update_device_settings(DEVICE, {"max_call_duration_minutes": 1})
    started = await coordinator.start_session(DEVICE, "parent-1")

    clock.advance(30)
    assert await coordinator.close_overdue_sessions() == 0
    assert await coordinator.has_active_session(DEVICE) is True

    clock.advance(31)
    assert await coordinator.close_overdue_sessions() == 1
    assert await coordinator.has_active_session(DEVICE) is False

    sessions = await coordinator.list_sessions(DEVICE)
    assert sessions[0].session_id == started.session_id
    assert sessions[0].ended_by == "timeout"
    assert sessions[0].duration_seconds == 61

    entries = await coordinator.query_activity_log(DEVICE)
    assert entries[0].status == "completed"
    assert entries[0].details["reason"] == "max_call_duration"
    assert entries[0].details["max_call_duration_minutes"] == 1


@pytest.mark.asyncio
async def test_uncapped_sessions_are_left_alone(coordinator, clock):
    await coordinator.update_device_settings("DEV-CAPPED", {"max_call_duration_minutes": 5})
    await coordinator.start_session("DEV-CAPPED", "parent-1")
    await coordinator.start_session("DEV-FREE", "parent-1")

    clock.advance(6 * 3600)
    closed = await coordinator.close_overdue_sessions()

    assert closed == 1
    assert await coordinator.has_active_session("DEV-CAPPED") is False
    assert await coordinator.has_active_session("DEV-FREE") is True


@pytest.mark.asyncio
async def test_parent_end_after_timeout_is_not_found(coordinator, clock):
    await coordinator.update_device_settings(DEVICE, {"max_call_duration_minutes": 1})
    started = await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(120)

    await coordinator.close_overdue_sessions()
    late = await coordinator.end_session(DEVICE, started.session_id)

    assert isinstance(late, Refusal)
    assert late.reason is RefusalReason.NOT_FOUND


@pytest.mark.asyncio
async def test_watchdog_loop_closes_overdue_sessions(coordinator, clock):
    await coordinator.update_device_settings(DEVICE, {"max_call_duration_minutes": 2})
    await coordinator.start_session(DEVICE, "parent-1")
    clock.advance(3 * 60)

    task = asyncio.create_task(run_call_watchdog(coordinator, 0.01))
    try:
        for _ in range(200):
            if not await coordinator.has_active_session(DEVICE):
                break
            await asyncio.sleep(0.01)
        assert await coordinator.has_active_session(DEVICE) is False
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ----------------------------------------------------------------------
# Reset do device
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reset_interrupts_open_session_and_clears_privacy(coordinator, clock, session_factory):
    started = await coordinator.start_session(DEVICE, "parent-1")
    await coordinator.enable_privacy_mode(DEVICE, 15)
    clock.advance(8)

    ended = await coordinator.reset_device(DEVICE)

    assert isinstance(ended, SessionEnded)
    assert ended.session_id == started.session_id
    assert ended.duration_seconds == 8
    assert coordinator.get_privacy_window(DEVICE).active is False
    assert await coordinator.has_active_session(DEVICE) is False

    entries = await coordinator.query_activity_log(DEVICE)
    assert entries[0].status == "interrupted"
    assert entries[0].duration_seconds == 8
    assert entries[0].details["ended_by"] == "reset"

    async with session_factory() as db:
        row = (
            await db.execute(
                select(MonitoringSession).where(MonitoringSession.session_id == started.session_id)
            )
        ).scalar_one()
    assert row.ended_by == "reset"


@pytest.mark.asyncio
async def test_reset_without_open_session(coordinator):
    assert await coordinator.reset_device(DEVICE) is None
