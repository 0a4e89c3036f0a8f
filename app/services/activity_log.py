# app/services/activity_log.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import activity_log as crud_activity_log
from app.models.activity_log import (
    COMPLETED,
    INTERRUPTED,
    ONGOING,
    START_MONITORING,
    ActivityLogEntry,
)
from app.models.monitoring_session import MonitoringSession

logger = logging.getLogger("kidwatch.activity_log")

CLOSED_STATUSES = (COMPLETED, INTERRUPTED)


class ActivityLog:
    """
    Histórico append-only do ciclo de vida das sessões.

    record_start / record_end são os únicos mutadores e só o
    SessionCoordinator chama, dentro da transação dele (sem commit aqui).
    Uma entrada fechada (completed / interrupted) nunca mais muda.
    """

    def record_start(
        self,
        db: AsyncSession,
        *,
        session: MonitoringSession,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            device_id=session.device_id,
            parent_id=session.parent_id,
            session_id=session.session_id,
            action=START_MONITORING,
            status=ONGOING,
            started_at=session.started_at,
            ended_at=None,
            duration_seconds=None,
            details=dict(details or {}),
        )
        db.add(entry)
        return entry

    async def record_end(
        self,
        db: AsyncSession,
        *,
        session: MonitoringSession,
        status: str = COMPLETED,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLogEntry]:
        if status not in CLOSED_STATUSES:
            raise ValueError(f"invalid closing status: {status!r}")

        entry = await crud_activity_log.get_ongoing_for_session(
            db,
            device_id=session.device_id,
            session_id=session.session_id,
        )
        if entry is None:
            # sessão sem entrada pareada: não inventamos uma
            logger.warning(
                "No ongoing activity entry for session %s (device=%s)",
                session.session_id,
                session.device_id,
            )
            return None

        merged = dict(entry.details or {})
        merged.update(details or {})

        entry.status = status
        entry.ended_at = session.ended_at
        entry.duration_seconds = session.duration_seconds
        entry.details = merged
        db.add(entry)
        return entry

    async def query(
        self,
        db: AsyncSession,
        device_id: str,
        limit: int = 50,
    ) -> List[ActivityLogEntry]:
        """Entradas do device, mais recentes primeiro."""
        return await crud_activity_log.list_by_device(db, device_id=device_id, limit=limit)
