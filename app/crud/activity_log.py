# app/crud/activity_log.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity_log import ONGOING, ActivityLogEntry


class CRUDActivityLog:
    async def get_ongoing_for_session(
        self,
        db: AsyncSession,
        *,
        device_id: str,
        session_id: str,
    ) -> Optional[ActivityLogEntry]:
        stmt = select(ActivityLogEntry).where(
            ActivityLogEntry.device_id == device_id,
            ActivityLogEntry.session_id == session_id,
            ActivityLogEntry.status == ONGOING,
        )
        res = await db.execute(stmt)
        return res.scalar_one_or_none()

    async def list_by_device(
        self,
        db: AsyncSession,
        *,
        device_id: str,
        limit: int = 50,
    ) -> List[ActivityLogEntry]:
        stmt = (
            select(ActivityLogEntry)
            .where(ActivityLogEntry.device_id == device_id)
            .order_by(ActivityLogEntry.started_at.desc(), ActivityLogEntry.id.desc())
            .limit(limit)
        )
        res = await db.execute(stmt)
        return list(res.scalars().all())


activity_log = CRUDActivityLog()
