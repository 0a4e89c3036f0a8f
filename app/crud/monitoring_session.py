# app/crud/monitoring_session.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.monitoring_session import MonitoringSession


class CRUDMonitoringSession:
    """
    Consultas sobre monitoring_sessions.

    As escritas ficam no SessionCoordinator (inserção + fechamento),
    sempre dentro do lock do device.
    """

    async def get_open_for_device(
        self,
        db: AsyncSession,
        device_id: str,
    ) -> Optional[MonitoringSession]:
        stmt = select(MonitoringSession).where(
            MonitoringSession.device_id == device_id,
            MonitoringSession.ended_at.is_(None),
        )
        res = await db.execute(stmt)
        return res.scalars().first()

    async def get_open(
        self,
        db: AsyncSession,
        *,
        device_id: str,
        session_id: str,
    ) -> Optional[MonitoringSession]:
        stmt = select(MonitoringSession).where(
            MonitoringSession.device_id == device_id,
            MonitoringSession.session_id == session_id,
            MonitoringSession.ended_at.is_(None),
        )
        res = await db.execute(stmt)
        return res.scalar_one_or_none()

    async def session_id_exists(self, db: AsyncSession, session_id: str) -> bool:
        stmt = (
            select(func.count())
            .select_from(MonitoringSession)
            .where(MonitoringSession.session_id == session_id)
        )
        res = await db.execute(stmt)
        return (res.scalar_one() or 0) > 0

    async def list_open(self, db: AsyncSession) -> List[MonitoringSession]:
        stmt = select(MonitoringSession).where(MonitoringSession.ended_at.is_(None))
        res = await db.execute(stmt)
        return list(res.scalars().all())

    async def list_by_device(
        self,
        db: AsyncSession,
        *,
        device_id: str,
        skip: int = 0,
        limit: int = 100,
    ) -> List[MonitoringSession]:
        stmt = (
            select(MonitoringSession)
            .where(MonitoringSession.device_id == device_id)
            .order_by(MonitoringSession.started_at.desc(), MonitoringSession.id.desc())
            .offset(skip)
            .limit(limit)
        )
        res = await db.execute(stmt)
        return list(res.scalars().all())


monitoring_session = CRUDMonitoringSession()
