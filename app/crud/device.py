# app/crud/device.py
from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.base import CRUDBase
from app.models.device import Device
from app.schemas.device import DeviceCreate, DeviceSettingsUpdate


class CRUDDevice(CRUDBase[Device, DeviceCreate, DeviceSettingsUpdate]):
    async def exists(self, db: AsyncSession, device_id: str) -> bool:
        stmt = select(func.count()).select_from(self.model).where(self.model.id == device_id)
        result = await db.execute(stmt)
        return (result.scalar_one() or 0) > 0

    async def count(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count()).select_from(self.model))
        return int(result.scalar_one() or 0)

    async def get_multi_by_parent(
        self,
        db: AsyncSession,
        parent_id: str,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Device]:
        stmt = (
            select(self.model)
            .where(self.model.parent_id == parent_id)
            .order_by(self.model.created_at.asc(), self.model.id.asc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_multi_with_call_cap(self, db: AsyncSession) -> list[Device]:
        """Devices com max_call_duration_minutes definido (usado pelo watchdog)."""
        stmt = select(self.model).where(self.model.max_call_duration_minutes.is_not(None))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def create_with_defaults(
        self,
        db: AsyncSession,
        *,
        device_id: str,
        name: str,
        parent_id: str | None = None,
    ) -> Device:
        """Cria o device com as settings padrão (ver DeviceSettingsBase)."""
        data: Dict[str, Any] = {
            "id": device_id,
            "name": name,
            "parent_id": parent_id,
            "allow_privacy_mode": True,
            "allow_end_call": True,
            "max_call_duration_minutes": None,
            "auto_accept_calls": True,
            "admin_locked": False,
        }
        return await self.create(db, data)


device = CRUDDevice(Device)
