# app/services/device_registry.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Set, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings
from app.core.exceptions import DeviceIdCollisionError, InvalidDeviceIdError
from app.crud import device as crud_device
from app.models.device import Device
from app.schemas.device import DeviceSettingsUpdate
from app.utils.ids import generate_device_id, is_valid_device_id
from app.utils.time import utcnow

logger = logging.getLogger("kidwatch.device_registry")


class DeviceRegistry:
    """
    Configuração por device (nome, toggles, limite de duração de chamada).

    - get_settings cria o device com defaults no primeiro acesso
      (nunca devolve "device not found").
    - update_settings faz merge parcial, last-write-wins.
    """

    def __init__(
        self,
        settings: Settings = settings,
        id_factory: Callable[[str], str] = generate_device_id,
    ) -> None:
        self.settings = settings
        self.id_factory = id_factory
        # ids emitidos neste processo (mesmo os ainda não gravados)
        self._issued: Set[str] = set()
        # criação lazy serializada no processo; o IntegrityError cobre outros processos
        self._create_lock = asyncio.Lock()

    @staticmethod
    def _check_id(device_id: str) -> None:
        if not is_valid_device_id(device_id):
            raise InvalidDeviceIdError(f"invalid device id: {device_id!r}")

    async def generate_device_id(self, db: AsyncSession) -> str:
        """
        Gera um id novo. Colisão (já emitido ou já no banco) -> gera outro;
        depois de DEVICE_ID_MAX_ATTEMPTS tentativas, erro.
        """
        attempts = max(1, self.settings.DEVICE_ID_MAX_ATTEMPTS)
        for _ in range(attempts):
            candidate = self.id_factory(self.settings.DEVICE_ID_PREFIX)
            if candidate in self._issued or await crud_device.exists(db, candidate):
                logger.warning("Device id collision on %s, regenerating", candidate)
                continue
            self._issued.add(candidate)
            return candidate

        raise DeviceIdCollisionError(
            f"could not generate a unique device id after {attempts} attempts"
        )

    async def register_device(self, db: AsyncSession, *, parent_id: str, name: str) -> Device:
        device_id = await self.generate_device_id(db)
        device = await crud_device.create_with_defaults(
            db,
            device_id=device_id,
            name=name,
            parent_id=parent_id,
        )
        logger.info("Registered device %s (%s) for parent %s", device.id, name, parent_id)
        return device

    async def list_devices(self, db: AsyncSession, *, parent_id: str) -> List[Device]:
        return await crud_device.get_multi_by_parent(db, parent_id)

    async def get_settings(self, db: AsyncSession, device_id: str) -> Device:
        self._check_id(device_id)

        device = await crud_device.get(db, device_id)
        if device is not None:
            return device

        # Política: leitura de settings cria o device com defaults
        async with self._create_lock:
            device = await crud_device.get(db, device_id)
            if device is not None:
                return device

            count = await crud_device.count(db)
            try:
                device = await crud_device.create_with_defaults(
                    db,
                    device_id=device_id,
                    name=f"Device {count + 1}",
                )
            except IntegrityError:
                # outra chamada criou o mesmo device entre o get e o insert
                await db.rollback()
                device = await crud_device.get(db, device_id)
                if device is None:
                    raise
                logger.debug("Device %s created concurrently, reusing stored row", device_id)
                return device

        self._issued.add(device_id)
        logger.info("Created default settings for unseen device %s", device_id)
        return device

    async def update_settings(
        self,
        db: AsyncSession,
        device_id: str,
        partial: Union[DeviceSettingsUpdate, Dict[str, Any]],
    ) -> Device:
        if isinstance(partial, dict):
            partial = DeviceSettingsUpdate(**partial)

        update_data = partial.model_dump(exclude_unset=True)
        device = await self.get_settings(db, device_id)
        if not update_data:
            return device

        update_data["updated_at"] = utcnow()
        updated = await crud_device.update(db, device, update_data)
        logger.info("Updated settings of device %s: %s", device_id, sorted(update_data))
        return updated
