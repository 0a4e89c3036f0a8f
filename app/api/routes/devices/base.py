# app/api/routes/devices/base.py
from typing import List

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import device_id_path, get_coordinator
from app.schemas import (
    DeviceCreate,
    DeviceIdRead,
    DeviceRead,
    DeviceSettingsRead,
    DeviceSettingsUpdate,
    DeviceStatusRead,
    SessionEndRead,
)
from app.services.results import DeviceStatus
from app.services.session_coordinator import SessionCoordinator

router = APIRouter()


@router.get("/", response_model=List[DeviceRead])
async def list_devices(
    parent_id: str = Query(..., min_length=1, max_length=64),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Lista os devices de um pai.
    """
    return await coordinator.list_devices(parent_id)


@router.post(
    "/",
    response_model=DeviceRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_device(
    device_in: DeviceCreate,
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Registra um device novo para o pai, com id gerado e settings padrão.
    """
    return await coordinator.register_device(device_in.parent_id, device_in.name)


# ⚠️ IMPORTANTE: /generate-id VEM ANTES DE "/{device_id}"
@router.post("/generate-id", response_model=DeviceIdRead)
async def generate_device_id(
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Gera um device_id livre (fluxo "gerador de id" da tela do filho).
    """
    return DeviceIdRead(device_id=await coordinator.generate_device_id())


@router.get("/{device_id}/settings", response_model=DeviceSettingsRead)
async def get_device_settings(
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Settings do device. Device nunca visto é criado com os defaults.
    """
    return await coordinator.get_device_settings(device_id)


@router.patch("/{device_id}/settings", response_model=DeviceSettingsRead)
async def update_device_settings(
    settings_in: DeviceSettingsUpdate,
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    return await coordinator.update_device_settings(device_id, settings_in)


@router.get("/{device_id}/status", response_model=DeviceStatusRead)
async def get_device_status(
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Status derivado: online (sessão aberta) / privacy / offline.
    """
    device_status = await coordinator.device_status(device_id)
    window = coordinator.get_privacy_window(device_id)
    return DeviceStatusRead(
        device_id=device_id,
        status=device_status.value,
        has_active_session=device_status is DeviceStatus.ONLINE,
        privacy_active=window.active,
        privacy_remaining_seconds=window.remaining_seconds,
    )


@router.post("/{device_id}/reset", response_model=SessionEndRead | None)
async def reset_device(
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Cancela a contagem de privacidade e interrompe a sessão aberta, se houver.
    """
    ended = await coordinator.reset_device(device_id)
    if ended is None:
        return None
    return SessionEndRead(
        session_id=ended.session_id,
        device_id=ended.device_id,
        duration_seconds=ended.duration_seconds,
        ended_at=ended.ended_at,
        device_status=ended.device_status.value,
    )
