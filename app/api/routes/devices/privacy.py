# app/api/routes/devices/privacy.py
from fastapi import APIRouter, Depends

from app.api.deps import device_id_path, get_coordinator
from app.api.responses import refusal_response
from app.schemas import PrivacyEnableRequest, PrivacyWindowRead, RefusalRead
from app.services.results import Refusal
from app.services.session_coordinator import SessionCoordinator

router = APIRouter()


@router.get("/{device_id}/privacy", response_model=PrivacyWindowRead)
async def get_privacy_window(
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    return PrivacyWindowRead.model_validate(coordinator.get_privacy_window(device_id))


@router.post(
    "/{device_id}/privacy",
    response_model=PrivacyWindowRead,
    responses={409: {"model": RefusalRead}},
)
async def enable_privacy_mode(
    body: PrivacyEnableRequest,
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Liga o modo privacidade por N minutos.

    Não encerra uma sessão aberta: se a UI quiser derrubar a chamada,
    chama /sessions/{session_id}/end separadamente.
    """
    result = await coordinator.enable_privacy_mode(device_id, body.minutes)
    if isinstance(result, Refusal):
        return refusal_response(result)
    return PrivacyWindowRead.model_validate(result)


@router.delete("/{device_id}/privacy", response_model=PrivacyWindowRead)
async def disable_privacy_mode(
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    window = await coordinator.disable_privacy_mode(device_id)
    return PrivacyWindowRead.model_validate(window)
