# app/api/deps.py
from fastapi import Path, Request

from app.schemas.device import DEVICE_ID_PATTERN
from app.services.session_coordinator import SessionCoordinator


def get_coordinator(request: Request) -> SessionCoordinator:
    """
    Coordenador criado no startup (app.state.coordinator).

    Nos testes é trocado via app.dependency_overrides[get_coordinator].
    """
    return request.app.state.coordinator


def device_id_path(
    device_id: str = Path(
        ...,
        pattern=DEVICE_ID_PATTERN,
        description="Id opaco do device (ex.: DEV-1A2B3C4D)",
    ),
) -> str:
    return device_id
