# app/api/routes/devices/sessions.py
from typing import List

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import device_id_path, get_coordinator
from app.api.responses import refusal_response
from app.schemas import (
    MonitoringSessionRead,
    RefusalRead,
    SessionActiveRead,
    SessionEndRead,
    SessionEndRequest,
    SessionStartRead,
    SessionStartRequest,
    SessionValidRead,
)
from app.services.results import Refusal
from app.services.session_coordinator import SessionCoordinator

router = APIRouter()


@router.post(
    "/{device_id}/sessions",
    response_model=SessionStartRead,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": RefusalRead}},
)
async def start_session(
    body: SessionStartRequest,
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Inicia uma sessão de monitoramento.

    409 quando o device está em modo privacidade ou já tem sessão aberta.
    """
    result = await coordinator.start_session(device_id, body.parent_id)
    if isinstance(result, Refusal):
        return refusal_response(result)

    return SessionStartRead(
        session_id=result.session_id,
        device_id=result.device_id,
        parent_id=result.parent_id,
        started_at=result.started_at,
    )


@router.get("/{device_id}/sessions", response_model=List[MonitoringSessionRead])
async def list_sessions(
    device_id: str = Depends(device_id_path),
    limit: int = Query(50, ge=1, le=500),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Histórico de sessões do device (mais recentes primeiro).
    """
    return await coordinator.list_sessions(device_id, limit=limit)


# ⚠️ IMPORTANTE: /sessions/active VEM ANTES DE "/sessions/{session_id}/..."
@router.get("/{device_id}/sessions/active", response_model=SessionActiveRead)
async def get_active_session(
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    session = await coordinator.get_active_session(device_id)
    if session is None:
        return SessionActiveRead(device_id=device_id, active=False)

    return SessionActiveRead(
        device_id=device_id,
        active=True,
        session_id=session.session_id,
        parent_id=session.parent_id,
        started_at=session.started_at,
    )


@router.get(
    "/{device_id}/sessions/{session_id}/valid",
    response_model=SessionValidRead,
)
async def validate_session(
    session_id: str,
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Usado pelo cliente que entra na chamada para confirmar que o token
    de sessão que ele tem ainda é o da sessão aberta.
    """
    valid = await coordinator.is_session_valid(device_id, session_id)
    return SessionValidRead(device_id=device_id, session_id=session_id, valid=valid)


@router.post(
    "/{device_id}/sessions/{session_id}/end",
    response_model=SessionEndRead,
    responses={404: {"model": RefusalRead}, 409: {"model": RefusalRead}},
)
async def end_session(
    session_id: str,
    body: SessionEndRequest | None = None,
    device_id: str = Depends(device_id_path),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Encerra a sessão. 404 {"error": "not found"} se ela já foi encerrada
    (duplo clique / timeout concorrente): o cliente deve tratar como no-op.
    """
    ended_by = body.ended_by if body is not None else "parent"
    result = await coordinator.end_session(device_id, session_id, ended_by=ended_by)
    if isinstance(result, Refusal):
        return refusal_response(result)

    return SessionEndRead(
        session_id=result.session_id,
        device_id=result.device_id,
        duration_seconds=result.duration_seconds,
        ended_at=result.ended_at,
        device_status=result.device_status.value,
    )
