# app/api/routes/devices/activity.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import device_id_path, get_coordinator
from app.core.config import settings
from app.schemas import ActivityLogRead
from app.services.session_coordinator import SessionCoordinator

router = APIRouter()


@router.get("/{device_id}/activity", response_model=List[ActivityLogRead])
async def query_activity_log(
    device_id: str = Depends(device_id_path),
    limit: Optional[int] = Query(
        None,
        ge=1,
        le=settings.ACTIVITY_LOG_MAX_LIMIT,
        description="Máximo de entradas (default ACTIVITY_LOG_DEFAULT_LIMIT)",
    ),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """
    Activity log do device, mais recentes primeiro.
    """
    return await coordinator.query_activity_log(device_id, limit=limit)
