# app/api/routes/devices/__init__.py
from fastapi import APIRouter

from .base import router as base_router
from .sessions import router as sessions_router
from .privacy import router as privacy_router
from .activity import router as activity_router

router = APIRouter()

# Registro de devices + settings + status
router.include_router(base_router, prefix="", tags=["Devices"])

# Ciclo de vida das sessões de monitoramento
router.include_router(sessions_router, prefix="", tags=["Monitoring sessions"])

# Modo privacidade
router.include_router(privacy_router, prefix="", tags=["Privacy mode"])

# Activity log
router.include_router(activity_router, prefix="", tags=["Activity log"])
