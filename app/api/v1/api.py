# app/api/v1/api.py
from fastapi import APIRouter

# router combinado (base + sessions + privacy + activity)
from app.api.routes.devices import router as devices_router

api_router = APIRouter()

api_router.include_router(
    devices_router,
    prefix="/devices",
    # sem tags aqui para deixar cada sub-rota definir as suas
)
