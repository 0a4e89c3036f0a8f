# app/main.py
import asyncio
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exceptions import InvalidDeviceIdError, StorageError
from app.db.session import AsyncSessionLocal, init_db
from app.services.call_watchdog import run_call_watchdog
from app.services.session_coordinator import SessionCoordinator

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("kidwatch.main")

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
)

# --- CORS para o frontend ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_watchdog_task: asyncio.Task | None = None


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "storage failure"},
    )


@app.exception_handler(InvalidDeviceIdError)
async def invalid_device_id_handler(request: Request, exc: InvalidDeviceIdError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


@app.on_event("startup")
async def on_startup() -> None:
    global _watchdog_task

    await init_db()

    app.state.coordinator = SessionCoordinator(AsyncSessionLocal, settings=settings)

    # 👇 Watchdog de duração máxima de chamada
    if settings.CALL_WATCHDOG_ENABLED:
        logger.info("Starting call watchdog task...")
        _watchdog_task = asyncio.create_task(
            run_call_watchdog(
                app.state.coordinator,
                settings.CALL_WATCHDOG_INTERVAL_SECONDS,
            ),
            name="call_watchdog",
        )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    global _watchdog_task

    if _watchdog_task:
        logger.info("Stopping call watchdog task...")
        _watchdog_task.cancel()
        try:
            await _watchdog_task
        except asyncio.CancelledError:
            logger.info("Call watchdog task cancelled")
        _watchdog_task = None

    coordinator = getattr(app.state, "coordinator", None)
    if coordinator is not None:
        # nenhuma contagem de privacidade sobrevive ao shutdown
        await coordinator.shutdown()


@app.get("/health", tags=["health"])
async def healthcheck():
    return {"status": "ok"}


app.include_router(api_router, prefix="/api/v1")
