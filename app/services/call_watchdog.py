# app/services/call_watchdog.py

from __future__ import annotations

import asyncio
import logging

from app.core.exceptions import StorageError
from app.services.session_coordinator import SessionCoordinator

logger = logging.getLogger("kidwatch.call_watchdog")


async def run_call_watchdog(
    coordinator: SessionCoordinator,
    interval_seconds: float,
) -> None:
    """
    Loop periódico que encerra sessões acima do max_call_duration_minutes.

    Roda como task de fundo (startup da app) até ser cancelado.
    Falha de storage numa passada é logada e a próxima passada segue.
    """
    logger.info("Call watchdog started (interval=%ss)", interval_seconds)
    try:
        while True:
            try:
                await coordinator.close_overdue_sessions()
            except StorageError:
                logger.exception("Call watchdog pass failed")
            await asyncio.sleep(interval_seconds)
    finally:
        logger.info("Call watchdog stopped")
