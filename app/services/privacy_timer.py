# app/services/privacy_timer.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger("kidwatch.privacy_timer")


@dataclass
class PrivacyWindow:
    device_id: str
    active: bool = False
    remaining_seconds: int = 0


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class PrivacyTimer:
    """
    Contagem regressiva de modo privacidade por device.

    - enable(minutes): remaining = minutes * 60 e agenda uma task que chama
      tick() a cada ``tick_interval_seconds``.
    - tick(): -1s; ao chegar em zero a janela é limpa e a task termina.
    - disable()/reset(): limpa a janela e cancela a task pendente.

    Com ``tick_interval_seconds=None`` nenhuma task é agendada e os ticks
    são chamados "na mão" (testes, relógio controlado).

    O timer só liga/desliga a flag: NÃO encerra sessões abertas.
    """

    def __init__(self, tick_interval_seconds: Optional[float] = 1.0) -> None:
        self.tick_interval_seconds = tick_interval_seconds
        self._windows: Dict[str, PrivacyWindow] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------

    def get(self, device_id: str) -> PrivacyWindow:
        window = self._windows.get(device_id)
        if window is None:
            return PrivacyWindow(device_id=device_id)
        return PrivacyWindow(
            device_id=device_id,
            active=window.active,
            remaining_seconds=window.remaining_seconds,
        )

    def is_active(self, device_id: str) -> bool:
        window = self._windows.get(device_id)
        return bool(window and window.active)

    def has_pending_task(self, device_id: str) -> bool:
        task = self._tasks.get(device_id)
        return task is not None and not task.done()

    # ------------------------------------------------------------------
    # Mutações
    # ------------------------------------------------------------------

    def enable(self, device_id: str, minutes: int) -> PrivacyWindow:
        if minutes <= 0:
            raise ValueError("minutes must be positive")

        # reabilitar reinicia a contagem
        self._cancel_task(device_id)
        self._windows[device_id] = PrivacyWindow(
            device_id=device_id,
            active=True,
            remaining_seconds=minutes * 60,
        )

        if self.tick_interval_seconds is not None:
            self._tasks[device_id] = asyncio.get_running_loop().create_task(
                self._countdown(device_id),
                name=f"privacy_countdown:{device_id}",
            )

        logger.info("Privacy mode enabled on %s for %s min", device_id, minutes)
        return self.get(device_id)

    def disable(self, device_id: str) -> PrivacyWindow:
        was_active = self.is_active(device_id)
        self._clear(device_id)
        if was_active:
            logger.info("Privacy mode disabled on %s", device_id)
        return self.get(device_id)

    def tick(self, device_id: str) -> PrivacyWindow:
        window = self._windows.get(device_id)
        if window is None or not window.active:
            return self.get(device_id)

        window.remaining_seconds = max(0, window.remaining_seconds - 1)
        if window.remaining_seconds == 0:
            self._clear(device_id)
            logger.info("Privacy window expired on %s", device_id)
        return self.get(device_id)

    def reset(self, device_id: str) -> None:
        self._clear(device_id)
        self._windows.pop(device_id, None)

    async def shutdown(self) -> None:
        """Cancela todas as contagens pendentes (shutdown da app / teardown de testes)."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for window in self._windows.values():
            window.active = False
            window.remaining_seconds = 0

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    async def _countdown(self, device_id: str) -> None:
        while True:
            await asyncio.sleep(self.tick_interval_seconds)
            window = self.tick(device_id)
            if not window.active:
                return

    def _clear(self, device_id: str) -> None:
        window = self._windows.get(device_id)
        if window is not None:
            window.active = False
            window.remaining_seconds = 0
        self._cancel_task(device_id)

    def _cancel_task(self, device_id: str) -> None:
        task = self._tasks.pop(device_id, None)
        # a própria task chega aqui via tick() quando expira: não se cancela
        if task is not None and task is not _current_task():
            task.cancel()
