# app/services/session_coordinator.py

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings
from app.core.exceptions import StorageError
from app.crud import device as crud_device
from app.crud import monitoring_session as crud_monitoring_session
from app.db.session import AsyncSessionLocal
from app.models.activity_log import COMPLETED, INTERRUPTED, ActivityLogEntry
from app.models.device import Device
from app.models.monitoring_session import MonitoringSession
from app.schemas.device import DeviceSettingsUpdate
from app.services.activity_log import ActivityLog
from app.services.device_registry import DeviceRegistry
from app.services.privacy_timer import PrivacyTimer, PrivacyWindow
from app.services.results import (
    DeviceStatus,
    EndResult,
    Refusal,
    RefusalReason,
    SessionEnded,
    SessionStarted,
    StartResult,
)
from app.utils.ids import generate_session_id
from app.utils.time import elapsed_seconds, ensure_utc, utcnow

logger = logging.getLogger("kidwatch.session_coordinator")

# quem encerrou a sessão
ENDED_BY_PARENT = "parent"
ENDED_BY_CHILD = "child"
ENDED_BY_TIMEOUT = "timeout"
ENDED_BY_RESET = "reset"

ENDED_BY_VALUES = (ENDED_BY_PARENT, ENDED_BY_CHILD, ENDED_BY_TIMEOUT, ENDED_BY_RESET)

SESSION_ID_MAX_ATTEMPTS = 5


class SessionCoordinator:
    """
    Dono único do estado de sessões de monitoramento.

    Por device: Idle -> Active -> Idle. No máximo UMA sessão aberta por
    device em qualquer instante:

    - checagem de admissão + insert rodam sob um asyncio.Lock por device
      (há awaits de banco entre a checagem e o insert);
    - o índice único parcial em monitoring_sessions(device_id) WHERE
      ended_at IS NULL segura o invariante no storage.

    Cada sessão aberta tem exatamente uma entrada "ongoing" no activity log,
    criada e fechada na mesma transação da sessão.

    É construído uma vez no startup (ou por teste) recebendo a factory de
    sessões do banco; nada aqui depende de estado global mutável.
    """

    def __init__(
        self,
        session_factory=AsyncSessionLocal,
        *,
        settings: Settings = settings,
        registry: Optional[DeviceRegistry] = None,
        activity_log: Optional[ActivityLog] = None,
        privacy_timer: Optional[PrivacyTimer] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings
        self.registry = registry or DeviceRegistry(settings=settings)
        self.activity_log = activity_log or ActivityLog()
        self.privacy_timer = privacy_timer or PrivacyTimer(
            tick_interval_seconds=settings.PRIVACY_TICK_SECONDS,
        )
        self.clock = clock

        # device_id -> lock; só existe enquanto alguém usa ou espera
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Infra
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _device_lock(self, device_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(device_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[device_id] = lock
        self._lock_users[device_id] = self._lock_users.get(device_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[device_id] -= 1
            if self._lock_users[device_id] == 0:
                del self._lock_users[device_id]
                del self._locks[device_id]

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    @asynccontextmanager
    async def _db(self, operation: str) -> AsyncIterator[AsyncSession]:
        """
        Abre uma sessão de banco para a operação.

        Falha de storage -> rollback + StorageError (sem retry aqui).
        """
        async with self.session_factory() as db:
            try:
                yield db
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.exception("Storage failure during %s", operation)
                raise StorageError(f"storage failure during {operation}") from exc

    async def _mint_session_id(self, db: AsyncSession, now: datetime) -> str:
        for _ in range(SESSION_ID_MAX_ATTEMPTS):
            candidate = generate_session_id(now)
            if not await crud_monitoring_session.session_id_exists(db, candidate):
                return candidate
            logger.warning("Session id collision on %s, regenerating", candidate)
        raise StorageError("could not generate a unique session id")

    def _privacy_blocks(self, device: Device) -> bool:
        # O pai pode revogar a privacidade (allow_privacy_mode=False):
        # nesse caso a janela ativa deixa de bloquear.
        return self.privacy_timer.is_active(device.id) and bool(device.allow_privacy_mode)

    def _status_after(self, device_id: str, *, has_open_session: bool) -> DeviceStatus:
        if has_open_session:
            return DeviceStatus.ONLINE
        if self.privacy_timer.is_active(device_id):
            return DeviceStatus.PRIVACY
        return DeviceStatus.OFFLINE

    # ------------------------------------------------------------------
    # Ciclo de vida da sessão
    # ------------------------------------------------------------------

    async def start_session(
        self,
        device_id: str,
        parent_id: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> StartResult:
        """
        Admite uma nova sessão. Ordem das checagens:

        1) janela de privacidade ativa (e não revogada) -> PRIVACY_BLOCKED
        2) já existe sessão aberta                      -> ALREADY_ACTIVE
        """
        async with self._device_lock(device_id):
            async with self._db("start_session") as db:
                device = await self.registry.get_settings(db, device_id)

                if self._privacy_blocks(device):
                    logger.info("Refused session on %s: privacy mode active", device_id)
                    return Refusal(RefusalReason.PRIVACY_BLOCKED)

                existing = await crud_monitoring_session.get_open_for_device(db, device_id)
                if existing is not None:
                    logger.info(
                        "Refused session on %s: session %s already open",
                        device_id,
                        existing.session_id,
                    )
                    return Refusal(RefusalReason.ALREADY_ACTIVE)

                now = self._now()
                session_id = await self._mint_session_id(db, now)

                session = MonitoringSession(
                    session_id=session_id,
                    device_id=device_id,
                    parent_id=parent_id,
                    started_at=now,
                )
                db.add(session)
                self.activity_log.record_start(db, session=session, details=details)
                device.last_connection_at = now
                db.add(device)

                try:
                    await db.commit()
                except IntegrityError:
                    # índice parcial pegou uma sessão aberta concorrente
                    await db.rollback()
                    logger.warning("Concurrent open session detected on %s", device_id)
                    return Refusal(RefusalReason.ALREADY_ACTIVE)

        logger.info("Session %s started on %s by parent %s", session_id, device_id, parent_id)
        return SessionStarted(
            session_id=session_id,
            device_id=device_id,
            parent_id=parent_id,
            started_at=now,
        )

    async def end_session(
        self,
        device_id: str,
        session_id: str,
        *,
        ended_by: str = ENDED_BY_PARENT,
        details: Optional[Dict[str, Any]] = None,
    ) -> EndResult:
        """
        Fecha a sessão aberta (device_id, session_id).

        Se não houver (já fechada, id errado) devolve NOT_FOUND: encerrar
        duas vezes (clique em "end call" + timeout) é esperado e benigno.
        """
        if ended_by not in ENDED_BY_VALUES:
            raise ValueError(f"invalid ended_by: {ended_by!r}")

        async with self._device_lock(device_id):
            async with self._db("end_session") as db:
                session = await crud_monitoring_session.get_open(
                    db,
                    device_id=device_id,
                    session_id=session_id,
                )
                if session is None:
                    logger.debug("end_session: no open session %s on %s", session_id, device_id)
                    return Refusal(RefusalReason.NOT_FOUND)

                if ended_by == ENDED_BY_CHILD:
                    device = await self.registry.get_settings(db, device_id)
                    if not device.allow_end_call:
                        logger.info("Refused child end of %s on %s", session_id, device_id)
                        return Refusal(RefusalReason.END_CALL_NOT_ALLOWED)

                await self._close(
                    db,
                    session,
                    ended_by=ended_by,
                    status=COMPLETED,
                    details=details,
                )
                await db.commit()

        return self._ended(session)

    async def _close(
        self,
        db: AsyncSession,
        session: MonitoringSession,
        *,
        ended_by: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> MonitoringSession:
        now = self._now()
        session.ended_at = now
        session.duration_seconds = elapsed_seconds(session.started_at, now)
        session.ended_by = ended_by
        db.add(session)

        entry_details = {"ended_by": ended_by}
        entry_details.update(details or {})
        await self.activity_log.record_end(
            db,
            session=session,
            status=status,
            details=entry_details,
        )

        logger.info(
            "Session %s on %s closed by %s after %ss",
            session.session_id,
            session.device_id,
            ended_by,
            session.duration_seconds,
        )
        return session

    def _ended(self, session: MonitoringSession) -> SessionEnded:
        return SessionEnded(
            session_id=session.session_id,
            device_id=session.device_id,
            duration_seconds=int(session.duration_seconds or 0),
            ended_at=ensure_utc(session.ended_at),
            device_status=self._status_after(session.device_id, has_open_session=False),
        )

    async def reset_device(self, device_id: str) -> Optional[SessionEnded]:
        """
        Derruba o estado do device: cancela a contagem de privacidade e
        interrompe a sessão aberta (entrada do log fica "interrupted").
        """
        self.privacy_timer.reset(device_id)

        async with self._device_lock(device_id):
            async with self._db("reset_device") as db:
                session = await crud_monitoring_session.get_open_for_device(db, device_id)
                if session is None:
                    logger.info("Device %s reset (no open session)", device_id)
                    return None

                await self._close(
                    db,
                    session,
                    ended_by=ENDED_BY_RESET,
                    status=INTERRUPTED,
                    details={"reason": "device_reset"},
                )
                await db.commit()

        logger.info("Device %s reset, session %s interrupted", device_id, session.session_id)
        return self._ended(session)

    async def close_overdue_sessions(self, now: Optional[datetime] = None) -> int:
        """
        Encerra (ended_by="timeout") sessões que passaram do
        max_call_duration_minutes do device. Devolve quantas fechou.
        """
        now = ensure_utc(now) if now is not None else self._now()

        async with self._db("close_overdue_sessions") as db:
            capped = {d.id: d.max_call_duration_minutes for d in await crud_device.get_multi_with_call_cap(db)}
            if not capped:
                return 0
            open_sessions = await crud_monitoring_session.list_open(db)

        overdue = [
            s
            for s in open_sessions
            if s.device_id in capped
            and elapsed_seconds(s.started_at, now) >= capped[s.device_id] * 60
        ]

        closed = 0
        for s in overdue:
            result = await self.end_session(
                s.device_id,
                s.session_id,
                ended_by=ENDED_BY_TIMEOUT,
                details={
                    "reason": "max_call_duration",
                    "max_call_duration_minutes": capped[s.device_id],
                },
            )
            # NOT_FOUND aqui = alguém encerrou antes de nós
            if result.ok:
                closed += 1

        if closed:
            logger.info("Closed %s overdue monitoring sessions", closed)
        return closed

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    async def has_active_session(self, device_id: str) -> bool:
        return await self.get_active_session(device_id) is not None

    async def get_active_session(self, device_id: str) -> Optional[MonitoringSession]:
        async with self._db("get_active_session") as db:
            return await crud_monitoring_session.get_open_for_device(db, device_id)

    async def is_session_valid(self, device_id: str, session_id: str) -> bool:
        async with self._db("is_session_valid") as db:
            session = await crud_monitoring_session.get_open(
                db,
                device_id=device_id,
                session_id=session_id,
            )
            return session is not None

    async def list_sessions(self, device_id: str, limit: int = 50) -> List[MonitoringSession]:
        async with self._db("list_sessions") as db:
            return await crud_monitoring_session.list_by_device(
                db,
                device_id=device_id,
                limit=limit,
            )

    async def device_status(self, device_id: str) -> DeviceStatus:
        has_open = await self.has_active_session(device_id)
        return self._status_after(device_id, has_open_session=has_open)

    async def query_activity_log(
        self,
        device_id: str,
        limit: Optional[int] = None,
    ) -> List[ActivityLogEntry]:
        if limit is None:
            limit = self.settings.ACTIVITY_LOG_DEFAULT_LIMIT
        limit = max(1, min(int(limit), self.settings.ACTIVITY_LOG_MAX_LIMIT))

        async with self._db("query_activity_log") as db:
            return await self.activity_log.query(db, device_id, limit=limit)

    # ------------------------------------------------------------------
    # Devices / settings
    # ------------------------------------------------------------------

    async def generate_device_id(self) -> str:
        async with self._db("generate_device_id") as db:
            return await self.registry.generate_device_id(db)

    async def register_device(self, parent_id: str, name: str) -> Device:
        async with self._db("register_device") as db:
            return await self.registry.register_device(db, parent_id=parent_id, name=name)

    async def list_devices(self, parent_id: str) -> List[Device]:
        async with self._db("list_devices") as db:
            return await self.registry.list_devices(db, parent_id=parent_id)

    async def get_device_settings(self, device_id: str) -> Device:
        async with self._db("get_device_settings") as db:
            return await self.registry.get_settings(db, device_id)

    async def update_device_settings(
        self,
        device_id: str,
        partial: Union[DeviceSettingsUpdate, Dict[str, Any]],
    ) -> Device:
        async with self._db("update_device_settings") as db:
            return await self.registry.update_settings(db, device_id, partial)

    # ------------------------------------------------------------------
    # Modo privacidade
    # ------------------------------------------------------------------

    async def enable_privacy_mode(
        self,
        device_id: str,
        minutes: Optional[int] = None,
    ) -> Union[PrivacyWindow, Refusal]:
        """
        Liga a janela de privacidade. Só liga a flag: uma sessão aberta
        continua aberta (cabe à UI decidir chamar end_session).
        """
        if minutes is None:
            minutes = self.settings.PRIVACY_DEFAULT_MINUTES

        async with self._db("enable_privacy_mode") as db:
            device = await self.registry.get_settings(db, device_id)
            if not device.allow_privacy_mode:
                logger.info("Refused privacy mode on %s: not allowed by settings", device_id)
                return Refusal(RefusalReason.PRIVACY_NOT_ALLOWED)
            open_session = await crud_monitoring_session.get_open_for_device(db, device_id)

        window = self.privacy_timer.enable(device_id, minutes)
        if open_session is not None:
            logger.info(
                "Privacy mode enabled on %s while session %s is open; session left running",
                device_id,
                open_session.session_id,
            )
        return window

    async def disable_privacy_mode(self, device_id: str) -> PrivacyWindow:
        return self.privacy_timer.disable(device_id)

    def get_privacy_window(self, device_id: str) -> PrivacyWindow:
        return self.privacy_timer.get(device_id)

    async def shutdown(self) -> None:
        await self.privacy_timer.shutdown()
