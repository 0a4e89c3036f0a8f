# app/services/results.py
"""
Resultados "tagueados" do SessionCoordinator.

Recusas de negócio (device já em sessão, modo privacidade, sessão não
encontrada...) NÃO são exceções: voltam como ``Refusal`` para que a UI
mostre a mensagem certa para cada caso.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union


class RefusalReason(str, Enum):
    PRIVACY_BLOCKED = "privacy mode active"
    ALREADY_ACTIVE = "device already has an active session"
    NOT_FOUND = "not found"
    END_CALL_NOT_ALLOWED = "device is not allowed to end calls"
    PRIVACY_NOT_ALLOWED = "privacy mode is not allowed on this device"


class DeviceStatus(str, Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    PRIVACY = "privacy"


@dataclass(frozen=True)
class Refusal:
    reason: RefusalReason

    ok = False

    @property
    def code(self) -> str:
        return self.reason.name.lower()

    @property
    def message(self) -> str:
        return self.reason.value


@dataclass(frozen=True)
class SessionStarted:
    session_id: str
    device_id: str
    parent_id: str
    started_at: datetime

    ok = True


@dataclass(frozen=True)
class SessionEnded:
    session_id: str
    device_id: str
    duration_seconds: int
    ended_at: datetime
    device_status: DeviceStatus

    ok = True


StartResult = Union[SessionStarted, Refusal]
EndResult = Union[SessionEnded, Refusal]
