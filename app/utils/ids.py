"""Geração de identificadores.

- device:  DEV-1A2B3C4D (prefixo configurável + 8 hex maiúsculos)
- sessão:  session-<16 hex>-<epochMillis>

A aleatoriedade vem de ``secrets``; a unicidade é garantida por quem chama
(checagem no banco + constraint UNIQUE), não pelo formato.
"""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from app.schemas.device import DEVICE_ID_PATTERN

_DEVICE_ID_RE = re.compile(DEVICE_ID_PATTERN)


def generate_device_id(prefix: str = "DEV-") -> str:
    return f"{prefix}{secrets.token_hex(4).upper()}"


def generate_session_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"session-{secrets.token_hex(8)}-{millis}"


def is_valid_device_id(device_id: str | None) -> bool:
    if not device_id:
        return False
    return _DEVICE_ID_RE.match(device_id) is not None
