# app/models/device.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base_class import Base

if TYPE_CHECKING:
    from app.models.monitoring_session import MonitoringSession
    from app.models.activity_log import ActivityLogEntry


class Device(Base):
    """
    Device do filho (alvo do monitoramento).

    O status (offline / online / privacy) NÃO é armazenado: é derivado
    da sessão aberta e da janela de privacidade pelo SessionCoordinator.
    """

    __tablename__ = "devices"

    # id opaco (ex.: DEV-1A2B3C4D), imutável depois de atribuído
    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)

    # dono (pai). Devices criados "lazy" via leitura de settings não têm dono.
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Settings
    allow_privacy_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_end_call: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # None = ilimitado
    max_call_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    auto_accept_calls: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    admin_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    last_connection_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relações
    sessions: Mapped[List["MonitoringSession"]] = relationship(
        back_populates="device",
        cascade="all, delete-orphan",
    )
    activity_logs: Mapped[List["ActivityLogEntry"]] = relationship(
        back_populates="device",
        cascade="all, delete-orphan",
    )
