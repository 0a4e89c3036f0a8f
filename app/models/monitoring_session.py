# app/models/monitoring_session.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.models.device import Device


class MonitoringSession(Base):
    """
    Uma conexão de monitoramento pai -> device.

    ended_at NULL = sessão aberta. No máximo UMA sessão aberta por device
    (índice único parcial abaixo + lock por device no coordenador).
    """

    __tablename__ = "monitoring_sessions"
    __table_args__ = (
        Index(
            "uq_monitoring_sessions_open_device",
            "device_id",
            unique=True,
            sqlite_where=text("ended_at IS NULL"),
            postgresql_where=text("ended_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # session-<hex>-<epochMillis>
    session_id: Mapped[str] = mapped_column(
        String(96),
        nullable=False,
        unique=True,
        index=True,
    )
    device_id: Mapped[str] = mapped_column(
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # parent / child / timeout / reset
    ended_by: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    device: Mapped["Device"] = relationship(
        back_populates="sessions",
    )
