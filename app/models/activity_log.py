from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.models.device import Device


# status possíveis
ONGOING = "ongoing"
COMPLETED = "completed"
INTERRUPTED = "interrupted"

START_MONITORING = "start_monitoring"


class ActivityLogEntry(Base):
    __tablename__ = "activity_logs"
    __table_args__ = (
        # uma entrada "ongoing" por device, pareada com a sessão aberta
        Index(
            "uq_activity_logs_ongoing_device",
            "device_id",
            unique=True,
            sqlite_where=text("status = 'ongoing'"),
            postgresql_where=text("status = 'ongoing'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    device_id: Mapped[str] = mapped_column(
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[str] = mapped_column(String(64), nullable=False)
    session_id: Mapped[str] = mapped_column(String(96), nullable=False, index=True)

    action: Mapped[str] = mapped_column(String(64), nullable=False, default=START_MONITORING)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ONGOING)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    device: Mapped["Device"] = relationship(
        back_populates="activity_logs",
    )
