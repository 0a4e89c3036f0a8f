from app.db.base_class import Base  # noqa

from app.models.device import Device  # noqa
from app.models.monitoring_session import MonitoringSession  # noqa
from app.models.activity_log import ActivityLogEntry  # noqa

__all__ = [
    "Base",
    "Device",
    "MonitoringSession",
    "ActivityLogEntry",
]
