# app/models/__init__.py
from app.models.device import Device
from app.models.monitoring_session import MonitoringSession
from app.models.activity_log import ActivityLogEntry

__all__ = [
    "Device",
    "MonitoringSession",
    "ActivityLogEntry",
]
