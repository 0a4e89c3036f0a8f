# app/crud/__init__.py
from app.crud.device import device
from app.crud.monitoring_session import monitoring_session
from app.crud.activity_log import activity_log

__all__ = [
    "device",
    "monitoring_session",
    "activity_log",
]
