# app/schemas/__init__.py
from app.schemas.device import (
    DEVICE_ID_PATTERN,
    DeviceSettingsBase,
    DeviceSettingsUpdate,
    DeviceSettingsRead,
    DeviceCreate,
    DeviceRead,
    DeviceIdRead,
    DeviceStatusRead,
)
from app.schemas.monitoring_session import (
    SessionStartRequest,
    SessionStartRead,
    SessionEndRequest,
    SessionEndRead,
    SessionActiveRead,
    SessionValidRead,
    MonitoringSessionRead,
    RefusalRead,
)
from app.schemas.activity_log import ActivityLogRead
from app.schemas.privacy import PrivacyEnableRequest, PrivacyWindowRead

__all__ = [
    "DEVICE_ID_PATTERN",
    "DeviceSettingsBase",
    "DeviceSettingsUpdate",
    "DeviceSettingsRead",
    "DeviceCreate",
    "DeviceRead",
    "DeviceIdRead",
    "DeviceStatusRead",
    "SessionStartRequest",
    "SessionStartRead",
    "SessionEndRequest",
    "SessionEndRead",
    "SessionActiveRead",
    "SessionValidRead",
    "MonitoringSessionRead",
    "RefusalRead",
    "ActivityLogRead",
    "PrivacyEnableRequest",
    "PrivacyWindowRead",
]
