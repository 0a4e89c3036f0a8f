from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ids opacos: letras, dígitos, "_" e "-" (ex.: DEV-1A2B3C4D)
DEVICE_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$"


class DeviceSettingsBase(BaseModel):
    allow_privacy_mode: bool = True
    allow_end_call: bool = True
    max_call_duration_minutes: Optional[int] = Field(None, ge=1)  # None = ilimitado
    auto_accept_calls: bool = True
    admin_locked: bool = False


class DeviceSettingsUpdate(BaseModel):
    """
    Atualização parcial: só os campos enviados são aplicados (exclude_unset).
    max_call_duration_minutes=null volta para "ilimitado".
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    allow_privacy_mode: Optional[bool] = None
    allow_end_call: Optional[bool] = None
    max_call_duration_minutes: Optional[int] = Field(None, ge=1)
    auto_accept_calls: Optional[bool] = None
    admin_locked: Optional[bool] = None

    @field_validator(
        "name",
        "allow_privacy_mode",
        "allow_end_call",
        "auto_accept_calls",
        "admin_locked",
    )
    @classmethod
    def _not_null(cls, value):
        # só max_call_duration_minutes aceita null
        if value is None:
            raise ValueError("must not be null")
        return value


class DeviceSettingsRead(DeviceSettingsBase):
    device_id: str = Field(..., validation_alias="id")
    name: str

    class Config:
        from_attributes = True
        populate_by_name = True


class DeviceCreate(BaseModel):
    parent_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)


class DeviceRead(DeviceSettingsBase):
    id: str
    parent_id: Optional[str] = None
    name: str
    last_connection_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeviceIdRead(BaseModel):
    device_id: str


class DeviceStatusRead(BaseModel):
    device_id: str
    status: str  # offline | online | privacy
    has_active_session: bool
    privacy_active: bool
    privacy_remaining_seconds: int = 0
