from pydantic import BaseModel, Field

from app.core.config import settings


class PrivacyEnableRequest(BaseModel):
    minutes: int = Field(
        settings.PRIVACY_DEFAULT_MINUTES,
        ge=1,
        le=settings.PRIVACY_MAX_MINUTES,
    )


class PrivacyWindowRead(BaseModel):
    device_id: str
    active: bool
    remaining_seconds: int

    class Config:
        from_attributes = True
