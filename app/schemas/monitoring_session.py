from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SessionStartRequest(BaseModel):
    parent_id: str = Field(..., min_length=1, max_length=64)


class SessionStartRead(BaseModel):
    session_id: str
    device_id: str
    parent_id: str
    started_at: datetime


class SessionEndRequest(BaseModel):
    # quem encerrou: pai (default) ou o próprio filho no device
    ended_by: Literal["parent", "child"] = "parent"


class SessionEndRead(BaseModel):
    session_id: str
    device_id: str
    duration_seconds: int
    ended_at: datetime
    device_status: str


class SessionActiveRead(BaseModel):
    device_id: str
    active: bool
    session_id: Optional[str] = None
    parent_id: Optional[str] = None
    started_at: Optional[datetime] = None


class SessionValidRead(BaseModel):
    device_id: str
    session_id: str
    valid: bool


class MonitoringSessionRead(BaseModel):
    id: int
    session_id: str
    device_id: str
    parent_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    ended_by: Optional[str] = None

    class Config:
        from_attributes = True


class RefusalRead(BaseModel):
    error: str
    code: str
