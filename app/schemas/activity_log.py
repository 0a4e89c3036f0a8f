from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class ActivityLogRead(BaseModel):
    id: int
    device_id: str
    parent_id: str
    session_id: str
    action: str
    status: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    details: Dict[str, Any] = {}

    class Config:
        from_attributes = True
