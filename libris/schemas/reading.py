from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from libris.schemas.user import Reader

class ReadingSessionRecord(BaseModel):
    id: int
    user: Reader
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    was_time_limit_exceeded: bool = False

    class Config:
        from_attributes = True
