from pydantic import BaseModel
from typing import Optional

class AccessDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    cooldown_hours_remaining: Optional[int] = None
