from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

class TimeLimitRequest(BaseModel):
    time_limit_minutes: Optional[int] = None

class MaxAttemptsRequest(BaseModel):
    max_attempts: Optional[int] = None

class BookRequestCreate(BaseModel):
    quantity: int = 1

class ApproveRequest(BaseModel):
    staff_id: int
    due_date: datetime

class VerifyReturnRequest(BaseModel):
    damaged_quantity: int = 0
    lost_quantity: int = 0
    received_quantity: int = 0
    damage_description: Optional[str] = None
    fine_amount: Optional[Decimal] = Field(
        None, description="Charged per damaged or lost copy")
    due_date: Optional[datetime] = None
