from pydantic import BaseModel
from typing import Optional
from libris.core.models import UserRole

class CurrentUser(BaseModel):
    """Identity of the caller as vouched for by the session token."""
    id: int
    role: UserRole

    @property
    def is_student(self):
        return self.role is UserRole.STUDENT

class Reader(BaseModel):
    id: int
    full_name: str
    email: str
    student_id: Optional[str] = None

    class Config:
        from_attributes = True
