from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from libris.core.models import RequestStatus, BookStatus, FineStatus, FineReason
from libris.schemas.user import Reader

class BookSummary(BaseModel):
    id: int
    books_name: str
    author_name: Optional[str] = None
    isbn: Optional[str] = None
    total_copies: int
    available_copies: int
    status: BookStatus

    class Config:
        from_attributes = True

class BookRequestRecord(BaseModel):
    id: int
    tracking_number: str
    quantity: Optional[int] = 1
    status: RequestStatus
    request_date: Optional[datetime] = None
    approved_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    has_fine: bool = False
    student: Reader
    staff: Optional[Reader] = None
    book: BookSummary

    class Config:
        from_attributes = True

class BookFineRecord(BaseModel):
    id: int
    student_id: int
    book_id: int
    request_id: int
    fine_amount: float
    quantity: int
    reason: FineReason
    status: FineStatus
    description: Optional[str] = None
    due_date: datetime
    paid_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    student: Reader
    book: BookSummary

    class Config:
        from_attributes = True
