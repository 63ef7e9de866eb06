#!/usr/bin/env python

"""
    API routes for Libris,
    covering document previews, reading sessions and book circulation.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from libris.core.db import get_db
from libris.core.api import LibrisAPI
from libris.core.models import RequestStatus
from libris.routes.schemas import (
    TimeLimitRequest,
    MaxAttemptsRequest,
    BookRequestCreate,
    ApproveRequest,
    VerifyReturnRequest,
)
from libris.schemas.user import CurrentUser
from libris.utils.auth import (
    current_user,
    require_student,
    require_staff_or_above,
    require_admin_or_super_admin,
    require_super_admin,
)

router = APIRouter()

STATUS_CODES = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "Unauthorized": status.HTTP_403_FORBIDDEN,
    "RestrictedAccessDenied": status.HTTP_403_FORBIDDEN,
    "CooldownActive": status.HTTP_429_TOO_MANY_REQUESTS,
    "MaxAttemptsReached": status.HTTP_429_TOO_MANY_REQUESTS,
    "QuantityMismatch": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "InvalidInput": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "NotEligible": status.HTTP_409_CONFLICT,
    "DatabaseError": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

def respond(result):
    """Maps an action result onto an HTTP status by its `reason`."""
    code = status.HTTP_200_OK
    if isinstance(result, dict) and "reason" in result:
        code = STATUS_CODES.get(result["reason"], status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content=result)

@router.get("/health")
async def health():
    return {"status": "ok"}

# Document previews

@router.get("/documents/{document_id}")
def published_document(document_id: int, db: Session = Depends(get_db),
                       user: CurrentUser = Depends(current_user)):
    return respond(LibrisAPI.get_published_document(db, document_id, user))

@router.post("/documents/{document_id}/sessions")
def start_reading_session(document_id: int, db: Session = Depends(get_db),
                          user: CurrentUser = Depends(current_user)):
    return respond(LibrisAPI.start_reading_session(db, document_id, user))

@router.post("/sessions/{session_id}/end")
def end_reading_session(session_id: int, db: Session = Depends(get_db),
                        user: CurrentUser = Depends(current_user)):
    return respond(LibrisAPI.end_reading_session(db, session_id, user))

@router.get("/documents/{document_id}/access")
def check_document_access(document_id: int, db: Session = Depends(get_db),
                          user: CurrentUser = Depends(current_user)):
    return respond(LibrisAPI.check_document_access(db, document_id, user))

@router.get("/documents/{document_id}/sessions/stats")
def reading_session_stats(document_id: int, db: Session = Depends(get_db),
                          user: CurrentUser = Depends(require_admin_or_super_admin)):
    return respond(LibrisAPI.get_reading_session_stats(db, document_id))

@router.post("/documents/{document_id}/restriction")
def toggle_document_restriction(document_id: int, db: Session = Depends(get_db),
                                user: CurrentUser = Depends(require_super_admin)):
    return respond(LibrisAPI.toggle_document_restriction(db, document_id))

@router.put("/documents/{document_id}/time-limit")
def set_document_time_limit(document_id: int, body: TimeLimitRequest,
                            db: Session = Depends(get_db),
                            user: CurrentUser = Depends(require_super_admin)):
    return respond(LibrisAPI.set_document_time_limit(
        db, document_id, body.time_limit_minutes))

@router.put("/documents/{document_id}/max-attempts")
def set_document_max_attempts(document_id: int, body: MaxAttemptsRequest,
                              db: Session = Depends(get_db),
                              user: CurrentUser = Depends(require_super_admin)):
    return respond(LibrisAPI.set_document_max_attempts(
        db, document_id, body.max_attempts))

@router.get("/student/documents")
def published_documents(db: Session = Depends(get_db),
                        user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.get_published_documents_for_student(db, user))

@router.get("/student/documents/{document_id}/access")
def check_document_access_for_student(document_id: int, db: Session = Depends(get_db),
                                      user: CurrentUser = Depends(current_user)):
    return respond(LibrisAPI.check_document_access_for_student(db, document_id, user))

@router.get("/student/documents/{document_id}/attempts")
def student_attempt_count(document_id: int, db: Session = Depends(get_db),
                          user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.get_student_attempt_count(db, document_id, user))

# Circulation

@router.post("/books/{book_id}/requests")
def create_book_request(book_id: int, body: BookRequestCreate,
                        db: Session = Depends(get_db),
                        user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.create_book_request(db, book_id, user, body.quantity))

@router.get("/student/requests")
def student_book_requests(db: Session = Depends(get_db),
                          user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.get_student_book_requests(db, user))

@router.get("/requests")
def all_book_requests(request_status: Optional[RequestStatus] = Query(None, alias="status"),
                      db: Session = Depends(get_db),
                      user: CurrentUser = Depends(require_admin_or_super_admin)):
    return respond(LibrisAPI.get_all_book_requests(db, request_status))

@router.post("/requests/{request_id}/approve")
def approve_book_request(request_id: int, body: ApproveRequest,
                         db: Session = Depends(get_db),
                         user: CurrentUser = Depends(require_admin_or_super_admin)):
    return respond(LibrisAPI.approve_book_request(
        db, request_id, body.staff_id, body.due_date))

@router.post("/requests/{request_id}/return")
def return_book(request_id: int, db: Session = Depends(get_db),
                user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.return_book(db, request_id, user))

@router.delete("/requests/{request_id}")
def cancel_book_request(request_id: int, db: Session = Depends(get_db),
                        user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.cancel_book_request(db, request_id, user))

@router.post("/requests/{request_id}/verify")
def verify_book_return(request_id: int, body: VerifyReturnRequest,
                       db: Session = Depends(get_db),
                       user: CurrentUser = Depends(require_staff_or_above)):
    return respond(LibrisAPI.verify_book_return(
        db, request_id, user,
        damaged_quantity=body.damaged_quantity,
        lost_quantity=body.lost_quantity,
        received_quantity=body.received_quantity,
        damage_description=body.damage_description,
        fine_amount=body.fine_amount,
        due_date=body.due_date,
    ))

@router.get("/staff/requests")
def assigned_book_requests(db: Session = Depends(get_db),
                           user: CurrentUser = Depends(require_staff_or_above)):
    return respond(LibrisAPI.get_assigned_book_requests(db, user))

@router.get("/staff/fines")
def books_with_fines(db: Session = Depends(get_db),
                     user: CurrentUser = Depends(require_staff_or_above)):
    return respond(LibrisAPI.get_books_with_fines(db, user))

@router.post("/fines/{fine_id}/pay")
def mark_fine_as_paid(fine_id: int, db: Session = Depends(get_db),
                      user: CurrentUser = Depends(require_staff_or_above)):
    return respond(LibrisAPI.mark_fine_as_paid(db, fine_id, user))

@router.get("/student/fines")
def student_fines(db: Session = Depends(get_db),
                  user: CurrentUser = Depends(require_student)):
    return respond(LibrisAPI.get_student_fines(db, user))
