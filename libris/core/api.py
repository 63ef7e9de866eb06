#!/usr/bin/env python

"""
    LibrisAPI, the action layer behind every route.

    Each action runs one operation against the engines and reports the
    outcome as a plain dict. Failures come back as values carrying a
    `reason` code; LibrisAPIError never escapes this class.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from libris.core.access import AccessPolicy
from libris.core.reading import ReadingTracker
from libris.core.circulation import Circulation
from libris.core.documents import Documents
from libris.core.exceptions import LibrisAPIError, UnauthorizedError
from libris.schemas.circulation import BookRequestRecord, BookFineRecord

logger = logging.getLogger(__name__)


def _failure(e: LibrisAPIError, key: str = "error", **extra) -> dict:
    return {"success": False, key: e.message, "reason": e.reason, **e.context, **extra}


class LibrisAPI:

    # Reading sessions & document access

    @classmethod
    def start_reading_session(cls, db, document_id: int, user) -> dict:
        try:
            reading = ReadingTracker.start(db, document_id, user)
        except LibrisAPIError as e:
            return _failure(e)
        return {"success": True, "session_id": reading.id}

    @classmethod
    def end_reading_session(cls, db, session_id: int, user) -> dict:
        try:
            reading = ReadingTracker.end(db, session_id, user)
        except LibrisAPIError as e:
            return _failure(e)
        return {
            "success": True,
            "duration_minutes": reading.duration_minutes,
            "was_time_limit_exceeded": reading.was_time_limit_exceeded,
        }

    @classmethod
    def check_document_access(cls, db, document_id: int, user) -> dict:
        decision = AccessPolicy.evaluate(db, document_id, user)
        if decision.allowed:
            return {"has_access": True}
        result = {"has_access": False, "error": decision.message, "reason": decision.reason}
        if decision.cooldown_hours_remaining is not None:
            result["hours_remaining"] = decision.cooldown_hours_remaining
        return result

    @classmethod
    def check_document_access_for_student(cls, db, document_id: int, user) -> dict:
        try:
            if not user.is_student:
                raise UnauthorizedError
            AccessPolicy.enforce(db, document_id, user)
        except LibrisAPIError as e:
            in_cooldown = "hours_remaining" in e.context
            return _failure(e, is_in_cooldown=in_cooldown)
        return {"success": True, "can_access": True}

    @classmethod
    def get_reading_session_stats(cls, db, document_id: int) -> dict:
        return ReadingTracker.stats(db, document_id)

    @classmethod
    def get_published_document(cls, db, document_id: int, user) -> dict:
        try:
            document = Documents.published_document(db, document_id, user)
        except LibrisAPIError as e:
            return _failure(e)
        return {"success": True, "document": document}

    @classmethod
    def get_published_documents_for_student(cls, db, user) -> list:
        return Documents.published_for_student(db, user.id)

    @classmethod
    def get_student_attempt_count(cls, db, document_id: int, user) -> dict:
        return Documents.attempt_count(db, document_id, user.id)

    @classmethod
    def toggle_document_restriction(cls, db, document_id: int) -> dict:
        try:
            document = Documents.toggle_restriction(db, document_id)
        except LibrisAPIError as e:
            return _failure(e)
        return {"success": True, "is_restricted": document.is_restricted}

    @classmethod
    def set_document_time_limit(cls, db, document_id: int, minutes) -> dict:
        try:
            document = Documents.set_time_limit(db, document_id, minutes)
        except LibrisAPIError as e:
            return _failure(e)
        return {"success": True, "time_limit_minutes": document.time_limit_minutes}

    @classmethod
    def set_document_max_attempts(cls, db, document_id: int, max_attempts) -> dict:
        try:
            document = Documents.set_max_attempts(db, document_id, max_attempts)
        except LibrisAPIError as e:
            return _failure(e)
        return {"success": True, "max_attempts": document.max_attempts}

    # Circulation

    @classmethod
    def create_book_request(cls, db, book_id: int, user, quantity: int = 1) -> dict:
        try:
            request = Circulation.create_request(db, user.id, book_id, quantity)
        except LibrisAPIError as e:
            return _failure(e, key="message")
        return {
            "success": True,
            "message": f"Book request for {quantity} copy/copies submitted successfully!",
            "request": {"id": request.id, "tracking_number": request.tracking_number},
        }

    @classmethod
    def approve_book_request(cls, db, request_id: int, staff_id: int, due_date) -> dict:
        try:
            Circulation.approve_request(db, request_id, staff_id, due_date)
        except LibrisAPIError as e:
            return _failure(e, key="message")
        return {"success": True, "message": "Book request approved successfully."}

    @classmethod
    def return_book(cls, db, request_id: int, user) -> dict:
        try:
            Circulation.return_book(db, request_id, user.id)
        except LibrisAPIError as e:
            return _failure(e, key="message")
        return {
            "success": True,
            "message": "Book returned successfully. Waiting for staff verification.",
        }

    @classmethod
    def cancel_book_request(cls, db, request_id: int, user) -> dict:
        try:
            Circulation.cancel_request(db, request_id, user.id)
        except LibrisAPIError as e:
            return _failure(e, key="message")
        return {"success": True, "message": "Request canceled successfully."}

    @classmethod
    def verify_book_return(cls, db, request_id: int, user, damaged_quantity=0,
                           lost_quantity=0, received_quantity=0,
                           damage_description=None, fine_amount=None,
                           due_date=None) -> dict:
        """`fine_amount` is charged per damaged or lost copy."""
        try:
            message = Circulation.verify_return(
                db, request_id, user.id,
                damaged_qty=damaged_quantity,
                lost_qty=lost_quantity,
                received_qty=received_quantity,
                damage_description=damage_description,
                fine_amount_per_book=fine_amount,
                due_date=due_date,
            )
        except LibrisAPIError as e:
            logger.info(f"Return verification for request {request_id} failed: {e}")
            return _failure(e, key="message")
        return {"success": True, "message": message}

    @classmethod
    def mark_fine_as_paid(cls, db, fine_id: int, user) -> dict:
        try:
            Circulation.mark_fine_as_paid(db, fine_id, user.id)
        except LibrisAPIError as e:
            return _failure(e, key="message")
        return {"success": True, "message": "Fine marked as paid successfully."}

    @classmethod
    def get_assigned_book_requests(cls, db, user) -> list:
        return [
            BookRequestRecord.model_validate(r).model_dump(mode="json")
            for r in Circulation.assigned_requests(db, user.id)
        ]

    @classmethod
    def get_student_book_requests(cls, db, user) -> list:
        return [
            BookRequestRecord.model_validate(r).model_dump(mode="json")
            for r in Circulation.requests_for_student(db, user.id)
        ]

    @classmethod
    def get_all_book_requests(cls, db, status=None) -> list:
        return [
            BookRequestRecord.model_validate(r).model_dump(mode="json")
            for r in Circulation.all_requests(db, status)
        ]

    @classmethod
    def get_books_with_fines(cls, db, user) -> list:
        return [
            BookFineRecord.model_validate(f).model_dump(mode="json")
            for f in Circulation.fines_issued_by(db, user.id)
        ]

    @classmethod
    def get_student_fines(cls, db, user) -> list:
        return [
            BookFineRecord.model_validate(f).model_dump(mode="json")
            for f in Circulation.fines_for_student(db, user.id)
        ]
