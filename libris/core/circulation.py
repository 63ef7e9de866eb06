#!/usr/bin/env python

"""
    Book circulation for Libris: borrow requests, returns, staff
    verification of returned copies and the fines it produces.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from decimal import Decimal, InvalidOperation
from libris.configs import FINE_DUE_DAYS
from libris.core.db import atomic
from libris.core.models import (
    User,
    Book,
    BookRequest,
    BookFine,
    UserRole,
    RequestStatus,
    BookStatus,
    FineStatus,
    FineReason,
)
from libris.core.utils import utcnow, to_naive_utc, make_tracking_number
from libris.core.exceptions import (
    BookNotFoundError,
    RequestNotFoundError,
    FineNotFoundError,
    NotEligibleError,
    QuantityMismatchError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

STAFF_ROLES = (UserRole.STAFF, UserRole.ADMIN, UserRole.SUPER_ADMIN)


def _plural(n):
    return "" if n == 1 else "s"


class Circulation:

    FINE_DUE = datetime.timedelta(days=FINE_DUE_DAYS)

    @classmethod
    def create_request(cls, db, student_id, book_id, quantity=1, now=None):
        """Files a Pending borrow request for `quantity` copies of a book."""
        now = now or utcnow()
        if quantity < 1:
            raise InvalidInputError("Quantity must be at least 1.")

        book = Book.get(db, book_id)
        if not book:
            raise BookNotFoundError
        if not book.is_requestable:
            raise NotEligibleError("This book is not available for borrowing.")
        if book.available_copies <= 0:
            raise NotEligibleError("No copies available for this book.")
        if quantity > book.available_copies:
            raise NotEligibleError(
                f"You can only request up to {book.available_copies} copy/copies. "
                f"Only {book.available_copies} available.")

        existing = db.query(BookRequest).filter(
            BookRequest.student_id == student_id,
            BookRequest.book_id == book_id,
            BookRequest.status.in_(BookRequest.ACTIVE)
        ).first()
        if existing:
            raise NotEligibleError("You already have an active request for this book.")

        with atomic(db, "create book request"):
            request = BookRequest(
                student_id=student_id,
                book_id=book_id,
                tracking_number=make_tracking_number(now),
                quantity=quantity,
                status=RequestStatus.PENDING,
                request_date=now,
            )
            db.add(request)
        return request

    @classmethod
    def approve_request(cls, db, request_id, staff_id, due_date, now=None):
        """Approves a Pending request, assigns it to staff and takes the copies."""
        now = now or utcnow()
        request = BookRequest.get(db, request_id)
        if not request:
            raise RequestNotFoundError
        if request.status is not RequestStatus.PENDING:
            raise NotEligibleError(
                f"Cannot approve request with status: {request.status.value}. "
                "Only pending requests can be approved.")

        staff = User.get(db, staff_id)
        if not staff or staff.user_role not in STAFF_ROLES:
            raise NotEligibleError("Staff member not found.")
        if not staff.is_active:
            raise NotEligibleError("Selected staff member is not active.")

        due_date = to_naive_utc(due_date)
        if due_date <= now:
            raise InvalidInputError("Due date must be in the future.")

        quantity = request.total_quantity
        with atomic(db, "approve book request"):
            if not request.book.withdraw(db, quantity):
                raise NotEligibleError(
                    f"Not enough copies available. Only {request.book.available_copies} "
                    f"copy/copies available, but {quantity} requested.")
            if not request.advance(
                    db, RequestStatus.APPROVED,
                    staff_id=staff_id, approved_date=now, due_date=due_date):
                raise NotEligibleError("Request was updated by someone else.")
        return request

    @classmethod
    def return_book(cls, db, request_id, student_id, now=None):
        """Student hands the copies back; staff verification follows."""
        now = now or utcnow()
        request = db.query(BookRequest).filter(
            BookRequest.id == request_id,
            BookRequest.student_id == student_id
        ).first()
        if not request:
            raise RequestNotFoundError(
                "Request not found or you don't have permission to return it.")
        if request.status not in BookRequest.RETURNABLE:
            raise NotEligibleError(
                f"Cannot return book with status: {request.status.value}. "
                "Only approved or borrowed books can be returned.")

        with atomic(db, "return book"):
            if not request.advance(db, RequestStatus.UNDER_REVIEW, return_date=now):
                raise NotEligibleError("Request was updated by someone else.")
        return request

    @classmethod
    def cancel_request(cls, db, request_id, student_id):
        request = db.query(BookRequest).filter(
            BookRequest.id == request_id,
            BookRequest.student_id == student_id
        ).first()
        if not request:
            raise RequestNotFoundError(
                "Request not found or you don't have permission to cancel it.")
        if request.status is not RequestStatus.PENDING:
            raise NotEligibleError(
                f"Cannot cancel request with status: {request.status.value}. "
                "Only pending requests can be canceled.")

        with atomic(db, "cancel book request"):
            db.delete(request)

    @staticmethod
    def _fine_rate(value):
        if value is None:
            return None
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            raise InvalidInputError(f"Invalid fine amount: {value}")
        if not rate.is_finite():
            raise InvalidInputError(f"Invalid fine amount: {value}")
        return rate

    @classmethod
    def validate_split(cls, total, damaged_qty, lost_qty, received_qty,
                       damage_description=None, fine_amount_per_book=None):
        """Checks that a damaged/lost/received split accounts for every copy."""
        if min(damaged_qty, lost_qty, received_qty) < 0:
            raise QuantityMismatchError("Quantities cannot be negative.")
        if damaged_qty + lost_qty + received_qty != total:
            raise QuantityMismatchError(
                f"Quantities don't match. Total: {total}, Damaged: {damaged_qty}, "
                f"Lost: {lost_qty}, Received: {received_qty}")
        if damaged_qty or lost_qty:
            rate = cls._fine_rate(fine_amount_per_book)
            if rate is None or rate <= 0:
                raise QuantityMismatchError(
                    "A positive fine amount per book is required for damaged or lost books.")
            if not (damage_description or "").strip():
                raise QuantityMismatchError(
                    "A description is required for damaged or lost books.")

    @staticmethod
    def unrecovered_status(damaged_qty, lost_qty):
        """Book status when nothing came back.

        Loss wins over damage when both occur; the single status field can
        only hold one.
        """
        if lost_qty:
            return BookStatus.LOST
        if damaged_qty:
            return BookStatus.DAMAGED
        return None

    @classmethod
    def verify_return(cls, db, request_id, staff_id, damaged_qty=0, lost_qty=0,
                      received_qty=0, damage_description=None,
                      fine_amount_per_book=None, due_date=None, now=None):
        """
        Settles a returned request: fines for damaged and lost copies,
        received copies back on the shelf, request closed out.

        Returns:
            Human-readable summary of what was recorded.

        Raises:
            NotEligibleError: Request missing, assigned elsewhere, not awaiting
                verification, or already verified.
            QuantityMismatchError: The split does not add up, or fine details
                are missing for damaged/lost copies.
        """
        now = now or utcnow()
        request = db.query(BookRequest).filter(
            BookRequest.id == request_id,
            BookRequest.staff_id == staff_id,
            BookRequest.status.in_(BookRequest.VERIFIABLE),
            BookRequest.verified_at == None
        ).first()
        if not request:
            raise NotEligibleError(
                "Request not found or not available for verification.")

        damaged_qty = damaged_qty or 0
        lost_qty = lost_qty or 0
        received_qty = received_qty or 0
        total = request.total_quantity
        cls.validate_split(total, damaged_qty, lost_qty, received_qty,
                           damage_description, fine_amount_per_book)

        rate = cls._fine_rate(fine_amount_per_book) if damaged_qty or lost_qty else None
        due = to_naive_utc(due_date) if due_date else now + cls.FINE_DUE
        book = request.book

        with atomic(db, "verify book return"):
            status = RequestStatus.RECEIVED if received_qty else RequestStatus.RETURNED
            if not request.advance(db, status, BookRequest.verified_at == None, verified_at=now):
                raise NotEligibleError(
                    "Request not found or not available for verification.")

            for reason, quantity in ((FineReason.DAMAGED, damaged_qty), (FineReason.LOST, lost_qty)):
                if quantity:
                    db.add(BookFine(
                        student_id=request.student_id,
                        book_id=request.book_id,
                        request_id=request.id,
                        fine_amount=rate * quantity,
                        quantity=quantity,
                        reason=reason,
                        status=FineStatus.UNPAID,
                        description=damage_description.strip(),
                        due_date=due,
                        created_by_staff_id=staff_id,
                    ))

            if received_qty:
                book.restock(db, received_qty, restore=received_qty == total)
            elif settled := cls.unrecovered_status(damaged_qty, lost_qty):
                book.transition(settled)

        logger.info(
            f"Verified request {request_id}: received={received_qty} "
            f"damaged={damaged_qty} lost={lost_qty}")

        if received_qty and (damaged_qty or lost_qty):
            message = f"{received_qty} book{_plural(received_qty)} received successfully. "
            if damaged_qty:
                message += f"{damaged_qty} damaged. "
            if lost_qty:
                message += f"{lost_qty} lost. "
            return message + "Fine has been issued."
        if received_qty:
            return (f"{received_qty} book{_plural(received_qty)} verified and "
                    "marked as received successfully.")
        return "Book verified. Fine has been issued."

    @classmethod
    def mark_fine_as_paid(cls, db, fine_id, staff_id, now=None):
        now = now or utcnow()
        fine = db.query(BookFine).filter(
            BookFine.id == fine_id,
            BookFine.created_by_staff_id == staff_id,
            BookFine.status.in_(BookFine.OUTSTANDING)
        ).with_for_update().first()
        if not fine:
            raise FineNotFoundError

        with atomic(db, "mark fine as paid"):
            fine.transition(FineStatus.PAID)
            fine.paid_date = now
        return fine

    @classmethod
    def assigned_requests(cls, db, staff_id):
        """Requests assigned to a staff member that have not produced a fine."""
        return db.query(BookRequest).filter(
            BookRequest.staff_id == staff_id,
            ~BookRequest.fines.any()
        ).order_by(BookRequest.request_date.desc(), BookRequest.id.desc()).all()

    @classmethod
    def requests_for_student(cls, db, student_id):
        return db.query(BookRequest).filter(
            BookRequest.student_id == student_id
        ).order_by(BookRequest.created_at.desc(), BookRequest.id.desc()).all()

    @classmethod
    def all_requests(cls, db, status=None):
        """Every request, newest first; optionally only those in `status`."""
        query = db.query(BookRequest)
        if status is not None:
            query = query.filter(BookRequest.status == RequestStatus(status))
        return query.order_by(BookRequest.created_at.desc(), BookRequest.id.desc()).all()

    @classmethod
    def fines_issued_by(cls, db, staff_id):
        return db.query(BookFine).filter(
            BookFine.created_by_staff_id == staff_id
        ).order_by(BookFine.created_at.desc(), BookFine.id.desc()).all()

    @classmethod
    def fines_for_student(cls, db, student_id):
        return db.query(BookFine).filter(
            BookFine.student_id == student_id
        ).order_by(BookFine.created_at.desc(), BookFine.id.desc()).all()
