#!/usr/bin/env python

"""
    Models for Libris,
    including users, published documents with their reading sessions and
    access cooldowns, and the book circulation tables.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from sqlalchemy import (
    Column, String, Text, Boolean, Integer, Numeric, DateTime,
    ForeignKey, UniqueConstraint, Index, Enum as SQLAlchemyEnum, update
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
from libris.core.db import Base
from libris.core.utils import utcnow
from libris.core.exceptions import InvalidTransitionError, DatabaseInsertError
import enum


def _enum(cls, name):
    """Stores the enum's value (e.g. "Not Available") rather than its name."""
    return SQLAlchemyEnum(
        cls, name=name, native_enum=False, length=32,
        values_callable=lambda members: [m.value for m in members])


class UserRole(enum.Enum):
    SUPER_ADMIN = "Super_Admin"
    ADMIN = "Admin"
    STAFF = "Staff"
    STUDENT = "Student"

    @property
    def is_privileged(self):
        """Admins, super admins and staff are never gated by document limits."""
        return self is not UserRole.STUDENT

class UserStatus(enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"

class DocumentType(enum.Enum):
    THESIS = "Thesis"
    JOURNAL = "Journal"
    CAPSTONE = "Capstone"

class SubmissionStatus(enum.Enum):
    PENDING = "Pending"
    UNDER_REVIEW = "Under_Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PUBLISHED = "Published"

class RequestStatus(enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    BORROWED = "Borrowed"
    RETURNED = "Returned"
    UNDER_REVIEW = "Under_Review"
    RECEIVED = "Received"
    OVERDUE = "Overdue"
    REJECTED = "Rejected"

class BookStatus(enum.Enum):
    AVAILABLE = "Available"
    NOT_AVAILABLE = "Not Available"
    LOST = "Lost"
    DAMAGED = "Damaged"

class FineStatus(enum.Enum):
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially_Paid"
    PAID = "Paid"
    WAIVED = "Waived"

class FineReason(enum.Enum):
    DAMAGED = "Damaged"
    LOST = "Lost"


# Legal state moves per entity; anything absent is rejected.
REQUEST_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.APPROVED, RequestStatus.REJECTED},
    RequestStatus.APPROVED: {
        RequestStatus.BORROWED, RequestStatus.UNDER_REVIEW, RequestStatus.OVERDUE},
    RequestStatus.BORROWED: {RequestStatus.UNDER_REVIEW, RequestStatus.OVERDUE},
    RequestStatus.OVERDUE: {RequestStatus.UNDER_REVIEW},
    RequestStatus.UNDER_REVIEW: {RequestStatus.RECEIVED, RequestStatus.RETURNED},
    # A request already marked Returned is still settled exactly once by staff
    RequestStatus.RETURNED: {RequestStatus.RECEIVED, RequestStatus.RETURNED},
    RequestStatus.RECEIVED: set(),
    RequestStatus.REJECTED: set(),
}

BOOK_TRANSITIONS = {
    BookStatus.AVAILABLE: {
        BookStatus.AVAILABLE, BookStatus.NOT_AVAILABLE,
        BookStatus.LOST, BookStatus.DAMAGED},
    BookStatus.NOT_AVAILABLE: {
        BookStatus.AVAILABLE, BookStatus.NOT_AVAILABLE,
        BookStatus.LOST, BookStatus.DAMAGED},
    BookStatus.LOST: {BookStatus.AVAILABLE, BookStatus.LOST, BookStatus.DAMAGED},
    BookStatus.DAMAGED: {BookStatus.AVAILABLE, BookStatus.DAMAGED, BookStatus.LOST},
}

FINE_TRANSITIONS = {
    FineStatus.UNPAID: {FineStatus.PARTIALLY_PAID, FineStatus.PAID, FineStatus.WAIVED},
    FineStatus.PARTIALLY_PAID: {FineStatus.PAID, FineStatus.WAIVED},
    FineStatus.PAID: set(),
    FineStatus.WAIVED: set(),
}

def check_transition(table, current, target):
    if target not in table.get(current, ()):
        raise InvalidTransitionError(
            f"Cannot move from {current.value} to {target.value}.")
    return target


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    student_id = Column(String(50))
    user_role = Column(_enum(UserRole, 'user_role'), nullable=False)
    status = Column(_enum(UserStatus, 'user_status'), default=UserStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_active(self):
        return self.status == UserStatus.ACTIVE


class Document(Base):
    __tablename__ = 'documents'

    id = Column(Integer, primary_key=True)
    title = Column(String(500), nullable=False)
    document_type = Column(_enum(DocumentType, 'document_type'), nullable=False)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    submission_status = Column(
        _enum(SubmissionStatus, 'submission_status'),
        default=SubmissionStatus.PENDING, nullable=False)
    published_at = Column(DateTime)
    is_restricted = Column(Boolean, default=False, nullable=False)
    time_limit_minutes = Column(Integer)
    max_attempts = Column(Integer)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship('User')

    @hybrid_property
    def is_published(self):
        return self.submission_status == SubmissionStatus.PUBLISHED and self.published_at is not None

    @is_published.expression
    def is_published(cls):
        return (cls.submission_status == SubmissionStatus.PUBLISHED) & cls.published_at.isnot(None)

    @classmethod
    def published(cls, db):
        return db.query(cls).filter(cls.is_published).order_by(cls.published_at.desc())

    def is_owned_by(self, user_id):
        return self.student_id == user_id


class ReadingSession(Base):
    __tablename__ = 'reading_sessions'

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey('documents.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    ended_at = Column(DateTime)
    duration_minutes = Column(Integer)
    # Copied from the document when the session opens
    time_limit_minutes = Column(Integer)
    was_time_limit_exceeded = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        # At most one open session per reader and document
        Index(
            'uq_open_session', 'document_id', 'user_id', unique=True,
            postgresql_where=ended_at.is_(None),
            sqlite_where=ended_at.is_(None),
        ),
    )

    document = relationship('Document')
    user = relationship('User')

    @hybrid_property
    def is_open(self):
        return self.ended_at == None

    @classmethod
    def open_for(cls, db, document_id, user_id):
        """Most recent session still open for this reader, if any."""
        return db.query(cls).filter(
            cls.document_id == document_id,
            cls.user_id == user_id,
            cls.ended_at == None
        ).order_by(cls.started_at.desc(), cls.id.desc()).first()

    @classmethod
    def completed_count(cls, db, document_id, user_id):
        """Attempts used: only sessions that have been ended count."""
        return db.query(cls).filter(
            cls.document_id == document_id,
            cls.user_id == user_id,
            cls.ended_at != None
        ).count()

    def close(self, db, ended_at, duration_minutes, exceeded):
        """Closes the session unless another request already did.

        Returns True when this call performed the close.
        """
        result = db.execute(
            update(ReadingSession)
            .where(ReadingSession.id == self.id, ReadingSession.ended_at == None)
            .values(
                ended_at=ended_at,
                duration_minutes=duration_minutes,
                was_time_limit_exceeded=exceeded,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class AccessCooldown(Base):
    __tablename__ = 'access_cooldowns'
    __table_args__ = (
        UniqueConstraint('document_id', 'user_id', name='uq_cooldown_document_user'),
    )

    UPSERTS = {
        'postgresql': postgresql.insert,
        'sqlite': sqlite.insert,
    }

    id = Column(Integer, primary_key=True)
    document_id = Column(Integer, ForeignKey('documents.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    cooldown_until = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @classmethod
    def find(cls, db, document_id, user_id):
        return db.query(cls).filter(
            cls.document_id == document_id,
            cls.user_id == user_id
        ).first()

    @classmethod
    def extend(cls, db, document_id, user_id, until):
        """Creates or moves the (document, user) cooldown in one statement."""
        insert = cls.UPSERTS.get(db.get_bind().dialect.name)
        if insert is None:
            raise DatabaseInsertError(
                f"No upsert support for {db.get_bind().dialect.name}")
        stmt = insert(cls).values(
            document_id=document_id, user_id=user_id, cooldown_until=until)
        stmt = stmt.on_conflict_do_update(
            index_elements=['document_id', 'user_id'],
            set_={
                'cooldown_until': stmt.excluded.cooldown_until,
                'updated_at': utcnow(),
            }
        )
        db.execute(stmt)

    def is_active(self, now):
        # Expiring exactly at `now` counts as expired
        return self.cooldown_until > now


class Book(Base):
    __tablename__ = 'books'

    id = Column(Integer, primary_key=True)
    books_name = Column(String(500), nullable=False)
    author_name = Column(String(255))
    isbn = Column(String(32))
    total_copies = Column(Integer, default=1, nullable=False)
    available_copies = Column(Integer, default=1, nullable=False)
    status = Column(_enum(BookStatus, 'book_status'), default=BookStatus.AVAILABLE, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_requestable(self):
        return self.status in (BookStatus.AVAILABLE, BookStatus.NOT_AVAILABLE)

    def transition(self, status):
        self.status = check_transition(BOOK_TRANSITIONS, self.status, status)
        return self

    def restock(self, db, quantity, restore=False):
        """Adds `quantity` copies back in a single UPDATE.

        With `restore`, the book is also marked Available.
        """
        values = {'available_copies': Book.available_copies + quantity}
        if restore:
            values['status'] = check_transition(
                BOOK_TRANSITIONS, self.status, BookStatus.AVAILABLE)
        db.execute(
            update(Book).where(Book.id == self.id).values(**values)
            .execution_options(synchronize_session=False))

    def withdraw(self, db, quantity):
        """Takes `quantity` copies off the shelf unless fewer are left.

        Returns False when another request got to the copies first.
        """
        result = db.execute(
            update(Book)
            .where(Book.id == self.id, Book.available_copies >= quantity)
            .values(available_copies=Book.available_copies - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        db.refresh(self)
        if self.available_copies <= 0:
            self.transition(BookStatus.NOT_AVAILABLE)
        return True


class BookRequest(Base):
    __tablename__ = 'book_requests'

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    staff_id = Column(Integer, ForeignKey('users.id'))
    book_id = Column(Integer, ForeignKey('books.id'), nullable=False)
    tracking_number = Column(String(32), unique=True, nullable=False)
    quantity = Column(Integer, default=1)
    status = Column(_enum(RequestStatus, 'request_status'), default=RequestStatus.PENDING, nullable=False)
    request_date = Column(DateTime, default=utcnow)
    approved_date = Column(DateTime)
    due_date = Column(DateTime)
    return_date = Column(DateTime)
    verified_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    student = relationship('User', foreign_keys=[student_id])
    staff = relationship('User', foreign_keys=[staff_id])
    book = relationship('Book')
    fines = relationship('BookFine', back_populates='request', cascade='all, delete-orphan')

    ACTIVE = (RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.BORROWED)
    RETURNABLE = (RequestStatus.APPROVED, RequestStatus.BORROWED)
    VERIFIABLE = (RequestStatus.UNDER_REVIEW, RequestStatus.RETURNED)

    @property
    def total_quantity(self):
        return self.quantity or 1

    @property
    def has_fine(self):
        return bool(self.fines)

    def advance(self, db, status, *criteria, **values):
        """Compare-and-swap the request into `status`.

        The UPDATE only matches while the row still holds the status this
        object was loaded with (plus any extra `criteria`), so of two racing
        writers exactly one wins. Returns True for the winner.
        """
        check_transition(REQUEST_TRANSITIONS, self.status, status)
        result = db.execute(
            update(BookRequest)
            .where(BookRequest.id == self.id, BookRequest.status == self.status, *criteria)
            .values(status=status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class BookFine(Base):
    __tablename__ = 'book_fines'

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    book_id = Column(Integer, ForeignKey('books.id'), nullable=False)
    request_id = Column(Integer, ForeignKey('book_requests.id', ondelete='CASCADE'), nullable=False)
    fine_amount = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    reason = Column(_enum(FineReason, 'fine_reason'), nullable=False)
    status = Column(_enum(FineStatus, 'fine_status'), default=FineStatus.UNPAID, nullable=False)
    description = Column(Text)
    due_date = Column(DateTime, nullable=False)
    paid_date = Column(DateTime)
    created_by_staff_id = Column(Integer, ForeignKey('users.id'))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    request = relationship('BookRequest', back_populates='fines')
    student = relationship('User', foreign_keys=[student_id])
    book = relationship('Book')

    OUTSTANDING = (FineStatus.UNPAID, FineStatus.PARTIALLY_PAID)

    def transition(self, status):
        self.status = check_transition(FINE_TRANSITIONS, self.status, status)
        return self
