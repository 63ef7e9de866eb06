import os

# Set TESTING before any libris imports
os.environ["TESTING"] = "true"

import datetime
import itertools
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from libris.core.db import Base
from libris.core.models import (
    User,
    Document,
    Book,
    BookRequest,
    UserRole,
    DocumentType,
    SubmissionStatus,
    RequestStatus,
)
from libris.core.utils import utcnow
from libris.schemas.user import CurrentUser


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(autoflush=False, bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)


def as_current(user):
    return CurrentUser(id=user.id, role=user.user_role)


def make_user(db, name, role, **kwargs):
    user = User(
        full_name=name,
        email=f"{name.lower().replace(' ', '.')}@university.edu",
        user_role=role,
        **kwargs
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def student(db_session):
    return make_user(db_session, "Ana Reyes", UserRole.STUDENT, student_id="2021-0001")


@pytest.fixture
def other_student(db_session):
    return make_user(db_session, "Ben Cruz", UserRole.STUDENT, student_id="2021-0002")


@pytest.fixture
def staff(db_session):
    return make_user(db_session, "Carla Staff", UserRole.STAFF)


@pytest.fixture
def admin(db_session):
    return make_user(db_session, "Dan Admin", UserRole.ADMIN)


@pytest.fixture
def super_admin(db_session):
    return make_user(db_session, "Eve Root", UserRole.SUPER_ADMIN)


def make_document(db, owner, **kwargs):
    values = dict(
        title="Soil Salinity Mapping in Coastal Farms",
        document_type=DocumentType.THESIS,
        student_id=owner.id,
        submission_status=SubmissionStatus.PUBLISHED,
        published_at=utcnow() - datetime.timedelta(days=1),
    )
    values.update(kwargs)
    document = Document(**values)
    db.add(document)
    db.commit()
    return document


def make_book(db, copies=5, available=None, **kwargs):
    book = Book(
        books_name="Introduction to Algorithms",
        author_name="Cormen",
        isbn="9780262046305",
        total_copies=copies,
        available_copies=copies if available is None else available,
        **kwargs
    )
    db.add(book)
    db.commit()
    return book


_tracking = itertools.count(1)


def make_request(db, student, book, staff=None, quantity=1,
                 status=RequestStatus.UNDER_REVIEW):
    request = BookRequest(
        student_id=student.id,
        staff_id=staff.id if staff else None,
        book_id=book.id,
        tracking_number=f"BR-TEST-{next(_tracking):04d}",
        quantity=quantity,
        status=status,
    )
    db.add(request)
    db.commit()
    return request
