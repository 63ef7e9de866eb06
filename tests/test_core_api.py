#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_core_api
    ~~~~~~~~~~~~~~~~~~~

    The LibrisAPI facade turns engine failures into result dicts.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import datetime
import unittest.mock as mock
from libris.core.api import LibrisAPI
from libris.core.models import (
    AccessCooldown,
    BookFine,
    ReadingSession,
    RequestStatus,
    SubmissionStatus,
)
from conftest import as_current, make_book, make_document, make_request


def _finished_session(db, document, user, now):
    db.add(ReadingSession(
        document_id=document.id, user_id=user.id,
        started_at=now - datetime.timedelta(minutes=20),
        ended_at=now - datetime.timedelta(minutes=10), duration_minutes=10))
    db.commit()


def test_start_on_pending_document(db_session, student, other_student):
    document = make_document(
        db_session, student, submission_status=SubmissionStatus.PENDING, published_at=None)
    result = LibrisAPI.start_reading_session(db_session, document.id, as_current(other_student))
    assert result == {"success": False, "error": "Document not found", "reason": "NotFound"}
    assert db_session.query(ReadingSession).count() == 0


def test_published_document_result(db_session, student, other_student):
    document = make_document(db_session, student)
    result = LibrisAPI.get_published_document(db_session, document.id, as_current(other_student))
    assert result["success"] is True
    assert result["document"]["owner"]["email"] == "ana.reyes@university.edu"

    document = make_document(db_session, student, is_restricted=True)
    result = LibrisAPI.get_published_document(db_session, document.id, as_current(other_student))
    assert result["reason"] == "RestrictedAccessDenied"


def test_restricted_denial_never_writes_cooldowns(db_session, student, other_student, now):
    document = make_document(db_session, student, is_restricted=True, max_attempts=1)
    _finished_session(db_session, document, other_student, now)

    result = LibrisAPI.check_document_access_for_student(
        db_session, document.id, as_current(other_student))

    assert result["reason"] == "RestrictedAccessDenied"
    assert result["is_in_cooldown"] is False
    assert db_session.query(AccessCooldown).count() == 0


def test_cooldown_on_unsupported_database(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=1)
    _finished_session(db_session, document, other_student, now)

    with mock.patch.dict(AccessCooldown.UPSERTS, clear=True):
        result = LibrisAPI.check_document_access_for_student(
            db_session, document.id, as_current(other_student))

    assert result["success"] is False
    assert result["reason"] == "DatabaseError"
    assert result["is_in_cooldown"] is False
    assert db_session.query(AccessCooldown).count() == 0


def test_non_finite_fine_amount(db_session, student, staff):
    book = make_book(db_session)
    request = make_request(db_session, student, book, staff, quantity=2)

    result = LibrisAPI.verify_book_return(
        db_session, request.id, as_current(staff),
        damaged_quantity=1, received_quantity=1,
        damage_description="Torn cover", fine_amount="NaN")

    assert result["success"] is False
    assert result["reason"] == "InvalidInput"
    assert db_session.query(BookFine).count() == 0
    db_session.expire_all()
    assert request.status is RequestStatus.UNDER_REVIEW


def test_request_listings(db_session, student, other_student, staff):
    book = make_book(db_session)
    mine = make_request(db_session, student, book, staff)
    theirs = make_request(db_session, other_student, book, status=RequestStatus.PENDING)

    listed = LibrisAPI.get_student_book_requests(db_session, as_current(student))
    assert [r["id"] for r in listed] == [mine.id]
    assert listed[0]["staff"]["full_name"] == "Carla Staff"

    pending = LibrisAPI.get_all_book_requests(db_session, RequestStatus.PENDING)
    assert [(r["id"], r["staff"]) for r in pending] == [(theirs.id, None)]
    assert len(LibrisAPI.get_all_book_requests(db_session)) == 2
