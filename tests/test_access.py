#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_access
    ~~~~~~~~~~~~~~~~~

    Document preview access policy: restriction, role bypass, attempts
    and cooldowns.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import datetime
import pytest
from libris.core.access import AccessPolicy
from libris.core.models import AccessCooldown, ReadingSession, SubmissionStatus
from libris.core.exceptions import (
    DocumentNotFoundError,
    RestrictedAccessError,
    CooldownActiveError,
    MaxAttemptsReachedError,
)
from conftest import as_current, make_document


def complete_sessions(db, document, user, count, now):
    for i in range(count):
        start = now - datetime.timedelta(hours=3, minutes=10 * i)
        db.add(ReadingSession(
            document_id=document.id,
            user_id=user.id,
            started_at=start,
            ended_at=start + datetime.timedelta(minutes=5),
            duration_minutes=5,
        ))
    db.commit()


def cooldowns(db, document, user):
    return db.query(AccessCooldown).filter_by(
        document_id=document.id, user_id=user.id).all()


def test_missing_document(db_session, student, now):
    with pytest.raises(DocumentNotFoundError):
        AccessPolicy.enforce(db_session, 999, as_current(student), now=now)

    decision = AccessPolicy.evaluate(db_session, 999, as_current(student), now=now)
    assert decision.allowed is False
    assert decision.reason == "NotFound"


@pytest.mark.parametrize("role_fixture", ["student", "other_student", "staff", "super_admin"])
def test_unpublished_documents_are_not_previewable(request, db_session, student, now, role_fixture):
    reader = as_current(request.getfixturevalue(role_fixture))
    drafts = [
        make_document(db_session, student, submission_status=SubmissionStatus.PENDING, published_at=None),
        make_document(db_session, student, submission_status=SubmissionStatus.REJECTED),
        make_document(db_session, student, published_at=None),
    ]

    for document in drafts:
        with pytest.raises(DocumentNotFoundError):
            AccessPolicy.enforce(db_session, document.id, reader, now=now)
        assert AccessPolicy.evaluate(db_session, document.id, reader, now=now).reason == "NotFound"


@pytest.mark.parametrize("role_fixture", ["staff", "admin", "super_admin"])
def test_privileged_roles_bypass_every_gate(request, db_session, student, now, role_fixture):
    privileged = request.getfixturevalue(role_fixture)
    document = make_document(db_session, student, is_restricted=True, max_attempts=1)
    complete_sessions(db_session, document, privileged, 3, now)
    db_session.add(AccessCooldown(
        document_id=document.id, user_id=privileged.id,
        cooldown_until=now + datetime.timedelta(hours=5)))
    db_session.commit()

    decision = AccessPolicy.evaluate(db_session, document.id, as_current(privileged), now=now)
    assert decision.allowed is True
    # The existing cooldown row is left as it was
    assert cooldowns(db_session, document, privileged)[0].cooldown_until == now + datetime.timedelta(hours=5)


def test_restricted_document_denies_other_students(db_session, student, other_student, now):
    document = make_document(db_session, student, is_restricted=True, max_attempts=1)
    complete_sessions(db_session, document, other_student, 1, now)

    with pytest.raises(RestrictedAccessError):
        AccessPolicy.enforce(db_session, document.id, as_current(other_student), now=now)
    # Denied before any attempt accounting
    assert cooldowns(db_session, document, other_student) == []


def test_restricted_document_allows_owner(db_session, student, now):
    document = make_document(db_session, student, is_restricted=True)
    assert AccessPolicy.evaluate(db_session, document.id, as_current(student), now=now).allowed


def test_no_attempt_limit_means_no_tracking(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=None)
    complete_sessions(db_session, document, other_student, 10, now)
    assert AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now).allowed
    assert cooldowns(db_session, document, other_student) == []


@pytest.mark.parametrize("max_attempts", [1, 2, 5])
def test_attempts_below_limit_are_allowed(db_session, student, other_student, now, max_attempts):
    document = make_document(db_session, student, max_attempts=max_attempts)
    complete_sessions(db_session, document, other_student, max_attempts - 1, now)
    assert AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now).allowed


@pytest.mark.parametrize("max_attempts", [1, 2, 5])
def test_exhausted_attempts_record_a_cooldown(db_session, student, other_student, now, max_attempts):
    document = make_document(db_session, student, max_attempts=max_attempts)
    complete_sessions(db_session, document, other_student, max_attempts, now)

    with pytest.raises(MaxAttemptsReachedError) as excinfo:
        AccessPolicy.enforce(db_session, document.id, as_current(other_student), now=now)
    assert excinfo.value.max_attempts == max_attempts
    assert "24 hours" in excinfo.value.message

    rows = cooldowns(db_session, document, other_student)
    assert len(rows) == 1
    assert rows[0].cooldown_until == now + datetime.timedelta(hours=24)


def test_open_sessions_do_not_count_as_attempts(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=1)
    db_session.add(ReadingSession(
        document_id=document.id, user_id=other_student.id,
        started_at=now - datetime.timedelta(minutes=3)))
    db_session.commit()
    assert AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now).allowed


def test_active_cooldown_reports_hours_remaining(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=3)
    db_session.add(AccessCooldown(
        document_id=document.id, user_id=other_student.id,
        cooldown_until=now + datetime.timedelta(minutes=90)))
    db_session.commit()

    with pytest.raises(CooldownActiveError) as excinfo:
        AccessPolicy.enforce(db_session, document.id, as_current(other_student), now=now)
    assert excinfo.value.hours_remaining == 2

    decision = AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now)
    assert decision.reason == "CooldownActive"
    assert decision.cooldown_hours_remaining == 2


def test_cooldown_expiring_now_is_expired(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=3)
    complete_sessions(db_session, document, other_student, 1, now)
    db_session.add(AccessCooldown(
        document_id=document.id, user_id=other_student.id, cooldown_until=now))
    db_session.commit()

    assert AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now).allowed
    earlier = now - datetime.timedelta(seconds=1)
    assert not AccessPolicy.evaluate(
        db_session, document.id, as_current(other_student), now=earlier).allowed


def test_expired_cooldown_with_exhausted_attempts_is_refreshed(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=2)
    complete_sessions(db_session, document, other_student, 2, now)
    db_session.add(AccessCooldown(
        document_id=document.id, user_id=other_student.id,
        cooldown_until=now - datetime.timedelta(hours=1)))
    db_session.commit()

    decision = AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now)
    assert decision.reason == "MaxAttemptsReached"
    assert decision.cooldown_hours_remaining == 24

    db_session.expire_all()
    rows = cooldowns(db_session, document, other_student)
    assert len(rows) == 1
    assert rows[0].cooldown_until == now + datetime.timedelta(hours=24)


def test_repeated_checks_converge_on_one_cooldown(db_session, student, other_student, now):
    document = make_document(db_session, student, max_attempts=1)
    complete_sessions(db_session, document, other_student, 1, now)

    first = AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now)
    # A probe at the same instant sees the cooldown it just wrote
    second = AccessPolicy.evaluate(db_session, document.id, as_current(other_student), now=now)
    assert first.reason == "MaxAttemptsReached"
    assert second.reason == "CooldownActive"
    assert second.cooldown_hours_remaining == 24
    assert len(cooldowns(db_session, document, other_student)) == 1
