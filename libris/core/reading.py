#!/usr/bin/env python

"""
    Reading session tracking for Libris.

    A (document, user) pair moves NONE -> OPEN -> CLOSED. Closing a session
    is what spends an attempt.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from libris.core.db import atomic
from libris.core.access import AccessPolicy
from libris.core.models import ReadingSession, UserRole
from libris.core.utils import utcnow, minutes_between
from libris.core.exceptions import (
    ReadingSessionNotFoundError,
    UnauthorizedError,
    DatabaseInsertError,
)
from libris.schemas.reading import ReadingSessionRecord

logger = logging.getLogger(__name__)


class ReadingTracker:

    @classmethod
    def start(cls, db, document_id, user, now=None):
        """
        Opens a reading session, or hands back the one already open.

        Access is re-evaluated on every call; a denial propagates without
        creating anything.
        """
        now = now or utcnow()
        document = AccessPolicy.enforce(db, document_id, user, now=now)

        if active := ReadingSession.open_for(db, document.id, user.id):
            return active

        reading = ReadingSession(
            document_id=document.id,
            user_id=user.id,
            started_at=now,
            time_limit_minutes=document.time_limit_minutes,
        )
        try:
            with atomic(db, "start reading session"):
                db.add(reading)
        except DatabaseInsertError:
            # Lost the race to another start; hand back its session
            if active := ReadingSession.open_for(db, document.id, user.id):
                return active
            raise
        return reading

    @classmethod
    def end(cls, db, session_id, user, now=None):
        """
        Closes a reading session and records its duration.

        Ending an already closed session is a no-op returning the stored
        values. For students, reaching the document's attempt limit on close
        starts the cooldown in the same transaction.

        Raises:
            ReadingSessionNotFoundError: No such session.
            UnauthorizedError: The session belongs to someone else.
        """
        now = now or utcnow()
        reading = ReadingSession.get(db, session_id)
        if not reading:
            raise ReadingSessionNotFoundError
        if reading.user_id != user.id:
            raise UnauthorizedError

        if reading.ended_at is not None:
            return reading

        duration = minutes_between(reading.started_at, now)
        exceeded = (
            reading.time_limit_minutes is not None
            and duration > reading.time_limit_minutes
        )
        max_attempts = reading.document.max_attempts

        with atomic(db, "end reading session"):
            # A concurrent close (e.g. a second tab) wins; we then just
            # report what it stored.
            closed = reading.close(db, now, duration, exceeded)
            if closed and user.role is UserRole.STUDENT and max_attempts:
                used = AccessPolicy.attempt_count(db, reading.document_id, user.id)
                if used >= max_attempts:
                    AccessPolicy.set_cooldown(db, reading.document_id, user.id, now)

        if closed and exceeded:
            logger.info(
                f"Session {session_id} ran {duration} minutes, over its "
                f"{reading.time_limit_minutes} minute limit")
        return reading

    @classmethod
    def stats(cls, db, document_id):
        sessions = db.query(ReadingSession).filter(
            ReadingSession.document_id == document_id
        ).order_by(ReadingSession.started_at.desc(), ReadingSession.id.desc()).all()
        return {
            "total_sessions": len(sessions),
            "total_minutes": sum(s.duration_minutes or 0 for s in sessions),
            "sessions": [
                ReadingSessionRecord.model_validate(s).model_dump(mode="json")
                for s in sessions
            ],
        }
