#!/usr/bin/env python

"""
    Access policy for Libris document previews.

    Decides whether a (document, user) pair may open a preview, combining the
    restriction flag, privileged-role bypass, completed-attempt counting and
    per-reader cooldowns. Only students are ever gated.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import datetime
import logging
from libris.configs import COOLDOWN_HOURS
from libris.core.db import atomic
from libris.core.models import Document, ReadingSession, AccessCooldown, UserRole
from libris.core.utils import utcnow, hours_until
from libris.core.exceptions import (
    LibrisAPIError,
    DocumentNotFoundError,
    RestrictedAccessError,
    CooldownActiveError,
    MaxAttemptsReachedError,
)
from libris.schemas.access import AccessDecision

logger = logging.getLogger(__name__)


class AccessPolicy:

    COOLDOWN = datetime.timedelta(hours=COOLDOWN_HOURS)

    @classmethod
    def attempt_count(cls, db, document_id, user_id):
        return ReadingSession.completed_count(db, document_id, user_id)

    @classmethod
    def set_cooldown(cls, db, document_id, user_id, now=None):
        """Starts (or restarts) the cooldown window for this reader.

        Does not commit; the caller owns the transaction.
        """
        now = now or utcnow()
        until = now + cls.COOLDOWN
        AccessCooldown.extend(db, document_id, user_id, until)
        logger.info(
            f"Cooldown for user {user_id} on document {document_id} until {until.isoformat()}")
        return until

    @classmethod
    def enforce(cls, db, document_id, user, now=None):
        """
        Checks whether `user` may open `document_id` and returns the document.

        Args:
            db: SQLAlchemy session.
            document_id: Document being previewed.
            user: CurrentUser making the request.
            now: Evaluation instant (naive UTC), defaults to the current time.

        Raises:
            DocumentNotFoundError: No such document, or it is not published.
            RestrictedAccessError: Restricted and the student is not its owner.
            CooldownActiveError: The reader is inside a cooldown window.
            MaxAttemptsReachedError: Attempts are used up; a cooldown has
                just been recorded.
        """
        now = now or utcnow()
        document = Document.published(db).filter(Document.id == document_id).first()
        if not document:
            raise DocumentNotFoundError

        if user.role.is_privileged:
            return document

        if (document.is_restricted and user.role is UserRole.STUDENT
                and not document.is_owned_by(user.id)):
            raise RestrictedAccessError

        if document.max_attempts is None:
            return document

        cooldown = AccessCooldown.find(db, document.id, user.id)
        if cooldown and cooldown.is_active(now):
            raise CooldownActiveError(hours_until(cooldown.cooldown_until, now))

        if cls.attempt_count(db, document.id, user.id) >= document.max_attempts:
            with atomic(db, "record access cooldown"):
                cls.set_cooldown(db, document.id, user.id, now)
            raise MaxAttemptsReachedError(document.max_attempts, COOLDOWN_HOURS)

        return document

    @classmethod
    def evaluate(cls, db, document_id, user, now=None) -> AccessDecision:
        """Same checks as `enforce`, reported as a decision instead of raised."""
        try:
            cls.enforce(db, document_id, user, now=now)
        except LibrisAPIError as e:
            logger.info(f"Access to document {document_id} denied for user {user.id}: {e.reason}")
            return AccessDecision(
                allowed=False,
                reason=e.reason,
                message=e.message,
                cooldown_hours_remaining=e.context.get("hours_remaining"),
            )
        return AccessDecision(allowed=True)
