#!/usr/bin/env python

"""
    Published document administration and the student catalogue view.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from libris.configs import MAX_ATTEMPTS_LIMIT
from libris.core.db import atomic
from libris.core.access import AccessPolicy
from libris.core.models import Document, AccessCooldown, UserRole
from libris.core.utils import utcnow
from libris.core.exceptions import (
    DocumentNotFoundError,
    InvalidInputError,
    RestrictedAccessError,
)
from libris.schemas.document import StudentDocument, DocumentPreview

logger = logging.getLogger(__name__)


class Documents:

    @classmethod
    def _get(cls, db, document_id):
        if document := Document.get(db, document_id):
            return document
        raise DocumentNotFoundError

    @classmethod
    def toggle_restriction(cls, db, document_id):
        document = cls._get(db, document_id)
        with atomic(db, "toggle document restriction"):
            document.is_restricted = not document.is_restricted
        logger.info(f"Document {document_id} restricted={document.is_restricted}")
        return document

    @classmethod
    def set_time_limit(cls, db, document_id, minutes):
        """Applies to sessions opened from now on; open ones keep their copy."""
        document = cls._get(db, document_id)
        if minutes is not None and minutes < 1:
            raise InvalidInputError("Time limit must be at least 1 minute")
        with atomic(db, "set document time limit"):
            document.time_limit_minutes = minutes
        return document

    @classmethod
    def set_max_attempts(cls, db, document_id, max_attempts):
        document = cls._get(db, document_id)
        if max_attempts is not None and not 1 <= max_attempts <= MAX_ATTEMPTS_LIMIT:
            raise InvalidInputError(
                f"Max attempts must be between 1 and {MAX_ATTEMPTS_LIMIT}")
        with atomic(db, "set document max attempts"):
            document.max_attempts = max_attempts
        return document

    @classmethod
    def published_for_student(cls, db, student_id, now=None):
        """
        Every published document annotated with this student's standing.

        Read-only: unlike the access check, listing never writes a cooldown.
        """
        now = now or utcnow()
        documents = Document.published(db).all()
        cooldowns = {
            c.document_id: c for c in db.query(AccessCooldown).filter(
                AccessCooldown.user_id == student_id,
                AccessCooldown.document_id.in_([d.id for d in documents])
            )
        }

        listing = []
        for document in documents:
            cooldown = cooldowns.get(document.id)
            attempts = (
                AccessPolicy.attempt_count(db, document.id, student_id)
                if document.max_attempts else 0
            )
            record = StudentDocument.model_validate(document)
            record.can_access = not document.is_restricted or document.is_owned_by(student_id)
            record.cooldown_until = cooldown.cooldown_until if cooldown else None
            record.is_in_cooldown = bool(cooldown and cooldown.is_active(now))
            record.attempt_count = attempts
            record.has_reached_max_attempts = bool(
                document.max_attempts and attempts >= document.max_attempts)
            listing.append(record.model_dump(mode="json"))
        return listing

    @classmethod
    def attempt_count(cls, db, document_id, student_id):
        document = Document.get(db, document_id)
        return {
            "attempt_count": AccessPolicy.attempt_count(db, document_id, student_id),
            "max_attempts": document.max_attempts if document else None,
        }

    @classmethod
    def published_document(cls, db, document_id, user):
        """
        A single published document for the preview page.

        Drafts and documents still under review are reported as missing;
        a restricted one is shown to students only when they own it.
        """
        document = Document.published(db).filter(Document.id == document_id).first()
        if not document:
            raise DocumentNotFoundError
        if (document.is_restricted and user.role is UserRole.STUDENT
                and not document.is_owned_by(user.id)):
            raise RestrictedAccessError
        return DocumentPreview.model_validate(document).model_dump(mode="json")
