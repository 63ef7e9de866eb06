#!/usr/bin/env python
"""
    Document Schema for Libris,
    the student-facing view of a published document together with the
    caller's attempt and cooldown standing.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from libris.core.models import DocumentType
from libris.schemas.user import Reader

class StudentDocument(BaseModel):
    id: int
    title: str
    document_type: DocumentType
    student_id: int
    published_at: Optional[datetime] = None
    is_restricted: bool = False
    time_limit_minutes: Optional[int] = None
    max_attempts: Optional[int] = None
    can_access: bool = True
    cooldown_until: Optional[datetime] = None
    is_in_cooldown: bool = False
    attempt_count: int = 0
    has_reached_max_attempts: bool = False

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "title": "Crop Yield Forecasting with Satellite Imagery",
                "document_type": "Thesis",
                "student_id": 42,
                "published_at": "2025-03-01T08:00:00",
                "is_restricted": False,
                "time_limit_minutes": 30,
                "max_attempts": 2,
                "can_access": True,
                "cooldown_until": None,
                "is_in_cooldown": False,
                "attempt_count": 1,
                "has_reached_max_attempts": False
            }
        }

class DocumentPreview(BaseModel):
    id: int
    title: str
    document_type: DocumentType
    published_at: Optional[datetime] = None
    is_restricted: bool = False
    time_limit_minutes: Optional[int] = None
    max_attempts: Optional[int] = None
    owner: Reader

    class Config:
        from_attributes = True
