import pytest

from itsdangerous import URLSafeTimedSerializer
from libris.core import auth
from libris.core.models import UserRole

def test_session_cookie_roundtrip():
    """A signed token names the caller and their role"""
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-session")

    cookie = auth.create_session_cookie(7, UserRole.STAFF)
    user = auth.verify_session_cookie(cookie)

    assert user.id == 7
    assert user.role is UserRole.STAFF
    assert not user.is_student

def test_role_accepts_stored_value():
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-session")
    user = auth.verify_session_cookie(auth.create_session_cookie(3, "Student"))
    assert user.is_student

@pytest.mark.parametrize("cookie", [None, "", "not-a-token"])
def test_missing_or_garbled_cookie(cookie):
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-session")
    assert auth.verify_session_cookie(cookie) is None

def test_cookie_signed_with_other_seed_is_rejected():
    foreign = URLSafeTimedSerializer(b"456", salt="auth-session").dumps(
        {"id": 1, "role": "Super_Admin"})
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-session")
    assert auth.verify_session_cookie(foreign) is None

@pytest.mark.parametrize("payload", [
    {"id": 1},
    {"id": 1, "role": "Librarian"},
    "just-a-string",
])
def test_malformed_payload_is_rejected(payload):
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-session")
    assert auth.verify_session_cookie(auth.SERIALIZER.dumps(payload)) is None

def test_expired_cookie_is_rejected():
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-session")
    cookie = auth.create_session_cookie(7, UserRole.ADMIN)

    import unittest.mock as mock
    with mock.patch.object(auth, "SESSION_TTL", -1):
        assert auth.verify_session_cookie(cookie) is None
