import logging
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature
from libris.configs import SEED, SESSION_TTL
from libris.core.models import UserRole
from libris.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

SERIALIZER = None  # Will be initialized lazily

def _get_serializer():
    """Get or initialize the SERIALIZER lazily."""
    global SERIALIZER
    if SERIALIZER is None:
        SERIALIZER = URLSafeTimedSerializer(SEED, salt="auth-session")
    return SERIALIZER

def create_session_cookie(user_id: int, role: UserRole) -> str:
    """Returns a signed session token naming the user and their role."""
    return _get_serializer().dumps({"id": user_id, "role": UserRole(role).value})

def verify_session_cookie(session: Optional[str]) -> Optional[CurrentUser]:
    """Retrieves and verifies the caller from a signed token."""
    if not session:
        return None
    try:
        data = _get_serializer().loads(session, max_age=SESSION_TTL)
        return CurrentUser(id=data["id"], role=UserRole(data["role"]))
    except BadSignature:
        return None
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Rejected malformed session payload: {e}")
        return None
