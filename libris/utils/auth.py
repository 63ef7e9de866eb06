#!/usr/bin/env python
from typing import Optional
from fastapi import HTTPException, Request, Cookie, Depends, status
from libris.core import auth
from libris.core.models import UserRole
from libris.schemas.user import CurrentUser

def current_user(request: Request, session: Optional[str] = Cookie(None)) -> CurrentUser:
    """Resolves the caller from the `session` cookie or a Bearer token."""
    if not session:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session = auth_header.split(" ")[1]
    if user := auth.verify_session_cookie(session):
        return user
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

def requires_roles(*roles: UserRole):
    def dependency(user: CurrentUser = Depends(current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
        return user
    return dependency

require_student = requires_roles(UserRole.STUDENT)
require_staff_or_above = requires_roles(
    UserRole.STAFF, UserRole.ADMIN, UserRole.SUPER_ADMIN)
require_admin_or_super_admin = requires_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)
require_super_admin = requires_roles(UserRole.SUPER_ADMIN)
