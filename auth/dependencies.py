"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. "token" cookie -- set by register/login/reset responses.
  2. Authorization: Bearer <token> header -- API clients and scripts.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises Unauthorized if unauthenticated.
require_admin() wraps get_current_user() and raises Forbidden if not admin.

The errors raised here are core.errors types; api/main.py renders them. This
module may import from fastapi because it is part of the FastAPI dependency
injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Role, User
from auth.service import AuthService
from auth.tokens import COOKIE_NAME
from core.errors import Forbidden, Unauthorized


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    # logout leaves a "none" placeholder cookie behind for a few seconds
    if token and token != "none":
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:] or None
    return None


def try_get_current_user(request: Request) -> User | None:
    """Authenticate the request via cookie or Bearer header. Never raises."""
    token = _extract_token(request)
    if token is None:
        return None
    auth: AuthService = request.app.state.auth
    try:
        return auth.authenticate_token(token)
    except Unauthorized:
        return None


def get_current_user(request: Request) -> User:
    """Require authentication. Raises Unauthorized (401) if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise Unauthorized()
    return user


def require_admin(request: Request) -> User:
    """Require the admin role. 401 if unauthenticated, 403 if not admin."""
    user = get_current_user(request)
    if user.role is not Role.admin:
        raise Forbidden(f"User role {user.role.value} is not authorized to access this route")
    return user
