"""
auth/guard.py -- Ownership-based authorization for resource mutations.

One rule, reused by every bootcamp, course and review write: the acting user
may mutate a resource if they created it, or if they are an admin.

authorize() is the pure predicate. ensure_owner() is the route-facing wrapper
that raises Forbidden on denial so handlers read as straight-line code.
"""

from __future__ import annotations

from auth.models import Role, User
from core.errors import Forbidden


def authorize(owner_id: int, user: User) -> bool:
    """Return True if user may mutate a resource owned by owner_id."""
    if user.role is Role.admin:
        return True
    if user.role is Role.standard:
        return user.id == owner_id
    raise ValueError(f"Unhandled role: {user.role!r}")


def ensure_owner(owner_id: int, user: User, action: str, resource: str) -> None:
    """Raise Forbidden unless authorize(owner_id, user) allows the action.

    Example message: "User 7 is not authorized to update this bootcamp".
    """
    if not authorize(owner_id, user):
        raise Forbidden(f"User {user.id} is not authorized to {action} this {resource}")
