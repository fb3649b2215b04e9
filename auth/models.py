"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in directory/models.py -- dataclasses own domain shape; stores, services and
routes do the work.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Compare members with `is`, never raw strings."""

    standard = "standard"
    admin = "admin"


@dataclass
class User:
    """A registered DevCamper account.

    hashed_password is the bcrypt digest. It is loaded so the auth flow can
    verify credentials, but it is never placed in an API response or a log line.

    reset_password_token holds the HMAC digest of an outstanding reset token,
    never the plaintext. Both reset fields are None when no reset is pending.
    """

    name: str
    email: str
    hashed_password: str
    role: Role = Role.standard
    id: int | None = None
    reset_password_token: str | None = None
    reset_password_expire: datetime | None = None  # aware UTC
    created_at: str | None = None


@dataclass(frozen=True)
class ResetToken:
    """Output of ResetTokenGenerator.generate().

    plaintext goes to the user by email and is then forgotten. Only token_hash
    and expires_at are persisted.
    """

    plaintext: str
    token_hash: str
    expires_at: datetime
