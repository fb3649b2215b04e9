"""
auth/tokens.py -- Password hashing, session JWTs, reset tokens, and cookies.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, iat and exp. TokenIssuer.verify() raises InvalidToken on any
       failure -- the dependency layer turns that into a 401.

  Passwords: bcrypt directly. Bcrypt is the right choice for low-entropy
       secrets (passwords) because its cost factor makes brute-force
       expensive. _DUMMY_HASH lets login_check() spend the same bcrypt work
       whether or not the email exists.

  Reset tokens: secrets.token_hex(20) gives 160 bits of entropy. We store
       HMAC-SHA256(SECRET_KEY, plaintext) so lookup is a plain equality match
       on an indexed column. bcrypt's intentional slowness is unnecessary
       (and would make lookup by value impossible, since bcrypt salts).

  Configuration: TokenIssuer, ResetTokenGenerator and the cookie helpers take
       a Settings object explicitly. Nothing here reads the environment.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import ResetToken
from core.config import Settings
from core.errors import InvalidToken

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("devcamper.auth")

_ALGORITHM = "HS256"

COOKIE_NAME = "token"

# bcrypt 4.1+ rejects inputs over 72 bytes instead of truncating them.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    The salt is generated per call and embedded in the output, so hashing the
    same password twice gives two different strings that both verify.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Malformed hashes and over-long inputs make bcrypt raise ValueError; both
    count as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("devcamper_timing_dummy")


def login_check(store: UserStore, email: str, password: str) -> User | None:
    """Return the user whose email and password match, or None.

    Always runs bcrypt whether or not the email exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)
    """
    user = store.get_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Session tokens (JWT)
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Issues and verifies stateless session tokens.

    There is no server-side session table: a token is valid exactly when its
    signature checks out and its exp claim is still in the future.
    """

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.secret_key
        self._lifetime = timedelta(days=settings.jwt_expire_days)

    def issue(self, user_id: int, now: datetime | None = None) -> str:
        """Encode a signed JWT for user_id expiring jwt_expire_days from now."""
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "iat": issued_at,
            "exp": issued_at + self._lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the user id carried by token. Raises InvalidToken on any failure.

        jose checks the signature and the exp claim. A token that decodes but
        lacks an integer user_id is rejected too.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except JWTError as exc:
            raise InvalidToken() from exc
        user_id = payload.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidToken()
        return user_id


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


class ResetTokenGenerator:
    """Creates single-use reset tokens and digests incoming ones for lookup."""

    def __init__(self, settings: Settings) -> None:
        self._key = settings.secret_key.encode()
        self._lifetime = timedelta(minutes=settings.reset_token_expire_minutes)

    def digest(self, plaintext: str) -> str:
        """Return HMAC-SHA256(SECRET_KEY, plaintext) as hex.

        Deterministic, so the stored value can be matched by equality. Someone
        reading the users table cannot forge a reset link without the key.
        """
        return hmac.new(self._key, plaintext.encode(), hashlib.sha256).hexdigest()

    def generate(self, now: datetime | None = None) -> ResetToken:
        issued_at = now or datetime.now(timezone.utc)
        plaintext = secrets.token_hex(20)
        return ResetToken(
            plaintext=plaintext,
            token_hash=self.digest(plaintext),
            expires_at=issued_at + self._lifetime,
        )


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the session JWT as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST (CSRF mitigation).
    secure: only in production, where the app is served over HTTPS.
    expires/max_age: jwt_cookie_expire_days from now.
    """
    lifetime = timedelta(days=settings.jwt_cookie_expire_days)
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=int(lifetime.total_seconds()),
        expires=datetime.now(timezone.utc) + lifetime,
    )


def clear_auth_cookie(response) -> None:
    """Overwrite the session cookie with "none" and a 10 second lifetime."""
    response.set_cookie(
        COOKIE_NAME,
        value="none",
        httponly=True,
        samesite="lax",
        max_age=10,
        expires=datetime.now(timezone.utc) + timedelta(seconds=10),
    )
