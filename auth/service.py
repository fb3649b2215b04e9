"""
auth/service.py -- The authentication flow: register, login, profile, password reset.

AuthService orchestrates the credential store, the password hasher, the token
issuer, the reset-token generator and the email sender. It speaks in domain
terms (User, token strings, AppError subclasses); turning results into HTTP
responses and cookies is the route layer's job.

State lives in the User row, not in a state object:
  no reset pending   -- reset_password_token / reset_password_expire are NULL
  reset pending      -- both set; the token is usable until the expiry
  reset consumed     -- password replaced and both fields cleared in one UPDATE

Forgot-password is the one multi-step write that can fail halfway: the reset
token is stored, then the email is sent. If delivery fails the token is rolled
back explicitly before EmailDeliveryError is raised, so no usable reset link
is left outstanding.

Concurrency: methods that hash or verify passwords are synchronous and are
called from plain `def` routes, which FastAPI runs in its threadpool.
forgot_password() is a coroutine because SMTP delivery is awaited.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import ResetTokenGenerator, TokenIssuer, hash_password, login_check, verify_password
from core.config import Settings
from core.errors import EmailDeliveryError, InvalidToken, NotFound, Unauthorized, ValidationError
from core.mailer import EmailSender, OutgoingEmail

logger = logging.getLogger("devcamper.auth")

DUPLICATE_EMAIL_MESSAGE = "A user with that email already exists"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"

_RESET_SUBJECT = "Password reset token"
_RESET_BODY = (
    "You are receiving this email because you (or someone else) has requested "
    "the reset of a password. Please make a PUT request to:\n\n{url}\n\n"
    "This link expires in {minutes} minutes."
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Auth flow controller.

    Usage:
        service = AuthService(store, TokenIssuer(settings), ResetTokenGenerator(settings), EmailSender(settings), settings)
        user, token = service.register("Ada", "ada@x.io", "secret1")
        user, token = service.login("ada@x.io", "secret1")
    """

    def __init__(
        self,
        store: UserStore,
        issuer: TokenIssuer,
        reset_tokens: ResetTokenGenerator,
        mailer: EmailSender,
        settings: Settings,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.issuer = issuer
        self.reset_tokens = reset_tokens
        self.mailer = mailer
        self.settings = settings
        self._now = now

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, role: Role = Role.standard) -> tuple[User, str]:
        """Create an account and return it with a fresh session token.

        Self-registration cannot create admins. Duplicate emails are a
        ValidationError whether caught by the pre-check or by the UNIQUE
        constraint (two concurrent registrations for the same address).
        """
        if role is Role.admin:
            raise ValidationError("Admin accounts cannot be self-registered")
        if self.store.get_by_email(email) is not None:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE)
        user = User(name=name, email=email, hashed_password=hash_password(password), role=role)
        try:
            user_id = self.store.create_user(user)
        except IntegrityError as exc:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from exc
        created = self._require_user(user_id)
        logger.info("Registered user %d", user_id)
        return created, self.issuer.issue(user_id, now=self._now())

    def login(self, email: str, password: str) -> tuple[User, str]:
        """Return the user and a session token, or raise Unauthorized.

        Unknown email and wrong password produce the same exception with the
        same message and the same bcrypt cost.
        """
        user = login_check(self.store, email, password)
        if user is None:
            raise Unauthorized(INVALID_CREDENTIALS_MESSAGE)
        return user, self.issuer.issue(user.id, now=self._now())

    def authenticate_token(self, token: str) -> User:
        """Resolve a session token to its user, or raise Unauthorized.

        A well-signed token for a deleted account is treated like a bad token.
        """
        try:
            user_id = self.issuer.verify(token)
        except InvalidToken as exc:
            raise Unauthorized() from exc
        user = self.store.get_by_id(user_id)
        if user is None:
            raise Unauthorized()
        return user

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def me(self, user_id: int) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise Unauthorized()
        return user

    def update_details(self, user: User, name: str | None = None, email: str | None = None) -> User:
        """Change name and/or email. Fields left as None are not touched."""
        fields: dict = {}
        if name is not None:
            fields["name"] = name
        if email is not None and email.lower() != user.email:
            existing = self.store.get_by_email(email)
            if existing is not None and existing.id != user.id:
                raise ValidationError(DUPLICATE_EMAIL_MESSAGE)
            fields["email"] = email
        if name is None and email is None:
            raise ValidationError("No fields to update")
        try:
            self.store.update_user(user.id, **fields)
        except IntegrityError as exc:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from exc
        return self._require_user(user.id)

    def update_password(self, user: User, current_password: str, new_password: str) -> tuple[User, str]:
        """Replace the password after checking the current one. Returns a new token."""
        stored = self._require_user(user.id)
        if not verify_password(current_password, stored.hashed_password):
            raise Unauthorized("Password is incorrect")
        self.store.update_user(user.id, hashed_password=hash_password(new_password))
        logger.info("User %d changed their password", user.id)
        return stored, self.issuer.issue(user.id, now=self._now())

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str, reset_url_for: Callable[[str], str]) -> None:
        """Store a reset token for email and send the plaintext link.

        reset_url_for builds the absolute link for a plaintext token; the
        route layer knows the request's scheme and host, this layer does not.

        Raises NotFound when no account has that email, and EmailDeliveryError
        when the mailer reports a failure (after the rollback step). Any other
        exception, or cancellation of the send, also rolls the token back
        before propagating.
        """
        user = self.store.get_by_email(email)
        if user is None:
            raise NotFound("There is no user with that email")

        reset = self.reset_tokens.generate(now=self._now())
        self.store.set_reset_token(user.id, reset.token_hash, reset.expires_at)

        # Any exit other than a delivered email, cancellation included, drops the token.
        try:
            result = await self.mailer.send(
                OutgoingEmail(
                    to=user.email,
                    subject=_RESET_SUBJECT,
                    body=_RESET_BODY.format(
                        url=reset_url_for(reset.plaintext),
                        minutes=self.settings.reset_token_expire_minutes,
                    ),
                )
            )
        except BaseException:
            self._rollback_reset_token(user.id)
            raise
        if not result.ok:
            self._rollback_reset_token(user.id)
            raise EmailDeliveryError()
        logger.info("Password reset email sent for user %d", user.id)

    def _rollback_reset_token(self, user_id: int) -> None:
        """Compensating step for a failed reset email: drop the stored token."""
        self.store.clear_reset_token(user_id)
        logger.warning("Reset email for user %d not delivered; reset token cleared", user_id)

    def reset_password(self, plaintext: str, new_password: str) -> tuple[User, str]:
        """Consume a reset token, set the new password, and return a session token.

        The token matches only when its digest is stored and its expiry is
        strictly after now. On success the reset fields are cleared, so the
        same token cannot be used twice.
        """
        user = self.store.get_by_reset_token(self.reset_tokens.digest(plaintext), self._now())
        if user is None:
            raise InvalidToken()
        self.store.complete_password_reset(user.id, hash_password(new_password))
        logger.info("User %d reset their password", user.id)
        return self._require_user(user.id), self.issuer.issue(user.id, now=self._now())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self, user_id: int) -> User:
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user
