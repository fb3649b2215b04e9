"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/register                   -- create account; sets token cookie
  POST /api/v1/auth/login                      -- password login; sets token cookie
  GET  /api/v1/auth/logout                     -- overwrite cookie with "none"
  GET  /api/v1/auth/me                         -- current user (requires auth)
  PUT  /api/v1/auth/updatedetails              -- change name/email (requires auth)
  PUT  /api/v1/auth/updatepassword             -- change password (requires auth)
  POST /api/v1/auth/forgotpassword             -- email a reset link
  PUT  /api/v1/auth/resetpassword/{resettoken} -- consume reset token

Login and forgot-password are POST: both take a body, and forgot-password
writes a reset token to the user record.

Handlers that hash or verify passwords are plain `def` so FastAPI runs them
in its threadpool instead of on the event loop. forgot_password is `async`
because it awaits SMTP delivery and does no bcrypt work.

Security:
  login, register and forgotpassword are rate-limited per client IP.
  Cache-Control: no-store on every response that carries a token.
  Login returns the same error for unknown email and wrong password.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit
from api.models import (
    EmptyResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
    UserOut,
    UserResponse,
)
from auth.dependencies import get_current_user
from auth.models import User
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy:
# - POST /auth/register, /auth/login, /auth/forgotpassword: public, rate-limited
# - PUT  /auth/resetpassword/{token}:                        public -- the token is the credential
# - GET  /auth/logout:                                       public -- clearing a cookie needs no prior auth
# - GET  /auth/me, PUT /auth/updatedetails, /auth/updatepassword: requires auth (get_current_user)
router = APIRouter()


def _token_response(request: Request, token: str) -> JSONResponse:
    """Build the {success, token} body and set the matching cookie."""
    resp = JSONResponse(status_code=200, content=TokenResponse(token=token).model_dump())
    set_auth_cookie(resp, token, request.app.state.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=TokenResponse)
@limiter.limit(login_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a standard account and log it in.

    Sending role="admin" is rejected; admins are created through /users.
    """
    auth: AuthService = request.app.state.auth
    _user, token = auth.register(body.name, body.email, body.password, body.role)
    return _token_response(request, token)


@router.post("/auth/login", response_model=TokenResponse)
@limiter.limit(login_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the token cookie."""
    auth: AuthService = request.app.state.auth
    _user, token = auth.login(body.email, body.password)
    return _token_response(request, token)


@router.get("/auth/logout", response_model=EmptyResponse)
async def logout() -> JSONResponse:
    """Overwrite the token cookie with a short-lived placeholder. Idempotent."""
    resp = JSONResponse(content=EmptyResponse().model_dump())
    clear_auth_cookie(resp)
    return resp


@router.post("/auth/forgotpassword", response_model=MessageResponse)
@limiter.limit(login_limit)
async def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Email a single-use reset link for the account with this email.

    404 if no account matches; 500 if the email cannot be delivered, in which
    case the reset token has already been discarded.
    """
    auth: AuthService = request.app.state.auth
    base = str(request.base_url).rstrip("/")

    def reset_url_for(plaintext: str) -> str:
        return f"{base}/api/v1/auth/resetpassword/{plaintext}"

    await auth.forgot_password(body.email, reset_url_for)
    return MessageResponse(data="Email sent")


@router.put("/auth/resetpassword/{resettoken}", response_model=TokenResponse)
def reset_password(request: Request, resettoken: str, body: ResetPasswordRequest) -> JSONResponse:
    """Set a new password using a reset token; log the user in."""
    auth: AuthService = request.app.state.auth
    _user, token = auth.reset_password(resettoken, body.password)
    return _token_response(request, token)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the profile of the currently authenticated user."""
    return UserResponse(data=UserOut.from_user(current_user))


@router.put("/auth/updatedetails", response_model=UserResponse)
def update_details(
    request: Request,
    body: UpdateDetailsRequest,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    auth: AuthService = request.app.state.auth
    updated = auth.update_details(current_user, name=body.name, email=body.email)
    return UserResponse(data=UserOut.from_user(updated))


@router.put("/auth/updatepassword", response_model=TokenResponse)
def update_password(
    request: Request,
    body: UpdatePasswordRequest,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Change password after re-checking the current one. Issues a fresh token."""
    auth: AuthService = request.app.state.auth
    _user, token = auth.update_password(current_user, body.current_password, body.new_password)
    return _token_response(request, token)
