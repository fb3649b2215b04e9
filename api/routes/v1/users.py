"""
api/routes/v1/users.py -- User management REST endpoints (admin only).

Routes:
  GET    /users        -- paginated list
  POST   /users        -- create a user of any role
  GET    /users/{id}   -- detail
  PUT    /users/{id}   -- update name / email / role
  DELETE /users/{id}   -- delete

Guards:
  An admin cannot delete themselves or demote themselves, so the directory
  always keeps the admin that is making changes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.models import EmptyResponse, UserCreate, UserListResponse, UserOut, UserResponse, UserUpdate
from api.pagination import PageParams, ResourceId, page_params
from auth.dependencies import require_admin
from auth.models import Role, User
from auth.service import DUPLICATE_EMAIL_MESSAGE
from auth.store import UserStore
from auth.tokens import hash_password
from core.errors import NotFound, ValidationError

# Router-level dependency applies to every route registered on this router,
# so individual handlers don't each need to repeat Depends(require_admin).
router = APIRouter(dependencies=[Depends(require_admin)])


def _get_or_404(store: UserStore, user_id: int) -> User:
    user = store.get_by_id(user_id)
    if user is None:
        raise NotFound(f"No user with the id of {user_id}")
    return user


@router.get("/users", response_model=UserListResponse)
def list_users(request: Request, page: PageParams = Depends(page_params)) -> UserListResponse:
    store: UserStore = request.app.state.user_store
    users = store.list_users(offset=page.offset, limit=page.limit)
    return UserListResponse(
        count=len(users),
        pagination=page.links(store.count_users()),
        data=[UserOut.from_user(u) for u in users],
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: ResourceId) -> UserResponse:
    return UserResponse(data=UserOut.from_user(_get_or_404(request.app.state.user_store, user_id)))


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(request: Request, body: UserCreate) -> UserResponse:
    store: UserStore = request.app.state.user_store
    new_user = User(
        name=body.name,
        email=body.email,
        hashed_password=hash_password(body.password),
        role=body.role,
    )
    try:
        user_id = store.create_user(new_user)
    except IntegrityError as exc:
        raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from exc
    return UserResponse(data=UserOut.from_user(_get_or_404(store, user_id)))


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: ResourceId,
    body: UserUpdate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    store: UserStore = request.app.state.user_store
    _get_or_404(store, user_id)

    updates = body.model_dump(exclude_none=True, mode="json")
    if not updates:
        raise ValidationError("No fields to update")
    if user_id == current_user.id and updates.get("role", Role.admin.value) != Role.admin.value:
        raise ValidationError("You cannot remove your own admin role")
    try:
        store.update_user(user_id, **updates)
    except IntegrityError as exc:
        raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from exc
    return UserResponse(data=UserOut.from_user(_get_or_404(store, user_id)))


@router.delete("/users/{user_id}", response_model=EmptyResponse)
def delete_user(
    request: Request,
    user_id: ResourceId,
    current_user: User = Depends(require_admin),
) -> EmptyResponse:
    if user_id == current_user.id:
        raise ValidationError("You cannot delete your own account")
    store: UserStore = request.app.state.user_store
    if not store.delete_user(user_id):
        raise NotFound(f"No user with the id of {user_id}")
    return EmptyResponse()
