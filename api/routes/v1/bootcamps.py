"""
api/routes/v1/bootcamps.py -- Bootcamp directory routes.

Routes:
  GET    /bootcamps       -- paginated list (public)
  POST   /bootcamps       -- create (auth; standard users may own one bootcamp)
  GET    /bootcamps/{id}  -- detail (public)
  PUT    /bootcamps/{id}  -- update (owner or admin)
  DELETE /bootcamps/{id}  -- delete with its courses and reviews (owner or admin)

Every mutation goes through auth.guard.ensure_owner().
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.models import (
    BootcampCreate,
    BootcampListResponse,
    BootcampOut,
    BootcampResponse,
    BootcampUpdate,
    EmptyResponse,
)
from api.pagination import PageParams, ResourceId, page_params
from auth.dependencies import get_current_user
from auth.guard import ensure_owner
from auth.models import Role, User
from core.errors import NotFound, ValidationError
from directory.models import Bootcamp
from directory.store import DirectoryStore

router = APIRouter()

_DUPLICATE_NAME = "A bootcamp with that name already exists"


def _get_or_404(store: DirectoryStore, bootcamp_id: int) -> Bootcamp:
    bootcamp = store.get_bootcamp(bootcamp_id)
    if bootcamp is None:
        raise NotFound(f"Bootcamp not found with id of {bootcamp_id}")
    return bootcamp


@router.get("/bootcamps", response_model=BootcampListResponse)
def list_bootcamps(request: Request, page: PageParams = Depends(page_params)) -> BootcampListResponse:
    store: DirectoryStore = request.app.state.directory
    total = store.count_bootcamps()
    bootcamps = store.list_bootcamps(offset=page.offset, limit=page.limit)
    return BootcampListResponse(
        count=len(bootcamps),
        pagination=page.links(total),
        data=[BootcampOut.from_bootcamp(b) for b in bootcamps],
    )


@router.get("/bootcamps/{bootcamp_id}", response_model=BootcampResponse)
def get_bootcamp(request: Request, bootcamp_id: ResourceId) -> BootcampResponse:
    store: DirectoryStore = request.app.state.directory
    return BootcampResponse(data=BootcampOut.from_bootcamp(_get_or_404(store, bootcamp_id)))


@router.post("/bootcamps", response_model=BootcampResponse, status_code=201)
def create_bootcamp(
    request: Request,
    body: BootcampCreate,
    current_user: User = Depends(get_current_user),
) -> BootcampResponse:
    """Publish a bootcamp owned by the current user.

    A standard user may publish a single bootcamp; admins are not limited.
    """
    store: DirectoryStore = request.app.state.directory
    if current_user.role is not Role.admin and store.count_bootcamps(user_id=current_user.id) > 0:
        raise ValidationError(f"The user with ID {current_user.id} has already published a bootcamp")

    bootcamp = Bootcamp(
        name=body.name,
        description=body.description,
        website=body.website,
        phone=body.phone,
        email=body.email,
        address=body.address,
        careers=[c.value for c in body.careers],
        housing=body.housing,
        job_assistance=body.job_assistance,
        job_guarantee=body.job_guarantee,
        accept_gi=body.accept_gi,
        user_id=current_user.id,
    )
    try:
        bootcamp_id = store.create_bootcamp(bootcamp)
    except IntegrityError as exc:
        raise ValidationError(_DUPLICATE_NAME) from exc
    return BootcampResponse(data=BootcampOut.from_bootcamp(_get_or_404(store, bootcamp_id)))


@router.put("/bootcamps/{bootcamp_id}", response_model=BootcampResponse)
def update_bootcamp(
    request: Request,
    bootcamp_id: ResourceId,
    body: BootcampUpdate,
    current_user: User = Depends(get_current_user),
) -> BootcampResponse:
    store: DirectoryStore = request.app.state.directory
    bootcamp = _get_or_404(store, bootcamp_id)
    ensure_owner(bootcamp.user_id, current_user, "update", "bootcamp")

    updates = body.model_dump(exclude_none=True, mode="json")
    try:
        store.update_bootcamp(bootcamp_id, **updates)
    except IntegrityError as exc:
        raise ValidationError(_DUPLICATE_NAME) from exc
    return BootcampResponse(data=BootcampOut.from_bootcamp(_get_or_404(store, bootcamp_id)))


@router.delete("/bootcamps/{bootcamp_id}", response_model=EmptyResponse)
def delete_bootcamp(
    request: Request,
    bootcamp_id: ResourceId,
    current_user: User = Depends(get_current_user),
) -> EmptyResponse:
    """Delete a bootcamp. Its courses and reviews go with it."""
    store: DirectoryStore = request.app.state.directory
    bootcamp = _get_or_404(store, bootcamp_id)
    ensure_owner(bootcamp.user_id, current_user, "delete", "bootcamp")
    store.delete_bootcamp(bootcamp_id)
    return EmptyResponse()
