"""
api/routes/v1/reviews.py -- Review routes.

Routes:
  GET    /reviews                         -- all reviews, paginated (public)
  GET    /bootcamps/{bootcamp_id}/reviews -- reviews of one bootcamp (public)
  POST   /bootcamps/{bootcamp_id}/reviews -- add a review (auth; one per user per bootcamp)
  GET    /reviews/{id}                    -- detail (public)
  PUT    /reviews/{id}                    -- update (review owner or admin)
  DELETE /reviews/{id}                    -- delete (review owner or admin)

Review writes refresh the parent bootcamp's average_rating.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError

from api.models import EmptyResponse, ReviewCreate, ReviewListResponse, ReviewOut, ReviewResponse, ReviewUpdate
from api.pagination import PageParams, ResourceId, page_params
from auth.dependencies import get_current_user
from auth.guard import ensure_owner
from auth.models import User
from core.errors import NotFound, ValidationError
from directory.models import Review
from directory.store import DirectoryStore

router = APIRouter()

_ALREADY_REVIEWED = "You have already reviewed this bootcamp"


def _get_or_404(store: DirectoryStore, review_id: int) -> Review:
    review = store.get_review(review_id)
    if review is None:
        raise NotFound(f"No review found with the id of {review_id}")
    return review


def _list(store: DirectoryStore, page: PageParams, bootcamp_id=None) -> ReviewListResponse:
    total = store.count_reviews(bootcamp_id=bootcamp_id)
    reviews = store.list_reviews(bootcamp_id=bootcamp_id, offset=page.offset, limit=page.limit)
    return ReviewListResponse(
        count=len(reviews),
        pagination=page.links(total),
        data=[ReviewOut.from_review(r) for r in reviews],
    )


@router.get("/reviews", response_model=ReviewListResponse)
def list_reviews(request: Request, page: PageParams = Depends(page_params)) -> ReviewListResponse:
    return _list(request.app.state.directory, page)


@router.get("/bootcamps/{bootcamp_id}/reviews", response_model=ReviewListResponse)
def list_bootcamp_reviews(
    request: Request, bootcamp_id: ResourceId, page: PageParams = Depends(page_params)
) -> ReviewListResponse:
    store: DirectoryStore = request.app.state.directory
    if store.get_bootcamp(bootcamp_id) is None:
        raise NotFound(f"No bootcamp with the id of {bootcamp_id}")
    return _list(store, page, bootcamp_id=bootcamp_id)


@router.post("/bootcamps/{bootcamp_id}/reviews", response_model=ReviewResponse, status_code=201)
def create_review(
    request: Request,
    bootcamp_id: ResourceId,
    body: ReviewCreate,
    current_user: User = Depends(get_current_user),
) -> ReviewResponse:
    store: DirectoryStore = request.app.state.directory
    if store.get_bootcamp(bootcamp_id) is None:
        raise NotFound(f"No bootcamp with the id of {bootcamp_id}")
    if store.get_review_by_user(bootcamp_id, current_user.id) is not None:
        raise ValidationError(_ALREADY_REVIEWED)
    try:
        review_id = store.create_review(
            Review(
                title=body.title,
                text=body.text,
                rating=body.rating,
                bootcamp_id=bootcamp_id,
                user_id=current_user.id,
            )
        )
    except IntegrityError as exc:
        # Concurrent duplicate slipped past the pre-check
        raise ValidationError(_ALREADY_REVIEWED) from exc
    return ReviewResponse(data=ReviewOut.from_review(_get_or_404(store, review_id)))


@router.get("/reviews/{review_id}", response_model=ReviewResponse)
def get_review(request: Request, review_id: ResourceId) -> ReviewResponse:
    return ReviewResponse(data=ReviewOut.from_review(_get_or_404(request.app.state.directory, review_id)))


@router.put("/reviews/{review_id}", response_model=ReviewResponse)
def update_review(
    request: Request,
    review_id: ResourceId,
    body: ReviewUpdate,
    current_user: User = Depends(get_current_user),
) -> ReviewResponse:
    store: DirectoryStore = request.app.state.directory
    review = _get_or_404(store, review_id)
    ensure_owner(review.user_id, current_user, "update", "review")
    store.update_review(review_id, **body.model_dump(exclude_none=True))
    return ReviewResponse(data=ReviewOut.from_review(_get_or_404(store, review_id)))


@router.delete("/reviews/{review_id}", response_model=EmptyResponse)
def delete_review(
    request: Request,
    review_id: ResourceId,
    current_user: User = Depends(get_current_user),
) -> EmptyResponse:
    store: DirectoryStore = request.app.state.directory
    review = _get_or_404(store, review_id)
    ensure_owner(review.user_id, current_user, "delete", "review")
    store.delete_review(review_id)
    return EmptyResponse()
