"""
api/routes/v1/courses.py -- Course routes.

Routes:
  GET    /courses                         -- all courses, paginated (public)
  GET    /bootcamps/{bootcamp_id}/courses -- courses of one bootcamp (public)
  POST   /bootcamps/{bootcamp_id}/courses -- add a course (bootcamp owner or admin)
  GET    /courses/{id}                    -- detail (public)
  PUT    /courses/{id}                    -- update (course owner or admin)
  DELETE /courses/{id}                    -- delete (course owner or admin)

Course writes refresh the parent bootcamp's average_cost (see directory/store.py).
"""

from fastapi import APIRouter, Depends, Request

from api.models import CourseCreate, CourseListResponse, CourseOut, CourseResponse, CourseUpdate, EmptyResponse
from api.pagination import PageParams, ResourceId, page_params
from auth.dependencies import get_current_user
from auth.guard import ensure_owner
from auth.models import User
from core.errors import NotFound
from directory.models import Course
from directory.store import DirectoryStore

router = APIRouter()


def _get_or_404(store: DirectoryStore, course_id: int) -> Course:
    course = store.get_course(course_id)
    if course is None:
        raise NotFound(f"No course with the id of {course_id}")
    return course


def _list(store: DirectoryStore, page: PageParams, bootcamp_id=None) -> CourseListResponse:
    total = store.count_courses(bootcamp_id=bootcamp_id)
    courses = store.list_courses(bootcamp_id=bootcamp_id, offset=page.offset, limit=page.limit)
    return CourseListResponse(
        count=len(courses),
        pagination=page.links(total),
        data=[CourseOut.from_course(c) for c in courses],
    )


@router.get("/courses", response_model=CourseListResponse)
def list_courses(request: Request, page: PageParams = Depends(page_params)) -> CourseListResponse:
    return _list(request.app.state.directory, page)


@router.get("/bootcamps/{bootcamp_id}/courses", response_model=CourseListResponse)
def list_bootcamp_courses(
    request: Request, bootcamp_id: ResourceId, page: PageParams = Depends(page_params)
) -> CourseListResponse:
    store: DirectoryStore = request.app.state.directory
    if store.get_bootcamp(bootcamp_id) is None:
        raise NotFound(f"No bootcamp with the id of {bootcamp_id}")
    return _list(store, page, bootcamp_id=bootcamp_id)


@router.post("/bootcamps/{bootcamp_id}/courses", response_model=CourseResponse, status_code=201)
def create_course(
    request: Request,
    bootcamp_id: ResourceId,
    body: CourseCreate,
    current_user: User = Depends(get_current_user),
) -> CourseResponse:
    """Add a course to a bootcamp. Only the bootcamp's owner (or an admin) may."""
    store: DirectoryStore = request.app.state.directory
    bootcamp = store.get_bootcamp(bootcamp_id)
    if bootcamp is None:
        raise NotFound(f"No bootcamp with the id of {bootcamp_id}")
    ensure_owner(bootcamp.user_id, current_user, "add a course to", "bootcamp")

    course_id = store.create_course(
        Course(
            title=body.title,
            description=body.description,
            weeks=body.weeks,
            tuition=body.tuition,
            minimum_skill=body.minimum_skill.value,
            scholarship_available=body.scholarship_available,
            bootcamp_id=bootcamp_id,
            user_id=current_user.id,
        )
    )
    return CourseResponse(data=CourseOut.from_course(_get_or_404(store, course_id)))


@router.get("/courses/{course_id}", response_model=CourseResponse)
def get_course(request: Request, course_id: ResourceId) -> CourseResponse:
    return CourseResponse(data=CourseOut.from_course(_get_or_404(request.app.state.directory, course_id)))


@router.put("/courses/{course_id}", response_model=CourseResponse)
def update_course(
    request: Request,
    course_id: ResourceId,
    body: CourseUpdate,
    current_user: User = Depends(get_current_user),
) -> CourseResponse:
    store: DirectoryStore = request.app.state.directory
    course = _get_or_404(store, course_id)
    ensure_owner(course.user_id, current_user, "update", "course")

    updates = body.model_dump(exclude_none=True, mode="json")
    store.update_course(course_id, **updates)
    return CourseResponse(data=CourseOut.from_course(_get_or_404(store, course_id)))


@router.delete("/courses/{course_id}", response_model=EmptyResponse)
def delete_course(
    request: Request,
    course_id: ResourceId,
    current_user: User = Depends(get_current_user),
) -> EmptyResponse:
    store: DirectoryStore = request.app.state.directory
    course = _get_or_404(store, course_id)
    ensure_owner(course.user_id, current_user, "delete", "course")
    store.delete_course(course_id)
    return EmptyResponse()
