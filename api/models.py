"""
API request and response models for DevCamper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
directory/models.py, which own the internal domain representation. Route
handlers map between the two.

Every successful response is wrapped in a {"success": true, ...} envelope;
errors use ErrorResponse ({"success": false, "error": "..."}).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from auth.models import Role, User
from auth.tokens import MAX_PASSWORD_BYTES
from directory.models import Bootcamp, Course, Review

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$"
URL_PATTERN = r"^https?://[^\s/$.?#].[^\s]*$"

_PASSWORD_MIN = 6


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SkillEnum(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class CareerEnum(str, Enum):
    web_development = "Web Development"
    mobile_development = "Mobile Development"
    ui_ux = "UI/UX"
    data_science = "Data Science"
    business = "Business"
    other = "Other"


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: str


class TokenResponse(BaseModel):
    """Body of every response that issues a session token."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    token: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: str


class EmptyResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: dict = Field(default_factory=dict)


class PageLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    limit: int


class Pagination(BaseModel):
    """next / prev are present only when that page exists."""

    model_config = ConfigDict(frozen=True)

    next: Optional[PageLink] = None
    prev: Optional[PageLink] = None

    @model_serializer(mode="wrap")
    def drop_missing_links(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=_PASSWORD_MIN)
    role: Role = Role.standard

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    # Not length-checked: a wrong-length password is just a wrong password.
    password: str = Field(min_length=1, max_length=255)


class UpdateDetailsRequest(BaseModel):
    """Request body for PUT /api/v1/auth/updatedetails. Omitted fields are unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)


class UpdatePasswordRequest(BaseModel):
    """Request body for PUT /api/v1/auth/updatepassword (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword", min_length=1, max_length=255)
    new_password: str = Field(alias="newPassword", min_length=_PASSWORD_MIN)

    @field_validator("new_password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


class ForgotPasswordRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=_PASSWORD_MIN)

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user. Never carries the password hash or reset fields."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: Role
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at or "",
        )


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: UserOut


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    count: int
    pagination: Pagination
    data: list[UserOut]


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users (admin). Admins may create admins."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=_PASSWORD_MIN)
    role: Role = Role.standard

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    role: Optional[Role] = None


# ---------------------------------------------------------------------------
# Bootcamps
# ---------------------------------------------------------------------------


class BootcampCreate(BaseModel):
    """Request body for POST /api/v1/bootcamps."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=500)
    website: Optional[str] = Field(default=None, pattern=URL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    address: Optional[str] = Field(default=None, max_length=255)
    careers: list[CareerEnum] = Field(min_length=1)
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False


class BootcampUpdate(BaseModel):
    """Request body for PUT /api/v1/bootcamps/{id}. Omitted fields are unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    website: Optional[str] = Field(default=None, pattern=URL_PATTERN, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    address: Optional[str] = Field(default=None, max_length=255)
    careers: Optional[list[CareerEnum]] = Field(default=None, min_length=1)
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None


class BootcampOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str
    description: str
    website: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    careers: list[str]
    housing: bool
    job_assistance: bool
    job_guarantee: bool
    accept_gi: bool
    average_cost: Optional[int]
    average_rating: Optional[float]
    user_id: int
    created_at: str

    @classmethod
    def from_bootcamp(cls, bootcamp: Bootcamp) -> "BootcampOut":
        return cls(
            id=bootcamp.id,
            name=bootcamp.name,
            slug=bootcamp.slug,
            description=bootcamp.description,
            website=bootcamp.website,
            phone=bootcamp.phone,
            email=bootcamp.email,
            address=bootcamp.address,
            careers=bootcamp.careers,
            housing=bootcamp.housing,
            job_assistance=bootcamp.job_assistance,
            job_guarantee=bootcamp.job_guarantee,
            accept_gi=bootcamp.accept_gi,
            average_cost=bootcamp.average_cost,
            average_rating=bootcamp.average_rating,
            user_id=bootcamp.user_id,
            created_at=bootcamp.created_at,
        )


class BootcampResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: BootcampOut


class BootcampListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    count: int
    pagination: Pagination
    data: list[BootcampOut]


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class CourseCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    weeks: int = Field(gt=0, le=104)
    tuition: int = Field(ge=0)
    minimum_skill: SkillEnum
    scholarship_available: bool = False


class CourseUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1)
    weeks: Optional[int] = Field(default=None, gt=0, le=104)
    tuition: Optional[int] = Field(default=None, ge=0)
    minimum_skill: Optional[SkillEnum] = None
    scholarship_available: Optional[bool] = None


class CourseOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    weeks: int
    tuition: int
    minimum_skill: str
    scholarship_available: bool
    bootcamp_id: int
    user_id: int
    created_at: str

    @classmethod
    def from_course(cls, course: Course) -> "CourseOut":
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            weeks=course.weeks,
            tuition=course.tuition,
            minimum_skill=course.minimum_skill,
            scholarship_available=course.scholarship_available,
            bootcamp_id=course.bootcamp_id,
            user_id=course.user_id,
            created_at=course.created_at,
        )


class CourseResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: CourseOut


class CourseListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    count: int
    pagination: Pagination
    data: list[CourseOut]


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class ReviewCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=100)
    text: str = Field(min_length=1)
    rating: int = Field(ge=1, le=10)


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    text: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[int] = Field(default=None, ge=1, le=10)


class ReviewOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    text: str
    rating: int
    bootcamp_id: int
    user_id: int
    created_at: str

    @classmethod
    def from_review(cls, review: Review) -> "ReviewOut":
        return cls(
            id=review.id,
            title=review.title,
            text=review.text,
            rating=review.rating,
            bootcamp_id=review.bootcamp_id,
            user_id=review.user_id,
            created_at=review.created_at,
        )


class ReviewResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: ReviewOut


class ReviewListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    count: int
    pagination: Pagination
    data: list[ReviewOut]
