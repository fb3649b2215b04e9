"""
directory/models.py -- Domain dataclasses for the bootcamp directory.

These are pure data containers with zero logic. Aggregates (average_cost,
average_rating) and cascade rules live in directory/store.py.

user_id on every entity is the owner: the account that created the record.
The ownership guard in auth/guard.py compares it with the acting user.
"""

from dataclasses import dataclass, field
from typing import Optional

CAREERS = (
    "Web Development",
    "Mobile Development",
    "UI/UX",
    "Data Science",
    "Business",
    "Other",
)

SKILL_LEVELS = ("beginner", "intermediate", "advanced")


@dataclass
class Bootcamp:
    """A listed bootcamp.

    average_cost and average_rating are derived from the bootcamp's courses
    and reviews; the store recomputes them after every course/review write.
    They are None while the bootcamp has no courses / no reviews.

    id is None before the record is written to the database.
    """

    name: str
    description: str
    user_id: int
    slug: str = ""
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    careers: list[str] = field(default_factory=list)
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False
    average_cost: Optional[int] = None
    average_rating: Optional[float] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class Course:
    title: str
    description: str
    weeks: int
    tuition: int
    minimum_skill: str  # "beginner" | "intermediate" | "advanced"
    bootcamp_id: int
    user_id: int
    scholarship_available: bool = False
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class Review:
    """A user's rating of a bootcamp. At most one per (bootcamp_id, user_id)."""

    title: str
    text: str
    rating: int  # 1..10
    bootcamp_id: int
    user_id: int
    id: Optional[int] = None
    created_at: str = ""
