"""
directory/store.py -- SQLAlchemy-backed persistence for bootcamps, courses and reviews.

Uses SQLAlchemy Core (not ORM) so the dataclasses in directory/models.py stay
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. DirectoryStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

Derived fields:
  bootcamps.average_cost   -- mean course tuition, rounded up to the next 10
  bootcamps.average_rating -- mean review rating
  Both are recomputed inside the same transaction as every course/review
  insert, update and delete (_refresh_average_cost / _refresh_average_rating).

Ids are never reused (sqlite_autoincrement on every table).

Cascade: delete_bootcamp() removes the bootcamp's courses and reviews in the
same transaction.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = DirectoryStore("sqlite:///devcamper.db")
    bootcamp_id = store.create_bootcamp(bootcamp)
    store.create_course(course)
    bootcamps = store.list_bootcamps(offset=0, limit=25)
    store.close()
"""

import json
import math
import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Connection, Engine

from directory.models import Bootcamp, Course, Review

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_bootcamps = Table(
    "bootcamps",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("slug", String(60), nullable=False),
    Column("description", String(500), nullable=False),
    Column("website", String(255)),
    Column("phone", String(20)),
    Column("email", String(255)),
    Column("address", String(255)),
    Column("careers", Text),  # JSON array serialized as text
    Column("housing", Integer, nullable=False, server_default="0"),  # booleans stored as 0/1
    Column("job_assistance", Integer, nullable=False, server_default="0"),
    Column("job_guarantee", Integer, nullable=False, server_default="0"),
    Column("accept_gi", Integer, nullable=False, server_default="0"),
    Column("average_cost", Integer),
    Column("average_rating", Float),
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    sqlite_autoincrement=True,
)

_courses = Table(
    "courses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(100), nullable=False),
    Column("description", Text, nullable=False),
    Column("weeks", Integer, nullable=False),
    Column("tuition", Integer, nullable=False),
    Column("minimum_skill", String(20), nullable=False),
    Column("scholarship_available", Integer, nullable=False, server_default="0"),
    Column("bootcamp_id", Integer, nullable=False, index=True),
    Column("user_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    sqlite_autoincrement=True,
)

_reviews = Table(
    "reviews",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(100), nullable=False),
    Column("text", Text, nullable=False),
    Column("rating", Integer, nullable=False),
    Column("bootcamp_id", Integer, nullable=False, index=True),
    Column("user_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("bootcamp_id", "user_id", name="uq_review_bootcamp_user"),
    sqlite_autoincrement=True,
)

_BOOL_FIELDS = ("housing", "job_assistance", "job_guarantee", "accept_gi", "scholarship_available")

_slug_pattern = re.compile(r"[^a-z0-9]+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(value: str) -> str:
    """Lower-case, hyphen-separated URL slug: "Devworks Bootcamp" -> "devworks-bootcamp"."""
    return _slug_pattern.sub("-", value.lower()).strip("-")


def _to_db(fields: dict) -> dict:
    """Convert domain values to column values (bools -> 0/1, careers -> JSON)."""
    out = dict(fields)
    for key in _BOOL_FIELDS:
        if key in out:
            out[key] = 1 if out[key] else 0
    if "careers" in out:
        out["careers"] = json.dumps(list(out["careers"]))
    return out


def _round_cost(average: Optional[float]) -> Optional[int]:
    """Round an average tuition up to the next multiple of 10."""
    if average is None:
        return None
    return int(math.ceil(average / 10) * 10)


def _refresh_average_cost(conn: Connection, bootcamp_id: int) -> None:
    average = conn.execute(select(func.avg(_courses.c.tuition)).where(_courses.c.bootcamp_id == bootcamp_id)).scalar()
    conn.execute(
        _bootcamps.update().where(_bootcamps.c.id == bootcamp_id).values(average_cost=_round_cost(average))
    )


def _refresh_average_rating(conn: Connection, bootcamp_id: int) -> None:
    average = conn.execute(select(func.avg(_reviews.c.rating)).where(_reviews.c.bootcamp_id == bootcamp_id)).scalar()
    rating = round(float(average), 1) if average is not None else None
    conn.execute(_bootcamps.update().where(_bootcamps.c.id == bootcamp_id).values(average_rating=rating))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DirectoryStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a threadpool, so one pooled
            # connection may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Bootcamps
    # ------------------------------------------------------------------

    def create_bootcamp(self, bootcamp: Bootcamp) -> int:
        """Insert a bootcamp and return its ID.

        The slug is derived from the name. Raises sqlalchemy.exc.IntegrityError
        if the name is already taken.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _bootcamps.insert().values(
                    **_to_db(
                        {
                            "name": bootcamp.name,
                            "slug": slugify(bootcamp.name),
                            "description": bootcamp.description,
                            "website": bootcamp.website,
                            "phone": bootcamp.phone,
                            "email": bootcamp.email,
                            "address": bootcamp.address,
                            "careers": bootcamp.careers,
                            "housing": bootcamp.housing,
                            "job_assistance": bootcamp.job_assistance,
                            "job_guarantee": bootcamp.job_guarantee,
                            "accept_gi": bootcamp.accept_gi,
                            "user_id": bootcamp.user_id,
                            "created_at": _now_iso(),
                        }
                    )
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_bootcamp(self, bootcamp_id: int) -> Optional[Bootcamp]:
        """Fetch a single bootcamp by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_bootcamps.select().where(_bootcamps.c.id == bootcamp_id)).fetchone()
        return _row_to_bootcamp(row) if row is not None else None

    def list_bootcamps(self, offset: int = 0, limit: Optional[int] = None) -> list[Bootcamp]:
        """Return bootcamps ordered by creation (oldest first)."""
        query = _bootcamps.select().order_by(_bootcamps.c.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_bootcamp(r) for r in rows]

    def count_bootcamps(self, user_id: Optional[int] = None) -> int:
        """Count all bootcamps, or only those owned by user_id."""
        query = select(func.count()).select_from(_bootcamps)
        if user_id is not None:
            query = query.where(_bootcamps.c.user_id == user_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def update_bootcamp(self, bootcamp_id: int, **fields) -> bool:
        """Update mutable fields on a bootcamp. Renaming regenerates the slug.

        Returns True if a row was updated, False if bootcamp_id was not found.
        Raises IntegrityError if the new name is taken.
        """
        if "name" in fields:
            fields["slug"] = slugify(fields["name"])
        if not fields:
            return self.get_bootcamp(bootcamp_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(
                _bootcamps.update().where(_bootcamps.c.id == bootcamp_id).values(**_to_db(fields))
            )
            conn.commit()
        return result.rowcount > 0

    def delete_bootcamp(self, bootcamp_id: int) -> bool:
        """Delete a bootcamp together with its courses and reviews."""
        with self.engine.begin() as conn:
            conn.execute(_courses.delete().where(_courses.c.bootcamp_id == bootcamp_id))
            conn.execute(_reviews.delete().where(_reviews.c.bootcamp_id == bootcamp_id))
            result = conn.execute(_bootcamps.delete().where(_bootcamps.c.id == bootcamp_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def create_course(self, course: Course) -> int:
        """Insert a course, refresh the bootcamp's average_cost, return the course ID."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _courses.insert().values(
                    **_to_db(
                        {
                            "title": course.title,
                            "description": course.description,
                            "weeks": course.weeks,
                            "tuition": course.tuition,
                            "minimum_skill": course.minimum_skill,
                            "scholarship_available": course.scholarship_available,
                            "bootcamp_id": course.bootcamp_id,
                            "user_id": course.user_id,
                            "created_at": _now_iso(),
                        }
                    )
                )
            )
            _refresh_average_cost(conn, course.bootcamp_id)
        return result.inserted_primary_key[0]

    def get_course(self, course_id: int) -> Optional[Course]:
        with self.engine.connect() as conn:
            row = conn.execute(_courses.select().where(_courses.c.id == course_id)).fetchone()
        return _row_to_course(row) if row is not None else None

    def list_courses(
        self, bootcamp_id: Optional[int] = None, offset: int = 0, limit: Optional[int] = None
    ) -> list[Course]:
        """Return courses, optionally restricted to one bootcamp."""
        query = _courses.select().order_by(_courses.c.id).offset(offset)
        if bootcamp_id is not None:
            query = query.where(_courses.c.bootcamp_id == bootcamp_id)
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_course(r) for r in rows]

    def count_courses(self, bootcamp_id: Optional[int] = None) -> int:
        query = select(func.count()).select_from(_courses)
        if bootcamp_id is not None:
            query = query.where(_courses.c.bootcamp_id == bootcamp_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def update_course(self, course_id: int, **fields) -> bool:
        """Update a course and refresh its bootcamp's average_cost."""
        course = self.get_course(course_id)
        if course is None:
            return False
        if not fields:
            return True
        with self.engine.begin() as conn:
            conn.execute(_courses.update().where(_courses.c.id == course_id).values(**_to_db(fields)))
            _refresh_average_cost(conn, course.bootcamp_id)
        return True

    def delete_course(self, course_id: int) -> bool:
        course = self.get_course(course_id)
        if course is None:
            return False
        with self.engine.begin() as conn:
            conn.execute(_courses.delete().where(_courses.c.id == course_id))
            _refresh_average_cost(conn, course.bootcamp_id)
        return True

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def create_review(self, review: Review) -> int:
        """Insert a review, refresh the bootcamp's average_rating, return the review ID.

        Raises IntegrityError if the user already reviewed this bootcamp.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                _reviews.insert().values(
                    title=review.title,
                    text=review.text,
                    rating=review.rating,
                    bootcamp_id=review.bootcamp_id,
                    user_id=review.user_id,
                    created_at=_now_iso(),
                )
            )
            _refresh_average_rating(conn, review.bootcamp_id)
        return result.inserted_primary_key[0]

    def get_review(self, review_id: int) -> Optional[Review]:
        with self.engine.connect() as conn:
            row = conn.execute(_reviews.select().where(_reviews.c.id == review_id)).fetchone()
        return _row_to_review(row) if row is not None else None

    def get_review_by_user(self, bootcamp_id: int, user_id: int) -> Optional[Review]:
        """Return user_id's review of bootcamp_id, if they wrote one."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _reviews.select().where((_reviews.c.bootcamp_id == bootcamp_id) & (_reviews.c.user_id == user_id))
            ).fetchone()
        return _row_to_review(row) if row is not None else None

    def list_reviews(
        self, bootcamp_id: Optional[int] = None, offset: int = 0, limit: Optional[int] = None
    ) -> list[Review]:
        query = _reviews.select().order_by(_reviews.c.id).offset(offset)
        if bootcamp_id is not None:
            query = query.where(_reviews.c.bootcamp_id == bootcamp_id)
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_review(r) for r in rows]

    def count_reviews(self, bootcamp_id: Optional[int] = None) -> int:
        query = select(func.count()).select_from(_reviews)
        if bootcamp_id is not None:
            query = query.where(_reviews.c.bootcamp_id == bootcamp_id)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def update_review(self, review_id: int, **fields) -> bool:
        """Update a review and refresh its bootcamp's average_rating."""
        review = self.get_review(review_id)
        if review is None:
            return False
        if not fields:
            return True
        with self.engine.begin() as conn:
            conn.execute(_reviews.update().where(_reviews.c.id == review_id).values(**fields))
            _refresh_average_rating(conn, review.bootcamp_id)
        return True

    def delete_review(self, review_id: int) -> bool:
        review = self.get_review(review_id)
        if review is None:
            return False
        with self.engine.begin() as conn:
            conn.execute(_reviews.delete().where(_reviews.c.id == review_id))
            _refresh_average_rating(conn, review.bootcamp_id)
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_bootcamp(row) -> Bootcamp:
    return Bootcamp(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        website=row.website,
        phone=row.phone,
        email=row.email,
        address=row.address,
        careers=json.loads(row.careers) if row.careers else [],
        housing=bool(row.housing),
        job_assistance=bool(row.job_assistance),
        job_guarantee=bool(row.job_guarantee),
        accept_gi=bool(row.accept_gi),
        average_cost=row.average_cost,
        average_rating=row.average_rating,
        user_id=row.user_id,
        created_at=row.created_at,
    )


def _row_to_course(row) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        description=row.description,
        weeks=row.weeks,
        tuition=row.tuition,
        minimum_skill=row.minimum_skill,
        scholarship_available=bool(row.scholarship_available),
        bootcamp_id=row.bootcamp_id,
        user_id=row.user_id,
        created_at=row.created_at,
    )


def _row_to_review(row) -> Review:
    return Review(
        id=row.id,
        title=row.title,
        text=row.text,
        rating=row.rating,
        bootcamp_id=row.bootcamp_id,
        user_id=row.user_id,
        created_at=row.created_at,
    )
