"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as directory/store.py).
UserStore is the repository; _row_to_user is the mapper.
Service and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  The email column carries a UNIQUE constraint; create_user() and
  update_user() surface violations as sqlalchemy.exc.IntegrityError and the
  caller decides what that means.

Ids:
  sqlite_autoincrement keeps SQLite from handing a deleted user's id to the
  next registrant. Session tokens and owned resources refer to users by id.

Timestamps:
  reset_password_expire is stored as integer microseconds since the epoch so
  the "expiry still in the future" check is an exact integer comparison in
  SQL, independent of how the driver renders datetimes.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import BigInteger, Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import Role, User

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.standard.value),
    Column("reset_password_token", String(64), index=True),  # HMAC-SHA256 hex
    Column("reset_password_expire", BigInteger),  # microseconds since epoch, UTC
    Column("created_at", String(32), nullable=False),
    sqlite_autoincrement=True,
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_micros(dt: datetime) -> int:
    """Exact integer microseconds since the epoch. Naive datetimes are UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // _MICROSECOND


def _from_micros(value: int | None) -> datetime | None:
    if value is None:
        return None
    return _EPOCH + value * _MICROSECOND


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///devcamper.db")
        user_id = store.create_user(User(name="Ada", email="ada@x.io", hashed_password=hash_password("secret1")))
        user = store.get_by_email("ada@x.io")
        store.close()
    """

    # Columns update_user() may touch. Anything else is a programming error.
    _UPDATABLE: frozenset = frozenset({"name", "email", "role", "hashed_password"})

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Emails are stored lower-cased. Raises sqlalchemy.exc.IntegrityError if
        the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.lower(),
                    hashed_password=user.hashed_password,
                    role=user.role.value,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_reset_token(self, token_hash: str, now: datetime) -> User | None:
        """Return the user holding token_hash, only if its expiry is after now.

        Both conditions live in one WHERE clause, so a wrong hash and an
        expired hash are indistinguishable to the caller.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(
                    (_users.c.reset_password_token == token_hash)
                    & (_users.c.reset_password_expire > _to_micros(now))
                )
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, offset: int = 0, limit: int | None = None) -> list[User]:
        """Return users ordered by id. Admin-only operation."""
        query = _users.select().order_by(_users.c.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: name, email, role, hashed_password. role may be passed
        as a Role member. Returns True if a row was updated, False if user_id
        was not found. Raises IntegrityError on a duplicate email.
        """
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        if not fields:
            return self.get_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def set_reset_token(self, user_id: int, token_hash: str, expires_at: datetime) -> None:
        """Persist a reset token digest and its absolute expiry."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(reset_password_token=token_hash, reset_password_expire=_to_micros(expires_at))
            )
            conn.commit()

    def clear_reset_token(self, user_id: int) -> None:
        """Remove any outstanding reset token. Idempotent."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(reset_password_token=None, reset_password_expire=None)
            )
            conn.commit()

    def complete_password_reset(self, user_id: int, hashed_password: str) -> None:
        """Store the new password hash and clear the reset fields in one UPDATE."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(hashed_password=hashed_password, reset_password_token=None, reset_password_expire=None)
            )
            conn.commit()

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Bootcamps, courses and reviews owned by the user are left in place.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        reset_password_token=row.reset_password_token,
        reset_password_expire=_from_micros(row.reset_password_expire),
        created_at=row.created_at,
    )
