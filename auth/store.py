"""
auth/store.py -- SQLAlchemy Core persistence layer for identities.

Pattern: Repository + Data Mapper. IdentityStore is the repository;
_row_to_identity is the mapper. The service never touches SQL directly.

Uniqueness:
  user_id is the PRIMARY KEY and email carries a UNIQUE constraint. insert()
  issues a single INSERT and lets the database reject duplicates, so two
  concurrent registrations for the same email cannot both succeed -- the loser
  gets IntegrityError, mapped here to IdentityExists.

Email matching:
  find_by_email() is an exact, case-sensitive comparison (SQLite BINARY
  collation). No normalization is applied on write or read, so the two sides
  always agree.

Failures:
  IntegrityError -> IdentityExists(field). Any other SQLAlchemyError (locked
  or unreachable database, missing schema) -> StorageUnavailable. A missing
  row is None, never an exception.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import IdentityExists, StorageUnavailable
from auth.models import Identity

logger = logging.getLogger("gatekeeper.store")

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'gatekeeper_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("user_id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("about_me", Text),
    Column("joined", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class IdentityStore:
    """Repository for Identity records.

    Usage:
        store = IdentityStore("sqlite:///:memory:")
        store.insert(Identity(user_id="u1", name="Ada", email="ada@example.com", password_hash=h))
        identity = store.find_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.error("Could not initialize identity schema: %s", exc)
            raise StorageUnavailable() from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> Identity | None:
        """Look up an identity by exact email (case-sensitive). Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_users).where(_users.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            logger.error("find_by_email failed: %s", exc)
            raise StorageUnavailable() from exc
        return _row_to_identity(row) if row is not None else None

    def get_by_user_id(self, user_id: str) -> Identity | None:
        """Look up an identity by primary key. Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_users).where(_users.c.user_id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            logger.error("get_by_user_id failed: %s", exc)
            raise StorageUnavailable() from exc
        return _row_to_identity(row) if row is not None else None

    def insert(self, identity: Identity) -> Identity:
        """Insert a new identity and return it as stored.

        Raises IdentityExists("email") or IdentityExists("user_id") when the
        database rejects the row on a unique column. The constraint is the
        source of truth; callers may pre-check with find_by_email() but must
        still handle IdentityExists for the concurrent case.
        """
        joined = identity.joined or _now_iso()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    _users.insert().values(
                        user_id=identity.user_id,
                        name=identity.name,
                        email=identity.email,
                        password_hash=identity.password_hash,
                        about_me=identity.about_me,
                        joined=joined,
                        is_active=1 if identity.is_active else 0,
                    )
                )
        except IntegrityError as exc:
            raise IdentityExists(self._conflicting_field(identity)) from exc
        except SQLAlchemyError as exc:
            logger.error("insert failed: %s", exc)
            raise StorageUnavailable() from exc
        return Identity(
            user_id=identity.user_id,
            name=identity.name,
            email=identity.email,
            password_hash=identity.password_hash,
            about_me=identity.about_me,
            joined=joined,
            is_active=identity.is_active,
        )

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _conflicting_field(self, identity: Identity) -> str:
        # Driver error messages differ between backends; re-reading the row is portable.
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_users.c.user_id).where(_users.c.email == identity.email)).fetchone()
        except SQLAlchemyError as exc:
            logger.error("conflict lookup failed: %s", exc)
            raise StorageUnavailable() from exc
        return "email" if row is not None else "user_id"


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_identity(row) -> Identity:
    return Identity(
        user_id=row.user_id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        about_me=row.about_me,
        joined=row.joined,
        is_active=bool(row.is_active),
    )
