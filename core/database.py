"""
core/database.py -- Shared SQLAlchemy Core schema and engine factory.

All TaskGuard tables live on one MetaData so the identity, task, and audit
stores can share a single engine. The task store needs this: organization
scoping is a JOIN from tasks to their owner's users row, evaluated in SQL.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py,
tasks/models.py and audit/models.py stay the authoritative domain shape.
Swapping SQLite for PostgreSQL is a connection string change.

Foreign keys are declared for documentation; cascades are performed explicitly
by the stores because SQLite does not enforce them unless PRAGMA foreign_keys
is on.

Layer rule: core/ is the kernel. No imports from api/, auth/, audit/, or tasks/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from core.errors import StoreUnavailable

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

organizations = Table(
    "organizations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(10), nullable=False, server_default="VIEWER"),
    Column("organization_id", Integer, ForeignKey("organizations.id")),  # NULL only during bootstrap
    Column("created_at", String(32), nullable=False),
)

tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("status", String(20), nullable=False, server_default="TODO"),
    Column("priority", String(10), nullable=False, server_default="MEDIUM"),
    Column("category", String(50), server_default="WORK"),
    Column("due_date", String(10)),  # YYYY-MM-DD
    Column("owner_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("version", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Index("ix_tasks_owner_id", "owner_id"),
)

audit_log = Table(
    "audit_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("actor_user_id", Integer),  # NULL for pre-authentication events
    Column("action", String(50), nullable=False),
    Column("resource", Text, nullable=False),
    Column("timestamp", String(32), nullable=False),
    Index("ix_audit_log_timestamp", "timestamp"),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the engine and create any missing tables.

    SQLite requires check_same_thread=False because FastAPI runs sync route
    handlers in a thread pool and pooled connections cross threads.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    metadata.create_all(engine)
    return engine


@contextmanager
def store_connection(engine: Engine) -> Iterator[Connection]:
    """Yield a connection, translating connectivity failures into StoreUnavailable."""
    try:
        with engine.connect() as conn:
            yield conn
    except OperationalError as exc:
        raise StoreUnavailable() from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
