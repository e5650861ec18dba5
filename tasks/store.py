"""
tasks/store.py -- SQLAlchemy-backed persistence layer for tasks.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Every read joins tasks to the owner's users row so that the
owner's organization is available both for the visibility WHERE clause and
on the returned Task.

Visibility is applied in SQL, never by filtering a result list in memory:
find() and find_one() accept the VisibilityFilter produced by auth/policy.py.

Concurrency:
  update(id, fields) without expected_version is a plain last-writer-wins
  UPDATE. Callers that checked the row before writing are exposed to a
  check-then-act race. Passing expected_version turns the write into a
  compare-and-swap on the version column; a stale version updates zero rows.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore(engine)
    task = store.create(Task(title="Buy milk", owner_id=1))
    tasks = store.find(visibility_filter(actor))
    store.update(task.id, {"status": "DONE"}, expected_version=task.version)
    store.delete(task.id)
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import false, select
from sqlalchemy.engine import Engine

from auth.policy import VisibilityFilter
from core.database import now_iso, store_connection, tasks, users
from tasks.models import Task, TaskPriority, TaskStatus

# Columns a caller may change through update(). owner_id is absent: tasks are
# never reassigned.
_UPDATABLE_FIELDS = frozenset({"title", "description", "status", "priority", "category", "due_date"})


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, (TaskStatus, TaskPriority)) else value


class TaskStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _select(self, flt: Optional[VisibilityFilter]):
        query = select(tasks, users.c.organization_id.label("owner_organization_id")).select_from(
            tasks.join(users, tasks.c.owner_id == users.c.id)
        )
        if flt is None or flt.unrestricted:
            return query
        if flt.matches_nothing:
            return query.where(false())
        return query.where(users.c.organization_id == flt.organization_id)

    def find(self, flt: VisibilityFilter) -> list[Task]:
        """Return every task visible under the filter, oldest first."""
        with store_connection(self.engine) as conn:
            rows = conn.execute(self._select(flt).order_by(tasks.c.id)).fetchall()
        return [_row_to_task(r) for r in rows]

    def find_one(self, task_id: int, flt: VisibilityFilter) -> Optional[Task]:
        """Return the task if it exists AND is visible under the filter, else None."""
        with store_connection(self.engine) as conn:
            row = conn.execute(self._select(flt).where(tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    def get(self, task_id: int) -> Optional[Task]:
        """Unscoped lookup. Internal use only -- never expose its result without a policy check."""
        with store_connection(self.engine) as conn:
            row = conn.execute(self._select(None).where(tasks.c.id == task_id)).fetchone()
        return _row_to_task(row) if row is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, task: Task) -> Task:
        """Insert a new task and return it as stored (id, version, owner organization)."""
        stamp = now_iso()
        with store_connection(self.engine) as conn:
            result = conn.execute(
                tasks.insert().values(
                    title=task.title,
                    description=task.description,
                    status=_enum_value(task.status),
                    priority=_enum_value(task.priority),
                    category=task.category,
                    due_date=task.due_date,
                    owner_id=task.owner_id,
                    version=1,
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
            task_id = result.inserted_primary_key[0]
        return self.get(task_id)

    def update(self, task_id: int, fields: dict, expected_version: Optional[int] = None) -> int:
        """Apply field changes and bump the version. Returns the affected row count.

        With expected_version, the row is only updated if its version still
        matches. Unknown field names raise ValueError.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)!r}")
        values = {k: _enum_value(v) for k, v in fields.items()}
        values["version"] = tasks.c.version + 1
        values["updated_at"] = now_iso()

        stmt = tasks.update().where(tasks.c.id == task_id)
        if expected_version is not None:
            stmt = stmt.where(tasks.c.version == expected_version)
        with store_connection(self.engine) as conn:
            result = conn.execute(stmt.values(**values))
            conn.commit()
        return result.rowcount

    def delete(self, task_id: int) -> int:
        """Delete a task. Returns the affected row count (0 if it did not exist)."""
        with store_connection(self.engine) as conn:
            result = conn.execute(tasks.delete().where(tasks.c.id == task_id))
            conn.commit()
        return result.rowcount


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        status=TaskStatus(row.status),
        priority=TaskPriority(row.priority),
        category=row.category,
        due_date=row.due_date,
        owner_id=row.owner_id,
        version=row.version,
        owner_organization_id=row.owner_organization_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
