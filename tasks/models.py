"""
tasks/models.py -- Domain dataclasses for tasks.

These are pure data containers with zero logic. Authorization lives in
auth/policy.py; persistence lives in tasks/store.py.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass
class Task:
    """A unit of work with exactly one owner.

    owner_organization_id is not a task column. The store fills it in from the
    owner's users row on every read, since a task inherits its owner's
    organization. It is None before the task is written and for owners with
    no organization.

    version starts at 1 and increments on every update; compare-and-swap
    updates key on it.

    id is None before the record is written to the database.
    """

    title: str
    owner_id: int
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = "WORK"
    due_date: Optional[str] = None  # YYYY-MM-DD
    id: Optional[int] = None
    version: int = 1
    owner_organization_id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
