"""
audit/models.py -- Domain dataclass for the append-only audit trail.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AuditAction(str, Enum):
    CREATE_TASK = "CREATE_TASK"
    UPDATE_TASK = "UPDATE_TASK"
    DELETE_TASK = "DELETE_TASK"
    LOGIN_FAILED = "LOGIN_FAILED"
    VIEW_AUDIT_LOGS = "VIEW_AUDIT_LOGS"


@dataclass(frozen=True)
class AuditRecord:
    """Immutable entry: who did what to which resource, and when.

    Records are never updated or deleted -- only inserted.

    actor_user_id is None only for events with no authenticated identity
    (failed logins). actor_username is resolved at read time and is None when
    the actor is unknown or has since been deleted.
    """

    action: str
    resource: str  # e.g. "Task:123"
    timestamp: str  # ISO 8601 UTC
    actor_user_id: Optional[int] = None
    actor_username: Optional[str] = None
    id: Optional[int] = None
