"""
audit/store.py -- Append-only audit trail.

Pattern: Repository + Data Mapper. AuditLog exposes exactly two operations:
record() appends, recent() reads the newest window. There is no update or
delete method; records are immutable once written.

Reading the log is itself an audited event. recent() fetches the window and
then appends one VIEW_AUDIT_LOGS record for the viewer, so every read grows
the log by exactly one entry. The returned window does not contain that entry.

Failures: a store outage raises StoreUnavailable. Nothing here retries.
Whether a failed write is fatal is the caller's decision (tasks/service.py
logs and continues, because the mutation it describes already committed).

Who may call recent() is enforced by the caller (OWNER/ADMIN), not here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.engine import Engine

from audit.models import AuditAction, AuditRecord
from core.database import audit_log, now_iso, store_connection, users

logger = logging.getLogger("taskguard.audit")

DEFAULT_RECENT_LIMIT = 100


def task_resource(task_id: int) -> str:
    return f"Task:{task_id}"


def login_resource(username: str) -> str:
    return f"Username: {username}"


AUDIT_LOG_RESOURCE = "AuditLog"


class AuditLog:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def record(self, actor_user_id: int | None, action: AuditAction | str, resource: str) -> AuditRecord:
        """Append one record and return it with its assigned id and timestamp."""
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        timestamp = now_iso()
        with store_connection(self.engine) as conn:
            result = conn.execute(
                audit_log.insert().values(
                    actor_user_id=actor_user_id,
                    action=action_value,
                    resource=resource,
                    timestamp=timestamp,
                )
            )
            conn.commit()
            record_id = result.inserted_primary_key[0]
        logger.debug("audit %s %s actor=%s", action_value, resource, actor_user_id)
        return AuditRecord(
            id=record_id,
            actor_user_id=actor_user_id,
            action=action_value,
            resource=resource,
            timestamp=timestamp,
        )

    def recent(self, viewer_user_id: int | None, limit: int = DEFAULT_RECENT_LIMIT) -> list[AuditRecord]:
        """Return the newest `limit` records, newest first, then log the read.

        Ties on timestamp are broken by id so insertion order is preserved.
        Usernames come from an outer join and are None for unknown actors.
        """
        query = (
            select(audit_log, users.c.username.label("actor_username"))
            .select_from(audit_log.outerjoin(users, audit_log.c.actor_user_id == users.c.id))
            .order_by(audit_log.c.timestamp.desc(), audit_log.c.id.desc())
            .limit(limit)
        )
        with store_connection(self.engine) as conn:
            rows = conn.execute(query).fetchall()
        window = [_row_to_record(r) for r in rows]
        self.record(viewer_user_id, AuditAction.VIEW_AUDIT_LOGS, AUDIT_LOG_RESOURCE)
        return window


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_record(row) -> AuditRecord:
    return AuditRecord(
        id=row.id,
        actor_user_id=row.actor_user_id,
        actor_username=row.actor_username,
        action=row.action,
        resource=row.resource,
        timestamp=row.timestamp,
    )
