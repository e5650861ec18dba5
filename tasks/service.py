"""
tasks/service.py -- Policy-enforcing facade over TaskStore.

Routes call TaskService, never TaskStore. Each operation follows the same
order:

  1. Visibility lookup  -- find_one() with the actor's VisibilityFilter.
                           Absent and out-of-scope both become NotFound.
  2. Policy check       -- can_create / can_mutate. DENY becomes Forbidden.
  3. Store mutation     -- update() is a compare-and-swap on the version
                           read in step 1 (or the client's version).
  4. Audit              -- one record per successful mutation. A failed audit
                           write is logged and swallowed; the mutation stands.

The HTTP boundary also gates each operation by role (auth/dependencies.require).
Both checks stay: the boundary rejects by role before any lookup, the service
enforces ownership and scope for every caller, tests included.
"""

from __future__ import annotations

import logging
from typing import Optional

from audit.models import AuditAction
from audit.store import AuditLog, task_resource
from auth.models import ActorIdentity
from auth.policy import can_create, can_mutate, can_read, visibility_filter
from core.errors import Conflict, Forbidden, NotFound, StoreUnavailable
from tasks.models import Task
from tasks.store import TaskStore

logger = logging.getLogger("taskguard.tasks")


class TaskService:
    def __init__(self, store: TaskStore, audit: AuditLog) -> None:
        self.store = store
        self.audit = audit

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_tasks(self, actor: ActorIdentity) -> list[Task]:
        return self.store.find(visibility_filter(actor))

    def get(self, actor: ActorIdentity, task_id: int) -> Task:
        task = self.store.find_one(task_id, visibility_filter(actor))
        if task is None or not can_read(actor, task):
            raise NotFound("Task not found.")
        return task

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, actor: ActorIdentity, fields: dict) -> Task:
        if not can_create(actor):
            raise Forbidden("Your role cannot create tasks.")
        created = self.store.create(Task(owner_id=actor.user_id, **fields))
        self._audit(actor, AuditAction.CREATE_TASK, created.id)
        return created

    def update(
        self,
        actor: ActorIdentity,
        task_id: int,
        fields: dict,
        expected_version: Optional[int] = None,
    ) -> Task:
        task = self.get(actor, task_id)
        if not can_mutate(actor, task):
            raise Forbidden("You can only update your own tasks.")
        version = expected_version if expected_version is not None else task.version
        if self.store.update(task_id, fields, expected_version=version) == 0:
            if self.store.get(task_id) is None:
                raise NotFound("Task not found.")
            raise Conflict()
        self._audit(actor, AuditAction.UPDATE_TASK, task_id)
        return self.get(actor, task_id)

    def delete(self, actor: ActorIdentity, task_id: int) -> None:
        task = self.get(actor, task_id)
        if not can_mutate(actor, task):
            raise Forbidden("You can only delete your own tasks.")
        if self.store.delete(task_id) == 0:
            raise NotFound("Task not found.")
        self._audit(actor, AuditAction.DELETE_TASK, task_id)

    def _audit(self, actor: ActorIdentity, action: AuditAction, task_id: int) -> None:
        try:
            self.audit.record(actor.user_id, action, task_resource(task_id))
        except StoreUnavailable:
            logger.exception("Audit write failed for %s on Task:%s by user %s", action.value, task_id, actor.user_id)
