"""
auth/policy.py -- Role and ownership authorization policy.

Everything here is a pure function of (actor, task). Nothing raises, nothing
touches a store. Callers translate a False into Forbidden or NotFound.

Two scopes apply, and they differ on purpose:
  Visibility (list, read):  organization-scoped. A non-OWNER sees every task
                            owned by a user in their own organization.
  Mutation (update, delete): ownership-scoped. An ADMIN may change only tasks
                            they own; an OWNER may change any task; a VIEWER
                            may change nothing.

Role requirements per operation live in OPERATION_ROLES, the single table the
HTTP boundary consults (see auth/dependencies.require).

Layer rule: no imports from api/ or audit/. tasks/models is imported for the
Task shape only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from auth.models import ActorIdentity, Role
from tasks.models import Task

# ---------------------------------------------------------------------------
# Role capabilities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoleCapabilities:
    can_write: bool  # create tasks, and mutate tasks subject to ownership
    mutates_any_task: bool  # ownership check waived
    organization_scoped: bool  # listing and reads limited to own organization


_CAPABILITIES: dict[Role, RoleCapabilities] = {
    Role.OWNER: RoleCapabilities(can_write=True, mutates_any_task=True, organization_scoped=False),
    Role.ADMIN: RoleCapabilities(can_write=True, mutates_any_task=False, organization_scoped=True),
    Role.VIEWER: RoleCapabilities(can_write=False, mutates_any_task=False, organization_scoped=True),
}

_missing = set(Role) - set(_CAPABILITIES)
if _missing:
    raise RuntimeError(f"No capabilities defined for roles: {sorted(r.value for r in _missing)}")


def _capabilities(role: Role) -> RoleCapabilities:
    return _CAPABILITIES[Role(role)]


# ---------------------------------------------------------------------------
# Operation -> required roles
# ---------------------------------------------------------------------------


class Operation(str, Enum):
    TASK_LIST = "tasks:list"
    TASK_READ = "tasks:read"
    TASK_CREATE = "tasks:create"
    TASK_UPDATE = "tasks:update"
    TASK_DELETE = "tasks:delete"
    AUDIT_LIST = "audit:list"


_ANY_ROLE = frozenset(Role)
_WRITERS = frozenset({Role.OWNER, Role.ADMIN})

OPERATION_ROLES: dict[Operation, frozenset[Role]] = {
    Operation.TASK_LIST: _ANY_ROLE,
    Operation.TASK_READ: _ANY_ROLE,
    Operation.TASK_CREATE: _WRITERS,
    Operation.TASK_UPDATE: _WRITERS,
    Operation.TASK_DELETE: _WRITERS,
    Operation.AUDIT_LIST: _WRITERS,
}

_unmapped = set(Operation) - set(OPERATION_ROLES)
if _unmapped:
    raise RuntimeError(f"No required roles defined for operations: {sorted(o.value for o in _unmapped)}")


def is_permitted(operation: Operation, role: Role) -> bool:
    """Return True if the role is in the operation's required-role set."""
    return Role(role) in OPERATION_ROLES[operation]


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VisibilityFilter:
    """Opaque description of which tasks an actor may see.

    unrestricted=True          -- every task in every organization
    organization_id=<int>      -- tasks whose owner belongs to that organization
    neither                    -- no tasks at all (non-OWNER with no organization)

    The task store turns this into a WHERE clause; it is never applied by
    filtering in memory.
    """

    unrestricted: bool = False
    organization_id: int | None = None

    @property
    def matches_nothing(self) -> bool:
        return not self.unrestricted and self.organization_id is None


def visibility_filter(actor: ActorIdentity) -> VisibilityFilter:
    if not _capabilities(actor.role).organization_scoped:
        return VisibilityFilter(unrestricted=True)
    return VisibilityFilter(organization_id=actor.organization_id)


def can_read(actor: ActorIdentity, task: Task) -> bool:
    """Row-level form of visibility_filter. Reads are broader than writes."""
    if not _capabilities(actor.role).organization_scoped:
        return True
    if actor.organization_id is None:
        return False
    return task.owner_organization_id == actor.organization_id


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def can_create(actor: ActorIdentity) -> bool:
    return _capabilities(actor.role).can_write


def can_mutate(actor: ActorIdentity, task: Task) -> bool:
    """Update and delete share this rule: a writer role AND (any-task role OR owner).

    Organization membership plays no part here. Two ADMINs in the same
    organization cannot change each other's tasks.
    """
    caps = _capabilities(actor.role)
    if not caps.can_write:
        return False
    return caps.mutates_any_task or task.owner_id == actor.user_id
