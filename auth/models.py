"""
auth/models.py -- Domain dataclasses and enums for identity entities.

Pattern: Data class (pure data container, zero logic). Mirrors tasks/models.py
and audit/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/, audit/, or tasks/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of user roles. The policy table in auth/policy.py covers every member."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    VIEWER = "VIEWER"


@dataclass
class Organization:
    name: str
    id: int | None = None


@dataclass
class User:
    """A stored identity.

    organization_id is None only for users created before any organization
    exists. Such users can authenticate, but a non-OWNER without an
    organization sees no tasks.
    """

    username: str
    hashed_password: str
    role: Role
    organization_id: int | None = None
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class ActorIdentity:
    """The authenticated identity making a request. Never persisted.

    Tokens carry user_id, username and role only. organization_id is filled
    in from the identity store on each request.
    """

    user_id: int
    username: str
    role: Role
    organization_id: int | None = None
