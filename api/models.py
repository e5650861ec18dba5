"""
API request and response models for TaskGuard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py,
tasks/models.py and audit/models.py, which own the internal domain
representation. Route handlers map between the two.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audit.models import AuditRecord
from auth.models import Role
from tasks.models import Task, TaskPriority, TaskStatus

# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    No whitespace stripping: usernames match exactly and passwords are opaque.
    """

    username: str = Field(min_length=1, max_length=255)
    # bcrypt only sees the first 72 bytes.
    password: str = Field(min_length=1, max_length=72)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str
    role: Role


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    role: Role
    organization_id: Optional[int]


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /api/v1/tasks. The owner is always the caller."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = Field(default="WORK", min_length=1, max_length=50)
    due_date: Optional[date] = None


class TaskUpdate(BaseModel):
    """Request body for PATCH /api/v1/tasks/{id}.

    Only fields present in the body are changed. version, when given, makes
    the update conditional on the task still being at that version.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    due_date: Optional[date] = None
    version: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", "status", "priority", "category", mode="before")
    @classmethod
    def reject_null(cls, value):
        """description and due_date may be cleared with null; these may not."""
        if value is None:
            raise ValueError("may not be null")
        return value


class TaskResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    category: Optional[str]
    due_date: Optional[str]
    owner_id: int
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            category=task.category,
            due_date=task.due_date,
            owner_id=task.owner_id,
            version=task.version,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditRecordResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    actor_user_id: Optional[int]
    actor_username: Optional[str]
    action: str
    resource: str
    timestamp: str

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordResponse":
        return cls(
            id=record.id,
            actor_user_id=record.actor_user_id,
            actor_username=record.actor_username,
            action=record.action,
            resource=record.resource,
            timestamp=record.timestamp,
        )
