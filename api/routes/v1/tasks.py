"""
api/routes/v1/tasks.py -- Task CRUD routes for the TaskGuard REST API.

Routes:
  GET    /tasks        -- list tasks visible to the caller
  POST   /tasks        -- create a task owned by the caller     (OWNER, ADMIN)
  GET    /tasks/{id}   -- task detail, 404 outside visibility
  PATCH  /tasks/{id}   -- partial update, owner or OWNER only   (OWNER, ADMIN)
  DELETE /tasks/{id}   -- delete, owner or OWNER only           (OWNER, ADMIN)

Role gates come from auth.policy.OPERATION_ROLES via require(). Scope and
ownership are enforced by TaskService; its domain errors (NotFound, Forbidden,
Conflict) are rendered by the handler in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import ErrorDetail, TaskCreate, TaskResponse, TaskUpdate
from auth.dependencies import require
from auth.models import ActorIdentity
from auth.policy import Operation
from tasks.service import TaskService

router = APIRouter()


def _service(request: Request) -> TaskService:
    return request.app.state.task_service


def _store_fields(fields: dict) -> dict:
    """Convert request values into the shapes TaskStore persists."""
    if fields.get("due_date") is not None:
        fields["due_date"] = fields["due_date"].isoformat()
    return fields


@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(
    request: Request,
    actor: ActorIdentity = Depends(require(Operation.TASK_LIST)),
) -> list[TaskResponse]:
    return [TaskResponse.from_task(t) for t in _service(request).list_tasks(actor)]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(
    request: Request,
    body: TaskCreate,
    actor: ActorIdentity = Depends(require(Operation.TASK_CREATE)),
) -> TaskResponse:
    task = _service(request).create(actor, _store_fields(body.model_dump()))
    return TaskResponse.from_task(task)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(
    request: Request,
    task_id: int,
    actor: ActorIdentity = Depends(require(Operation.TASK_READ)),
) -> TaskResponse:
    return TaskResponse.from_task(_service(request).get(actor, task_id))


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    request: Request,
    task_id: int,
    body: TaskUpdate,
    actor: ActorIdentity = Depends(require(Operation.TASK_UPDATE)),
) -> TaskResponse:
    """Apply the fields present in the body.

    Without a version in the body, the update is conditional on the version
    the service reads during its ownership check.
    """
    fields = body.model_dump(exclude_unset=True)
    expected_version = fields.pop("version", None)
    if not fields:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_changes", message="No fields to update.").model_dump(),
        )
    task = _service(request).update(actor, task_id, _store_fields(fields), expected_version=expected_version)
    return TaskResponse.from_task(task)


@router.delete("/tasks/{task_id}", status_code=204)
def delete_task(
    request: Request,
    task_id: int,
    actor: ActorIdentity = Depends(require(Operation.TASK_DELETE)),
) -> Response:
    _service(request).delete(actor, task_id)
    return Response(status_code=204)
