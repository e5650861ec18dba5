"""
api/routes/v1/audit.py -- Audit trail read endpoint.

Routes:
  GET /audit-log -- newest records first (OWNER, ADMIN)

Each successful call appends one VIEW_AUDIT_LOGS record for the caller.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import AuditRecordResponse
from audit.store import AuditLog
from auth.dependencies import require
from auth.models import ActorIdentity
from auth.policy import Operation
from core.config import get_settings

router = APIRouter()


@router.get("/audit-log", response_model=list[AuditRecordResponse])
def list_audit_log(
    request: Request,
    actor: ActorIdentity = Depends(require(Operation.AUDIT_LIST)),
) -> list[AuditRecordResponse]:
    audit: AuditLog = request.app.state.audit_log
    records = audit.recent(actor.user_id, limit=get_settings().audit_recent_limit)
    return [AuditRecordResponse.from_record(r) for r in records]
