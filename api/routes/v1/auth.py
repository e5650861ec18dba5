"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; returns a bearer token
  GET  /api/v1/auth/me      -- current actor (requires auth)

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  CredentialVerifier.verify() equalizes timing between unknown usernames and
  wrong passwords -- use it, never inline get_by_username() + verify_password().
  Every failed login writes one LOGIN_FAILED audit record with no actor.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, MeResponse
from audit.models import AuditAction
from audit.store import AuditLog, login_resource
from auth.dependencies import get_current_actor
from auth.models import ActorIdentity
from auth.tokens import CredentialVerifier, TokenIssuer
from core.config import get_settings
from core.errors import InvalidCredentials, StoreUnavailable

logger = logging.getLogger("taskguard.api.auth")

# Auth policy:
# - POST /api/v1/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:    requires auth (get_current_actor)
router = APIRouter()


@limiter.limit(get_settings().login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify username and password; return a signed bearer token.

    Returns the same generic error for wrong username and wrong password
    ("bad_credentials") so username existence is not revealed.
    """
    verifier: CredentialVerifier = request.app.state.verifier
    issuer: TokenIssuer = request.app.state.token_issuer

    actor = verifier.verify(body.username, body.password)
    if actor is None:
        logger.warning("Failed login for username %r", body.username)
        audit: AuditLog = request.app.state.audit_log
        try:
            audit.record(None, AuditAction.LOGIN_FAILED, login_resource(body.username))
        except StoreUnavailable:
            logger.exception("Could not record LOGIN_FAILED for %r", body.username)
        error = InvalidCredentials()
        resp = JSONResponse(
            status_code=error.status_code,
            content=ErrorResponse(error=ErrorDetail(code=error.code, message=error.message)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = issuer.issue(actor)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=issuer.expire_seconds,
            username=actor.username,
            role=actor.role,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(actor: ActorIdentity = Depends(get_current_actor)) -> MeResponse:
    """Return identity information for the current actor."""
    return MeResponse(
        user_id=actor.user_id,
        username=actor.username,
        role=actor.role,
        organization_id=actor.organization_id,
    )
