"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and role gating.

get_current_actor() resolves the Authorization: Bearer header into an
ActorIdentity. The token supplies user id, username and role; the
organization is re-read from the identity store on every request because the
token does not carry it. A token whose subject no longer exists is rejected.

require(operation) wraps get_current_actor() and checks the role against
auth.policy.OPERATION_ROLES. Routes declare the operation they perform and
nothing else:

    @router.post("/tasks")
    def create(actor: ActorIdentity = Depends(require(Operation.TASK_CREATE))): ...

Layer rule: may import from fastapi (Depends/Request) because this module is
part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import ActorIdentity
from auth.policy import Operation, is_permitted
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.errors import Forbidden, InvalidToken


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_actor(request: Request) -> ActorIdentity:
    """Require a valid bearer token. Raises InvalidToken (401) otherwise."""
    token = _bearer_token(request)
    if token is None:
        raise InvalidToken()

    issuer: TokenIssuer = request.app.state.token_issuer
    claims = issuer.parse(token)

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.user_id)
    if user is None:
        raise InvalidToken("Token subject no longer exists.")

    return ActorIdentity(
        user_id=claims.user_id,
        username=claims.username,
        role=claims.role,
        organization_id=user.organization_id,
    )


def require(operation: Operation) -> Callable[..., ActorIdentity]:
    """Build a dependency that authenticates and then checks the operation's role set."""

    def dependency(actor: ActorIdentity = Depends(get_current_actor)) -> ActorIdentity:
        if not is_permitted(operation, actor.role):
            raise Forbidden(f"Role {actor.role.value} may not perform {operation.value}.")
        return actor

    return dependency
