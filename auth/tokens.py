"""
auth/tokens.py -- Password hashing, credential verification, and JWT issuance.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (integer user id), username, role, iat and exp. Parsing raises
       InvalidToken on any failure -- the dependency layer turns that into 401.
       organization_id is not a claim; callers re-fetch the user row for it.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       lets CredentialVerifier run the same bcrypt work whether or not the
       username exists, so response time does not reveal which usernames are
       registered.

Layer rule: no imports from api/, audit/, or tasks/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import ActorIdentity, Role
from core.errors import InvalidToken

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("taskguard.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt truncates input at 72 bytes. The API layer caps passwords at 72
    characters of ASCII-safe length via the Pydantic field.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash raises
    ValueError inside bcrypt; that is a non-match, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so the first login attempt is not measurably slower
# than subsequent ones.
_DUMMY_HASH: str = hash_password("taskguard_timing_dummy")


# ---------------------------------------------------------------------------
# Credential verification
# ---------------------------------------------------------------------------


class CredentialVerifier:
    """Checks a username/secret pair against the identity store.

    Usage:
        verifier = CredentialVerifier(user_store)
        actor = verifier.verify("alice", "s3cret")   # ActorIdentity or None
    """

    def __init__(self, user_store: UserStore) -> None:
        self._users = user_store

    def verify(self, username: str, secret: str) -> ActorIdentity | None:
        """Return the verified identity, or None for any failure.

        Unknown usernames and wrong secrets share one path: bcrypt always runs
        exactly once, against either the stored hash or _DUMMY_HASH. Recording
        LOGIN_FAILED is the caller's job.
        """
        user = self._users.get_by_username(username)
        hashed = user.hashed_password if user is not None else _DUMMY_HASH
        matched = verify_password(secret, hashed)
        if user is None or not matched:
            return None
        return ActorIdentity(
            user_id=user.id,
            username=user.username,
            role=user.role,
            organization_id=user.organization_id,
        )


# ---------------------------------------------------------------------------
# JWT issue / parse
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Issues and parses signed, time-bound bearer tokens.

    Built once by the composition root from Settings.secret_key and
    Settings.token_expire_seconds.
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, identity: ActorIdentity, now: datetime | None = None) -> str:
        """Encode a signed JWT for the identity, expiring expire_seconds after now.

        `now` exists for tests; production callers leave it as None. The
        timestamp is truncated to whole seconds so exp - iat equals the TTL
        exactly.
        """
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        payload = {
            "sub": identity.user_id,
            "username": identity.username,
            "role": Role(identity.role).value,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def parse(self, token: str) -> ActorIdentity:
        """Verify signature and expiry and rebuild the claimed identity.

        No store lookup happens here, so the returned identity has
        organization_id=None. JWT registered claims expect a string sub;
        this format uses an integer user id, so sub validation is disabled
        and the type is checked below instead.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_sub": False, "require_exp": True},
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        user_id = payload.get("sub")
        username = payload.get("username")
        role = payload.get("role")
        # bool is an int subclass; a boolean sub is not a user id.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidToken("Token subject is not a user id.")
        if not isinstance(username, str) or not username:
            raise InvalidToken("Token is missing the username claim.")
        try:
            parsed_role = Role(role)
        except ValueError as exc:
            raise InvalidToken("Token carries an unknown role.") from exc
        return ActorIdentity(user_id=user_id, username=username, role=parsed_role)
