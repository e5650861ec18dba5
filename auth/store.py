"""
auth/store.py -- SQLAlchemy Core persistence layer for identity entities.

Pattern: Repository + Data Mapper (same as tasks/store.py and audit/store.py).
UserStore is the repository; _row_to_user / _row_to_organization are the
mappers. Route and service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Cascade:
  delete_user() removes the user's tasks in the same transaction. SQLite does
  not enforce the declared ON DELETE CASCADE unless PRAGMA foreign_keys is on,
  so the store performs the cascade itself.

Layer rule: no imports from api/, audit/, or tasks/ (the tasks table is
reached through core.database).
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from auth.models import Organization, Role, User
from core.database import now_iso, organizations, store_connection, tasks, users

# Role and organization change only through this administrative path.
_UPDATABLE_USER_FIELDS = frozenset({"role", "organization_id", "hashed_password"})


class UserStore:
    """Repository for Organization and User entities.

    Usage:
        store = UserStore(create_db_engine(url))
        org_id = store.create_organization(Organization(name="Acme"))
        store.create_user(User(username="alice", hashed_password=hash_password("pw"),
                               role=Role.ADMIN, organization_id=org_id))
        user = store.get_by_username("alice")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def create_organization(self, org: Organization) -> int:
        """Insert an organization and return its assigned database ID."""
        with store_connection(self.engine) as conn:
            result = conn.execute(organizations.insert().values(name=org.name))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_organization(self, org_id: int) -> Organization | None:
        with store_connection(self.engine) as conn:
            row = conn.execute(organizations.select().where(organizations.c.id == org_id)).fetchone()
        return _row_to_organization(row) if row is not None else None

    def list_organizations(self) -> list[Organization]:
        with store_connection(self.engine) as conn:
            rows = conn.execute(organizations.select().order_by(organizations.c.id)).fetchall()
        return [_row_to_organization(r) for r in rows]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        with store_connection(self.engine) as conn:
            result = conn.execute(
                users.insert().values(
                    username=user.username,
                    hashed_password=user.hashed_password,
                    role=Role(user.role).value,
                    organization_id=user.organization_id,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with store_connection(self.engine) as conn:
            row = conn.execute(users.select().where(users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with store_connection(self.engine) as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by username."""
        with store_connection(self.engine) as conn:
            rows = conn.execute(users.select().order_by(users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Administrative update of mutable user fields.

        Accepted fields: role, organization_id, hashed_password. Passing
        organization_id=None detaches the user from their organization.
        Unknown field names raise ValueError.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _UPDATABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)!r}")
        if not fields:
            return self.get_by_id(user_id) is not None
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        with store_connection(self.engine) as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Delete a user and every task they own. Returns True if the user existed.

        Audit records that name the user are left untouched; their
        actor_username resolves to None afterwards.
        """
        with store_connection(self.engine) as conn:
            conn.execute(tasks.delete().where(tasks.c.owner_id == user_id))
            result = conn.execute(users.delete().where(users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        organization_id=row.organization_id,
        created_at=row.created_at,
    )


def _row_to_organization(row) -> Organization:
    return Organization(id=row.id, name=row.name)
