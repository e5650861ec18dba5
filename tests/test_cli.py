"""
tests/test_cli.py -- Tests for the administrative CLI in main.py.

Each test points --db-url at a throwaway SQLite file and checks both the exit
code and what ended up in the store.
"""

from __future__ import annotations

import pytest

from auth.models import Role
from auth.store import UserStore
from auth.tokens import verify_password
from core.database import create_db_engine
from main import main
from tasks.models import Task
from tasks.store import TaskStore


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def inspect_store(db_url):
    engine = create_db_engine(db_url)
    yield UserStore(engine)
    engine.dispose()


def _run(db_url: str, *argv: str) -> int:
    return main(["--db-url", db_url, *argv])


def test_create_org_and_user(db_url, inspect_store, capsys) -> None:
    assert _run(db_url, "create-org", "Acme") == 0
    assert _run(db_url, "create-user", "alice", "--role", "ADMIN", "--org-id", "1", "--password", "s3cret!") == 0

    user = inspect_store.get_by_username("alice")
    assert user.role is Role.ADMIN
    assert user.organization_id == 1
    assert verify_password("s3cret!", user.hashed_password)
    assert "Created ADMIN 'alice'" in capsys.readouterr().out


def test_default_role_is_viewer(db_url, inspect_store) -> None:
    _run(db_url, "create-org", "Acme")
    assert _run(db_url, "create-user", "bob", "--org-id", "1", "--password", "s3cret!") == 0
    assert inspect_store.get_by_username("bob").role is Role.VIEWER


def test_duplicate_username_fails(db_url, capsys) -> None:
    _run(db_url, "create-org", "Acme")
    _run(db_url, "create-user", "alice", "--org-id", "1", "--password", "s3cret!")
    assert _run(db_url, "create-user", "alice", "--org-id", "1", "--password", "other!!") == 1
    assert "already exists" in capsys.readouterr().out


def test_unknown_org_fails(db_url, inspect_store) -> None:
    assert _run(db_url, "create-user", "alice", "--org-id", "9", "--password", "s3cret!") == 1
    assert inspect_store.get_by_username("alice") is None


def test_short_password_fails(db_url, inspect_store) -> None:
    assert _run(db_url, "create-user", "alice", "--password", "abc") == 1
    assert inspect_store.get_by_username("alice") is None


def test_password_prompt(db_url, inspect_store, monkeypatch) -> None:
    monkeypatch.setattr("getpass.getpass", lambda prompt: "prompted-secret")
    assert _run(db_url, "create-user", "dave", "--role", "OWNER") == 0
    assert verify_password("prompted-secret", inspect_store.get_by_username("dave").hashed_password)


def test_list_users(db_url, capsys) -> None:
    _run(db_url, "create-org", "Acme")
    _run(db_url, "create-user", "alice", "--role", "ADMIN", "--org-id", "1", "--password", "s3cret!")
    capsys.readouterr()
    assert _run(db_url, "list-users") == 0
    out = capsys.readouterr().out
    assert "alice" in out and "ADMIN" in out and "org=1" in out


def test_delete_user_cascades_tasks(db_url, inspect_store) -> None:
    _run(db_url, "create-org", "Acme")
    _run(db_url, "create-user", "alice", "--role", "ADMIN", "--org-id", "1", "--password", "s3cret!")
    alice = inspect_store.get_by_username("alice")
    tasks = TaskStore(inspect_store.engine)
    task = tasks.create(Task(title="orphan-to-be", owner_id=alice.id))

    assert _run(db_url, "delete-user", str(alice.id)) == 0
    assert inspect_store.get_by_username("alice") is None
    assert tasks.get(task.id) is None

    assert _run(db_url, "delete-user", str(alice.id)) == 1


def test_list_orgs(db_url, capsys) -> None:
    _run(db_url, "create-org", "Acme")
    _run(db_url, "create-org", "Globex")
    capsys.readouterr()
    assert _run(db_url, "list-orgs") == 0
    out = capsys.readouterr().out
    assert "Acme" in out and "Globex" in out


def test_update_user_role_and_org(db_url, inspect_store) -> None:
    _run(db_url, "create-org", "Acme")
    _run(db_url, "create-org", "Globex")
    _run(db_url, "create-user", "carol", "--role", "ADMIN", "--org-id", "2", "--password", "s3cret!")
    carol = inspect_store.get_by_username("carol")

    assert _run(db_url, "update-user", str(carol.id), "--role", "VIEWER", "--org-id", "1") == 0
    updated = inspect_store.get_by_username("carol")
    assert updated.role is Role.VIEWER
    assert updated.organization_id == 1

    assert _run(db_url, "update-user", str(carol.id), "--clear-org") == 0
    assert inspect_store.get_by_username("carol").organization_id is None


def test_update_user_rejects_bad_input(db_url, inspect_store) -> None:
    _run(db_url, "create-user", "bob", "--password", "s3cret!")
    bob = inspect_store.get_by_username("bob")

    assert _run(db_url, "update-user", str(bob.id)) == 1
    assert _run(db_url, "update-user", str(bob.id), "--org-id", "9") == 1
    assert _run(db_url, "update-user", "999", "--role", "OWNER") == 1
    assert inspect_store.get_by_username("bob").role is Role.VIEWER
