"""Unit tests for tasks/store.py and the user-deletion cascade in auth/store.py.

Covers:
- find() / find_one() apply the visibility filter in SQL
- create() fills id, version and owner organization
- update() / delete() return affected row counts
- the naive check-then-update sequence loses an update; expected_version does not
- deleting a user deletes their tasks
- moving a user to another organization moves their tasks' visibility
"""

from __future__ import annotations

import pytest

from auth.models import Role
from auth.policy import VisibilityFilter
from tasks.models import Task, TaskPriority, TaskStatus

EVERYTHING = VisibilityFilter(unrestricted=True)


@pytest.fixture
def tasks_by_owner(seeded, task_store) -> dict[str, Task]:
    """One task per writer: alice, erin, dave in org1; carol in org2."""
    return {
        owner: task_store.create(Task(title=f"{owner} task", owner_id=seeded[owner].user_id))
        for owner in ("alice", "erin", "dave", "carol")
    }


class TestCreate:
    def test_defaults_and_owner_org(self, seeded, task_store) -> None:
        task = task_store.create(Task(title="Buy milk", owner_id=seeded["alice"].user_id))
        assert task.id is not None
        assert task.version == 1
        assert task.status is TaskStatus.TODO
        assert task.priority is TaskPriority.MEDIUM
        assert task.category == "WORK"
        assert task.due_date is None
        assert task.owner_organization_id == seeded.org1
        assert task.created_at and task.updated_at

    def test_explicit_fields_persist(self, seeded, task_store) -> None:
        task = task_store.create(
            Task(
                title="Ship",
                owner_id=seeded["carol"].user_id,
                description="release 1.0",
                status=TaskStatus.IN_PROGRESS,
                priority=TaskPriority.HIGH,
                category="PERSONAL",
                due_date="2030-05-01",
            )
        )
        fetched = task_store.get(task.id)
        assert fetched == task
        assert fetched.owner_organization_id == seeded.org2


class TestFind:
    def test_unrestricted_sees_all(self, task_store, tasks_by_owner) -> None:
        assert len(task_store.find(EVERYTHING)) == 4

    def test_org_scoped(self, seeded, task_store, tasks_by_owner) -> None:
        org1 = {t.title for t in task_store.find(VisibilityFilter(organization_id=seeded.org1))}
        org2 = {t.title for t in task_store.find(VisibilityFilter(organization_id=seeded.org2))}
        assert org1 == {"alice task", "erin task", "dave task"}
        assert org2 == {"carol task"}

    def test_matches_nothing(self, task_store, tasks_by_owner) -> None:
        assert task_store.find(VisibilityFilter()) == []

    def test_find_one_outside_scope_is_none(self, seeded, task_store, tasks_by_owner) -> None:
        carol_task = tasks_by_owner["carol"]
        assert task_store.find_one(carol_task.id, VisibilityFilter(organization_id=seeded.org1)) is None
        assert task_store.find_one(carol_task.id, VisibilityFilter(organization_id=seeded.org2)) == carol_task
        assert task_store.find_one(99999, EVERYTHING) is None


class TestMutations:
    def test_update_bumps_version(self, task_store, tasks_by_owner) -> None:
        task = tasks_by_owner["alice"]
        assert task_store.update(task.id, {"status": TaskStatus.DONE, "title": "done"}) == 1
        updated = task_store.get(task.id)
        assert updated.status is TaskStatus.DONE
        assert updated.title == "done"
        assert updated.version == 2
        assert updated.owner_id == task.owner_id

    def test_update_missing_returns_zero(self, task_store) -> None:
        assert task_store.update(99999, {"title": "x"}) == 0

    def test_owner_cannot_be_reassigned(self, seeded, task_store, tasks_by_owner) -> None:
        with pytest.raises(ValueError):
            task_store.update(tasks_by_owner["alice"].id, {"owner_id": seeded["carol"].user_id})

    def test_delete_counts(self, task_store, tasks_by_owner) -> None:
        task_id = tasks_by_owner["erin"].id
        assert task_store.delete(task_id) == 1
        assert task_store.delete(task_id) == 0
        assert task_store.get(task_id) is None


class TestCheckThenActRace:
    def test_naive_update_loses_a_write(self, seeded, task_store, tasks_by_owner) -> None:
        """Two requests both pass their check on version 1, then both write.

        Without a version guard the second write silently overwrites the
        first, and both report success.
        """
        task_id = tasks_by_owner["alice"].id
        scope = VisibilityFilter(organization_id=seeded.org1)
        seen_by_first = task_store.find_one(task_id, scope)
        seen_by_second = task_store.find_one(task_id, scope)
        assert seen_by_first.version == seen_by_second.version == 1

        assert task_store.update(task_id, {"title": "first"}) == 1
        assert task_store.update(task_id, {"title": "second"}) == 1

        final = task_store.get(task_id)
        assert final.title == "second"  # "first" is lost without anyone being told

    def test_compare_and_swap_rejects_stale_writer(self, seeded, task_store, tasks_by_owner) -> None:
        task_id = tasks_by_owner["alice"].id
        version = task_store.get(task_id).version

        assert task_store.update(task_id, {"title": "first"}, expected_version=version) == 1
        assert task_store.update(task_id, {"title": "second"}, expected_version=version) == 0

        final = task_store.get(task_id)
        assert final.title == "first"
        assert final.version == version + 1


class TestUserCascade:
    def test_deleting_user_deletes_their_tasks(self, seeded, user_store, task_store, tasks_by_owner) -> None:
        alice_id = seeded["alice"].user_id
        task_store.create(Task(title="second alice task", owner_id=alice_id))

        assert user_store.delete_user(alice_id) is True

        remaining = task_store.find(EVERYTHING)
        assert all(t.owner_id != alice_id for t in remaining)
        assert {t.title for t in remaining} == {"erin task", "dave task", "carol task"}
        assert user_store.get_by_id(alice_id) is None

    def test_deleting_unknown_user(self, user_store) -> None:
        assert user_store.delete_user(12345) is False


class TestUserUpdate:
    def test_organization_transfer_moves_task_visibility(self, seeded, user_store, task_store, tasks_by_owner) -> None:
        carol_id = seeded["carol"].user_id
        assert user_store.update_user(carol_id, organization_id=seeded.org1) is True

        assert user_store.get_by_id(carol_id).organization_id == seeded.org1
        org1 = {t.title for t in task_store.find(VisibilityFilter(organization_id=seeded.org1))}
        assert "carol task" in org1
        assert task_store.find(VisibilityFilter(organization_id=seeded.org2)) == []

    def test_role_change_and_detach(self, seeded, user_store) -> None:
        bob_id = seeded["bob"].user_id
        assert user_store.update_user(bob_id, role="ADMIN", organization_id=None) is True
        bob = user_store.get_by_id(bob_id)
        assert bob.role is Role.ADMIN
        assert bob.organization_id is None

    def test_unknown_user(self, user_store) -> None:
        assert user_store.update_user(12345, role=Role.VIEWER) is False

    def test_username_is_not_updatable(self, seeded, user_store) -> None:
        with pytest.raises(ValueError):
            user_store.update_user(seeded["bob"].user_id, username="robert")
