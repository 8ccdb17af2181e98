"""
Tests for the SQLite store: task CRUD, ordering, field constraints, users.
"""
import sqlite3

import pytest

from pkg.taskboard.errors import ValidationError
from pkg.taskboard.schema import TaskStatus
from pkg.taskboard.store import TaskStore
from fakes import future, past


def _create(store, owner, title="Write report", status=TaskStatus.PENDING):
    return store.create_task(owner.id, title=title, description="Quarterly numbers",
                             due_date=future(), status=status)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Tasks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_create_and_get(store, alice):
    """Create assigns id, owner and timestamps; get returns the same record"""
    task = _create(store, alice)
    assert task.id
    assert task.owner == alice.id
    assert task.status == TaskStatus.PENDING
    assert task.created_at == task.updated_at

    fetched = store.get_task(task.id)
    assert fetched == task


def test_get_missing_returns_none(store):
    assert store.get_task("does-not-exist") is None


def test_create_runs_validators(store, alice):
    with pytest.raises(ValidationError, match="Due date must be in the future"):
        store.create_task(alice.id, title="Write report", description="x", due_date=past())
    with pytest.raises(ValidationError, match="at least 3"):
        store.create_task(alice.id, title="ab", description="x", due_date=future())
    assert store.count_tasks() == 0


def test_create_for_unknown_owner_rejected(store):
    with pytest.raises(ValidationError):
        store.create_task("ghost", title="Write report", description="x", due_date=future())


def test_find_newest_first_and_owner_scoped(store, alice, bob):
    first = _create(store, alice, "First task")
    second = _create(store, alice, "Second task")
    third = _create(store, alice, "Third task")
    _create(store, bob, "Bob's task")

    tasks = store.find_tasks(alice.id)
    assert [t.id for t in tasks] == [third.id, second.id, first.id]
    assert all(t.owner == alice.id for t in tasks)


def test_find_by_status(store, alice):
    _create(store, alice, "Pending one")
    done = _create(store, alice, "Done one", status=TaskStatus.COMPLETED)

    completed = store.find_tasks(alice.id, TaskStatus.COMPLETED)
    assert [t.id for t in completed] == [done.id]


def test_update_is_partial(store, alice):
    task = _create(store, alice)
    updated = store.update_task(task.id, {"status": TaskStatus.IN_PROGRESS})

    assert updated.status == TaskStatus.IN_PROGRESS
    assert updated.title == task.title
    assert updated.description == task.description
    assert updated.due_date == task.due_date
    assert updated.created_at == task.created_at
    assert updated.updated_at >= task.updated_at


def test_update_ignores_owner_and_id(store, alice, bob):
    task = _create(store, alice)
    updated = store.update_task(task.id, {"owner": bob.id, "id": "hijack", "title": "Renamed"})
    assert updated.id == task.id
    assert updated.owner == alice.id
    assert updated.title == "Renamed"


def test_update_revalidates_only_patched_fields(store, alice, db_path):
    """An overdue task can still be renamed; moving its due date into the past cannot"""
    task = _create(store, alice)
    conn = sqlite3.connect(db_path)
    conn.execute("UPDATE tasks SET due_date = ? WHERE id = ?", ("2000-01-01T00:00:00+00:00", task.id))
    conn.commit()
    conn.close()

    renamed = store.update_task(task.id, {"title": "Still overdue"})
    assert renamed.title == "Still overdue"

    with pytest.raises(ValidationError, match="Due date must be in the future"):
        store.update_task(task.id, {"due_date": past()})


def test_update_missing_returns_none(store):
    assert store.update_task("nope", {"title": "Renamed"}) is None


def test_delete(store, alice):
    task = _create(store, alice)
    assert store.delete_task(task.id)
    assert store.get_task(task.id) is None
    assert not store.delete_task(task.id)


def test_schema_rejects_unknown_status(store, alice, db_path):
    """The status column itself only admits the three board values"""
    task = _create(store, alice)
    conn = sqlite3.connect(db_path)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("UPDATE tasks SET status = 'archived' WHERE id = ?", (task.id,))
    conn.close()


def test_store_reopens_existing_db(db_path, store, alice):
    task = _create(store, alice)
    reopened = TaskStore(db_path)
    assert reopened.get_task(task.id) == task


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Users
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_user_lookup(store, alice):
    assert store.get_user(alice.id).email == "alice@example.com"
    assert store.get_user_by_email("ALICE@example.com").id == alice.id
    assert store.get_user("nobody") is None


def test_duplicate_email(store, alice):
    with pytest.raises(ValidationError, match="User already exists"):
        store.create_user("Alice Two", "alice@example.com", "hash")


def test_update_user(store, alice):
    updated = store.update_user(alice.id, {"name": "Alice Liddell"})
    assert updated.name == "Alice Liddell"
    assert updated.email == alice.email


def test_delete_user_cascades_tasks(store, alice, bob):
    _create(store, alice)
    _create(store, alice, "Another task")
    _create(store, bob)

    assert store.delete_user(alice.id)
    assert store.count_tasks(alice.id) == 0
    assert store.count_tasks(bob.id) == 1
