"""Shared test fixtures for the taskboard tests."""

import pytest

from pkg.taskboard.store import TaskStore


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "taskboard.db")


@pytest.fixture
def store(db_path):
    return TaskStore(db_path)


@pytest.fixture
def alice(store):
    return store.create_user("Alice", "alice@example.com", "not-a-real-hash")


@pytest.fixture
def bob(store):
    return store.create_user("Bob", "bob@example.com", "not-a-real-hash")


@pytest.fixture
def app(db_path):
    from task_server import app as flask_app

    flask_app.config.update(
        TESTING=True,
        TASKBOARD_DB=db_path,
        SECRET_KEY="test-secret",
        TOKEN_MAX_AGE=3600,
    )
    return flask_app


@pytest.fixture
def http(app):
    return app.test_client()
