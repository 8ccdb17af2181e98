"""
Tests for the board state: partitioning, speculative moves, reload after writes.
"""
import pytest

from pkg.taskboard.board import BoardState, StaleBoardError
from pkg.taskboard.client import ApiError
from pkg.taskboard.schema import TaskStatus
from fakes import FakeTaskClient, make_task

PENDING, IN_PROGRESS, COMPLETED = TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED


@pytest.fixture
def client():
    return FakeTaskClient([
        make_task("A", PENDING),
        make_task("B", PENDING),
        make_task("C", IN_PROGRESS),
        make_task("D", COMPLETED),
    ])


@pytest.fixture
def board(client):
    board = BoardState(client)
    board.load()
    return board


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Load
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_starts_empty(client):
    board = BoardState(client)
    assert board.snapshot() == {"pending": [], "in-progress": [], "completed": []}
    assert not board.loaded


def test_load_partitions_in_fetch_order(board):
    assert board.snapshot() == {"pending": ["A", "B"], "in-progress": ["C"], "completed": ["D"]}
    assert board.counts() == {"pending": 2, "in-progress": 1, "completed": 1}
    assert board.loaded


def test_load_replaces_everything(board, client):
    client.tasks = [make_task("Z", COMPLETED)]
    board.load()
    assert board.snapshot() == {"pending": [], "in-progress": [], "completed": ["Z"]}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# apply_move
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_move_across_columns_sets_status(board, client):
    assert board.apply_move("A", PENDING, 0, IN_PROGRESS, 0)
    assert board.snapshot()["pending"] == ["B"]
    assert board.snapshot()["in-progress"] == ["A", "C"]
    assert board.column(IN_PROGRESS)[0].status == IN_PROGRESS
    # speculative: nothing was sent
    assert client.calls_of("update") == []


def test_move_accepts_wire_values(board):
    board.apply_move("C", "in-progress", 0, "completed", 1)
    assert board.snapshot()["completed"] == ["D", "C"]


def test_move_within_column_reorders(board):
    board.apply_move("A", PENDING, 0, PENDING, 1)
    assert board.snapshot()["pending"] == ["B", "A"]
    assert board.column(PENDING)[1].status == PENDING


def test_move_past_end_appends(board):
    board.apply_move("A", PENDING, 0, COMPLETED, 99)
    assert board.snapshot()["completed"] == ["D", "A"]


def test_noop_move_leaves_state_identical(board):
    before = board.columns
    snapshot = board.snapshot()
    assert board.apply_move("B", PENDING, 1, PENDING, 1) is False
    assert board.columns is before
    assert board.snapshot() == snapshot


def test_move_does_not_mutate_previous_columns(board):
    old_pending = board.columns[PENDING]
    original = old_pending[0]
    board.apply_move("A", PENDING, 0, COMPLETED, 0)
    assert [t.id for t in old_pending] == ["A", "B"]
    assert original.status == PENDING


@pytest.mark.parametrize("task_id,index", [("B", 0), ("A", 5), ("A", -1)])
def test_stale_source_rejected_without_change(board, task_id, index):
    snapshot = board.snapshot()
    with pytest.raises(StaleBoardError):
        board.apply_move(task_id, PENDING, index, COMPLETED, 0)
    assert board.snapshot() == snapshot


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Confirmed writes
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_apply_create_then_reload(board, client):
    task = board.apply_create({"title": "Fresh task", "description": "d", "due_date": "2099-01-01"})
    assert client.calls[-2][0] == "create"
    assert client.calls[-1][0] == "list"
    assert board.snapshot()["pending"][0] == task.id


def test_apply_update_then_reload(board, client):
    board.apply_update("C", {"status": "completed"})
    assert board.snapshot()["completed"] == ["C", "D"]
    assert board.snapshot()["in-progress"] == []


def test_apply_delete_then_reload(board, client):
    board.apply_delete("B")
    assert board.snapshot()["pending"] == ["A"]
    assert client.calls[-1][0] == "list"


def test_failed_create_leaves_board(board, client):
    client.fail_creates = True
    snapshot = board.snapshot()
    with pytest.raises(ApiError):
        board.apply_create({"title": "x"})
    assert board.snapshot() == snapshot
    assert client.calls[-1][0] == "create"


def test_find(board):
    assert board.find("C") == (IN_PROGRESS, 0)
    assert board.find("nope") is None
