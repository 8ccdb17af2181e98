#!/usr/bin/env python3
"""
Quick verification that the taskboard works end-to-end.

    python verify_taskboard.py                       # store + resource only
    python verify_taskboard.py --remote              # also the server at api_url from taskboard.yaml
    python verify_taskboard.py --url http://127.0.0.1:5000/api   # also a server at another URL
"""
import argparse
import uuid
from datetime import datetime, timedelta, timezone

from pkg.taskboard.auth import AuthService
from pkg.taskboard.board import BoardState
from pkg.taskboard.client import Session, TaskClient
from pkg.taskboard.config import Config
from pkg.taskboard.dragdrop import DragCoordinator, DragResult, Location
from pkg.taskboard.errors import Forbidden
from pkg.taskboard.resource import TaskResource
from pkg.taskboard.schema import TaskStatus
from pkg.taskboard.store import TaskStore

DB_PATH = "/tmp/taskboard_verify.db"


def due_in(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def verify_local():
    print("\n[1/4] Creating SQLite store and two users...")
    store = TaskStore(DB_PATH)
    auth = AuthService(store, "verify-secret")
    suffix = uuid.uuid4().hex[:6]
    alice, _ = auth.register("Alice", f"alice-{suffix}@example.com", "hunter22")
    bob, _ = auth.register("Bob", f"bob-{suffix}@example.com", "hunter22")
    print(f"✅ Users {alice.id[:8]} and {bob.id[:8]}")

    print("\n[2/4] Creating tasks...")
    tasks = TaskResource(store)
    for title, status in (("Draft plan", "pending"), ("Build it", "in-progress"), ("Ship it", "completed")):
        task = tasks.create(alice.id, {"title": title, "description": "verify", "due_date": due_in(3), "status": status})
        print(f"   → {task.id[:8]} {task.status.value:<12} {task.title}")

    print("\n[3/4] Checking ownership...")
    task = tasks.list(alice.id)[0]
    try:
        tasks.get(bob.id, task.id)
        print("❌ Bob could read Alice's task")
        return False
    except Forbidden as e:
        print(f"✅ {e.message}")

    print("\n[4/4] Filtering by status...")
    completed = tasks.list(alice.id, "completed")
    print(f"✅ {len(completed)} completed task(s)")
    return len(completed) == 1


def verify_remote(cfg: Config):
    print(f"\n[remote] Talking to {cfg.api_url}...")
    session = Session.from_config(cfg)
    suffix = uuid.uuid4().hex[:6]
    session.register("Verifier", f"verify-{suffix}@example.com", "hunter22")
    client = TaskClient(session)
    board = BoardState(client)
    board.apply_create({"title": "Drag me", "description": "verify", "due_date": due_in(1)})
    print(f"   board: {board.counts()}")

    first = board.column(TaskStatus.PENDING)[0]
    outcome = DragCoordinator(board, client).handle_drag_end(
        DragResult(first.id, Location.of(TaskStatus.PENDING, 0), Location.of(TaskStatus.COMPLETED, 0))
    )
    stored = client.get_task(first.id)
    print(f"   drop persisted={outcome.persisted} server status={stored.status.value}")
    session.delete_account()
    return stored.status == TaskStatus.COMPLETED


def main():
    parser = argparse.ArgumentParser(description="Taskboard smoke test")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--remote", action="store_true", help="Also check the server at the configured api_url")
    parser.add_argument("--url", help="API base URL of a running server (implies --remote)")
    args = parser.parse_args()

    cfg = Config.load(args.config)
    if args.url:
        cfg.api_url = args.url

    print("=" * 60)
    print("Taskboard Verification")
    print("=" * 60)

    ok = verify_local()
    if ok and (args.remote or args.url):
        ok = verify_remote(cfg)

    print("\n" + "=" * 60)
    print("✅ ALL CHECKS PASSED" if ok else "❌ CHECKS FAILED")
    print("=" * 60)
    print(f"Test database: {DB_PATH}")
    raise SystemExit(0 if ok else 1)


if __name__ == "__main__":
    main()
