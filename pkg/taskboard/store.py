"""
Task and user storage backend (SQLite).

Provides owner-scoped queries and CRUD for tasks, plus the user table the
auth layer needs. Field constraints are enforced here at write time.
"""
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Dict, Any

from .errors import StoreError, ValidationError
from .schema import Task, TaskStatus, User, utc_now, validate_task_fields

logger = logging.getLogger(__name__)


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def new_id() -> str:
    """Opaque unique record id."""
    return uuid.uuid4().hex


class TaskStore:
    """SQLite-backed store for users and their tasks."""

    def __init__(self, db_path: str = None):
        """Initialize store and create tables if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "taskboard" / "taskboard.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        """Create tables if they don't exist."""
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'in-progress', 'completed')),
                    due_date TEXT NOT NULL,
                    owner TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (owner) REFERENCES users(id) ON DELETE CASCADE
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_status ON tasks(owner, status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_due ON tasks(owner, due_date)")
            conn.commit()

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        """Connection for one operation; commits on success, always closes."""
        try:
            conn = _connect(self.db_path)
        except sqlite3.Error as e:
            logger.error(f"Cannot open database {self.db_path}: {e}")
            raise StoreError() from e
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    # ── Tasks ────────────────────────────────────────────────────────────

    def find_tasks(self, owner_id: str, status: Optional[TaskStatus] = None) -> List[Task]:
        """List an owner's tasks, newest first, optionally in one status."""
        query = "SELECT * FROM tasks WHERE owner = ?"
        params: list = [owner_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        # rowid breaks ties between tasks created within the same instant
        query += " ORDER BY created_at DESC, rowid DESC"
        try:
            with self._conn() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error listing tasks for {owner_id}: {e}")
            raise StoreError() from e
        return [self._row_to_task(row) for row in rows]

    def get_task(self, task_id: str) -> Optional[Task]:
        """Retrieve a task by id regardless of owner."""
        try:
            with self._conn() as conn:
                row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error retrieving task {task_id}: {e}")
            raise StoreError() from e
        return self._row_to_task(row) if row else None

    def create_task(
        self,
        owner_id: str,
        title: str,
        description: str,
        due_date: Any,
        status: TaskStatus = TaskStatus.PENDING,
    ) -> Task:
        """Validate every field and insert a new task."""
        now = utc_now()
        fields = validate_task_fields(
            {"title": title, "description": description, "status": status, "due_date": due_date},
            now=now,
        )
        task = Task(
            id=new_id(),
            owner=owner_id,
            created_at=now,
            updated_at=now,
            **fields,
        )
        data = task.to_dict()
        try:
            with self._conn() as conn:
                conn.execute("""
                    INSERT INTO tasks
                    (id, title, description, status, due_date, owner, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    data["id"],
                    data["title"],
                    data["description"],
                    data["status"],
                    data["due_date"],
                    data["owner"],
                    data["created_at"],
                    data["updated_at"],
                ))
                conn.commit()
        except sqlite3.IntegrityError as e:
            logger.warning(f"Rejected task for unknown owner {owner_id}: {e}")
            raise ValidationError("Task owner does not exist") from e
        except sqlite3.Error as e:
            logger.error(f"Error saving task {task.id}: {e}")
            raise StoreError() from e
        return task

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """
        Merge `fields` into a stored task and return the result.

        Only title, description, status and due_date are writable; the
        validators run on exactly those keys. Returns None if the task is gone.
        """
        cleaned = validate_task_fields(fields)
        if not cleaned:
            return self.get_task(task_id)

        values = {
            k: (v.value if isinstance(v, TaskStatus) else v.isoformat() if isinstance(v, datetime) else v)
            for k, v in cleaned.items()
        }
        values["updated_at"] = utc_now().isoformat()
        assignments = ", ".join(f"{k} = ?" for k in values)
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    f"UPDATE tasks SET {assignments} WHERE id = ?",
                    (*values.values(), task_id),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error updating task {task_id}: {e}")
            raise StoreError() from e
        if cur.rowcount == 0:
            return None
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns False if nothing was deleted."""
        try:
            with self._conn() as conn:
                cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error deleting task {task_id}: {e}")
            raise StoreError() from e
        return cur.rowcount > 0

    def count_tasks(self, owner_id: Optional[str] = None) -> int:
        try:
            with self._conn() as conn:
                if owner_id is None:
                    row = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
                else:
                    row = conn.execute("SELECT COUNT(*) FROM tasks WHERE owner = ?", (owner_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error counting tasks: {e}")
            raise StoreError() from e
        return row[0]

    # ── Users ────────────────────────────────────────────────────────────

    def create_user(self, name: str, email: str, password_hash: str) -> User:
        user = User(id=new_id(), name=name, email=email, password_hash=password_hash)
        try:
            with self._conn() as conn:
                conn.execute(
                    "INSERT INTO users (id, name, email, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                    (user.id, user.name, user.email, user.password_hash, user.created_at.isoformat()),
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError("User already exists") from e
        except sqlite3.Error as e:
            logger.error(f"Error saving user {email}: {e}")
            raise StoreError() from e
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._fetch_user("SELECT * FROM users WHERE id = ?", user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._fetch_user("SELECT * FROM users WHERE email = ?", email.strip().lower())

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        """Update name, email and/or password_hash of a user."""
        values = {k: fields[k] for k in ("name", "email", "password_hash") if k in fields}
        if values:
            assignments = ", ".join(f"{k} = ?" for k in values)
            try:
                with self._conn() as conn:
                    conn.execute(
                        f"UPDATE users SET {assignments} WHERE id = ?",
                        (*values.values(), user_id),
                    )
                    conn.commit()
            except sqlite3.IntegrityError as e:
                raise ValidationError("User already exists") from e
            except sqlite3.Error as e:
                logger.error(f"Error updating user {user_id}: {e}")
                raise StoreError() from e
        return self.get_user(user_id)

    def delete_user(self, user_id: str) -> bool:
        """Delete a user; their tasks go with them through the FK cascade."""
        try:
            with self._conn() as conn:
                cur = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error deleting user {user_id}: {e}")
            raise StoreError() from e
        return cur.rowcount > 0

    def _fetch_user(self, query: str, value: str) -> Optional[User]:
        try:
            with self._conn() as conn:
                row = conn.execute(query, (value,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error retrieving user {value}: {e}")
            raise StoreError() from e
        if not row:
            return None
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        """Convert a database row to a Task object."""
        return Task.from_dict(dict(row))
