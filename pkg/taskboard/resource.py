"""
Task resource: CRUD scoped to the authenticated owner.

Every operation takes the caller's user id first. A task that exists but
belongs to someone else raises Forbidden; a task that does not exist raises
NotFound. The two stay distinct so a client can tell them apart.
"""
import logging
from typing import List, Optional, Dict, Any

from .errors import Forbidden, NotFound, ValidationError
from .schema import MUTABLE_FIELDS, Task, TaskStatus
from .store import TaskStore

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TaskResource:
    """Owner-scoped operations on tasks."""

    def __init__(self, store: TaskStore):
        self.store = store

    def list(self, owner_id: str, status: Optional[str] = None) -> List[Task]:
        """All of the owner's tasks, newest first. An unknown status filter is ignored."""
        return self.store.find_tasks(owner_id, TaskStatus.from_str(status) if status else None)

    def get(self, owner_id: str, task_id: str, action: str = "access") -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise NotFound("Task not found")
        if task.owner != owner_id:
            logger.warning(f"User {owner_id} denied {action} on task {task_id}")
            raise Forbidden(f"Not authorized to {action} this task")
        return task

    def create(self, owner_id: str, payload: Dict[str, Any]) -> Task:
        """Create a task owned by the caller. Status defaults to pending."""
        if any(_is_blank(payload.get(k)) for k in ("title", "description", "due_date")):
            raise ValidationError("Please provide title, description, and due date")

        status = TaskStatus.PENDING
        if not _is_blank(payload.get("status")):
            status = TaskStatus.parse(payload["status"])

        task = self.store.create_task(
            owner_id,
            title=payload["title"],
            description=payload["description"],
            due_date=payload["due_date"],
            status=status,
        )
        logger.info(f"Created task {task.id} for {owner_id}")
        return task

    def update(self, owner_id: str, task_id: str, patch: Dict[str, Any]) -> Task:
        """Merge a partial update; owner, id and timestamps are never writable."""
        self.get(owner_id, task_id, action="update")

        fields = {k: patch[k] for k in MUTABLE_FIELDS if k in patch}
        if "status" in fields:
            fields["status"] = TaskStatus.parse(fields["status"])

        task = self.store.update_task(task_id, fields)
        if task is None:
            # deleted between the ownership check and the write
            raise NotFound("Task not found")
        logger.info(f"Updated task {task_id} fields={sorted(fields)}")
        return task

    def delete(self, owner_id: str, task_id: str) -> None:
        self.get(owner_id, task_id, action="delete")
        if not self.store.delete_task(task_id):
            raise NotFound("Task not found")
        logger.info(f"Deleted task {task_id}")
