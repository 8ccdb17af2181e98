"""
Board state: the tasks of one user partitioned into status columns.

The board is a projection of the server, never a source of truth. Moves are
applied speculatively; creates, updates and deletes go to the server first
and are followed by a full reload. A reload replaces every column wholesale,
which is also how a failed speculative move is undone.
"""
import dataclasses
import logging
from typing import Any, Dict, Iterable, List

from .schema import Task, TaskStatus

logger = logging.getLogger(__name__)


class StaleBoardError(Exception):
    """The requested source position does not hold the expected task."""
    pass


def empty_columns() -> Dict[TaskStatus, List[Task]]:
    return {status: [] for status in TaskStatus}


class BoardState:
    """Ordered task lists keyed by TaskStatus, synced through a TaskClient."""

    def __init__(self, client):
        self.client = client
        self.columns: Dict[TaskStatus, List[Task]] = empty_columns()
        self.loaded = False

    # ── authoritative ──

    def load(self) -> None:
        """Refetch every task and rebuild all columns."""
        self.replace(self.client.list_tasks())

    def replace(self, tasks: Iterable[Task]) -> None:
        """Partition `tasks` by status, keeping their order within each column."""
        columns = empty_columns()
        for task in tasks:
            columns[task.status].append(task)
        self.columns = columns
        self.loaded = True
        logger.debug(f"Board loaded: {self.counts()}")

    # ── speculative ──

    def apply_move(
        self,
        task_id: str,
        source_status: TaskStatus,
        source_index: int,
        dest_status: TaskStatus,
        dest_index: int,
    ) -> bool:
        """
        Move a task between (or within) columns without asking the server.

        Returns False for a move onto its own position, which changes nothing.
        Raises StaleBoardError if the source slot does not hold `task_id`;
        the board is left untouched in that case.
        """
        source_status = TaskStatus.parse(source_status)
        dest_status = TaskStatus.parse(dest_status)
        if source_status == dest_status and source_index == dest_index:
            return False

        source = list(self.columns[source_status])
        if not 0 <= source_index < len(source) or source[source_index].id != task_id:
            raise StaleBoardError(
                f"{task_id} is not at {source_status.value}[{source_index}]"
            )

        moved = source.pop(source_index)
        if dest_status != source_status:
            moved = dataclasses.replace(moved, status=dest_status)
            dest = list(self.columns[dest_status])
        else:
            dest = source
        dest.insert(max(dest_index, 0), moved)

        columns = dict(self.columns)
        columns[source_status] = source
        columns[dest_status] = dest
        self.columns = columns
        return True

    # ── confirmed, then reloaded ──

    def apply_create(self, fields: Dict[str, Any]) -> Task:
        task = self.client.create_task(fields)
        self.load()
        return task

    def apply_update(self, task_id: str, fields: Dict[str, Any]) -> Task:
        task = self.client.update_task(task_id, fields)
        self.load()
        return task

    def apply_delete(self, task_id: str) -> None:
        self.client.delete_task(task_id)
        self.load()

    # ── views ──

    def column(self, status: TaskStatus) -> List[Task]:
        return list(self.columns[TaskStatus.parse(status)])

    def find(self, task_id: str):
        """(status, index) of a task on the board, or None."""
        for status, tasks in self.columns.items():
            for index, task in enumerate(tasks):
                if task.id == task_id:
                    return status, index
        return None

    def counts(self) -> Dict[str, int]:
        return {status.value: len(tasks) for status, tasks in self.columns.items()}

    def snapshot(self) -> Dict[str, List[str]]:
        """Column value → task ids, in board order."""
        return {status.value: [t.id for t in tasks] for status, tasks in self.columns.items()}
