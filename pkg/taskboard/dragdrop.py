"""
Drag-and-drop coordinator for the board.

Gesture lifecycle:
  IDLE → DRAGGING → DROPPED | CANCELLED → IDLE

A drop moves the card on the board immediately, then sends exactly one
status update to the server. Only the status is persisted: reordering inside
a column has no stored counterpart and is gone after the next reload. If the
update fails the board is reloaded from the server instead of being patched
back, and the call is not retried.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .board import BoardState, StaleBoardError
from .client import ApiError
from .schema import TaskStatus

logger = logging.getLogger(__name__)


class DragPhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


class DragStateError(Exception):
    """Raised when a gesture event arrives in the wrong phase."""
    pass


@dataclass(frozen=True)
class Location:
    """A slot on the board: column plus index within it."""
    status: TaskStatus
    index: int

    @classmethod
    def of(cls, status, index: int) -> "Location":
        return cls(TaskStatus.parse(status), index)


@dataclass(frozen=True)
class DragResult:
    """Payload of a finished gesture. destination is None when dropped off the board."""
    task_id: str
    source: Location
    destination: Optional[Location] = None


@dataclass
class DropOutcome:
    phase: DragPhase
    moved: bool = False
    persisted: bool = False
    resynced: bool = False
    error: Optional[str] = None


class DragCoordinator:
    """Turns drag gestures into a board move plus one persistence call."""

    def __init__(self, board: BoardState, client):
        self.board = board
        self.client = client
        self.phase = DragPhase.IDLE
        self._task_id: Optional[str] = None
        self._source: Optional[Location] = None

    def start(self, task_id: str, source_status=None, source_index: Optional[int] = None) -> None:
        """Pick up a card. Without a source slot the card is looked up on the board."""
        if self.phase != DragPhase.IDLE:
            raise DragStateError(f"already {self.phase.value} {self._task_id}")
        if source_status is None or source_index is None:
            found = self.board.find(task_id)
            if found is None:
                raise DragStateError(f"task {task_id} is not on the board")
            source_status, source_index = found
        self._task_id = task_id
        self._source = Location.of(source_status, source_index)
        self.phase = DragPhase.DRAGGING

    def drop(self, dest_status=None, dest_index: Optional[int] = None) -> DropOutcome:
        """
        Finish the current gesture. Without a destination the drag is
        cancelled and nothing changes.
        """
        if self.phase != DragPhase.DRAGGING:
            raise DragStateError("drop without a drag in progress")
        task_id, source = self._task_id, self._source
        try:
            if dest_status is None or dest_index is None:
                self.phase = DragPhase.CANCELLED
                return DropOutcome(DragPhase.CANCELLED)
            self.phase = DragPhase.DROPPED
            return self._commit(task_id, source, Location.of(dest_status, dest_index))
        finally:
            self._reset()

    def cancel(self) -> DropOutcome:
        return self.drop(None, None)

    def handle_drag_end(self, result: DragResult) -> DropOutcome:
        """One-shot form: start and drop from a finished gesture payload."""
        self.start(result.task_id, result.source.status, result.source.index)
        if result.destination is None:
            return self.drop()
        return self.drop(result.destination.status, result.destination.index)

    def _commit(self, task_id: str, source: Location, dest: Location) -> DropOutcome:
        try:
            moved = self.board.apply_move(task_id, source.status, source.index, dest.status, dest.index)
        except StaleBoardError as e:
            logger.warning(f"Stale drag, reloading board: {e}")
            return DropOutcome(DragPhase.DROPPED, resynced=self._resync(), error=str(e))

        if not moved:
            return DropOutcome(DragPhase.DROPPED)

        try:
            self.client.update_task(task_id, {"status": dest.status.value})
        except ApiError as e:
            logger.error(f"Error updating task {task_id}: {e.message}")
            return DropOutcome(DragPhase.DROPPED, moved=True, resynced=self._resync(), error=e.message)
        return DropOutcome(DragPhase.DROPPED, moved=True, persisted=True)

    def _resync(self) -> bool:
        try:
            self.board.load()
        except ApiError as e:
            logger.error(f"Error fetching tasks: {e.message}")
            return False
        return True

    def _reset(self) -> None:
        self._task_id = None
        self._source = None
        self.phase = DragPhase.IDLE
