"""
Task and user records, the task status type, and field validation.

Task lifecycle:
  pending ⇄ in-progress ⇄ completed

Any status may be set from any other; the board moves tasks freely between
columns. TaskStatus is the only definition of the status set and is shared by
the store, the resource, the HTTP layer and the board.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from .errors import ValidationError

TITLE_MIN = 3
TITLE_MAX = 100
DESCRIPTION_MAX = 500
PASSWORD_MIN = 6

# Fields a caller may set on a task, at creation or through a patch
MUTABLE_FIELDS = ("title", "description", "status", "due_date")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(Enum):
    """Board columns, in display order."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        """Strict parse: anything outside the three values is a ValidationError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValidationError("Status must be pending, in-progress, or completed")

    @classmethod
    def from_str(cls, value: Optional[str]) -> Optional["TaskStatus"]:
        """Lenient parse: unknown values map to None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("Invalid due date")
    else:
        raise ValidationError("Invalid due date")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ── Field validators ────────────────────────────────────────────────────────
# Each takes the raw value and returns the cleaned one, raising
# ValidationError with the message shown to the user.


def clean_title(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Title is required")
    title = str(value).strip()
    if len(title) < TITLE_MIN:
        raise ValidationError(f"Title must be at least {TITLE_MIN} characters")
    if len(title) > TITLE_MAX:
        raise ValidationError(f"Title cannot exceed {TITLE_MAX} characters")
    return title


def clean_description(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Description is required")
    description = str(value).strip()
    if len(description) > DESCRIPTION_MAX:
        raise ValidationError(f"Description cannot exceed {DESCRIPTION_MAX} characters")
    return description


def clean_due_date(value: Any, now: Optional[datetime] = None) -> datetime:
    if value is None or value == "":
        raise ValidationError("Due date is required")
    due = parse_datetime(value)
    if due < (now or utc_now()):
        raise ValidationError("Due date must be in the future")
    return due


def clean_status(value: Any) -> TaskStatus:
    return TaskStatus.parse(value)


_VALIDATORS = {
    "title": clean_title,
    "description": clean_description,
    "status": clean_status,
    "due_date": clean_due_date,
}


def validate_task_fields(fields: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Run the validator of every mutable field present in `fields`.

    Only the fields being written are checked, so a patch that leaves
    due_date alone does not trip the future-date rule on an old task.
    Unknown keys are dropped.
    """
    cleaned = {}
    for name in MUTABLE_FIELDS:
        if name not in fields:
            continue
        if name == "due_date":
            cleaned[name] = clean_due_date(fields[name], now=now)
        else:
            cleaned[name] = _VALIDATORS[name](fields[name])
    return cleaned


@dataclass
class Task:
    """One task on the board, owned by exactly one user."""

    id: str
    title: str
    description: str
    due_date: datetime
    owner: str
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form used in API envelopes."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "due_date": _iso(self.due_date),
            "owner": self.owner,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a Task from its wire form or a database row."""
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            status=TaskStatus.from_str(data.get("status")) or TaskStatus.PENDING,
            due_date=parse_datetime(data["due_date"]),
            owner=str(data.get("owner", "")),
            created_at=parse_datetime(data["created_at"]) if data.get("created_at") else utc_now(),
            updated_at=parse_datetime(data["updated_at"]) if data.get("updated_at") else utc_now(),
        )


@dataclass
class User:
    """Account that owns tasks."""

    id: str
    name: str
    email: str
    password_hash: str = field(default="", repr=False)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": _iso(self.created_at),
        }


def clean_name(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Name is required")
    return str(value).strip()


def clean_email(value: Any) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Email is required")
    email = str(value).strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("Please provide a valid email")
    return email


def clean_password(value: Any) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError("Password is required")
    if len(value) < PASSWORD_MIN:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN} characters")
    return value
