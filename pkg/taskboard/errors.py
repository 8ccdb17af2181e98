"""
Failure taxonomy shared by the store, the task resource and the HTTP layer.

Each error carries the HTTP status it maps to, so the server can turn any of
them into a response envelope without inspecting the type.
"""


class TaskboardError(Exception):
    """Base class for all expected taskboard failures."""
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskboardError):
    """Raised when input is missing or violates a field constraint."""
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(TaskboardError):
    """Raised when a request carries no principal or an invalid one."""
    status_code = 401
    default_message = "Not authorized"


class Forbidden(TaskboardError):
    """Raised when the record exists but belongs to another owner."""
    status_code = 403
    default_message = "Forbidden"


class NotFound(TaskboardError):
    """Raised when no record matches the given id."""
    status_code = 404
    default_message = "Not found"


class StoreError(TaskboardError):
    """Raised when the persistent store fails unexpectedly."""
    status_code = 500
    default_message = "Server error"
