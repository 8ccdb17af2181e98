"""
HTTP client for the taskboard API.

Session   — explicit auth session: holds the token and current user, with
            restore-on-load and logout teardown. Passed to whatever needs it.
TaskClient — task CRUD through a Session, returning Task objects.

Both raise ApiError for any failed call, whether the server answered with
an error envelope, the request never completed, or the reply could not be
decoded (the last two with status_code 0).
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from .errors import ValidationError
from .schema import Task, TaskStatus

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A call to the taskboard API did not succeed."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}" if status_code else message)


class Session:
    """Authenticated connection to one taskboard server."""

    def __init__(self, base_url: str, http: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    @classmethod
    def from_config(cls, cfg, http: Optional[requests.Session] = None) -> "Session":
        """Build an unauthenticated session from the client settings of a Config."""
        return cls(cfg.api_url, http=http, timeout=float(cfg.request_timeout))

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    def request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send one request and return the decoded envelope, or raise ApiError."""
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise ApiError(0, f"Network error: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if resp.status_code >= 400 or not body.get("success", False):
            message = body.get("message") or f"Request failed with status {resp.status_code}"
            logger.debug(f"{method} {url} → {resp.status_code} {message}")
            raise ApiError(resp.status_code, message)
        return body

    # ── lifecycle ──

    def restore(self, token: Optional[str]) -> bool:
        """
        Init-on-load: adopt a previously stored token if the server still
        accepts it. A rejected token is dropped rather than kept around.
        """
        if not token:
            return False
        self.token = token
        try:
            self.user = self.request("GET", "/auth/profile")["data"]
        except ApiError as e:
            logger.info(f"Stored token rejected: {e.message}")
            self.logout()
            return False
        return True

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._adopt(self.request("POST", "/auth/login", json={"email": email, "password": password}))

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        return self._adopt(self.request(
            "POST", "/auth/register", json={"name": name, "email": email, "password": password},
        ))

    def update_profile(self, **fields) -> Dict[str, Any]:
        return self._adopt(self.request("PUT", "/auth/profile", json=fields))

    def delete_account(self) -> None:
        self.request("DELETE", "/auth/profile")
        self.logout()

    def logout(self) -> None:
        """Teardown: forget the token and the user."""
        self.token = None
        self.user = None

    def _adopt(self, body: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(body["data"])
        token = data.pop("token", None)
        if token:
            self.token = token
        self.user = data
        return data


class TaskClient:
    """Task CRUD over an authenticated Session."""

    def __init__(self, session: Session):
        self.session = session

    def list_tasks(self, status: Optional[TaskStatus] = None) -> List[Task]:
        params = {"status": TaskStatus.parse(status).value} if status else None
        body = self.session.request("GET", "/tasks", params=params)
        items = body.get("data", [])
        if not isinstance(items, list):
            raise ApiError(0, "Malformed response: task list expected")
        return [_decode_task(item) for item in items]

    def get_task(self, task_id: str) -> Task:
        return _decode_task(self.session.request("GET", f"/tasks/{task_id}").get("data"))

    def create_task(self, fields: Dict[str, Any]) -> Task:
        return _decode_task(self.session.request("POST", "/tasks", json=_jsonable(fields)).get("data"))

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Task:
        return _decode_task(self.session.request("PUT", f"/tasks/{task_id}", json=_jsonable(fields)).get("data"))

    def delete_task(self, task_id: str) -> None:
        self.session.request("DELETE", f"/tasks/{task_id}")


def _decode_task(data: Any) -> Task:
    """Task from a response payload; an unreadable payload is an ApiError like any other failed call."""
    if not isinstance(data, dict):
        raise ApiError(0, "Malformed response: task expected")
    try:
        return Task.from_dict(data)
    except (KeyError, TypeError, ValidationError) as e:
        logger.warning(f"Cannot decode task payload: {e}")
        raise ApiError(0, f"Malformed response: {e}") from e


def _jsonable(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Turn TaskStatus and datetime values into their wire form."""
    out = {}
    for key, value in fields.items():
        if isinstance(value, TaskStatus):
            value = value.value
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        out[key] = value
    return out
