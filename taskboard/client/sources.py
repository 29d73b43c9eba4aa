"""Data sources behind the task board.

``LocalTaskSource`` keeps tasks in memory for offline use. ``RemoteTaskSource``
talks to the REST API. Both return ``TaskRead`` objects holding naive UTC
datetimes and raise ``TaskSourceError`` on failure.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from ..config import API_BASE_URL
from ..schemas.task import TaskCreate, TaskRead, TaskUpdate
from ..timeutils import utcnow

logger = structlog.get_logger(__name__)

PAGE_SIZE = 100


class TaskSourceError(Exception):
    """A source could not complete a request; ``message`` is fit for display."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TaskSource(Protocol):
    def list(self) -> List[TaskRead]: ...

    def create(self, text: str, deadline: Optional[datetime] = None) -> TaskRead: ...

    def update(self, task_id: str, changes: Dict[str, Any]) -> TaskRead: ...

    def delete(self, task_id: str) -> None: ...

    def bulk(self, action: str) -> int: ...


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid task"
    message = errors[0].get("msg", "Invalid task")
    return message.replace("Value error, ", "", 1)


class LocalTaskSource:
    """In-memory tasks for a single offline user."""

    def __init__(self, owner_id: str = "local"):
        self.owner_id = owner_id
        self._tasks: Dict[str, TaskRead] = {}
        self._last_created: Optional[datetime] = None

    def _timestamp(self) -> datetime:
        # Strictly increasing so newest-first ordering never ties
        now = utcnow()
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    def _get(self, task_id: str) -> TaskRead:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskSourceError("Todo not found", status_code=404) from None

    def list(self) -> List[TaskRead]:
        return list(self._tasks.values())

    def create(self, text: str, deadline: Optional[datetime] = None) -> TaskRead:
        try:
            payload = TaskCreate(text=text, deadline=deadline)
        except PydanticValidationError as exc:
            raise TaskSourceError(_first_error(exc), status_code=400) from exc

        now = self._timestamp()
        task = TaskRead(
            id=str(uuid4()),
            user_id=self.owner_id,
            text=payload.text,
            deadline=payload.deadline,
            priority=payload.priority,
            category=payload.category,
            created_at=now,
            updated_at=now,
        )
        self._tasks[task.id] = task
        return task

    def update(self, task_id: str, changes: Dict[str, Any]) -> TaskRead:
        task = self._get(task_id)
        try:
            payload = TaskUpdate(**changes)
        except PydanticValidationError as exc:
            raise TaskSourceError(_first_error(exc), status_code=400) from exc

        updated = task.model_copy(update={**payload.changes(), "updated_at": utcnow()})
        self._tasks[task_id] = updated
        return updated

    def delete(self, task_id: str) -> None:
        self._get(task_id)
        del self._tasks[task_id]

    def bulk(self, action: str) -> int:
        if action == "complete-all":
            pending = [task for task in self._tasks.values() if not task.completed]
            now = utcnow()
            for task in pending:
                self._tasks[task.id] = task.model_copy(update={"completed": True, "updated_at": now})
            return len(pending)
        if action == "delete-completed":
            doomed = [task_id for task_id, task in self._tasks.items() if task.completed]
        elif action == "delete-all":
            doomed = list(self._tasks)
        else:
            raise TaskSourceError("Invalid bulk action", status_code=400)
        for task_id in doomed:
            del self._tasks[task_id]
        return len(doomed)


def _encode(changes: Dict[str, Any]) -> Dict[str, Any]:
    body = {}
    for key, value in changes.items():
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            value = value.isoformat()
        body[key] = value
    return body


class RemoteTaskSource:
    """Tasks stored behind the REST API, authenticated with a bearer token."""

    def __init__(
        self,
        token: str,
        base_url: str = API_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RemoteTaskSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("task_source_unreachable", method=method, path=path, error=str(exc))
            raise TaskSourceError("Could not reach the server. Please try again.") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("message") or body.get("detail") or f"Request failed ({response.status_code})"
            if body.get("errors"):
                message = body["errors"][0].get("message", message)
            raise TaskSourceError(str(message), status_code=response.status_code)
        return body

    def list(self) -> List[TaskRead]:
        tasks: List[TaskRead] = []
        page = 1
        while True:
            body = self._request("GET", "/todos", params={"page": page, "limit": PAGE_SIZE})
            tasks.extend(TaskRead.model_validate(item) for item in body.get("data", []))
            if not body.get("pagination", {}).get("hasNext"):
                return tasks
            page += 1

    def create(self, text: str, deadline: Optional[datetime] = None) -> TaskRead:
        payload: Dict[str, Any] = {"text": text}
        if deadline is not None:
            payload["deadline"] = deadline
        body = self._request("POST", "/todos", json=_encode(payload))
        return TaskRead.model_validate(body["data"])

    def update(self, task_id: str, changes: Dict[str, Any]) -> TaskRead:
        body = self._request("PUT", f"/todos/{task_id}", json=_encode(changes))
        return TaskRead.model_validate(body["data"])

    def delete(self, task_id: str) -> None:
        self._request("DELETE", f"/todos/{task_id}")

    def bulk(self, action: str) -> int:
        body = self._request("PATCH", "/todos/bulk", json={"action": action})
        return int(body.get("modifiedCount", 0))
