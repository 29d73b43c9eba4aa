"""Client-side presentation state for a user's task list.

A ``TaskBoard`` keeps a local working copy of the tasks from its source,
derives the sorted and filtered view shown to the user, and owns the single
in-progress edit. Every mutation goes through the source first; the local copy
only changes once the source accepts it.
"""

import enum
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, List, Optional, Union

import structlog

from ..schemas.task import TaskRead
from ..services.deadlines import is_overdue, urgency_rank
from ..timeutils import as_naive_utc, utcnow
from .sources import TaskSource, TaskSourceError

logger = structlog.get_logger(__name__)

HOUR = timedelta(hours=1)
END_OF_DAY = time(23, 59)


class SortKey(str, enum.Enum):
    CREATED = "created"
    DEADLINE = "deadline"
    PRIORITY = "priority"


class FilterView(str, enum.Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"


@dataclass
class EditSession:
    task_id: str
    text: str
    deadline_date: Optional[date] = None
    deadline_time: Optional[time] = None


def _to_local(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc).astimezone()


def compose_deadline(
    deadline_date: Union[date, str, None],
    deadline_time: Union[time, str, None] = None,
) -> Optional[datetime]:
    """Combine local date and time inputs into a naive UTC deadline.

    Without a time the deadline falls at 23:59 local time; without a date there
    is no deadline at all.
    """
    if not deadline_date:
        return None
    if isinstance(deadline_date, str):
        deadline_date = date.fromisoformat(deadline_date)
    if not deadline_time:
        deadline_time = END_OF_DAY
    elif isinstance(deadline_time, str):
        deadline_time = time.fromisoformat(deadline_time)

    local = datetime.combine(deadline_date, deadline_time)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def format_deadline(deadline: Optional[datetime], now: Optional[datetime] = None) -> str:
    if deadline is None:
        return ""
    deadline = as_naive_utc(deadline)
    now = as_naive_utc(now) if now is not None else utcnow()

    local = _to_local(deadline)
    time_str = local.strftime("%H:%M")
    remaining = deadline - now
    hours = math.ceil(remaining / HOUR)

    if remaining < timedelta(0):
        if hours >= -24:
            return f"{time_str} ({abs(hours)}h ago)"
        return f"{local.strftime('%x')} {time_str}"

    if hours <= 24:
        if hours == 0:
            return f"{time_str} (now)"
        return f"{time_str} ({hours}h left)"

    return f"{local.strftime('%x')} {time_str}"


class TaskBoard:
    def __init__(self, source: TaskSource, clock: Callable[[], datetime] = utcnow):
        self.source = source
        self.clock = clock
        self.tasks: List[TaskRead] = []
        self.sort_key = SortKey.CREATED
        self.filter_view = FilterView.ALL
        self.editing: Optional[EditSession] = None
        self.error: Optional[str] = None

    def _fail(self, action: str, exc: TaskSourceError) -> None:
        logger.warning("task_board_error", action=action, error=exc.message, status=exc.status_code)
        self.error = exc.message

    def _replace(self, task: TaskRead) -> None:
        self.tasks = [task if current.id == task.id else current for current in self.tasks]

    def _find(self, task_id: str) -> TaskRead:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise TaskSourceError("Todo not found", status_code=404)

    # Loading and mutations

    def refresh(self) -> bool:
        try:
            self.tasks = self.source.list()
        except TaskSourceError as exc:
            self._fail("refresh", exc)
            return False
        self.error = None
        return True

    def add(
        self,
        text: str,
        deadline_date: Union[date, str, None] = None,
        deadline_time: Union[time, str, None] = None,
    ) -> Optional[TaskRead]:
        text = text.strip()
        if not text:
            return None
        try:
            task = self.source.create(text, compose_deadline(deadline_date, deadline_time))
        except TaskSourceError as exc:
            self._fail("add", exc)
            return None
        self.tasks = [task, *self.tasks]
        self.error = None
        return task

    def toggle(self, task_id: str) -> Optional[TaskRead]:
        try:
            current = self._find(task_id)
            task = self.source.update(task_id, {"completed": not current.completed})
        except TaskSourceError as exc:
            self._fail("toggle", exc)
            return None
        self._replace(task)
        self.error = None
        return task

    def delete(self, task_id: str) -> bool:
        try:
            self.source.delete(task_id)
        except TaskSourceError as exc:
            self._fail("delete", exc)
            return False
        self.tasks = [task for task in self.tasks if task.id != task_id]
        if self.editing is not None and self.editing.task_id == task_id:
            self.editing = None
        self.error = None
        return True

    def _bulk(self, action: str) -> int:
        try:
            affected = self.source.bulk(action)
        except TaskSourceError as exc:
            self._fail(action, exc)
            return 0
        self.refresh()
        return affected

    def complete_all(self) -> int:
        return self._bulk("complete-all")

    def clear_completed(self) -> int:
        return self._bulk("delete-completed")

    def clear_all(self) -> int:
        return self._bulk("delete-all")

    # Editing

    def start_edit(self, task_id: str) -> Optional[EditSession]:
        """Open an edit on ``task_id``, abandoning any other unsaved edit."""
        try:
            task = self._find(task_id)
        except TaskSourceError as exc:
            self._fail("start_edit", exc)
            return None
        session = EditSession(task_id=task.id, text=task.text)
        if task.deadline is not None:
            local = _to_local(task.deadline)
            session.deadline_date = local.date()
            session.deadline_time = local.time().replace(second=0, microsecond=0)
        self.editing = session
        return session

    def save_edit(
        self,
        text: str,
        deadline_date: Union[date, str, None] = None,
        deadline_time: Union[time, str, None] = None,
    ) -> Optional[TaskRead]:
        """Commit text and deadline; no date clears the deadline, blank text just closes the edit."""
        if self.editing is None:
            return None
        task_id = self.editing.task_id
        text = text.strip()
        if not text:
            self.editing = None
            return None

        changes: Dict[str, object] = {
            "text": text,
            "deadline": compose_deadline(deadline_date, deadline_time),
        }
        try:
            task = self.source.update(task_id, changes)
        except TaskSourceError as exc:
            self._fail("save_edit", exc)
            return None
        self._replace(task)
        self.editing = None
        self.error = None
        return task

    def cancel_edit(self) -> None:
        self.editing = None

    # Derived view

    def set_sort(self, key: Union[SortKey, str]) -> None:
        self.sort_key = SortKey(key)

    def set_filter(self, view: Union[FilterView, str]) -> None:
        self.filter_view = FilterView(view)

    def sorted_tasks(self, now: Optional[datetime] = None) -> List[TaskRead]:
        now = now or self.clock()
        if self.sort_key is SortKey.DEADLINE:
            dated = sorted((t for t in self.tasks if t.deadline is not None), key=lambda t: t.deadline)
            undated = sorted(
                (t for t in self.tasks if t.deadline is None),
                key=lambda t: t.created_at,
                reverse=True,
            )
            return dated + undated
        newest_first = sorted(self.tasks, key=lambda t: t.created_at, reverse=True)
        if self.sort_key is SortKey.PRIORITY:
            # Stable sort: equal urgency stays newest first
            return sorted(newest_first, key=lambda t: urgency_rank(t.deadline, t.completed, now))
        return newest_first

    def _matches(self, task: TaskRead, now: datetime) -> bool:
        if self.filter_view is FilterView.ACTIVE:
            return not task.completed
        if self.filter_view is FilterView.COMPLETED:
            return task.completed
        if self.filter_view is FilterView.OVERDUE:
            return is_overdue(task.deadline, task.completed, now)
        return True

    def visible(self, now: Optional[datetime] = None) -> List[TaskRead]:
        """The sorted list, then narrowed to the current filter view."""
        now = now or self.clock()
        return [task for task in self.sorted_tasks(now) if self._matches(task, now)]

    def counts(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or self.clock()
        completed = sum(1 for task in self.tasks if task.completed)
        overdue = sum(1 for task in self.tasks if is_overdue(task.deadline, task.completed, now))
        return {
            "total": len(self.tasks),
            "completed": completed,
            "active": len(self.tasks) - completed,
            "overdue": overdue,
        }
