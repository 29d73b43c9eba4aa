"""Owner-scoped create / fetch / update / delete for single tasks."""

from typing import Optional

import structlog
from sqlmodel import Session, select

from ..errors import NotFound
from ..models import Task
from ..schemas.task import TaskCreate, TaskUpdate
from ..timeutils import utcnow
from .store import store_operation

logger = structlog.get_logger(__name__)


def _find_owned(db: Session, owner_id: str, task_id: str) -> Optional[Task]:
    return db.exec(select(Task).where(Task.id == task_id, Task.user_id == owner_id)).first()


def create_task(db: Session, owner_id: str, payload: TaskCreate) -> Task:
    task = Task(
        user_id=owner_id,
        text=payload.text,
        deadline=payload.deadline,
        priority=payload.priority,
        category=payload.category,
    )
    with store_operation(db, "Server error while creating todo"):
        db.add(task)
        db.commit()
        db.refresh(task)
    logger.info("task_created", task_id=task.id, user_id=owner_id)
    return task


def get_task(db: Session, owner_id: str, task_id: str) -> Task:
    """Fetch one task; a foreign, missing or malformed id all look the same."""
    with store_operation(db, "Server error"):
        task = _find_owned(db, owner_id, task_id)
    if task is None:
        raise NotFound()
    return task


def update_task(db: Session, owner_id: str, task_id: str, payload: TaskUpdate) -> Task:
    with store_operation(db, "Server error while updating todo"):
        task = _find_owned(db, owner_id, task_id)
        if task is None:
            raise NotFound()

        for field, value in payload.changes().items():
            setattr(task, field, value)
        task.updated_at = utcnow()

        db.add(task)
        db.commit()
        db.refresh(task)
    return task


def delete_task(db: Session, owner_id: str, task_id: str) -> None:
    with store_operation(db, "Server error while deleting todo"):
        task = _find_owned(db, owner_id, task_id)
        if task is None:
            raise NotFound()
        db.delete(task)
        db.commit()
    logger.info("task_deleted", task_id=task_id, user_id=owner_id)
