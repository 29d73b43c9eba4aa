"""Listing pipeline: owner scope, filters, single-key sort with an id tie-break, page window."""

from typing import List, Tuple

from sqlalchemy import case, func
from sqlmodel import Session, select

from ..models import Task, TaskPriority
from ..schemas.task import SortField, SortOrder, TaskQuery
from .store import store_operation

PRIORITY_RANK = case(
    (Task.priority == TaskPriority.LOW, 0),
    (Task.priority == TaskPriority.MEDIUM, 1),
    else_=2,
)


def _conditions(owner_id: str, query: TaskQuery) -> list:
    conditions = [Task.user_id == owner_id]
    if query.completed is not None:
        conditions.append(Task.completed == query.completed)
    if query.category is not None:
        conditions.append(Task.category == query.category)
    if query.search is not None:
        conditions.append(func.lower(Task.text).contains(query.search.lower(), autoescape=True))
    return conditions


def _ordering(query: TaskQuery) -> list:
    if query.sort_by is SortField.DEADLINE:
        # Tasks without a deadline rank lowest on every backend
        keys = [Task.deadline.is_not(None), Task.deadline]
    elif query.sort_by is SortField.PRIORITY:
        keys = [PRIORITY_RANK]
    elif query.sort_by is SortField.TEXT:
        keys = [Task.text]
    else:
        keys = [Task.created_at]

    # id keeps page boundaries stable between identical queries
    keys.append(Task.id)
    if query.sort_order is SortOrder.ASC:
        return [key.asc() for key in keys]
    return [key.desc() for key in keys]


def list_tasks(db: Session, owner_id: str, query: TaskQuery) -> Tuple[List[Task], int]:
    """Return one page of the owner's matching tasks and the total match count."""
    conditions = _conditions(owner_id, query)

    with store_operation(db, "Server error while fetching todos"):
        items = db.exec(
            select(Task)
            .where(*conditions)
            .order_by(*_ordering(query))
            .offset(query.offset)
            .limit(query.limit)
        ).all()
        total = db.exec(select(func.count()).select_from(Task).where(*conditions)).one()

    return list(items), total
