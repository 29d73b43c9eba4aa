from datetime import datetime
from typing import Optional

from sqlalchemy import and_, case, func
from sqlmodel import Session, select

from ..models import Task
from ..schemas.task import TaskStats
from ..timeutils import as_naive_utc, utcnow
from .store import store_operation


def summarize(db: Session, owner_id: str, now: Optional[datetime] = None) -> TaskStats:
    """Count the owner's tasks in one aggregate query, evaluated at ``now``."""
    now = as_naive_utc(now) if now is not None else utcnow()
    overdue = and_(
        Task.completed.is_(False),
        Task.deadline.is_not(None),
        Task.deadline < now,
    )

    statement = select(
        func.count(Task.id),
        func.coalesce(func.sum(case((Task.completed.is_(True), 1), else_=0)), 0),
        func.coalesce(func.sum(case((overdue, 1), else_=0)), 0),
    ).where(Task.user_id == owner_id)

    with store_operation(db, "Server error while fetching statistics"):
        total, completed, overdue_count = db.exec(statement).one()

    return TaskStats(
        total=total,
        completed=completed,
        pending=total - completed,
        overdue=overdue_count,
    )
