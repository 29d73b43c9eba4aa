"""Whole-collection state transitions for one owner.

Each action is one UPDATE or DELETE statement committed in a single
transaction, so callers see all qualifying tasks change or none of them.
Re-running an action matches nothing that was already transitioned.
"""

import enum
from typing import Union

import structlog
from sqlalchemy import delete, update
from sqlmodel import Session

from ..errors import ValidationError
from ..models import Task
from ..timeutils import utcnow
from .store import store_operation

logger = structlog.get_logger(__name__)


class BulkAction(str, enum.Enum):
    COMPLETE_ALL = "complete-all"
    DELETE_COMPLETED = "delete-completed"
    DELETE_ALL = "delete-all"


def parse_bulk_action(action: Union[str, BulkAction]) -> BulkAction:
    try:
        return BulkAction(action)
    except ValueError:
        raise ValidationError.for_field("action", "Invalid bulk action") from None


def _statement(owner_id: str, action: BulkAction):
    if action is BulkAction.COMPLETE_ALL:
        return (
            update(Task)
            .where(Task.user_id == owner_id, Task.completed.is_(False))
            .values(completed=True, updated_at=utcnow())
        )
    if action is BulkAction.DELETE_COMPLETED:
        return delete(Task).where(Task.user_id == owner_id, Task.completed.is_(True))
    return delete(Task).where(Task.user_id == owner_id)


def apply_bulk(db: Session, owner_id: str, action: Union[str, BulkAction]) -> int:
    """Apply ``action`` to the owner's tasks and return how many were affected."""
    action = parse_bulk_action(action)

    with store_operation(db, "Server error during bulk operation"):
        result = db.exec(_statement(owner_id, action).execution_options(synchronize_session=False))
        db.commit()

    affected = result.rowcount or 0
    logger.info("bulk_action_applied", action=action.value, user_id=owner_id, affected=affected)
    return affected
