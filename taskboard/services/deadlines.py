"""Deadline urgency classification shared by the API and the client board."""

import enum
import math
from datetime import datetime, timedelta
from typing import Optional

from ..timeutils import as_naive_utc, utcnow

DAY = timedelta(days=1)
SOON_DAYS = 3


class DeadlineStatus(str, enum.Enum):
    NONE = "none"
    OVERDUE = "overdue"
    TODAY = "today"
    SOON = "soon"
    NORMAL = "normal"


# Most urgent first
URGENCY_RANK = {
    DeadlineStatus.OVERDUE: 0,
    DeadlineStatus.TODAY: 1,
    DeadlineStatus.SOON: 2,
    DeadlineStatus.NORMAL: 3,
    DeadlineStatus.NONE: 4,
}


def classify_deadline(
    deadline: Optional[datetime],
    completed: bool,
    now: Optional[datetime] = None,
) -> DeadlineStatus:
    """Map a deadline and completion flag to an urgency bucket relative to ``now``.

    Completed tasks and tasks without a deadline are always ``none``. A deadline
    equal to ``now`` is ``today``, not ``overdue``.
    """
    if deadline is None or completed:
        return DeadlineStatus.NONE

    remaining = as_naive_utc(deadline) - as_naive_utc(now or utcnow())
    if remaining < timedelta(0):
        return DeadlineStatus.OVERDUE
    if remaining <= DAY:
        return DeadlineStatus.TODAY
    if math.ceil(remaining / DAY) <= SOON_DAYS:
        return DeadlineStatus.SOON
    return DeadlineStatus.NORMAL


def is_overdue(deadline: Optional[datetime], completed: bool, now: Optional[datetime] = None) -> bool:
    return classify_deadline(deadline, completed, now) is DeadlineStatus.OVERDUE


def urgency_rank(deadline: Optional[datetime], completed: bool, now: Optional[datetime] = None) -> int:
    return URGENCY_RANK[classify_deadline(deadline, completed, now)]
