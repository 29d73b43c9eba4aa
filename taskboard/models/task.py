from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional
from uuid import uuid4
import enum

from ..timeutils import utcnow

TEXT_MAX_LENGTH = 500
CATEGORY_MAX_LENGTH = 50


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(SQLModel, table=True):
    """A single to-do item owned by one user.

    Deadlines and timestamps are stored as naive UTC in plain DateTime columns.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(index=True, foreign_key="users.id")
    text: str = Field(max_length=TEXT_MAX_LENGTH)
    completed: bool = Field(default=False, index=True)
    deadline: Optional[datetime] = Field(default=None, sa_type=DateTime)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    category: Optional[str] = Field(default=None, max_length=CATEGORY_MAX_LENGTH)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    # Relationship back to user
    user: Optional["User"] = Relationship(back_populates="tasks")
