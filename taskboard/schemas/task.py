from datetime import datetime, timezone
import enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..errors import ValidationError
from ..models.task import CATEGORY_MAX_LENGTH, TEXT_MAX_LENGTH, TaskPriority
from ..timeutils import as_naive_utc

SEARCH_MAX_LENGTH = 100
MAX_PAGE_SIZE = 100
# Largest page whose offset still fits a signed 64-bit integer
MAX_PAGE = (2 ** 63 - 1) // MAX_PAGE_SIZE


def _clean_text(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    value = value.strip()
    if not value:
        raise ValueError("Todo text is required")
    if len(value) > TEXT_MAX_LENGTH:
        raise ValueError(f"Todo text cannot exceed {TEXT_MAX_LENGTH} characters")
    return value


def _clean_deadline(value: Optional[datetime]) -> Optional[datetime]:
    try:
        return as_naive_utc(value)
    except OverflowError:
        raise ValueError("Deadline must be a valid date") from None


def _clean_category(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    value = value.strip()
    if len(value) > CATEGORY_MAX_LENGTH:
        raise ValueError(f"Category cannot exceed {CATEGORY_MAX_LENGTH} characters")
    return value or None


class TaskCreate(BaseModel):
    """Schema for creating new tasks."""
    text: str
    deadline: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[str] = None

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value):
        return _clean_text(value)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return _clean_category(value)

    @field_validator("deadline", mode="before")
    @classmethod
    def _blank_deadline(cls, value):
        return None if value == "" else value

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, value):
        return _clean_deadline(value)


class TaskUpdate(BaseModel):
    """Schema for updating existing tasks.

    Omitted fields are left unchanged; ``deadline: null`` clears the deadline.
    """
    text: Optional[str] = None
    completed: Optional[bool] = None
    deadline: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = None

    @field_validator("text", "completed", "priority", mode="before")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value):
        return _clean_text(value)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return _clean_category(value)

    @field_validator("deadline", mode="before")
    @classmethod
    def _blank_deadline(cls, value):
        return None if value == "" else value

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, value):
        return _clean_deadline(value)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TaskRead(BaseModel):
    """Task as returned by the API (camelCase on the wire, naive UTC in memory)."""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    text: str
    completed: bool = False
    deadline: Optional[datetime] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("deadline", "created_at", "updated_at")
    @classmethod
    def _naive_utc(cls, value):
        return as_naive_utc(value)

    @field_serializer("deadline", "created_at", "updated_at")
    def _serialize_utc(self, value: Optional[datetime]):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc).isoformat()


class SortField(str, enum.Enum):
    CREATED_AT = "createdAt"
    DEADLINE = "deadline"
    PRIORITY = "priority"
    TEXT = "text"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class TaskQuery(BaseModel):
    """Validated listing parameters: filters, sort and page window."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    page: int = Field(default=1, ge=1, le=MAX_PAGE)
    limit: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)
    completed: Optional[bool] = None
    category: Optional[str] = None
    search: Optional[str] = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("search", mode="before")
    @classmethod
    def _search(cls, value):
        if not isinstance(value, str):
            return value
        value = value.strip()
        if len(value) > SEARCH_MAX_LENGTH:
            raise ValueError("Search term too long")
        return value or None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "TaskQuery":
        """Validate raw query-string values; empty values count as not supplied."""
        raw = {key: value for key, value in params.items() if value not in ("", None)}
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from exc


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0


class BulkActionRequest(BaseModel):
    # Validated against BulkAction by the bulk service
    action: str


class Pagination(BaseModel):
    current: int
    total: int
    hasNext: bool
    hasPrev: bool
    totalTodos: int


class TaskEnvelope(BaseModel):
    success: bool = True
    data: TaskRead


class TaskChangeEnvelope(TaskEnvelope):
    message: str


class TaskListEnvelope(BaseModel):
    success: bool = True
    data: List[TaskRead]
    pagination: Pagination


class StatsEnvelope(BaseModel):
    success: bool = True
    data: TaskStats


class BulkEnvelope(BaseModel):
    success: bool = True
    message: str
    modifiedCount: int


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str
