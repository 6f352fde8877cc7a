"""Todo schemas for request/response validation."""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any
from uuid import UUID

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)

from app.schemas.common import CamelModel, PageInfo

MAX_TAGS = 10

TodoTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
TodoTag = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


class TodoStatus(str, Enum):
    """Todo status enumeration."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TodoPriority(str, Enum):
    """Todo priority enumeration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TodoSortField(str, Enum):
    """Columns a todo list may be ordered by."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    STATUS = "status"
    POSITION = "position"
    TITLE = "title"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


def _dedupe_tags(tags: list[str]) -> list[str]:
    return list(dict.fromkeys(tags))


class TodoCreate(CamelModel):
    """Schema for creating a new todo."""

    title: TodoTitle
    description: str | None = Field(None, max_length=5000)
    status: TodoStatus = TodoStatus.PENDING
    priority: TodoPriority = TodoPriority.MEDIUM
    due_date: AwareDatetime | None = None
    tags: list[TodoTag] = Field(default_factory=list, max_length=MAX_TAGS)
    starred: bool = False
    reminder_at: AwareDatetime | None = None

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        """Tags behave as a set."""
        return _dedupe_tags(v)


class TodoUpdate(CamelModel):
    """
    Schema for partially updating a todo.

    Only fields present in the payload are applied. Explicit null is
    accepted for nullable columns only.
    """

    title: TodoTitle | None = None
    description: str | None = Field(None, max_length=5000)
    status: TodoStatus | None = None
    priority: TodoPriority | None = None
    due_date: AwareDatetime | None = None
    tags: list[TodoTag] | None = Field(None, max_length=MAX_TAGS)
    starred: bool | None = None
    reminder_at: AwareDatetime | None = None
    position: int | None = Field(None, gt=0)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str] | None) -> list[str] | None:
        """Tags behave as a set."""
        return _dedupe_tags(v) if v is not None else v

    @field_validator("title", "status", "priority", "tags", "starred", "position")
    @classmethod
    def reject_null(cls, v: Any, info: ValidationInfo) -> Any:
        """Absent means unchanged; null is only meaningful for nullable columns."""
        if v is None:
            raise ValueError(f"{to_wire_name(info.field_name)} cannot be null")
        return v

    def changes(self) -> dict[str, Any]:
        """Return the explicitly supplied fields, with enums as plain values."""
        changes = {}
        for field, value in self.model_dump(exclude_unset=True).items():
            changes[field] = value.value if isinstance(value, Enum) else value
        return changes


def to_wire_name(field: str) -> str:
    """Translate a field name to its camelCase wire name."""
    head, *rest = field.split("_")
    return head + "".join(part.capitalize() for part in rest)


class TodoFilters(BaseModel):
    """Schema for todo list filtering, pagination and sorting."""

    status: TodoStatus | None = None
    priority: TodoPriority | None = None
    starred: bool | None = None
    search: str | None = Field(None, max_length=200)
    due_date_from: datetime | None = None
    due_date_to: datetime | None = None
    tags: list[str] | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: TodoSortField = TodoSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("search")
    @classmethod
    def blank_search_is_no_search(cls, v: str | None) -> str | None:
        """Treat an empty search term as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("due_date_from", "due_date_to")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Date-only or naive bounds are read as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        """Accept comma-separated tags, repeated tags, or both."""
        if v is None:
            return v
        if isinstance(v, str):
            v = [v]
        tags = [tag.strip() for item in v for tag in str(item).split(",")]
        return _dedupe_tags([tag for tag in tags if tag]) or None

    @model_validator(mode="after")
    def validate_due_date_range(self) -> "TodoFilters":
        """Validate the due date range is not inverted."""
        if self.due_date_from and self.due_date_to and self.due_date_from > self.due_date_to:
            raise ValueError("dueDateFrom must be before or equal to dueDateTo")
        return self


class TodoResponse(CamelModel):
    """Schema for todo response."""

    id: UUID
    title: str
    description: str | None = None
    status: TodoStatus
    priority: TodoPriority
    due_date: datetime | None = None
    completed_at: datetime | None = None
    position: int
    tags: list[str]
    starred: bool
    reminder_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TodoStats(CamelModel):
    """Aggregate counts over a user's live todos."""

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    completed_today: int
    due_soon: int
    overdue: int
    starred: int


class TodoData(CamelModel):
    """Envelope payload for a single todo."""

    todo: TodoResponse


class TodoListData(CamelModel):
    """Envelope payload for a page of todos."""

    items: list[TodoResponse]
    pagination: PageInfo


class TodoStatsData(CamelModel):
    """Envelope payload for todo statistics."""

    stats: TodoStats
