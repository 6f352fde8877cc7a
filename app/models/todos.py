"""Todos table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID

from app.models.users import metadata

# Declaration order is the sort order used by ORDER BY
TODO_STATUS_VALUES = ("pending", "in_progress", "completed", "archived")
TODO_PRIORITY_VALUES = ("low", "medium", "high", "critical")

todos = Table(
    "todos",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # Ownership
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # Content
    Column("title", String(500), nullable=False),
    Column("description", Text, nullable=True),
    Column(
        "status",
        Enum(*TODO_STATUS_VALUES, name="todo_status"),
        nullable=False,
        server_default="pending",
    ),
    Column(
        "priority",
        Enum(*TODO_PRIORITY_VALUES, name="todo_priority"),
        nullable=False,
        server_default="medium",
    ),
    # Scheduling
    Column("due_date", TIMESTAMP(timezone=True), nullable=True),
    Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
    Column("reminder_at", TIMESTAMP(timezone=True), nullable=True),
    # Manual ordering
    Column("position", Integer, nullable=False, server_default=text("0")),
    Column("tags", ARRAY(Text), nullable=False, server_default=text("ARRAY[]::text[]")),
    Column("starred", Boolean, nullable=False, server_default=text("false")),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Soft delete
    Column("deleted_at", TIMESTAMP(timezone=True), nullable=True),
    # Constraints
    CheckConstraint("LENGTH(TRIM(title)) >= 1", name="todo_title_length"),
    CheckConstraint(
        "(status = 'completed' AND completed_at IS NOT NULL) "
        "OR (status != 'completed' AND completed_at IS NULL)",
        name="todo_completed_logic",
    ),
    CheckConstraint("COALESCE(cardinality(tags), 0) <= 10", name="todo_tags_limit"),
    Index("ix_todos_user_id_live", "user_id", postgresql_where=text("deleted_at IS NULL")),
    Index(
        "ix_todos_user_id_status_live",
        "user_id",
        "status",
        postgresql_where=text("deleted_at IS NULL"),
    ),
    Index("ix_todos_priority_created_at", "priority", "created_at"),
    Index("ix_todos_tags", "tags", postgresql_using="gin"),
)

# Every column a caller ever sees
TODO_COLUMNS = [column for column in todos.c if column.name != "deleted_at"]
