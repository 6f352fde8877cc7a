"""Create todos table

Revision ID: 003
Revises: 002
Create Date: 2026-01-02 18:04:25.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

todo_status = postgresql.ENUM(
    "pending", "in_progress", "completed", "archived", name="todo_status", create_type=False
)
todo_priority = postgresql.ENUM(
    "low", "medium", "high", "critical", name="todo_priority", create_type=False
)


def upgrade() -> None:
    """Create todos table and its enum types."""
    todo_status.create(op.get_bind(), checkfirst=True)
    todo_priority.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "todos",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", todo_status, nullable=False, server_default="pending"),
        sa.Column("priority", todo_priority, nullable=False, server_default="medium"),
        sa.Column("due_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("completed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default=sa.text("ARRAY[]::text[]"),
        ),
        sa.Column("starred", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reminder_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("deleted_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("LENGTH(TRIM(title)) >= 1", name="todo_title_length"),
        sa.CheckConstraint(
            "(status = 'completed' AND completed_at IS NOT NULL) "
            "OR (status != 'completed' AND completed_at IS NULL)",
            name="todo_completed_logic",
        ),
        sa.CheckConstraint("COALESCE(cardinality(tags), 0) <= 10", name="todo_tags_limit"),
    )

    # Create indexes
    op.create_index(
        "ix_todos_user_id_live",
        "todos",
        ["user_id"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index(
        "ix_todos_user_id_status_live",
        "todos",
        ["user_id", "status"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("ix_todos_priority_created_at", "todos", ["priority", "created_at"])
    op.create_index("ix_todos_tags", "todos", ["tags"], postgresql_using="gin")


def downgrade() -> None:
    """Drop todos table and its enum types."""
    op.drop_index("ix_todos_tags", table_name="todos")
    op.drop_index("ix_todos_priority_created_at", table_name="todos")
    op.drop_index("ix_todos_user_id_status_live", table_name="todos")
    op.drop_index("ix_todos_user_id_live", table_name="todos")
    op.drop_table("todos")

    todo_priority.drop(op.get_bind(), checkfirst=True)
    todo_status.drop(op.get_bind(), checkfirst=True)
