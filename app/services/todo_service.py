"""Todo service for business logic."""

from math import ceil
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Interval, and_, func, insert, literal_column, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, ValidationException
from app.models.todos import TODO_COLUMNS, TODO_PRIORITY_VALUES, TODO_STATUS_VALUES, todos
from app.models.users import users
from app.schemas.common import PageInfo
from app.schemas.todos import (
    SortOrder,
    TodoCreate,
    TodoFilters,
    TodoResponse,
    TodoSortField,
    TodoStats,
    TodoStatus,
    TodoUpdate,
)

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    TodoSortField.CREATED_AT: todos.c.created_at,
    TodoSortField.UPDATED_AT: todos.c.updated_at,
    TodoSortField.DUE_DATE: todos.c.due_date,
    TodoSortField.PRIORITY: todos.c.priority,
    TodoSortField.STATUS: todos.c.status,
    TodoSortField.POSITION: todos.c.position,
    TodoSortField.TITLE: todos.c.title,
}

# Todos joined to their owner; reads go through the external identity
OWNED_TODOS = todos.join(users, todos.c.user_id == users.c.id)


def owned_by(owner_uid: str) -> list[Any]:
    """Conditions selecting live todos of a live owner."""
    return [
        users.c.firebase_uid == owner_uid,
        todos.c.deleted_at.is_(None),
        users.c.deleted_at.is_(None),
    ]


class TodoService:
    """Service for managing a user's todos."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _resolve_owner_id(self, owner_uid: str) -> UUID:
        """Map an external identity to the live user's internal id."""
        stmt = select(users.c.id).where(
            users.c.firebase_uid == owner_uid,
            users.c.deleted_at.is_(None),
        )
        result = await self.db.execute(stmt)
        owner_id = result.scalar_one_or_none()

        if owner_id is None:
            raise NotFoundException("User not found")

        return owner_id

    async def create_todo(self, owner_uid: str, data: TodoCreate) -> TodoResponse:
        """
        Create a new todo at the end of the owner's manual ordering.

        Args:
            owner_uid: External identity of the owner
            data: Todo creation data

        Returns:
            Created todo

        Raises:
            NotFoundException: If the owner has no live account
        """
        owner_id = await self._resolve_owner_id(owner_uid)

        # Soft-deleted todos still count so positions never repeat
        next_position = (
            select(func.coalesce(func.max(todos.c.position), 0) + 1)
            .where(todos.c.user_id == owner_id)
            .correlate(None)
            .scalar_subquery()
        )

        values = {
            "user_id": owner_id,
            "title": data.title,
            "description": data.description,
            "status": data.status.value,
            "priority": data.priority.value,
            "due_date": data.due_date,
            "completed_at": func.now() if data.status == TodoStatus.COMPLETED else None,
            "tags": data.tags,
            "starred": data.starred,
            "reminder_at": data.reminder_at,
            "position": next_position,
        }

        stmt = insert(todos).values(**values).returning(*TODO_COLUMNS)
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        logger.info("todo_created", todo_id=str(row["id"]), position=row["position"])
        return TodoResponse.model_validate(dict(row))

    async def get_todo(self, todo_id: UUID, owner_uid: str) -> TodoResponse | None:
        """
        Get a todo by ID.

        Returns None both when the todo does not exist and when it belongs
        to someone else, so callers cannot probe for other users' todos.
        """
        stmt = (
            select(*TODO_COLUMNS)
            .select_from(OWNED_TODOS)
            .where(todos.c.id == todo_id, *owned_by(owner_uid))
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            return None

        return TodoResponse.model_validate(dict(row))

    async def list_todos(
        self,
        owner_uid: str,
        filters: TodoFilters,
    ) -> tuple[list[TodoResponse], PageInfo]:
        """
        List todos with filtering, sorting and pagination.

        Args:
            owner_uid: External identity of the owner
            filters: Filter, sort and pagination parameters

        Returns:
            The requested page and its pagination metadata; the total is
            counted over the filtered set before paging
        """
        conditions = owned_by(owner_uid)

        if filters.status:
            conditions.append(todos.c.status == filters.status.value)

        if filters.priority:
            conditions.append(todos.c.priority == filters.priority.value)

        if filters.starred is not None:
            conditions.append(todos.c.starred.is_(filters.starred))

        if filters.search:
            conditions.append(
                or_(
                    todos.c.title.icontains(filters.search, autoescape=True),
                    todos.c.description.icontains(filters.search, autoescape=True),
                )
            )

        if filters.due_date_from:
            conditions.append(todos.c.due_date >= filters.due_date_from)

        if filters.due_date_to:
            conditions.append(todos.c.due_date <= filters.due_date_to)

        # Matches todos carrying at least one of the requested tags
        if filters.tags:
            conditions.append(todos.c.tags.overlap(filters.tags))

        # Count total
        count_stmt = select(func.count()).select_from(OWNED_TODOS).where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        # Get paginated results
        sort_column = SORT_COLUMNS[filters.sort_by]
        order = sort_column.asc() if filters.sort_order == SortOrder.ASC else sort_column.desc()
        offset = (filters.page - 1) * filters.limit

        stmt = (
            select(*TODO_COLUMNS)
            .select_from(OWNED_TODOS)
            .where(and_(*conditions))
            .order_by(order, todos.c.id)
            .limit(filters.limit)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [TodoResponse.model_validate(dict(row)) for row in result.mappings().all()]

        total_pages = ceil(total / filters.limit)
        page_info = PageInfo(
            page=filters.page,
            limit=filters.limit,
            total=total,
            total_pages=total_pages,
            has_more=filters.page < total_pages,
        )

        return items, page_info

    async def update_todo(
        self,
        todo_id: UUID,
        owner_uid: str,
        data: TodoUpdate,
    ) -> TodoResponse:
        """
        Apply a partial update to a todo.

        Only fields present in the payload change. A status change also
        sets completed_at (completed) or clears it (any other status).

        Raises:
            NotFoundException: If the todo is missing, not owned, or deleted
                before the write lands
            ValidationException: If the payload changes nothing
        """
        if await self.get_todo(todo_id, owner_uid) is None:
            raise NotFoundException("Todo not found or you do not have permission to update it")

        update_values = data.changes()
        if not update_values:
            raise ValidationException("No fields to update")

        if "status" in update_values:
            is_completed = update_values["status"] == TodoStatus.COMPLETED.value
            update_values["completed_at"] = func.now() if is_completed else None

        update_values["updated_at"] = func.now()

        # The WHERE clause repeats ownership and liveness; it is what guards
        # against a delete racing in after the read above
        stmt = (
            update(todos)
            .where(
                todos.c.id == todo_id,
                todos.c.user_id == users.c.id,
                *owned_by(owner_uid),
            )
            .values(**update_values)
            .returning(*TODO_COLUMNS)
        )

        result = await self.db.execute(stmt)
        row = result.mappings().first()
        await self.db.commit()

        if not row:
            raise NotFoundException("Todo not found after update")

        logger.info("todo_updated", todo_id=str(todo_id), fields=sorted(data.model_fields_set))
        return TodoResponse.model_validate(dict(row))

    async def delete_todo(self, todo_id: UUID, owner_uid: str) -> None:
        """
        Soft delete a todo.

        Raises:
            NotFoundException: If the todo is missing, not owned, or already deleted
        """
        stmt = (
            update(todos)
            .where(
                todos.c.id == todo_id,
                todos.c.user_id == users.c.id,
                *owned_by(owner_uid),
            )
            .values(deleted_at=func.now())
            .returning(todos.c.id)
        )

        result = await self.db.execute(stmt)
        deleted = result.first()
        await self.db.commit()

        if deleted is None:
            raise NotFoundException("Todo not found or you do not have permission to delete it")

        logger.info("todo_deleted", todo_id=str(todo_id))

    async def get_stats(self, owner_uid: str) -> TodoStats:
        """
        Aggregate counts over the owner's live todos.

        Every count comes from a single statement so they all describe the
        same snapshot.
        """
        not_completed = todos.c.status != TodoStatus.COMPLETED.value
        today = func.current_date()
        week_ahead = today + literal_column("INTERVAL '7 days'", Interval)

        stmt = (
            select(
                func.count().label("total"),
                *[
                    func.count().filter(todos.c.status == value).label(f"status_{value}")
                    for value in TODO_STATUS_VALUES
                ],
                *[
                    func.count().filter(todos.c.priority == value).label(f"priority_{value}")
                    for value in TODO_PRIORITY_VALUES
                ],
                func.count()
                .filter(func.date(todos.c.completed_at) == today)
                .label("completed_today"),
                func.count()
                .filter(
                    and_(
                        todos.c.due_date.is_not(None),
                        todos.c.due_date >= today,
                        todos.c.due_date <= week_ahead,
                        not_completed,
                    )
                )
                .label("due_soon"),
                func.count()
                .filter(
                    and_(
                        todos.c.due_date.is_not(None),
                        todos.c.due_date < today,
                        not_completed,
                        todos.c.status != TodoStatus.ARCHIVED.value,
                    )
                )
                .label("overdue"),
                func.count().filter(todos.c.starred.is_(True)).label("starred"),
            )
            .select_from(OWNED_TODOS)
            .where(*owned_by(owner_uid))
        )

        result = await self.db.execute(stmt)
        row = result.mappings().one()

        return TodoStats(
            total=row["total"],
            by_status={value: row[f"status_{value}"] for value in TODO_STATUS_VALUES},
            by_priority={value: row[f"priority_{value}"] for value in TODO_PRIORITY_VALUES},
            completed_today=row["completed_today"],
            due_soon=row["due_soon"],
            overdue=row["overdue"],
            starred=row["starred"],
        )
