"""Todo endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status

from app.core.exceptions import NotFoundException
from app.dependencies import (
    CurrentUser,
    TodoServiceDep,
    general_rate_limit,
    search_rate_limit,
    write_rate_limit,
)
from app.schemas.common import ApiResponse
from app.schemas.todos import (
    SortOrder,
    TodoCreate,
    TodoData,
    TodoFilters,
    TodoListData,
    TodoPriority,
    TodoSortField,
    TodoStatsData,
    TodoStatus,
    TodoUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(general_rate_limit)])


@router.post(
    "",
    response_model=ApiResponse[TodoData],
    status_code=status.HTTP_201_CREATED,
    summary="Create todo",
    dependencies=[Depends(write_rate_limit)],
)
async def create_todo(
    data: TodoCreate,
    current_user: CurrentUser,
    service: TodoServiceDep,
) -> ApiResponse[TodoData]:
    """
    Create a new todo for the authenticated user.

    Args:
        data: Todo creation data
        current_user: Authenticated user
        service: Todo service

    Returns:
        Created todo
    """
    todo = await service.create_todo(current_user["firebase_uid"], data)
    return ApiResponse(message="Todo created successfully", data=TodoData(todo=todo))


@router.get(
    "",
    response_model=ApiResponse[TodoListData],
    status_code=status.HTTP_200_OK,
    summary="List todos",
    dependencies=[Depends(search_rate_limit)],
)
async def list_todos(
    current_user: CurrentUser,
    service: TodoServiceDep,
    status_filter: TodoStatus | None = Query(None, alias="status"),
    priority: TodoPriority | None = Query(None),
    starred: bool | None = Query(None),
    search: str | None = Query(None, max_length=200),
    due_date_from: datetime | None = Query(None, alias="dueDateFrom"),
    due_date_to: datetime | None = Query(None, alias="dueDateTo"),
    tags: list[str] | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: TodoSortField = Query(TodoSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
) -> ApiResponse[TodoListData]:
    """
    List the authenticated user's todos with filtering, sorting and pagination.

    Tags may be repeated (``?tags=a&tags=b``) or comma-separated
    (``?tags=a,b``); a todo matches when it carries any of them.
    """
    filters = TodoFilters(
        status=status_filter,
        priority=priority,
        starred=starred,
        search=search,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        tags=tags,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    items, pagination = await service.list_todos(current_user["firebase_uid"], filters)
    return ApiResponse(data=TodoListData(items=items, pagination=pagination))


# Declared before /{todo_id} so "stats" is not parsed as an id
@router.get(
    "/stats",
    response_model=ApiResponse[TodoStatsData],
    status_code=status.HTTP_200_OK,
    summary="Todo statistics",
)
async def get_todo_stats(
    current_user: CurrentUser,
    service: TodoServiceDep,
) -> ApiResponse[TodoStatsData]:
    """Aggregate counts over the authenticated user's todos."""
    stats = await service.get_stats(current_user["firebase_uid"])
    return ApiResponse(data=TodoStatsData(stats=stats))


@router.get(
    "/{todo_id}",
    response_model=ApiResponse[TodoData],
    status_code=status.HTTP_200_OK,
    summary="Get todo by ID",
)
async def get_todo(
    todo_id: UUID,
    current_user: CurrentUser,
    service: TodoServiceDep,
) -> ApiResponse[TodoData]:
    """
    Get a specific todo by ID.

    Raises:
        NotFoundException: If the todo does not exist or belongs to someone else
    """
    todo = await service.get_todo(todo_id, current_user["firebase_uid"])
    if todo is None:
        raise NotFoundException("Todo not found")

    return ApiResponse(data=TodoData(todo=todo))


@router.patch(
    "/{todo_id}",
    response_model=ApiResponse[TodoData],
    status_code=status.HTTP_200_OK,
    summary="Update todo",
    dependencies=[Depends(write_rate_limit)],
)
async def update_todo(
    todo_id: UUID,
    data: TodoUpdate,
    current_user: CurrentUser,
    service: TodoServiceDep,
) -> ApiResponse[TodoData]:
    """
    Partially update a todo.

    Args:
        todo_id: Todo ID
        data: Fields to change; omitted fields are left as they are
        current_user: Authenticated user
        service: Todo service

    Returns:
        Updated todo
    """
    todo = await service.update_todo(todo_id, current_user["firebase_uid"], data)
    return ApiResponse(message="Todo updated successfully", data=TodoData(todo=todo))


@router.delete(
    "/{todo_id}",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Delete todo",
    dependencies=[Depends(write_rate_limit)],
)
async def delete_todo(
    todo_id: UUID,
    current_user: CurrentUser,
    service: TodoServiceDep,
) -> ApiResponse[None]:
    """Soft delete a todo."""
    await service.delete_todo(todo_id, current_user["firebase_uid"])
    return ApiResponse(message="Todo deleted successfully")
