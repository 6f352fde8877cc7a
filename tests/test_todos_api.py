"""Tests for the todo endpoints."""

from uuid import uuid4

import pytest
import redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from app.core.exceptions import NotFoundException, UnauthorizedException
from app.main import app
from app.schemas.common import PageInfo
from app.schemas.todos import TodoFilters, TodoResponse, TodoSortField, TodoStats

TODOS_URL = "/api/v1/todos"


def driver_error(sqlstate: str) -> Exception:
    """An asyncpg-style error carrying a SQLSTATE."""
    error = Exception(f"driver error {sqlstate}")
    error.sqlstate = sqlstate
    return error


@pytest.mark.asyncio
async def test_create_todo(client: AsyncClient, auth_headers, todo_service, todo_row):
    """Test creating a new todo."""
    todo_service.create_todo.return_value = TodoResponse.model_validate(todo_row(title="Buy milk"))

    response = await client.post(
        TODOS_URL,
        json={"title": "Buy milk", "dueDate": "2030-01-01T09:00:00Z", "tags": ["home", "home"]},
        headers=auth_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["todo"]["title"] == "Buy milk"
    assert "createdAt" in body["data"]["todo"]
    assert "completedAt" in body["data"]["todo"]

    owner_uid, payload = todo_service.create_todo.await_args.args
    assert owner_uid == "firebase-uid-alice"
    assert payload.tags == ["home"]


@pytest.mark.asyncio
async def test_create_todo_requires_token(client: AsyncClient, todo_service):
    """Protected routes reject requests without a bearer token."""
    response = await client.post(TODOS_URL, json={"title": "Buy milk"})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "AUTH_TOKEN_MISSING"
    assert response.headers["WWW-Authenticate"] == "Bearer"
    todo_service.create_todo.assert_not_awaited()


@pytest.mark.asyncio
async def test_expired_token(client: AsyncClient, auth_headers, identity_provider):
    """Token-specific failures keep their code."""
    identity_provider.verify_token.side_effect = UnauthorizedException(
        "Authentication token has expired. Please sign in again.",
        code="AUTH_TOKEN_EXPIRED",
    )

    response = await client.get(TODOS_URL, headers=auth_headers)

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_TOKEN_EXPIRED"


@pytest.mark.asyncio
async def test_inactive_user_is_forbidden(client: AsyncClient, auth_headers, user_service, user_row):
    """Deactivated accounts are refused."""
    user_service.get_user_by_firebase_uid.return_value = user_row(is_active=False)

    response = await client.get(f"{TODOS_URL}/stats", headers=auth_headers)

    assert response.status_code == 403
    assert response.json()["code"] == "AUTHORIZATION_ERROR"


@pytest.mark.asyncio
async def test_create_todo_reports_every_invalid_field(client: AsyncClient, auth_headers):
    """Validation failures list each failing field."""
    response = await client.post(
        TODOS_URL,
        json={"title": "   ", "priority": "urgent", "tags": ["t"] * 11},
        headers=auth_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = {detail["field"] for detail in body["details"]}
    assert {"title", "priority", "tags"} <= fields


@pytest.mark.asyncio
async def test_list_todos(client: AsyncClient, auth_headers, todo_service, todo_row):
    """Query parameters are parsed into filters and pagination is returned."""
    todo_service.list_todos.return_value = (
        [TodoResponse.model_validate(todo_row())],
        PageInfo(page=2, limit=1, total=3, total_pages=3, has_more=True),
    )

    response = await client.get(
        f"{TODOS_URL}?page=2&limit=1&status=pending&tags=work,home&tags=errands"
        "&sortBy=priority&sortOrder=asc&starred=true&search=report",
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["items"]) == 1
    assert data["pagination"] == {
        "page": 2,
        "limit": 1,
        "total": 3,
        "totalPages": 3,
        "hasMore": True,
    }

    owner_uid, filters = todo_service.list_todos.await_args.args
    assert owner_uid == "firebase-uid-alice"
    assert isinstance(filters, TodoFilters)
    assert filters.tags == ["work", "home", "errands"]
    assert filters.sort_by == TodoSortField.PRIORITY
    assert filters.starred is True
    assert filters.search == "report"


@pytest.mark.asyncio
async def test_list_todos_inverted_date_range(client: AsyncClient, auth_headers, todo_service):
    """dueDateFrom after dueDateTo is rejected."""
    response = await client.get(
        f"{TODOS_URL}?dueDateFrom=2030-02-01T00:00:00Z&dueDateTo=2030-01-01T00:00:00Z",
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    todo_service.list_todos.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_todos_limit_out_of_range(client: AsyncClient, auth_headers):
    """Page sizes above 100 are rejected."""
    response = await client.get(f"{TODOS_URL}?limit=101", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "limit"


@pytest.mark.asyncio
async def test_stats_route_is_not_an_id(client: AsyncClient, auth_headers, todo_service):
    """/todos/stats reaches the stats handler."""
    todo_service.get_stats.return_value = TodoStats(
        total=0,
        by_status={"pending": 0, "in_progress": 0, "completed": 0, "archived": 0},
        by_priority={"low": 0, "medium": 0, "high": 0, "critical": 0},
        completed_today=0,
        due_soon=0,
        overdue=0,
        starred=0,
    )

    response = await client.get(f"{TODOS_URL}/stats", headers=auth_headers)

    assert response.status_code == 200
    stats = response.json()["data"]["stats"]
    assert stats["byStatus"]["in_progress"] == 0
    assert "completedToday" in stats
    todo_service.get_todo.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_todo_not_found(client: AsyncClient, auth_headers, todo_service):
    """Missing and foreign todos both answer 404."""
    todo_service.get_todo.return_value = None

    response = await client.get(f"{TODOS_URL}/{uuid4()}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_get_todo_invalid_id(client: AsyncClient, auth_headers, todo_service):
    """Non-UUID ids are a validation error, not a lookup."""
    response = await client.get(f"{TODOS_URL}/not-a-uuid", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "todo_id"
    todo_service.get_todo.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_todo(client: AsyncClient, auth_headers, todo_service, todo_row):
    """Partial updates pass only the supplied fields."""
    todo_id = uuid4()
    todo_service.update_todo.return_value = TodoResponse.model_validate(
        todo_row(id=todo_id, description=None)
    )

    response = await client.patch(
        f"{TODOS_URL}/{todo_id}",
        json={"description": None, "starred": True},
        headers=auth_headers,
    )

    assert response.status_code == 200
    _, _, payload = todo_service.update_todo.await_args.args
    assert payload.changes() == {"description": None, "starred": True}


@pytest.mark.asyncio
async def test_update_todo_rejects_null_title(client: AsyncClient, auth_headers, todo_service):
    """Null is only accepted for nullable fields."""
    response = await client.patch(
        f"{TODOS_URL}/{uuid4()}",
        json={"title": None},
        headers=auth_headers,
    )

    assert response.status_code == 400
    todo_service.update_todo.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_todo(client: AsyncClient, auth_headers, todo_service):
    """Deleting answers 200 with a confirmation message."""
    response = await client.delete(f"{TODOS_URL}/{uuid4()}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Todo deleted successfully"
    todo_service.delete_todo.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_todo_twice(client: AsyncClient, auth_headers, todo_service):
    """A repeated delete is not found."""
    todo_service.delete_todo.side_effect = NotFoundException("Todo not found")

    response = await client.delete(f"{TODOS_URL}/{uuid4()}", headers=auth_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_write_rate_limit(client: AsyncClient, auth_headers, mock_redis, todo_service):
    """The write tier blocks the 31st write in a window."""
    mock_redis.incr.return_value = 31
    mock_redis.ttl.return_value = 42

    response = await client.delete(f"{TODOS_URL}/{uuid4()}", headers=auth_headers)

    assert response.status_code == 429
    assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
    assert response.headers["Retry-After"] == "42"
    todo_service.delete_todo.assert_not_awaited()


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, auth_headers, todo_service):
    """Allowed requests report their quota."""
    todo_service.list_todos.return_value = (
        [],
        PageInfo(page=1, limit=20, total=0, total_pages=0, has_more=False),
    )

    response = await client.get(TODOS_URL, headers=auth_headers)

    assert response.status_code == 200
    assert "X-RateLimit-Limit" in response.headers
    assert "X-RateLimit-Remaining" in response.headers


@pytest.mark.asyncio
async def test_rate_limit_fails_open(client: AsyncClient, auth_headers, mock_redis, todo_service):
    """Requests go through when Redis is down."""
    mock_redis.incr.side_effect = redis.ConnectionError("connection refused")
    todo_service.delete_todo.return_value = None

    response = await client.delete(f"{TODOS_URL}/{uuid4()}", headers=auth_headers)

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_foreign_key_violation_is_mapped(client: AsyncClient, auth_headers, todo_service):
    """Driver errors map to client codes by SQLSTATE."""
    todo_service.create_todo.side_effect = IntegrityError(
        "INSERT INTO todos ...", {}, driver_error("23503")
    )

    response = await client.post(TODOS_URL, json={"title": "Buy milk"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "FOREIGN_KEY_VIOLATION"
    assert "stack" not in response.json()


@pytest.mark.asyncio
async def test_unmapped_database_error(client: AsyncClient, auth_headers, todo_service):
    """Unknown SQLSTATEs are a 500 with a stack outside production."""
    todo_service.get_stats.side_effect = DBAPIError("SELECT ...", {}, driver_error("XX000"))

    response = await client.get(f"{TODOS_URL}/stats", headers=auth_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "DATABASE_ERROR"
    assert body["statusCode"] == 500
    assert "stack" in body


@pytest.mark.asyncio
async def test_responses_carry_request_id_and_security_headers(
    client: AsyncClient, auth_headers, todo_service
):
    """Every response has a request id and hardening headers."""
    todo_service.get_todo.return_value = None

    response = await client.get(
        f"{TODOS_URL}/{uuid4()}",
        headers={**auth_headers, "X-Request-ID": "req-123"},
    )

    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_update_todo_reports_every_null_field(client: AsyncClient, auth_headers, todo_service):
    """Each non-nullable field sent as null is listed."""
    response = await client.patch(
        f"{TODOS_URL}/{uuid4()}",
        json={"title": None, "status": None, "priority": None},
        headers=auth_headers,
    )

    assert response.status_code == 400
    fields = {detail["field"] for detail in response.json()["details"]}
    assert fields == {"title", "status", "priority"}
    todo_service.update_todo.assert_not_awaited()


@pytest.mark.asyncio
async def test_pool_timeout_is_database_error(client: AsyncClient, auth_headers, todo_service):
    """Store failures without a driver error answer 500 DATABASE_ERROR."""
    todo_service.get_stats.side_effect = PoolTimeoutError("QueuePool limit reached")

    response = await client.get(f"{TODOS_URL}/stats", headers=auth_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "DATABASE_ERROR"
    assert body["message"] == "Database operation failed"


@pytest.mark.asyncio
async def test_unexpected_error_keeps_request_id_and_security_headers(
    client: AsyncClient, auth_headers, todo_service
):
    """Unhandled errors answer the 500 envelope with the usual headers."""
    todo_service.get_stats.side_effect = RuntimeError("boom")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as raw_client:
        response = await raw_client.get(
            f"{TODOS_URL}/stats",
            headers={**auth_headers, "X-Request-ID": "req-500"},
        )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "INTERNAL_ERROR"
    assert response.headers["X-Request-ID"] == "req-500"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"
