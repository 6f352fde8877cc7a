"""FastAPI dependencies."""

from collections.abc import Callable
from typing import Annotated

import redis
import structlog
from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    RateLimitException,
    UnauthorizedException,
)
from app.core.firebase import FirebaseIdentityProvider, get_identity_provider
from app.core.redis_client import RateLimiter, get_redis_client
from app.database import get_db
from app.schemas.auth import VerifiedIdentity
from app.services.auth_service import AuthService
from app.services.todo_service import TodoService
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)

# Security; a missing header is reported with our own error code
security = HTTPBearer(auto_error=False)

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[redis.Redis, Depends(get_redis_client)]
IdentityProvider = Annotated[FirebaseIdentityProvider, Depends(get_identity_provider)]


async def get_current_identity(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    identity_provider: IdentityProvider,
) -> VerifiedIdentity:
    """
    Verify the bearer token and return the caller's identity.

    Args:
        request: Request object
        credentials: Bearer token credentials, if any
        identity_provider: Token verifier

    Returns:
        Verified identity claims

    Raises:
        UnauthorizedException: If the token is missing or fails verification
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException(
            "Authentication token is missing",
            code="AUTH_TOKEN_MISSING",
        )

    identity = await identity_provider.verify_token(credentials.credentials)

    request.state.user_id = identity.uid
    structlog.contextvars.bind_contextvars(user_id=identity.uid)

    return identity


CurrentIdentity = Annotated[VerifiedIdentity, Depends(get_current_identity)]


def get_user_service(db: DatabaseSession) -> UserService:
    """Create a user service bound to the request's session."""
    return UserService(db)


def get_todo_service(db: DatabaseSession) -> TodoService:
    """Create a todo service bound to the request's session."""
    return TodoService(db)


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
TodoServiceDep = Annotated[TodoService, Depends(get_todo_service)]


def get_auth_service(
    user_service: UserServiceDep,
    identity_provider: IdentityProvider,
) -> AuthService:
    """Create an auth service over the user service and identity provider."""
    return AuthService(user_service, identity_provider)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


async def get_current_user(
    identity: CurrentIdentity,
    user_service: UserServiceDep,
) -> dict:
    """
    Get current user from database.

    Args:
        identity: Verified token identity
        user_service: User lookups

    Returns:
        User data from database

    Raises:
        NotFoundException: If the identity has no live local account
        ForbiddenException: If the account is deactivated
    """
    user = await user_service.get_user_by_firebase_uid(identity.uid)

    if not user:
        raise NotFoundException("User not found. Please register first.")

    if not user["is_active"]:
        raise ForbiddenException("User account is deactivated")

    return user


CurrentUser = Annotated[dict, Depends(get_current_user)]


def client_ip(request: Request) -> str:
    """Best-effort client address for per-IP limits."""
    return request.client.host if request.client else "unknown"


class RateLimit:
    """
    Fixed-window rate limit keyed by client IP.

    Args:
        scope: Counter namespace (general, write, search, auth)
        limit: Reads the request ceiling from settings at call time
        window: Window length in seconds, read from settings at call time
    """

    def __init__(
        self,
        scope: str,
        limit: Callable[[Settings], int],
        window: Callable[[Settings], int] = lambda s: 60,
    ):
        self.scope = scope
        self.limit = limit
        self.window = window

    def enforce(
        self,
        request: Request,
        response: Response,
        redis_client: redis.Redis,
        subject: str,
    ) -> None:
        """Count the request and raise once the window is exhausted."""
        if not settings.rate_limit_enabled:
            return

        if client_ip(request) in settings.rate_limit_trusted_ips:
            return

        limit = self.limit(settings)
        result = RateLimiter(redis_client).check_rate_limit(
            f"rate:{self.scope}:{subject}",
            limit=limit,
            window=self.window(settings),
        )

        if not result.allowed:
            logger.warning("rate_limit_exceeded", scope=self.scope, subject=subject)
            raise RateLimitException(retry_after=result.retry_after)

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    async def __call__(
        self,
        request: Request,
        response: Response,
        redis_client: RedisClient,
    ) -> None:
        self.enforce(request, response, redis_client, client_ip(request))


class UserRateLimit(RateLimit):
    """Fixed-window rate limit keyed by the authenticated user."""

    async def __call__(  # type: ignore[override]
        self,
        request: Request,
        response: Response,
        identity: CurrentIdentity,
        redis_client: RedisClient,
    ) -> None:
        self.enforce(request, response, redis_client, identity.uid)


general_rate_limit = UserRateLimit("general", lambda s: s.rate_limit_per_minute)
write_rate_limit = UserRateLimit("write", lambda s: s.rate_limit_write_per_minute)
search_rate_limit = UserRateLimit("search", lambda s: s.rate_limit_search_per_minute)
auth_rate_limit = RateLimit(
    "auth",
    lambda s: s.rate_limit_auth_attempts,
    lambda s: s.rate_limit_auth_window_seconds,
)
