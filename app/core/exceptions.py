"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        """Initialize exception with message, status code and error code."""
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.headers = headers
        super().__init__(self.message)


class ValidationException(AppException):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed"):
        """Initialize with 400 status code."""
        super().__init__(message)


class UnauthorizedException(AppException):
    """Missing, expired or invalid credential."""

    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication required", code: str | None = None):
        """Initialize with 401 status code and an optional specific code."""
        super().__init__(message, code=code, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenException(AppException):
    """Forbidden access exception."""

    status_code = 403
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str = "Permission denied"):
        """Initialize with 403 status code."""
        super().__init__(message)


class NotFoundException(AppException):
    """Resource not found (or not owned by the caller)."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message)


class ConflictException(AppException):
    """Uniqueness violation."""

    status_code = 409
    code = "CONFLICT"

    def __init__(self, message: str = "Resource already exists"):
        """Initialize with 409 status code."""
        super().__init__(message)


class RateLimitException(AppException):
    """Rate limit exceeded exception."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Too many requests. Please try again later.", retry_after: int = 60):
        """Initialize with 429 status code and a Retry-After header."""
        self.retry_after = retry_after
        super().__init__(message, headers={"Retry-After": str(retry_after)})


class DatabaseException(AppException):
    """Unmapped store failure."""

    status_code = 500
    code = "DATABASE_ERROR"

    def __init__(self, message: str = "Database operation failed"):
        """Initialize with 500 status code."""
        super().__init__(message)
