"""Translate PostgreSQL driver errors into application error codes."""

from sqlalchemy.exc import DBAPIError

# SQLSTATE -> (HTTP status, error code, client message)
SQLSTATE_ERRORS: dict[str, tuple[int, str, str]] = {
    "23505": (409, "CONFLICT", "Resource already exists"),
    "23503": (400, "FOREIGN_KEY_VIOLATION", "Referenced resource does not exist"),
    "23514": (400, "CONSTRAINT_VIOLATION", "Data violates a database constraint"),
    "23502": (400, "MISSING_REQUIRED_FIELD", "A required field is missing"),
    "22P02": (400, "VALIDATION_ERROR", "Invalid input format"),
}

DEFAULT_DATABASE_ERROR = (500, "DATABASE_ERROR", "Database operation failed")


def _driver_error(exc: DBAPIError) -> object | None:
    """
    Return the underlying asyncpg exception.

    SQLAlchemy wraps the asyncpg error in an adapter exception; the original
    is chained as its cause.
    """
    orig = exc.orig
    if orig is None:
        return None
    return getattr(orig, "__cause__", None) or orig


def get_sqlstate(exc: DBAPIError) -> str | None:
    """Extract the SQLSTATE code from a wrapped driver error."""
    for candidate in (exc.orig, _driver_error(exc)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def get_constraint_name(exc: DBAPIError) -> str | None:
    """Extract the violated constraint or index name, if the driver reports one."""
    driver_error = _driver_error(exc)
    return getattr(driver_error, "constraint_name", None)


def classify_database_error(exc: DBAPIError) -> tuple[int, str, str]:
    """Map a driver error to (status code, error code, message)."""
    sqlstate = get_sqlstate(exc)
    if sqlstate is None:
        return DEFAULT_DATABASE_ERROR
    return SQLSTATE_ERRORS.get(sqlstate, DEFAULT_DATABASE_ERROR)
