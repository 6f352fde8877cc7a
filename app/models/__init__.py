"""Database models."""

from app.models.todos import todos
from app.models.users import metadata, users

__all__ = [
    "metadata",
    "todos",
    "users",
]
