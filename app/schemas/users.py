"""User schemas for request/response validation."""

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import ConfigDict, HttpUrl, StringConstraints, field_validator

from app.schemas.common import CamelModel

DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


class UserUpdate(CamelModel):
    """Schema for updating user profile."""

    display_name: DisplayName | None = None
    photo_url: HttpUrl | None = None

    @field_validator("display_name")
    @classmethod
    def reject_null_display_name(cls, v: str | None) -> str | None:
        """Display name may be changed but never cleared."""
        if v is None:
            raise ValueError("displayName cannot be null")
        return v

    def changes(self) -> dict[str, Any]:
        """Return the explicitly supplied fields as plain values."""
        return self.model_dump(mode="json", exclude_unset=True)


class UserResponse(CamelModel):
    """User schema for API responses."""

    id: UUID
    email: str
    display_name: str | None = None
    photo_url: str | None = None
    email_verified: bool
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserData(CamelModel):
    """Envelope payload for a single user."""

    user: UserResponse
