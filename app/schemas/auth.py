"""Authentication schemas."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.common import CamelModel
from app.schemas.users import DisplayName

PASSWORD_RULES = [
    (r"[A-Z]", "Password must contain at least one uppercase letter"),
    (r"[a-z]", "Password must contain at least one lowercase letter"),
    (r"[0-9]", "Password must contain at least one number"),
    (r"[^A-Za-z0-9]", "Password must contain at least one special character"),
]


class VerifiedIdentity(BaseModel):
    """Claims extracted from a verified identity-provider token."""

    uid: str
    email: str | None = None
    email_verified: bool = False


class RegisterRequest(CamelModel):
    """Registration request: creates the identity-provider account and the local user."""

    email: EmailStr
    password: str = Field(..., min_length=12, max_length=128)
    display_name: DisplayName

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are stored lowercase."""
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        """Require upper, lower, digit and special characters."""
        for pattern, message in PASSWORD_RULES:
            if not re.search(pattern, v):
                raise ValueError(message)
        return v


class LoginRequest(CamelModel):
    """Login request carrying an identity-provider ID token."""

    email: EmailStr
    id_token: str = Field(..., min_length=1, description="Firebase ID token from the client")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are compared lowercase."""
        return v.lower()
