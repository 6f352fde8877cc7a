"""User model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

# Shared by every table so foreign keys resolve
metadata = MetaData()

users = Table(
    "users",
    metadata,
    # Internal ID (for joins & performance)
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Firebase identity (SOURCE OF TRUTH for authentication)
    Column("firebase_uid", String(128), nullable=False),
    Column("email", String(255), nullable=False),
    Column("email_verified", Boolean, nullable=False, server_default=text("false")),
    # Profile info (mutable)
    Column("display_name", String(255)),
    Column("photo_url", Text),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("last_login_at", DateTime(timezone=True)),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("deleted_at", DateTime(timezone=True)),
    CheckConstraint(
        "email ~* '^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\\.[A-Za-z]{2,}$'",
        name="users_email_check",
    ),
    # One live account per identity and per email
    Index(
        "uq_users_firebase_uid_live",
        "firebase_uid",
        unique=True,
        postgresql_where=text("deleted_at IS NULL"),
    ),
    Index(
        "uq_users_email_live",
        "email",
        unique=True,
        postgresql_where=text("deleted_at IS NULL"),
    ),
)
