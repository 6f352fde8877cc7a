"""User service for business logic."""

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db_errors import get_constraint_name
from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.models.users import users
from app.schemas.users import UserUpdate

logger = structlog.get_logger(__name__)

# Unique index name -> message naming the offending field
UNIQUE_VIOLATIONS = {
    "uq_users_firebase_uid_live": "A user with this Firebase UID already exists",
    "uq_users_email_live": "A user with this email already exists",
}


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def create_user(
        self,
        firebase_uid: str,
        email: str,
        display_name: str | None = None,
        photo_url: str | None = None,
        email_verified: bool = False,
    ) -> dict:
        """
        Create a new user.

        Raises:
            ConflictException: If a live user already has the Firebase UID or email
        """
        query = (
            users.insert()
            .values(
                firebase_uid=firebase_uid,
                email=email.lower(),
                display_name=display_name,
                photo_url=photo_url,
                email_verified=email_verified,
            )
            .returning(users)
        )

        try:
            result = await self.db.execute(query)
            user = result.mappings().first()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            constraint = get_constraint_name(e)
            if constraint in UNIQUE_VIOLATIONS:
                raise ConflictException(UNIQUE_VIOLATIONS[constraint])
            raise

        logger.info("user_created", user_id=str(user["id"]))
        return dict(user)

    async def get_user_by_firebase_uid(self, firebase_uid: str) -> dict | None:
        """Get live user by Firebase UID."""
        query = select(users).where(
            users.c.firebase_uid == firebase_uid,
            users.c.deleted_at.is_(None),
        )
        result = await self.db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get live user by email."""
        query = select(users).where(
            users.c.email == email.lower(),
            users.c.deleted_at.is_(None),
        )
        result = await self.db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def update_user(self, firebase_uid: str, user_data: UserUpdate) -> dict:
        """
        Update user profile.

        Raises:
            ValidationException: If the payload changes nothing
            NotFoundException: If there is no live user for the Firebase UID
        """
        update_data = user_data.changes()
        if not update_data:
            raise ValidationException("No fields to update")

        update_data["updated_at"] = func.now()

        query = (
            update(users)
            .where(users.c.firebase_uid == firebase_uid, users.c.deleted_at.is_(None))
            .values(**update_data)
            .returning(users)
        )

        result = await self.db.execute(query)
        user = result.mappings().first()
        await self.db.commit()

        if not user:
            raise NotFoundException("User not found")

        return dict(user)

    async def update_last_login(self, firebase_uid: str) -> dict | None:
        """Update user's last login timestamp."""
        query = (
            update(users)
            .where(users.c.firebase_uid == firebase_uid, users.c.deleted_at.is_(None))
            .values(last_login_at=func.now())
            .returning(users)
        )

        result = await self.db.execute(query)
        user = result.mappings().first()
        await self.db.commit()

        return dict(user) if user else None

    async def soft_delete_user(self, firebase_uid: str) -> None:
        """
        Soft delete a user and deactivate the account.

        Raises:
            NotFoundException: If there is no live user for the Firebase UID
        """
        query = (
            update(users)
            .where(users.c.firebase_uid == firebase_uid, users.c.deleted_at.is_(None))
            .values(deleted_at=func.now(), is_active=False, updated_at=func.now())
            .returning(users.c.id)
        )

        result = await self.db.execute(query)
        deleted = result.first()
        await self.db.commit()

        if deleted is None:
            raise NotFoundException("User not found")

        logger.info("user_deleted", user_id=str(deleted.id))
