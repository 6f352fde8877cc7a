"""Authentication service orchestrating Firebase accounts and local users."""

import structlog
from firebase_admin.exceptions import FirebaseError

from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from app.core.firebase import FirebaseIdentityProvider
from app.schemas.auth import LoginRequest, RegisterRequest
from app.schemas.users import UserUpdate
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


class AuthService:
    """Authentication service for registration, login and profile management."""

    def __init__(self, user_service: UserService, identity_provider: FirebaseIdentityProvider):
        """Initialize auth service with its collaborators."""
        self.users = user_service
        self.identity = identity_provider

    async def register(self, data: RegisterRequest) -> dict:
        """
        Register a new account.

        Creates the Firebase account first, then the local user. If the
        local insert fails the Firebase account is deleted again so no
        orphaned identity is left behind.

        Args:
            data: Validated registration payload

        Returns:
            The created local user

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.users.get_user_by_email(data.email):
            raise ConflictException("Email already registered")

        firebase_uid = await self.identity.create_account(
            email=data.email,
            password=data.password,
            display_name=data.display_name,
        )

        try:
            user = await self.users.create_user(
                firebase_uid=firebase_uid,
                email=data.email,
                display_name=data.display_name,
                email_verified=False,
            )
        except Exception as e:
            logger.warning("user_insert_failed", firebase_uid=firebase_uid, error=str(e))
            try:
                await self.identity.delete_account(firebase_uid)
            except Exception as cleanup_error:
                logger.error(
                    "firebase_cleanup_failed",
                    firebase_uid=firebase_uid,
                    error=str(cleanup_error),
                )
            raise

        logger.info("user_registered", user_id=str(user["id"]))
        return user

    async def login(self, data: LoginRequest) -> dict:
        """
        Log a user in with a Firebase ID token.

        Raises:
            UnauthorizedException: If the token is invalid or issued for another email
            NotFoundException: If no local account exists
            ForbiddenException: If the account is deactivated
        """
        identity = await self.identity.verify_token(data.id_token)

        if not identity.email or identity.email.lower() != data.email.lower():
            raise UnauthorizedException("Token email does not match the provided email")

        user = await self.users.get_user_by_firebase_uid(identity.uid)
        if not user:
            raise NotFoundException("User not found. Please register first.")

        if not user["is_active"]:
            raise ForbiddenException("User account is deactivated")

        user = await self.users.update_last_login(identity.uid) or user

        logger.info("user_logged_in", user_id=str(user["id"]))
        return user

    async def get_profile(self, firebase_uid: str) -> dict:
        """Get the caller's profile."""
        user = await self.users.get_user_by_firebase_uid(firebase_uid)
        if not user:
            raise NotFoundException("User not found")
        return user

    async def update_profile(self, firebase_uid: str, data: UserUpdate) -> dict:
        """
        Update the caller's profile.

        The local row is authoritative; Firebase is updated afterwards and a
        failure there is only logged.
        """
        user = await self.users.update_user(firebase_uid, data)

        try:
            await self.identity.update_profile(firebase_uid, data.changes())
        except FirebaseError as e:
            logger.warning("firebase_profile_sync_failed", firebase_uid=firebase_uid, error=str(e))

        return user

    async def delete_account(self, firebase_uid: str) -> None:
        """Soft delete the local account and disable the Firebase account."""
        await self.users.soft_delete_user(firebase_uid)

        try:
            await self.identity.disable_account(firebase_uid)
        except FirebaseError as e:
            logger.warning("firebase_disable_failed", firebase_uid=firebase_uid, error=str(e))

        logger.info("account_deleted", firebase_uid=firebase_uid)

    async def logout(self, firebase_uid: str) -> None:
        """Tokens are stateless, so logout only records the event."""
        logger.info("user_logged_out", firebase_uid=firebase_uid)
