"""Firebase Admin SDK initialization and identity-provider client."""

import json
import os

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError
from starlette.concurrency import run_in_threadpool
from structlog import get_logger

from app.core.exceptions import ConflictException, UnauthorizedException
from app.schemas.auth import VerifiedIdentity

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.

    Looks for Firebase credentials in order:
    1. firebase_config_json parameter
    2. firebase_credentials_path parameter
    3. Default application credentials
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("Firebase already initialized")
        return

    try:
        cred = None

        if firebase_config_json:
            logger.info("Initializing Firebase with JSON string from environment")
            cred_dict = json.loads(firebase_config_json)
            cred = credentials.Certificate(cred_dict)

        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("Initializing Firebase with JSON file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        if cred:
            _firebase_app = firebase_admin.initialize_app(cred)
        else:
            # Last resort: Try default credentials
            _firebase_app = firebase_admin.initialize_app()
            logger.info("Firebase initialized with default credentials")

    except Exception as e:
        logger.error("Failed to initialize Firebase", error=str(e))
        raise


class FirebaseIdentityProvider:
    """
    Identity provider backed by Firebase Authentication.

    The Admin SDK is synchronous, so every call is pushed onto the
    threadpool to keep the event loop free.
    """

    def __init__(self, clock_skew_seconds: int = 10):
        """Initialize provider with the tolerated clock skew for token checks."""
        self.clock_skew_seconds = clock_skew_seconds

    async def verify_token(self, id_token: str) -> VerifiedIdentity:
        """
        Verify a Firebase ID token.

        Args:
            id_token: Firebase ID token from the client

        Returns:
            Verified subject id and email claims

        Raises:
            UnauthorizedException: If the token is expired, revoked or invalid
        """
        try:
            decoded_token = await run_in_threadpool(
                auth.verify_id_token,
                id_token,
                clock_skew_seconds=self.clock_skew_seconds,
            )
        except auth.ExpiredIdTokenError:
            raise UnauthorizedException(
                "Authentication token has expired. Please sign in again.",
                code="AUTH_TOKEN_EXPIRED",
            )
        except auth.RevokedIdTokenError:
            raise UnauthorizedException(
                "Authentication token has been revoked. Please sign in again.",
                code="AUTH_TOKEN_REVOKED",
            )
        except (auth.InvalidIdTokenError, ValueError) as e:
            logger.warning("Invalid Firebase ID token", error=str(e))
            raise UnauthorizedException(
                "Invalid authentication token.",
                code="AUTH_TOKEN_INVALID",
            )
        except FirebaseError as e:
            logger.error("Firebase token verification failed", error=str(e))
            raise UnauthorizedException(
                "Authentication failed. Invalid or expired token.",
                code="AUTH_FAILED",
            )

        return VerifiedIdentity(
            uid=decoded_token["uid"],
            email=decoded_token.get("email"),
            email_verified=decoded_token.get("email_verified", False),
        )

    async def create_account(self, email: str, password: str, display_name: str) -> str:
        """
        Create an identity-provider account.

        Returns:
            The new account's uid

        Raises:
            ConflictException: If the email is already registered
        """
        try:
            record = await run_in_threadpool(
                auth.create_user,
                email=email,
                password=password,
                display_name=display_name,
                email_verified=False,
            )
        except auth.EmailAlreadyExistsError:
            raise ConflictException("Email already registered")

        logger.info("Firebase account created", uid=record.uid)
        return record.uid

    async def delete_account(self, uid: str) -> None:
        """Delete an identity-provider account."""
        await run_in_threadpool(auth.delete_user, uid)
        logger.info("Firebase account deleted", uid=uid)

    async def disable_account(self, uid: str) -> None:
        """Disable an identity-provider account so it can no longer sign in."""
        await run_in_threadpool(auth.update_user, uid, disabled=True)

    async def update_profile(self, uid: str, changes: dict) -> None:
        """Mirror display name / photo changes onto the identity-provider account."""
        kwargs = {}
        if "display_name" in changes:
            kwargs["display_name"] = changes["display_name"]
        if "photo_url" in changes:
            kwargs["photo_url"] = changes["photo_url"] or auth.DELETE_ATTRIBUTE
        if kwargs:
            await run_in_threadpool(auth.update_user, uid, **kwargs)


_identity_provider: FirebaseIdentityProvider | None = None


def get_identity_provider() -> FirebaseIdentityProvider:
    """Get or create the process-wide identity provider."""
    global _identity_provider

    if _identity_provider is None:
        _identity_provider = FirebaseIdentityProvider()

    return _identity_provider
