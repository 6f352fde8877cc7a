"""Tests for registration, login and profile orchestration."""

import pytest
from firebase_admin.exceptions import FirebaseError
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from app.schemas.auth import LoginRequest, RegisterRequest, VerifiedIdentity
from app.schemas.users import UserUpdate
from app.services.auth_service import AuthService

STRONG_PASSWORD = "Correct-Horse-9"


@pytest.fixture
def auth_service(user_service, identity_provider) -> AuthService:
    """Auth service over mocked collaborators."""
    return AuthService(user_service, identity_provider)


def register_request(email: str = "new@example.com") -> RegisterRequest:
    return RegisterRequest(email=email, password=STRONG_PASSWORD, display_name="New User")


@pytest.mark.asyncio
async def test_register_creates_firebase_account_then_user(
    auth_service, user_service, identity_provider, user_row
):
    """Registration pairs a Firebase account with a local user."""
    user_service.create_user.return_value = user_row(firebase_uid="firebase-uid-new")

    user = await auth_service.register(register_request("New@Example.com"))

    assert user["firebase_uid"] == "firebase-uid-new"
    identity_provider.create_account.assert_awaited_once_with(
        email="new@example.com",
        password=STRONG_PASSWORD,
        display_name="New User",
    )
    user_service.create_user.assert_awaited_once()
    identity_provider.delete_account.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_existing_email_skips_firebase(
    auth_service, user_service, identity_provider, user_row
):
    """A live local user with the email short-circuits registration."""
    user_service.get_user_by_email.return_value = user_row(email="new@example.com")

    with pytest.raises(ConflictException):
        await auth_service.register(register_request())

    identity_provider.create_account.assert_not_awaited()
    user_service.create_user.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_email_taken_in_firebase(auth_service, user_service, identity_provider):
    """Firebase rejecting the email is a conflict and nothing is stored."""
    identity_provider.create_account.side_effect = ConflictException("Email already registered")

    with pytest.raises(ConflictException):
        await auth_service.register(register_request())

    user_service.create_user.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_rolls_back_firebase_account_on_insert_failure(
    auth_service, user_service, identity_provider
):
    """A failed local insert deletes the Firebase account again."""
    user_service.create_user.side_effect = ConflictException("A user with this email already exists")

    with pytest.raises(ConflictException):
        await auth_service.register(register_request())

    identity_provider.delete_account.assert_awaited_once_with("firebase-uid-new")


@pytest.mark.asyncio
async def test_register_keeps_original_error_when_cleanup_fails(
    auth_service, user_service, identity_provider
):
    """If the compensating delete fails too, the insert error still surfaces."""
    user_service.create_user.side_effect = OperationalError("INSERT", {}, Exception("db down"))
    identity_provider.delete_account.side_effect = FirebaseError("UNAVAILABLE", "firebase down")

    with pytest.raises(OperationalError):
        await auth_service.register(register_request())

    identity_provider.delete_account.assert_awaited_once()


@pytest.mark.asyncio
async def test_login(auth_service, user_service, user_row):
    """A matching token logs the user in and records the login."""
    refreshed = user_row()
    user_service.update_last_login.return_value = refreshed

    user = await auth_service.login(LoginRequest(email="ALICE@example.com", id_token="token"))

    assert user == refreshed
    user_service.update_last_login.assert_awaited_once_with("firebase-uid-alice")


@pytest.mark.asyncio
async def test_login_email_mismatch(auth_service, identity_provider, user_service):
    """A token issued to another email is rejected."""
    identity_provider.verify_token.return_value = VerifiedIdentity(
        uid="firebase-uid-mallory", email="mallory@example.com"
    )

    with pytest.raises(UnauthorizedException):
        await auth_service.login(LoginRequest(email="alice@example.com", id_token="token"))

    user_service.get_user_by_firebase_uid.assert_not_awaited()


@pytest.mark.asyncio
async def test_login_unregistered(auth_service, user_service):
    """Verified Firebase users without a local account must register."""
    user_service.get_user_by_firebase_uid.return_value = None

    with pytest.raises(NotFoundException):
        await auth_service.login(LoginRequest(email="alice@example.com", id_token="token"))


@pytest.mark.asyncio
async def test_login_inactive(auth_service, user_service, user_row):
    """Deactivated accounts cannot log in."""
    user_service.get_user_by_firebase_uid.return_value = user_row(is_active=False)

    with pytest.raises(ForbiddenException):
        await auth_service.login(LoginRequest(email="alice@example.com", id_token="token"))

    user_service.update_last_login.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_profile_tolerates_firebase_failure(
    auth_service, user_service, identity_provider, user_row
):
    """The local update stands even when Firebase cannot be updated."""
    user_service.update_user.return_value = user_row(display_name="Alice B")
    identity_provider.update_profile.side_effect = FirebaseError("UNAVAILABLE", "firebase down")

    user = await auth_service.update_profile("firebase-uid-alice", UserUpdate(display_name="Alice B"))

    assert user["display_name"] == "Alice B"
    identity_provider.update_profile.assert_awaited_once_with(
        "firebase-uid-alice", {"display_name": "Alice B"}
    )


@pytest.mark.asyncio
async def test_delete_account(auth_service, user_service, identity_provider):
    """Deleting an account soft deletes locally and disables Firebase."""
    await auth_service.delete_account("firebase-uid-alice")

    user_service.soft_delete_user.assert_awaited_once_with("firebase-uid-alice")
    identity_provider.disable_account.assert_awaited_once_with("firebase-uid-alice")
