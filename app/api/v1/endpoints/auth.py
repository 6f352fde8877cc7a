"""Authentication endpoints."""

from fastapi import APIRouter, Depends, status

from app.dependencies import AuthServiceDep, CurrentIdentity, CurrentUser, auth_rate_limit
from app.schemas.auth import LoginRequest, RegisterRequest
from app.schemas.common import ApiResponse
from app.schemas.users import UserData, UserResponse, UserUpdate

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse[UserData],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    dependencies=[Depends(auth_rate_limit)],
)
async def register(data: RegisterRequest, auth_service: AuthServiceDep) -> ApiResponse[UserData]:
    """
    Create a Firebase account and the matching local user.

    The client signs in with Firebase afterwards and calls ``/auth/login``
    with the resulting ID token.
    """
    user = await auth_service.register(data)
    return ApiResponse(
        message="User registered successfully",
        data=UserData(user=UserResponse.model_validate(user)),
    )


@router.post(
    "/login",
    response_model=ApiResponse[UserData],
    status_code=status.HTTP_200_OK,
    summary="Log in with a Firebase ID token",
    dependencies=[Depends(auth_rate_limit)],
)
async def login(data: LoginRequest, auth_service: AuthServiceDep) -> ApiResponse[UserData]:
    """
    Verify a Firebase ID token and record the login.

    Args:
        data: Email and Firebase ID token
        auth_service: Auth service

    Returns:
        The logged-in user
    """
    user = await auth_service.login(data)
    return ApiResponse(
        message="Login successful",
        data=UserData(user=UserResponse.model_validate(user)),
    )


@router.get(
    "/me",
    response_model=ApiResponse[UserData],
    status_code=status.HTTP_200_OK,
    summary="Get current user profile",
)
async def get_me(current_user: CurrentUser, auth_service: AuthServiceDep) -> ApiResponse[UserData]:
    """Get the authenticated user's profile."""
    user = await auth_service.get_profile(current_user["firebase_uid"])
    return ApiResponse(data=UserData(user=UserResponse.model_validate(user)))


@router.patch(
    "/me",
    response_model=ApiResponse[UserData],
    status_code=status.HTTP_200_OK,
    summary="Update current user profile",
)
async def update_me(
    data: UserUpdate,
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
) -> ApiResponse[UserData]:
    """
    Update the authenticated user's display name or photo.

    Args:
        data: Profile fields to change
        current_user: Authenticated user
        auth_service: Auth service

    Returns:
        Updated profile
    """
    user = await auth_service.update_profile(current_user["firebase_uid"], data)
    return ApiResponse(
        message="Profile updated successfully",
        data=UserData(user=UserResponse.model_validate(user)),
    )


@router.delete(
    "/me",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Delete current user account",
)
async def delete_me(current_user: CurrentUser, auth_service: AuthServiceDep) -> ApiResponse[None]:
    """Soft delete the authenticated user's account."""
    await auth_service.delete_account(current_user["firebase_uid"])
    return ApiResponse(message="Account deleted successfully")


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Log out",
)
async def logout(identity: CurrentIdentity, auth_service: AuthServiceDep) -> ApiResponse[None]:
    """Acknowledge logout; the client discards its Firebase token."""
    await auth_service.logout(identity.uid)
    return ApiResponse(message="Logged out successfully")
