"""
Authentication router with signup, login, logout, and me endpoints.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response, status

from cashflow_api.core.config import Settings
from cashflow_api.core.deps import (
    AuthenticatedIdentity,
    extract_token,
    get_app_settings,
    get_auth_service,
    get_current_identity,
)
from cashflow_api.core.errors import AuthenticationError
from cashflow_api.schemas.auth import AuthPayload, IdentityResponse, UserLogin, UserRegister, UserResponse
from cashflow_api.schemas.common import ApiResponse, ErrorResponse
from cashflow_api.services.auth import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/user",
    tags=["auth"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    },
)


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
    }


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        **_cookie_options(settings),
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.AUTH_COOKIE_NAME, **_cookie_options(settings))


@router.post("/signup", response_model=ApiResponse[AuthPayload], status_code=status.HTTP_201_CREATED)
def signup(
    user_data: UserRegister,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Register a new user account.
    Returns the user and an access token on success.
    """
    user = auth.register(user_data.username, user_data.password)
    token = auth.issue_token(user)
    set_auth_cookie(response, token, settings)

    return ApiResponse(
        data=AuthPayload(user=UserResponse(id=user.id, username=user.username), token=token),
        message="Registration successful",
    )


@router.post("/login", response_model=ApiResponse[AuthPayload])
def login(
    user_data: UserLogin,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Authenticate user and return a token.
    """
    result = auth.login(user_data.username, user_data.password)
    if result is None:
        raise AuthenticationError("Invalid credentials")

    set_auth_cookie(response, result.token, settings)
    return ApiResponse(
        data=AuthPayload(user=UserResponse(id=result.user.id, username=result.user.username), token=result.token),
        message="Login successful",
    )


@router.post("/logout", response_model=ApiResponse[None])
def logout(
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Revoke the presented token and clear the auth cookie.
    Succeeds even without a token, or with an expired one.
    """
    auth.logout(extract_token(request, settings.AUTH_COOKIE_NAME))
    clear_auth_cookie(response, settings)
    return ApiResponse(message="Successfully logged out")


@router.get("/me", response_model=ApiResponse[IdentityResponse])
def get_me(identity: AuthenticatedIdentity = Depends(get_current_identity)):
    """
    Get the current authenticated user's identity.
    """
    return ApiResponse(data=IdentityResponse(userId=identity.user_id, username=identity.username))
