"""
Authentication API routes
Sign-in through Supabase Auth with httpOnly session cookies
"""

from fastapi import APIRouter, Depends, Request, Response

from dentalhub.core.config import settings
from dentalhub.core.exceptions import AuthenticationError
from dentalhub.core.logging import get_logger
from dentalhub.models.auth import (
    AuthenticatedUser,
    AuthSession,
    LoginRequest,
    RefreshRequest,
    UserMetadataUpdate,
)
from dentalhub.services.auth_service import AuthService, get_auth_service
from dentalhub.api.middleware.auth import get_access_token, get_current_user
from dentalhub.api.middleware.rate_limit import rate_limit_client

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"
REFRESH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60


def get_service() -> AuthService:
    """Dependency to get auth service"""
    return get_auth_service()


def _set_session_cookies(response: Response, session: AuthSession):
    secure = settings.is_production
    response.set_cookie(
        ACCESS_COOKIE,
        session.access_token,
        max_age=session.expires_in or 3600,
        httponly=True,
        secure=secure,
        samesite="strict",
    )
    if session.refresh_token:
        response.set_cookie(
            REFRESH_COOKIE,
            session.refresh_token,
            max_age=REFRESH_COOKIE_MAX_AGE,
            httponly=True,
            secure=secure,
            samesite="strict",
        )


@router.post("/login", response_model=AuthSession, dependencies=[Depends(rate_limit_client)])
async def login(
    credentials: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_service)
):
    """
    Sign in with email and password
    """
    session = await service.login(credentials.email, credentials.password)
    _set_session_cookies(response, session)
    return session


@router.post("/refresh", response_model=AuthSession, dependencies=[Depends(rate_limit_client)])
async def refresh(
    request: Request,
    response: Response,
    body: RefreshRequest = RefreshRequest(),
    service: AuthService = Depends(get_service)
):
    """
    Exchange a refresh token (body or cookie) for a new session
    """
    refresh_token = body.refresh_token or request.cookies.get(REFRESH_COOKIE)
    if not refresh_token:
        raise AuthenticationError("Refresh token required")

    session = await service.refresh_session(refresh_token)
    _set_session_cookies(response, session)
    return session


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_service)
):
    """
    Revoke the session and clear cookies
    """
    token = get_access_token(request)
    if token:
        await service.logout(token)

    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return {"status": "logged_out"}


@router.get("/me", response_model=AuthenticatedUser)
async def me(user: AuthenticatedUser = Depends(get_current_user)):
    """
    Get the signed-in user
    """
    return user


@router.patch("/me", response_model=AuthenticatedUser)
async def update_me(
    update: UserMetadataUpdate,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    service: AuthService = Depends(get_service)
):
    """
    Update profile metadata of the signed-in user
    """
    token = get_access_token(request)
    updated = await service.update_user_metadata(token, update.to_metadata())
    logger.info(f"Updated metadata for user {user.id}")
    return updated
