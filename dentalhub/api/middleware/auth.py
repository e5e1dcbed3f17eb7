"""
Authentication Middleware
Resolves the caller from a Supabase access token or a practice API key
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPBearer

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    PracticeInactiveError,
)
from dentalhub.models.auth import AuthenticatedUser
from dentalhub.models.practice import PracticeContext
from dentalhub.services.auth_service import decode_access_token
from dentalhub.services.practice_service import get_practice_service

logger = get_logger(__name__)

# Declared for the OpenAPI docs; extraction is done by hand below
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIES = ("sb-access-token", "access_token")


def _rate_limit_overrides(practice) -> dict:
    return practice.settings.model_dump(include={"requests_per_minute", "calls_per_hour"}, exclude_none=True)


def _looks_like_jwt(token: str) -> bool:
    return token.count(".") == 2


def get_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_access_token(request: Request) -> Optional[str]:
    """Supabase access token from the Authorization header or auth cookies"""
    token = get_bearer_token(request)
    if token and _looks_like_jwt(token):
        return token

    for cookie in ACCESS_TOKEN_COOKIES:
        token = request.cookies.get(cookie)
        if token:
            return token

    return None


async def get_api_key(request: Request) -> Optional[str]:
    """Extract API key from request"""
    # Try header first
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return api_key

    # Try query parameter
    api_key = request.query_params.get("api_key")
    if api_key:
        return api_key

    # Bearer values that are not JWTs are API keys
    token = get_bearer_token(request)
    if token and not _looks_like_jwt(token):
        return token

    return None


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    Dependency to get the signed-in user

    Usage:
        @router.get("/endpoint")
        async def endpoint(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    if hasattr(request.state, "user"):
        return request.state.user

    token = get_access_token(request)
    if not token:
        raise AuthenticationError("Authentication required")

    user = decode_access_token(token)
    request.state.user = user
    return user


async def get_practice_context(request: Request) -> PracticeContext:
    """
    Dependency resolving the practice a request acts for

    API keys carry their own practice and permissions; users act for the
    practice in their metadata with full permissions.

    Raises:
        AuthenticationError: No credentials, or invalid ones
        AuthorizationError: User without a practice
        PracticeNotFoundError / PracticeInactiveError
    """
    if hasattr(request.state, "practice_context"):
        return request.state.practice_context

    practice_service = get_practice_service()

    api_key = await get_api_key(request)
    if api_key:
        practice, key = await practice_service.authenticate_api_key(api_key)
        context = PracticeContext(
            practice_id=practice.id,
            api_key=api_key,
            permissions=key.permissions,
            metadata={"key_name": key.name, "rate_limits": _rate_limit_overrides(practice)},
        )
    else:
        user = await get_current_user(request)
        if not user.practice_id:
            raise AuthorizationError("User is not assigned to a practice")

        practice = await practice_service.get_practice(user.practice_id)
        if not practice.is_active:
            raise PracticeInactiveError(practice.id)

        context = PracticeContext(
            practice_id=practice.id,
            user_id=user.id,
            role=user.role,
            permissions=["*"],
            metadata={"email": user.email, "rate_limits": _rate_limit_overrides(practice)},
        )

    request.state.practice_context = context
    return context


def require_role(*roles: str):
    """
    Dependency factory restricting a route to user roles

    Usage:
        @router.delete("/endpoint")
        async def endpoint(context: PracticeContext = Depends(require_role("admin", "manager"))):
            ...
    """
    async def role_checker(context: PracticeContext = Depends(get_practice_context)) -> PracticeContext:
        if context.role not in roles:
            logger.warning(f"Role {context.role} denied, requires one of {roles}")
            raise AuthorizationError(
                "Insufficient role",
                details={"required_roles": list(roles), "role": context.role},
            )
        return context

    return role_checker


def require_permission(permission: str):
    """
    Dependency factory for API key permissions; signed-in users always pass

    Usage:
        @router.post("/calls")
        async def endpoint(context: PracticeContext = Depends(require_permission("calls:write"))):
            ...
    """
    async def permission_checker(context: PracticeContext = Depends(get_practice_context)) -> PracticeContext:
        if "*" not in context.permissions and permission not in context.permissions:
            raise AuthorizationError(
                f"Missing permission: {permission}",
                details={"required_permission": permission},
            )
        return context

    return permission_checker
