"""
Auth Service
Sessions through Supabase Auth (GoTrue REST) and local verification
of the access tokens it issues
"""

from typing import Optional, Dict, Any

import httpx
import jwt

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    AuthenticationError,
    InvalidTokenError,
    ServiceError,
    ServiceNotConfiguredError,
)
from dentalhub.models.auth import AuthenticatedUser, AuthSession

logger = get_logger(__name__)

# GoTrue answers bad credentials with 400, expired sessions with 401/403
CLIENT_AUTH_STATUSES = {400, 401, 403, 422}


def decode_access_token(token: str) -> AuthenticatedUser:
    """
    Verify a Supabase access token and extract the caller

    Raises:
        InvalidTokenError: bad signature, expired or malformed token
    """
    if not settings.supabase_jwt_secret:
        raise ServiceNotConfiguredError("Supabase Auth", "SUPABASE_JWT_SECRET")

    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Access token expired")
        raise InvalidTokenError("Access token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid access token: {e}")
        raise InvalidTokenError()

    if not claims.get("sub"):
        raise InvalidTokenError("Access token has no subject")

    return AuthenticatedUser.from_claims(claims)


def _user_from_payload(payload: Dict[str, Any]) -> AuthenticatedUser:
    return AuthenticatedUser.from_claims({
        "sub": payload.get("id"),
        "email": payload.get("email"),
        "user_metadata": payload.get("user_metadata") or {},
    })


class AuthService:
    """Client for the Supabase Auth REST API"""

    def __init__(self):
        self.base_url = (settings.supabase_url or "").rstrip("/")
        self.anon_key = settings.supabase_anon_key
        self.timeout = settings.auth_http_timeout

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        if not self.base_url or not self.anon_key:
            raise ServiceNotConfiguredError("Supabase Auth", "SUPABASE_URL/SUPABASE_ANON_KEY")
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        headers = self._headers(access_token)
        url = f"{self.base_url}/auth/v1{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, params=params, json=json)
        except httpx.RequestError as e:
            logger.error(f"Supabase Auth request failed: {e}")
            raise ServiceError(
                f"Auth provider unreachable: {e}",
                error_code="AUTH_PROVIDER_ERROR",
                retryable=True
            )

        if response.status_code in CLIENT_AUTH_STATUSES:
            message = self._error_message(response) or "Authentication failed"
            logger.warning(f"Supabase Auth rejected {method} {path}: {message}")
            raise AuthenticationError(message)

        if response.status_code >= 400:
            logger.error(f"Supabase Auth error {response.status_code} on {method} {path}")
            raise ServiceError(
                f"Auth provider error: HTTP {response.status_code}",
                error_code="AUTH_PROVIDER_ERROR",
                details={"status_code": response.status_code},
                retryable=response.status_code >= 500
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body.get("error_description") or body.get("msg") or body.get("message") or body.get("error")

    def _session(self, payload: Dict[str, Any]) -> AuthSession:
        if not payload.get("access_token"):
            raise AuthenticationError("Auth provider returned no session")
        user = payload.get("user")
        return AuthSession(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type", "bearer"),
            expires_in=payload.get("expires_in"),
            user=_user_from_payload(user) if user else None,
        )

    async def login(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password"""
        payload = await self._request(
            "POST", "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password}
        )
        session = self._session(payload)
        logger.info(f"User signed in: {session.user.id if session.user else email}")
        return session

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        """Exchange a refresh token for a new session"""
        payload = await self._request(
            "POST", "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token}
        )
        return self._session(payload)

    async def get_user(self, access_token: str) -> AuthenticatedUser:
        """Fetch the user behind an access token from the provider"""
        payload = await self._request("GET", "/user", access_token=access_token)
        return _user_from_payload(payload)

    async def logout(self, access_token: str) -> None:
        """Revoke the session behind an access token"""
        await self._request("POST", "/logout", access_token=access_token)
        logger.info("User signed out")

    async def update_user_metadata(self, access_token: str, metadata: Dict[str, Any]) -> AuthenticatedUser:
        """Merge metadata into the user's profile"""
        payload = await self._request(
            "PUT", "/user",
            access_token=access_token,
            json={"data": metadata}
        )
        return _user_from_payload(payload)


def get_auth_service() -> AuthService:
    return AuthService()
