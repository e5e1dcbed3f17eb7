"""
Authentication Models
Sessions and users issued by Supabase Auth
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """The caller resolved from a verified access token"""
    id: str
    email: Optional[str] = None
    role: str = "staff"
    practice_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthenticatedUser":
        user_metadata = claims.get("user_metadata") or {}
        return cls(
            id=claims.get("sub") or claims.get("id"),
            email=claims.get("email"),
            role=user_metadata.get("role") or "staff",
            practice_id=user_metadata.get("practice_id"),
            metadata=user_metadata,
        )


class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: Optional[AuthenticatedUser] = None


class UserMetadataUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_metadata(self) -> Dict[str, Any]:
        # role and practice_id are assigned by admins, never self-service
        metadata = {k: v for k, v in self.data.items() if k not in ("role", "practice_id")}
        for key in ("first_name", "last_name", "phone"):
            value = getattr(self, key)
            if value is not None:
                metadata[key] = value
        return metadata
