"""
Practice Service
Manages practices (tenants) and their API keys
"""

import secrets
from datetime import datetime
from typing import Optional, List, Tuple

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import (
    InvalidAPIKeyError,
    PracticeInactiveError,
    PracticeNotFoundError,
)
from dentalhub.db import DatabaseAdapter, get_database
from dentalhub.db.repositories import PracticeRepository
from dentalhub.models.practice import (
    DEFAULT_API_KEY_PERMISSIONS,
    Practice,
    PracticeAPIKey,
    PracticeCreate,
    PracticeUpdate,
)

logger = get_logger(__name__)


class PracticeService:
    """Service for managing practices and API keys"""

    def __init__(self, adapter: Optional[DatabaseAdapter] = None):
        self.repo = PracticeRepository(adapter or get_database())

    async def create_practice(self, data: PracticeCreate) -> Practice:
        """Create a new practice"""
        fields = data.model_dump(exclude_none=True)
        practice = Practice(**fields)
        await self.repo.create(practice)
        logger.info(f"Created practice: {practice.id}")
        return practice

    async def get_practice(self, practice_id: str) -> Practice:
        """Get practice by ID"""
        practice = await self.repo.get(practice_id)
        if not practice:
            raise PracticeNotFoundError(practice_id)
        return practice

    async def list_practices(self, active_only: bool = False) -> List[Practice]:
        """List all practices"""
        return await self.repo.list(active_only=active_only)

    async def update_practice(self, practice_id: str, data: PracticeUpdate) -> Practice:
        """Update practice configuration"""
        await self.get_practice(practice_id)
        practice = await self.repo.update(practice_id, data.model_dump(exclude_unset=True))
        logger.info(f"Updated practice: {practice_id}")
        return practice

    async def delete_practice(self, practice_id: str) -> None:
        """Delete a practice and its API keys"""
        if not await self.repo.delete(practice_id):
            raise PracticeNotFoundError(practice_id)
        logger.info(f"Deleted practice: {practice_id}")

    # ==================== API Keys ====================

    async def create_api_key(
        self,
        practice_id: str,
        name: str,
        permissions: Optional[List[str]] = None,
        expires_at: Optional[datetime] = None
    ) -> PracticeAPIKey:
        """Create a new API key for a practice"""
        await self.get_practice(practice_id)

        api_key = PracticeAPIKey(
            api_key=secrets.token_urlsafe(32),
            practice_id=practice_id,
            name=name,
            permissions=permissions or list(DEFAULT_API_KEY_PERMISSIONS),
            expires_at=expires_at
        )
        await self.repo.create_api_key(api_key)

        logger.info(f"Created API key for practice: {practice_id}")
        return api_key

    async def list_api_keys(self, practice_id: str) -> List[PracticeAPIKey]:
        await self.get_practice(practice_id)
        return await self.repo.list_api_keys(practice_id)

    async def revoke_api_key(self, api_key: str) -> bool:
        """Revoke an API key"""
        revoked = await self.repo.deactivate_api_key(api_key)
        if revoked:
            logger.info("Revoked API key")
        return revoked

    async def validate_api_key(self, api_key: str, required_permission: Optional[str] = None) -> bool:
        """Validate an API key and optionally check permission"""
        key_obj = await self.repo.get_api_key(api_key)
        if not key_obj or not key_obj.is_active:
            return False

        if key_obj.is_expired():
            return False

        if required_permission and not key_obj.has_permission(required_permission):
            return False

        return True

    async def get_practice_by_api_key(self, api_key: str) -> Optional[Practice]:
        """Get practice by API key, recording its use"""
        try:
            practice, _ = await self.authenticate_api_key(api_key)
        except (InvalidAPIKeyError, PracticeNotFoundError, PracticeInactiveError):
            return None
        return practice

    async def authenticate_api_key(self, api_key: str) -> Tuple[Practice, PracticeAPIKey]:
        """
        Resolve an API key to its practice

        Raises:
            InvalidAPIKeyError: unknown, revoked or expired key
            PracticeNotFoundError: the key's practice was deleted
            PracticeInactiveError: the practice is disabled
        """
        key_obj = await self.repo.get_api_key(api_key)
        if not key_obj or not key_obj.is_active or key_obj.is_expired():
            raise InvalidAPIKeyError()

        practice = await self.repo.get(key_obj.practice_id)
        if not practice:
            raise PracticeNotFoundError(key_obj.practice_id)
        if not practice.is_active:
            raise PracticeInactiveError(practice.id)

        await self.repo.touch_api_key(api_key)
        return practice, key_obj


def get_practice_service() -> PracticeService:
    """Get a PracticeService bound to the current database"""
    return PracticeService()
