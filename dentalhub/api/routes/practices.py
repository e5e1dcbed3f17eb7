"""
Practice Management API Routes
Manage practices (tenants) and their API keys
"""

from datetime import datetime, timedelta
from typing import List
from fastapi import APIRouter, Depends

from dentalhub.core.logging import get_logger
from dentalhub.core.exceptions import AuthorizationError, NotFoundError
from dentalhub.models.practice import (
    APIKeyCreate,
    Practice,
    PracticeAPIKey,
    PracticeContext,
    PracticeCreate,
    PracticeUpdate,
)
from dentalhub.services.practice_service import PracticeService, get_practice_service
from dentalhub.api.middleware.auth import get_practice_context, require_role
from dentalhub.api.middleware.rate_limit import rate_limit_practice

logger = get_logger(__name__)

router = APIRouter(prefix="/practices", tags=["practices"], dependencies=[Depends(rate_limit_practice)])


def get_service() -> PracticeService:
    """Dependency to get practice service"""
    return get_practice_service()


def ensure_practice_access(context: PracticeContext, practice_id: str):
    """Admins manage every practice; everyone else only their own"""
    if context.role != "admin" and context.practice_id != practice_id:
        raise AuthorizationError("Access to this practice is not allowed")


@router.get("/current", response_model=Practice)
async def get_current_practice(
    context: PracticeContext = Depends(get_practice_context),
    service: PracticeService = Depends(get_service)
):
    """
    Get the practice the caller acts for
    """
    return await service.get_practice(context.practice_id)


@router.get("/", response_model=List[Practice])
async def list_practices(
    active_only: bool = False,
    context: PracticeContext = Depends(require_role("admin")),
    service: PracticeService = Depends(get_service)
):
    """
    List all practices

    **Note**: Admin only.
    """
    return await service.list_practices(active_only=active_only)


@router.post("/", response_model=Practice, status_code=201)
async def create_practice(
    data: PracticeCreate,
    context: PracticeContext = Depends(require_role("admin")),
    service: PracticeService = Depends(get_service)
):
    """
    Create a new practice

    **Note**: Admin only.
    """
    practice = await service.create_practice(data)
    logger.info(f"Practice {practice.id} created by {context.user_id}")
    return practice


@router.get("/{practice_id}", response_model=Practice)
async def get_practice(
    practice_id: str,
    context: PracticeContext = Depends(get_practice_context),
    service: PracticeService = Depends(get_service)
):
    """
    Get a specific practice by ID
    """
    ensure_practice_access(context, practice_id)
    return await service.get_practice(practice_id)


@router.patch("/{practice_id}", response_model=Practice)
async def update_practice(
    practice_id: str,
    data: PracticeUpdate,
    context: PracticeContext = Depends(require_role("admin", "manager")),
    service: PracticeService = Depends(get_service)
):
    """
    Update a practice
    """
    ensure_practice_access(context, practice_id)
    return await service.update_practice(practice_id, data)


@router.delete("/{practice_id}")
async def delete_practice(
    practice_id: str,
    context: PracticeContext = Depends(require_role("admin")),
    service: PracticeService = Depends(get_service)
):
    """
    Delete a practice and its API keys

    **Note**: Admin only.
    """
    await service.delete_practice(practice_id)
    return {"message": f"Practice {practice_id} deleted"}


@router.post("/{practice_id}/api-keys", response_model=PracticeAPIKey, status_code=201)
async def create_api_key(
    practice_id: str,
    data: APIKeyCreate,
    context: PracticeContext = Depends(require_role("admin", "manager")),
    service: PracticeService = Depends(get_service)
):
    """
    Issue a new API key for a practice

    The key value is only returned here; store it safely.
    """
    ensure_practice_access(context, practice_id)

    expires_at = None
    if data.expires_in_days:
        expires_at = datetime.utcnow() + timedelta(days=data.expires_in_days)

    return await service.create_api_key(
        practice_id=practice_id,
        name=data.name,
        permissions=data.permissions,
        expires_at=expires_at
    )


@router.get("/{practice_id}/api-keys", response_model=List[PracticeAPIKey])
async def list_api_keys(
    practice_id: str,
    context: PracticeContext = Depends(require_role("admin", "manager")),
    service: PracticeService = Depends(get_service)
):
    """
    List a practice's API keys
    """
    ensure_practice_access(context, practice_id)
    return await service.list_api_keys(practice_id)


@router.delete("/{practice_id}/api-keys/{api_key}")
async def revoke_api_key(
    practice_id: str,
    api_key: str,
    context: PracticeContext = Depends(require_role("admin", "manager")),
    service: PracticeService = Depends(get_service)
):
    """
    Revoke an API key
    """
    ensure_practice_access(context, practice_id)

    keys = await service.list_api_keys(practice_id)
    if not any(key.api_key == api_key for key in keys):
        raise NotFoundError("api_key", api_key)

    await service.revoke_api_key(api_key)
    return {"message": "API key revoked"}
