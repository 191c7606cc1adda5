"""
Credential routes.

Secret values are write-only: nothing here ever returns them.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from flowmate.server.models import SaveCredentialRequest
from ..dependencies import get_current_user_id, get_db, get_services

logger = logging.getLogger("flowmate.api")

router = APIRouter(prefix="/credentials", tags=["credentials"])


@router.get("/platforms")
async def list_platforms(services=Depends(get_services)):
    """Platform catalog with each platform's credential fields."""
    return {"platforms": services.resolver.platforms()}


@router.get("")
async def list_credentials(
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Which platforms the user has stored credentials for, and which fields."""
    return {"credentials": db.credential_repo.list_platforms(user_id)}


@router.put("/{platform}")
async def save_credential(
    platform: str,
    request: SaveCredentialRequest,
    db=Depends(get_db),
    services=Depends(get_services),
    user_id: str = Depends(get_current_user_id),
):
    """Replace the user's stored credential for a platform."""
    try:
        fields = services.resolver.validate_submission(platform, request.value, request.fields)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.credential_repo.save(user_id, platform, fields=fields)
    logger.info(f"[CREDENTIALS] Saved {platform} for user {user_id} (fields: {', '.join(sorted(fields))})")
    return {"platform": platform, "field_names": sorted(fields)}


@router.delete("/{platform}")
async def delete_credential(
    platform: str,
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not db.credential_repo.delete(user_id, platform):
        raise HTTPException(status_code=404, detail=f"No stored credential for '{platform}'")
    logger.info(f"[CREDENTIALS] Deleted {platform} for user {user_id}")
    return {"platform": platform, "deleted": True}
