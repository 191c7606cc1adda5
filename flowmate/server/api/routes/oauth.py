"""
OAuth2 authorization routes.

Configuration problems surface as client-visible errors, never as redirects.
"""

import asyncio
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from flowmate.server.errors import (
    ConfigurationError,
    InvalidState,
    NotFound,
    OAuthExchangeError,
)
from ..dependencies import get_current_user_id, get_services

logger = logging.getLogger("flowmate.api")

router = APIRouter(tags=["oauth"])


@router.get("/authorize/{provider}")
async def authorize(
    provider: str,
    services=Depends(get_services),
    user_id: str = Depends(get_current_user_id),
):
    """Start the PKCE flow and redirect the user-agent to the provider."""
    try:
        start = await asyncio.to_thread(services.oauth.start_authorization, user_id, provider)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConfigurationError as e:
        logger.error(f"[OAUTH] Cannot start {provider} authorization: {e}")
        raise HTTPException(status_code=500, detail=e.to_dict())

    return RedirectResponse(start.url, status_code=302)


@router.get("/callback/{provider}")
async def callback(
    provider: str,
    state: Optional[str] = Query(None),
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    services=Depends(get_services),
):
    """Consume the state, exchange the code and store the user's tokens."""
    try:
        result = await asyncio.to_thread(
            services.oauth.complete_authorization, provider, state, code, error
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidState as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except OAuthExchangeError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=e.to_dict())

    success_redirect = os.environ.get("OAUTH_SUCCESS_REDIRECT")
    if success_redirect:
        return RedirectResponse(success_redirect, status_code=302)
    return {"success": True, **result}
