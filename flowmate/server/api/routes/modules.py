"""
Module catalog routes.

Search is unauthenticated: automated agents discover modules through it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from flowmate.server.models import ModuleSearchResponse
from ..dependencies import get_services
from ._params import parse_int

logger = logging.getLogger("flowmate.api")

router = APIRouter(prefix="/modules", tags=["modules"])

DEFAULT_SEARCH_LIMIT = 10


@router.get("")
async def list_modules(services=Depends(get_services)):
    """Full catalog grouped as category -> module -> functions."""
    return {"categories": services.registry.catalog()}


@router.get("/search", response_model=ModuleSearchResponse)
async def search_modules(
    q: str = Query(""),
    limit: Optional[str] = Query(None),
    services=Depends(get_services),
):
    """
    Substring search over path, description and signature.

    A malformed or non-positive limit falls back to 10.
    """
    parsed = parse_int(limit, DEFAULT_SEARCH_LIMIT)
    if parsed <= 0:
        parsed = DEFAULT_SEARCH_LIMIT

    results = services.registry.search(q, parsed)
    logger.debug(f"[MODULES] search q='{q}' limit={parsed} -> {len(results)}")
    return ModuleSearchResponse(results=results, total=len(results))
