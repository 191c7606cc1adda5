"""
Posted threads history.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from flowmate.server.models import ThreadsResponse
from flowmate.server.models.responses import Pagination
from ..dependencies import get_current_user_id, get_db
from ._params import parse_int

logger = logging.getLogger("flowmate.api")

router = APIRouter(tags=["threads"])

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def _format_post(post: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": post.get("post_id"),
        "content": post.get("content"),
        "tweetId": post.get("external_id"),
        "status": post.get("status"),
        "inReplyTo": post.get("in_reply_to"),
        "postedAt": post.get("posted_at"),
        "createdAt": post.get("created_at"),
    }


@router.get("/threads", response_model=ThreadsResponse)
async def list_threads(
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Previously posted items, newest first.

    limit defaults to 100 and is capped at 500; hasMore is true when a full
    page came back.
    """
    page_limit = parse_int(limit, DEFAULT_LIMIT)
    if page_limit <= 0:
        page_limit = DEFAULT_LIMIT
    page_limit = min(page_limit, MAX_LIMIT)
    page_offset = max(parse_int(offset, 0), 0)

    logger.info(f"[THREADS] Fetching history limit={page_limit} offset={page_offset}")
    threads = [_format_post(p) for p in db.post_repo.list_posts(page_limit, page_offset)]

    return ThreadsResponse(
        success=True,
        count=len(threads),
        threads=threads,
        pagination=Pagination(limit=page_limit, offset=page_offset, hasMore=len(threads) == page_limit),
    )
