"""
Post Repository - History of content posted to external platforms.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from flowmate.db.base import BaseRepository
from flowmate.db.utils import utcnow
from flowmate.server.utils import uuid7_str


class PostRepository(BaseRepository):
    """
    Repository for posted items.

    Collections:
    - posts: {post_id, content, external_id, status, in_reply_to, posted_at, created_at}
    """

    def __init__(self, db: Database):
        super().__init__(db)
        self.posts: Collection = db.posts

    def record_post(
        self,
        content: str,
        external_id: Optional[str] = None,
        status: str = "posted",
        in_reply_to: Optional[str] = None,
        posted_at: Optional[datetime] = None,
    ) -> str:
        """
        Record an item that was posted (or simulated in a dry run).

        Returns:
            post_id
        """
        post_id = f"post_{uuid7_str()}"
        now = utcnow()
        self.posts.insert_one(
            {
                "post_id": post_id,
                "content": content,
                "external_id": external_id,
                "status": status,
                "in_reply_to": in_reply_to,
                "posted_at": posted_at or now,
                "created_at": now,
            }
        )
        return post_id

    def list_posts(self, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
        """Newest first."""
        cursor = (
            self.posts.find({}, {"_id": 0})
            .sort("posted_at", DESCENDING)
            .skip(offset)
            .limit(limit)
        )
        return list(cursor)
