"""
OAuth State Repository - Single-use PKCE state rows.

Each authorize-start creates its own row keyed by the unguessable ``state``.
Consumption is a single atomic update on ``consumed_at: None``, so two
concurrent callbacks carrying the same state cannot both succeed.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from flowmate.db.base import BaseRepository
from flowmate.db.utils import as_naive_utc, utcnow


class OAuthStateRepository(BaseRepository):
    """
    Repository for OAuth authorization state.

    Collections:
    - oauth_states: {state, code_verifier, user_id, provider, created_at, consumed_at}
    """

    def __init__(self, db: Database):
        super().__init__(db)
        self.oauth_states: Collection = db.oauth_states

    def create(self, state: str, code_verifier: str, user_id: str, provider: str) -> None:
        self.oauth_states.insert_one(
            {
                "state": state,
                "code_verifier": code_verifier,
                "user_id": user_id,
                "provider": provider,
                "created_at": utcnow(),
                "consumed_at": None,
            }
        )

    def consume(self, state: str) -> Optional[Dict[str, Any]]:
        """
        Mark a state consumed and return it.

        Returns:
            The state document as it was before consumption, or None if the
            state does not exist or was already consumed.
        """
        return self.oauth_states.find_one_and_update(
            {"state": state, "consumed_at": None},
            {"$set": {"consumed_at": utcnow()}},
            projection={"_id": 0},
            return_document=ReturnDocument.BEFORE,
        )

    def purge(self, older_than: datetime) -> int:
        """Delete state rows created before ``older_than``. Returns count removed."""
        result = self.oauth_states.delete_many({"created_at": {"$lt": as_naive_utc(older_than)}})
        return result.deleted_count
