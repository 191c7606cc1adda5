"""
User Repository - User and access key management.

Handles:
- User lookup and creation
- Access key management (API keys for CLI/automation callers)
"""

import hashlib
import secrets
import uuid
from typing import Any, Dict, Optional

from pymongo.collection import Collection
from pymongo.database import Database

from flowmate.db.base import BaseRepository
from flowmate.db.utils import utcnow


def hash_access_key(access_key: str) -> str:
    """Access keys are stored as SHA256 hashes, never in plaintext."""
    return hashlib.sha256(access_key.encode("utf-8")).hexdigest()


class UserRepository(BaseRepository):
    """
    Repository for user-related database operations.

    Collections:
    - users: User accounts
    - access_keys: API access keys
    """

    def __init__(self, db: Database):
        super().__init__(db)
        self.users: Collection = db.users
        self.access_keys: Collection = db.access_keys

    # =========================================================================
    # User Management
    # =========================================================================

    def get_or_create_user(self, username: str, email: str = None) -> str:
        """
        Get existing user or create new one.

        Args:
            username: Unique username
            email: Optional email address

        Returns:
            user_id
        """
        existing = self.users.find_one({"username": username})
        if existing:
            return existing["user_id"]

        user_id = f"usr_{uuid.uuid4().hex[:12]}"
        now = utcnow()
        self.users.insert_one(
            {
                "user_id": user_id,
                "username": username,
                "email": email,
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            }
        )
        return user_id

    def get_user_by_access_key(self, access_key: str) -> Optional[Dict[str, Any]]:
        """
        Get user by access key.

        Args:
            access_key: The access key as presented by the caller

        Returns:
            User document or None if the key is unknown, revoked or expired
        """
        key_doc = self.access_keys.find_one(
            {"key_hash": hash_access_key(access_key), "is_active": True}
        )
        if not key_doc:
            return None

        expires_at = key_doc.get("expires_at")
        now = utcnow()
        if expires_at and expires_at <= now:
            return None

        self.access_keys.update_one(
            {"access_key_id": key_doc["access_key_id"]},
            {"$set": {"last_used_at": now}},
        )

        return self.users.find_one({"user_id": key_doc["user_id"]}, {"_id": 0})

    # =========================================================================
    # Access Key Management
    # =========================================================================

    def create_access_key(self, user_id: str, name: str = "default") -> Dict[str, Any]:
        """
        Create a new access key for a user.

        The plaintext key is only present in the returned document; the
        database keeps its hash.

        Args:
            user_id: User ID
            name: Optional name/description for the key

        Returns:
            Dict with access_key_id, name and the plaintext access_key
        """
        access_key_id = f"key_{uuid.uuid4().hex[:12]}"
        access_key = f"fmk_{secrets.token_urlsafe(32)}"

        self.access_keys.insert_one(
            {
                "access_key_id": access_key_id,
                "user_id": user_id,
                "key_hash": hash_access_key(access_key),
                "name": name,
                "is_active": True,
                "created_at": utcnow(),
                "last_used_at": None,
                "expires_at": None,
            }
        )
        return {"access_key_id": access_key_id, "name": name, "access_key": access_key}
