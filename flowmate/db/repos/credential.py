"""
Credential Repository - Encrypted per-user platform credentials.

One document per (user_id, platform). The secret payload (a single
``value`` or a ``fields`` mapping) is sealed with CredentialCipher before it
reaches MongoDB; only the platform id and field names stay readable.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pymongo.collection import Collection
from pymongo.database import Database

from flowmate.db.base import BaseRepository
from flowmate.db.crypto import CredentialCipher
from flowmate.db.utils import utcnow


@dataclass
class CredentialRecord:
    """Decrypted credential for one (user_id, platform)."""

    user_id: str
    platform: str
    value: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)


class CredentialRepository(BaseRepository):
    """
    Repository for stored credentials.

    Collections:
    - credentials: {user_id, platform, secret, field_names, created_at, updated_at}
    """

    def __init__(self, db: Database, cipher: CredentialCipher):
        super().__init__(db)
        self.credentials: Collection = db.credentials
        self.cipher = cipher

    def save(
        self,
        user_id: str,
        platform: str,
        value: Optional[str] = None,
        fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Store a credential, replacing whatever was stored for the platform.

        Args:
            user_id: Owner
            platform: Platform id
            value: Single opaque secret (simple API key platforms)
            fields: Named secrets (multi-field platforms)
        """
        if value is None and not fields:
            raise ValueError("A credential needs a value or at least one field")

        payload: Dict[str, Any] = {}
        if value is not None:
            payload["value"] = value
        if fields:
            payload["fields"] = dict(fields)

        now = utcnow()
        existing = self.credentials.find_one(
            {"user_id": user_id, "platform": platform}, {"_id": 0, "created_at": 1}
        )
        created_at = existing.get("created_at", now) if existing else now
        # Full replacement; fields from an earlier submission never survive
        self.credentials.replace_one(
            {"user_id": user_id, "platform": platform},
            {
                "user_id": user_id,
                "platform": platform,
                "secret": self.cipher.encrypt(payload),
                "field_names": sorted(payload.get("fields", {}).keys()),
                "has_value": value is not None,
                "created_at": created_at,
                "updated_at": now,
            },
            upsert=True,
        )

    def get(self, user_id: str, platform: str) -> Optional[CredentialRecord]:
        """Fetch and decrypt a credential, or None if none is stored."""
        doc = self.credentials.find_one({"user_id": user_id, "platform": platform})
        if not doc:
            return None
        payload = self.cipher.decrypt(doc["secret"])
        return CredentialRecord(
            user_id=user_id,
            platform=platform,
            value=payload.get("value"),
            fields=payload.get("fields") or {},
        )

    def list_platforms(self, user_id: str) -> List[Dict[str, Any]]:
        """Describe stored credentials without decrypting them."""
        docs = self.credentials.find(
            {"user_id": user_id},
            {"_id": 0, "platform": 1, "field_names": 1, "has_value": 1, "updated_at": 1},
        ).sort("platform", 1)
        return list(docs)

    def delete(self, user_id: str, platform: str) -> bool:
        result = self.credentials.delete_one({"user_id": user_id, "platform": platform})
        return result.deleted_count > 0
