"""
Settings Repository - Flat key/value application settings.

Job settings live here under ``{job_name}_{setting_key}`` keys with
JSON-encoded values.
"""

import json
from typing import Any, Dict, List

from pymongo.collection import Collection
from pymongo.database import Database

from flowmate.db.base import BaseRepository
from flowmate.db.utils import utcnow


class SettingsRepository(BaseRepository):
    """
    Repository for application settings.

    Collections:
    - app_settings: {key, value, updated_at}
    """

    def __init__(self, db: Database):
        super().__init__(db)
        self.app_settings: Collection = db.app_settings

    def list_all(self) -> List[Dict[str, Any]]:
        """Every settings row as {key, value}."""
        return list(self.app_settings.find({}, {"_id": 0, "key": 1, "value": 1}))

    def get(self, key: str) -> Any:
        doc = self.app_settings.find_one({"key": key}, {"_id": 0, "value": 1})
        return doc.get("value") if doc else None

    def set(self, key: str, value: str) -> None:
        """Store a raw (already encoded) value."""
        self.app_settings.update_one(
            {"key": key},
            {"$set": {"value": value, "updated_at": utcnow()}},
            upsert=True,
        )

    def set_job_settings(self, job_name: str, settings: Dict[str, Any]) -> None:
        """
        Store settings for a job, one row per key.

        Every value is JSON-encoded, strings included, so a string such as
        "2024" or "null" reads back as the same string.
        """
        for setting_key, value in settings.items():
            self.set(f"{job_name}_{setting_key}", json.dumps(value))
