"""
Database Layer - MongoDB connection and repositories.

Usage:
    from flowmate.db import Database

    db = Database(connection_string, database_name)
    workflow = db.workflow_repo.get_workflow(workflow_id)
    db.credential_repo.save(user_id, "openai", value="sk-...")
"""

import logging
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database as MongoDatabase

from .base import BaseRepository
from .crypto import CredentialCipher
from .repos import (
    CredentialRecord,
    CredentialRepository,
    OAuthStateRepository,
    PostRepository,
    SettingsRepository,
    UserRepository,
    WorkflowRepository,
)

logger = logging.getLogger(__name__)


class Database:
    """
    MongoDB database connection with repository access.

    Use repositories directly for all operations:
        db.workflow_repo.get_workflow(id)
        db.credential_repo.get(user_id, platform)
        db.oauth_state_repo.consume(state)

    Args:
        connection_string: MongoDB URI (ignored when ``client`` is given)
        database_name: Database to use
        client: Pre-built client, e.g. ``mongomock.MongoClient()`` in tests
        cipher: Credential cipher; defaults to CREDENTIAL_ENCRYPTION_KEY
    """

    def __init__(
        self,
        connection_string: str = "mongodb://localhost:27017",
        database_name: str = "flowmate",
        client=None,
        cipher: Optional[CredentialCipher] = None,
    ):
        self.client = client or MongoClient(
            connection_string,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=10000,
        )
        self.db: MongoDatabase = self.client[database_name]

        # Initialize repositories
        self.user_repo = UserRepository(self.db)
        self.credential_repo = CredentialRepository(self.db, cipher or CredentialCipher.from_env())
        self.oauth_state_repo = OAuthStateRepository(self.db)
        self.settings_repo = SettingsRepository(self.db)
        self.workflow_repo = WorkflowRepository(self.db)
        self.post_repo = PostRepository(self.db)

        self._ensure_indexes()

    def _ensure_indexes(self):
        """Create the unique indexes the repositories rely on."""
        try:
            self.db.credentials.create_index(
                [("user_id", ASCENDING), ("platform", ASCENDING)], unique=True
            )
            self.db.oauth_states.create_index("state", unique=True)
            self.db.app_settings.create_index("key", unique=True)
            self.db.workflows.create_index("workflow_id", unique=True)
            self.db.access_keys.create_index("key_hash", unique=True)
            self.db.posts.create_index([("posted_at", ASCENDING)])
        except Exception as e:
            logger.error(f"Index creation failed: {e}")
            raise

    def close(self):
        """Close database connection."""
        self.client.close()


__all__ = [
    "Database",
    "BaseRepository",
    "CredentialCipher",
    "CredentialRecord",
    "CredentialRepository",
    "OAuthStateRepository",
    "PostRepository",
    "SettingsRepository",
    "UserRepository",
    "WorkflowRepository",
]
