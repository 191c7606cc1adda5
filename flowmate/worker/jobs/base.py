"""
Job Base Class - Abstract interface for scheduled jobs.

A job loads its settings, builds a workflow config and runs it through the
workflow executor as the configured job user. run() returns a summary dict
and never raises for expected outcomes (unconfigured, nothing to do, failed
run); those are logged and reported in the summary.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from flowmate.server.errors import FlowmateError
from flowmate.server.workflow.executor import WorkflowExecutor

logger = logging.getLogger("flowmate.worker")


class JobBase(ABC):
    """
    Base class for scheduled jobs.

    Args:
        db: Database (settings, credentials, posts)
        executor: WorkflowExecutor
        oauth: Optional OAuthLifecycle used to refresh expired user tokens
    """

    def __init__(self, db, executor: WorkflowExecutor, oauth=None):
        self.db = db
        self.executor = executor
        self.oauth = oauth

    @property
    @abstractmethod
    def name(self) -> str:
        """Job name; also the settings key prefix."""
        pass

    @abstractmethod
    def run(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run the job once with optional call-time parameters."""
        pass

    def _skip(self, reason: str) -> Dict[str, Any]:
        logger.warning(f"[JOB] {self.name} skipped: {reason}")
        return {"job": self.name, "status": "skipped", "reason": reason}

    def _ensure_fresh_token(self, user_id: str, provider: str = "twitter") -> None:
        """Refresh the user's OAuth access token if it has expired."""
        if self.oauth is None:
            return
        stored = self.db.credential_repo.get(user_id, f"{provider}_oauth2")
        if stored is None or not self.oauth.token_expired(stored.fields):
            return
        try:
            self.oauth.refresh_access_token(user_id, provider)
        except FlowmateError as e:
            # The run still goes ahead; the step fails with the provider's error
            logger.error(f"[JOB] {self.name}: token refresh failed for {user_id}: {e}")
