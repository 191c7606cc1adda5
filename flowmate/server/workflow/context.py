"""
Step Execution Context

Context handed to a module for one invocation. It carries the credentials
resolved for that step only; nothing in it outlives the step.
"""

import logging
from typing import Any, Dict, Optional


class StepContext:
    """
    Minimal execution context for modules.

    Attributes:
        run_id: Id of the run this step belongs to
        user_id: User the run executes for
        step_id / step_index: Position of the step in the workflow
        platform: Credential platform resolved for the step, if any
        credentials: Fields resolved for the step's platform ({} if none)
        dry_run: True when side effects are suppressed
        run_context: Values the run was started with (exposed as ``input``)
        services: Optional shared services (e.g. an injected requests.Session)
    """

    def __init__(
        self,
        run_id: str,
        user_id: Optional[str],
        step_id: str,
        step_index: int,
        platform: Optional[str] = None,
        credentials: Optional[Dict[str, Any]] = None,
        dry_run: bool = False,
        run_context: Optional[Dict[str, Any]] = None,
        services: Optional[Dict[str, Any]] = None,
        logger: logging.Logger = None,
    ):
        self.run_id = run_id
        self.user_id = user_id
        self.step_id = step_id
        self.step_index = step_index
        self.platform = platform
        self.credentials = credentials or {}
        self.dry_run = dry_run
        self.run_context = run_context or {}
        self.services = services or {}
        self.logger = logger or logging.getLogger("flowmate.executor")

    def get_service(self, name: str) -> Any:
        if name not in self.services:
            raise KeyError(f"Service '{name}' not found")
        return self.services[name]

    def require_credential(self, key: str) -> Any:
        """Credential field the module cannot run without."""
        value = self.credentials.get(key)
        if value in (None, ""):
            raise KeyError(f"Credential field '{key}' not available for step '{self.step_id}'")
        return value
