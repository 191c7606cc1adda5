"""
Workflow Repository - Stored workflow configurations and run summaries.
"""

from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from flowmate.db.base import BaseRepository
from flowmate.db.utils import utcnow
from flowmate.server.utils import uuid7_str


class WorkflowRepository(BaseRepository):
    """
    Repository for workflows and their runs.

    Collections:
    - workflows: {workflow_id, user_id, name, description, config, created_at, updated_at}
    - workflow_runs: one summary document per executed run
    """

    def __init__(self, db: Database):
        super().__init__(db)
        self.workflows: Collection = db.workflows
        self.workflow_runs: Collection = db.workflow_runs

    # =========================================================================
    # Workflows
    # =========================================================================

    def create_workflow(
        self,
        user_id: str,
        name: str,
        config: Dict[str, Any],
        description: str = "",
    ) -> str:
        """
        Store a new workflow.

        Returns:
            workflow_id
        """
        workflow_id = f"wf_{uuid7_str()}"
        now = utcnow()
        self.workflows.insert_one(
            {
                "workflow_id": workflow_id,
                "user_id": user_id,
                "name": name,
                "description": description,
                "config": config,
                "created_at": now,
                "updated_at": now,
            }
        )
        return workflow_id

    def get_workflow(self, workflow_id: str) -> Optional[Dict[str, Any]]:
        return self.workflows.find_one({"workflow_id": workflow_id}, {"_id": 0})

    def list_workflows(self, user_id: str) -> List[Dict[str, Any]]:
        cursor = self.workflows.find({"user_id": user_id}, {"_id": 0}).sort("created_at", DESCENDING)
        return list(cursor)

    # =========================================================================
    # Runs
    # =========================================================================

    def record_run(self, run: Dict[str, Any]) -> str:
        """
        Store a run summary.

        Args:
            run: RunResult dump (status, steps, failed_step, ...)

        Returns:
            run_id
        """
        run_id = run.get("run_id") or f"run_{uuid7_str()}"
        self.workflow_runs.insert_one({**run, "run_id": run_id, "created_at": utcnow()})
        return run_id

    def list_runs(self, workflow_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        cursor = (
            self.workflow_runs.find({"workflow_id": workflow_id}, {"_id": 0})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return list(cursor)
