"""
Workflow routes.

Provides endpoints for storing workflows and running them on demand.
"""

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from flowmate.server.models import CreateWorkflowRequest, RunWorkflowRequest
from ..dependencies import get_current_user_id, get_db, get_services

logger = logging.getLogger("flowmate.api")

router = APIRouter(prefix="/workflows", tags=["workflows"])


def get_owned_workflow(db, workflow_id: str, user_id: str) -> Dict[str, Any]:
    """Fetch a workflow owned by the user; anything else is a 404."""
    workflow = db.workflow_repo.get_workflow(workflow_id)
    if not workflow or workflow.get("user_id") != user_id:
        raise HTTPException(status_code=404, detail=f"Workflow '{workflow_id}' not found")
    return workflow


@router.post("", status_code=201)
async def create_workflow(
    request: CreateWorkflowRequest,
    db=Depends(get_db),
    services=Depends(get_services),
    user_id: str = Depends(get_current_user_id),
):
    """
    Store a workflow.

    Step ids are assigned and bindings checked before anything is stored, so
    a forward or unknown step reference is rejected with 400.
    """
    invalid = services.executor.find_invalid_reference(request.config)
    if invalid:
        raise HTTPException(status_code=400, detail=invalid.to_dict())

    workflow_id = db.workflow_repo.create_workflow(
        user_id,
        request.name,
        request.config.model_dump(mode="json"),
        description=request.description,
    )
    logger.info(f"[WORKFLOW] Created {workflow_id} '{request.name}' for user {user_id}")
    return {"workflow_id": workflow_id}


@router.get("")
async def list_workflows(
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    workflows = db.workflow_repo.list_workflows(user_id)
    return {"workflows": workflows, "count": len(workflows)}


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return get_owned_workflow(db, workflow_id, user_id)


@router.get("/{workflow_id}/runs")
async def list_runs(
    workflow_id: str,
    limit: int = Query(20, ge=1, le=100),
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Most recent run summaries for a workflow."""
    get_owned_workflow(db, workflow_id, user_id)
    return {"runs": db.workflow_repo.list_runs(workflow_id, limit)}


@router.post("/{workflow_id}/run")
async def run_workflow(
    workflow_id: str,
    request: RunWorkflowRequest,
    db=Depends(get_db),
    services=Depends(get_services),
    user_id: str = Depends(get_current_user_id),
):
    """
    Execute a stored workflow synchronously and return the run result.

    Step failures are reported in the result body, not as HTTP errors.
    """
    workflow = get_owned_workflow(db, workflow_id, user_id)
    logger.info(
        f"[API REQUEST] POST /workflows/{workflow_id}/run - dry_run={request.dry_run}, user_id={user_id}"
    )

    result = await asyncio.to_thread(
        services.executor.execute,
        workflow["config"],
        user_id,
        workflow_id=workflow_id,
        dry_run=request.dry_run,
        context=request.context,
        credentials=request.credentials,
    )
    return result.model_dump(mode="json")
