"""
On-demand job runs.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from flowmate.server.models import RunJobRequest
from flowmate.worker.jobs import JOBS, build_job
from flowmate.worker.settings import JOB_USER_KEY
from ..dependencies import get_current_user_id, get_services

logger = logging.getLogger("flowmate.api")

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/{job_name}/run")
async def run_job(
    job_name: str,
    request: RunJobRequest,
    services=Depends(get_services),
    user_id: str = Depends(get_current_user_id),
):
    """
    Run a scheduled job now with call-time parameters.

    The job always acts on the caller's credentials; a userId naming
    anyone else is refused.
    """
    if job_name not in JOBS:
        raise HTTPException(status_code=404, detail=f"Unknown job '{job_name}'")

    params = dict(request.params)
    requested = params.get(JOB_USER_KEY)
    if requested is not None and requested != user_id:
        logger.warning(f"[JOB] {user_id} tried to run {job_name} as {requested}")
        raise HTTPException(status_code=403, detail="Jobs can only run as the calling user")
    params[JOB_USER_KEY] = user_id
    job = build_job(job_name, services.db, services.executor, services.oauth)

    logger.info(f"[JOB] {job_name} triggered via API by {user_id}")
    return await asyncio.to_thread(job.run, params)
