"""
Job settings routes.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from flowmate.worker.jobs import JOBS
from flowmate.worker.settings import JOB_USER_KEY, load_job_settings
from ..dependencies import get_current_user_id, get_db

logger = logging.getLogger("flowmate.api")

router = APIRouter(prefix="/settings", tags=["settings"])


def _require_job(job_name: str) -> None:
    if job_name not in JOBS:
        raise HTTPException(status_code=404, detail=f"Unknown job '{job_name}'")


@router.get("/{job_name}")
async def get_job_settings(
    job_name: str,
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    _require_job(job_name)
    return {"job": job_name, "settings": load_job_settings(db.settings_repo, job_name)}


@router.put("/{job_name}")
async def update_job_settings(
    job_name: str,
    settings: Dict[str, Any] = Body(...),
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Merge the given keys into the job's stored settings."""
    _require_job(job_name)
    if JOB_USER_KEY in settings:
        raise HTTPException(
            status_code=400,
            detail=f"'{JOB_USER_KEY}' is not a stored setting; set FLOWMATE_JOB_USER_ID instead",
        )
    db.settings_repo.set_job_settings(job_name, settings)
    logger.info(f"[SETTINGS] {job_name} updated by {user_id}: {', '.join(sorted(settings))}")
    return {"job": job_name, "settings": load_job_settings(db.settings_repo, job_name)}
