"""
Scheduled Jobs
"""

from typing import Dict, Type

from flowmate.server.errors import NotFound
from .base import JobBase
from .post import PostTweetsJob
from .reply import ReplyToTweetsJob

JOBS: Dict[str, Type[JobBase]] = {
    "reply-to-tweets": ReplyToTweetsJob,
    "post-tweets": PostTweetsJob,
}


def build_job(name: str, db, executor, oauth=None) -> JobBase:
    job_class = JOBS.get(name)
    if job_class is None:
        raise NotFound(f"Unknown job '{name}'. Available jobs: {', '.join(JOBS)}")
    return job_class(db, executor, oauth)


__all__ = ["JOBS", "JobBase", "PostTweetsJob", "ReplyToTweetsJob", "build_job"]
