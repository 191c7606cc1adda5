"""
Post Tweets job.

Generates content from the configured prompt and posts it as a single tweet
or as a thread of threadLength parts.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from flowmate.worker.settings import POST_JOB, PostJobSettings, load_job_settings
from .base import JobBase

logger = logging.getLogger("flowmate.worker")

DEFAULT_POST_SYSTEM_PROMPT = "You write engaging, informative tweets. No hashtags unless asked."


def post_workflow(settings: PostJobSettings) -> Dict[str, Any]:
    system = settings.system_prompt or DEFAULT_POST_SYSTEM_PROMPT
    if settings.is_thread:
        instruction = (
            f"Write a thread of exactly {settings.thread_length} tweets. Number them 1/, 2/, ... "
            "and separate them with a blank line. Each tweet must be under 280 characters."
        )
        return {
            "steps": [
                {
                    "id": "generate",
                    "module": "ai.text.generate",
                    "inputs": {"system": system, "prompt": "{{ input.prompt }}\n\n" + instruction},
                },
                {
                    "id": "split",
                    "module": "utilities.text.split_thread",
                    "inputs": {"text": "{{ steps.generate.text }}", "max_parts": settings.thread_length},
                },
                {
                    "id": "post",
                    "module": "social.twitter.post_thread",
                    "inputs": {"parts": "{{ steps.split.parts }}"},
                },
            ]
        }
    return {
        "steps": [
            {
                "id": "generate",
                "module": "ai.text.generate",
                "inputs": {
                    "system": system,
                    "prompt": "{{ input.prompt }}\n\nWrite a single tweet under 280 characters.",
                },
            },
            {
                "id": "post",
                "module": "social.twitter.post_tweet",
                "inputs": {"text": "{{ steps.generate.text }}"},
            },
        ]
    }


class PostTweetsJob(JobBase):
    @property
    def name(self) -> str:
        return POST_JOB

    def run(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        settings = PostJobSettings.resolve(load_job_settings(self.db.settings_repo, self.name), params)

        if not settings.prompt:
            return self._skip("prompt not configured - set it in the job settings or TWITTER_POST_PROMPT")
        if not settings.user_id:
            return self._skip("no job user configured - set userId or FLOWMATE_JOB_USER_ID")

        logger.info(
            f"[JOB] {self.name}: generating {'thread' if settings.is_thread else 'tweet'} "
            f"(length={settings.thread_length}, dry_run={settings.dry_run})"
        )
        self._ensure_fresh_token(settings.user_id)

        result = self.executor.execute(
            post_workflow(settings),
            settings.user_id,
            dry_run=settings.dry_run,
            context={"prompt": settings.prompt},
        )
        if result.error:
            logger.error(f"[JOB] {self.name}: run failed: {result.error.get('message')}")
            return {"job": self.name, "status": "failed", "error": result.error, "run_id": result.run_id}

        outputs = result.outputs
        status = "dry_run" if settings.dry_run else "posted"
        if settings.is_thread:
            parts = outputs["split"]["parts"]
            external_id = outputs["post"]["first_id"]
            content = "\n\n".join(parts)
        else:
            external_id = outputs["post"]["id"]
            content = outputs["post"]["text"]

        post_id = self.db.post_repo.record_post(content=content, external_id=external_id, status=status)
        logger.info(f"[JOB] {self.name}: {status} {external_id}")
        return {
            "job": self.name,
            "status": "completed",
            "dry_run": settings.dry_run,
            "post_id": post_id,
            "external_id": external_id,
            "run_id": result.run_id,
        }
