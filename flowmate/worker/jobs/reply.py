"""
Reply to Tweets job.

Searches for posts matching the configured query, picks the hottest and
newest eligible one, generates a reply with the configured system prompt and
posts it.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from flowmate.worker.ranking import EngagementCandidate, NoEligibleCandidate, RankingFilters, rank
from flowmate.worker.settings import REPLY_JOB, ReplyJobSettings, load_job_settings
from .base import JobBase

logger = logging.getLogger("flowmate.worker")

DEFAULT_REPLY_SYSTEM_PROMPT = (
    "You reply to tweets. Write one short, friendly, relevant reply under 280 characters. "
    "No hashtags, no quotation marks."
)


def search_workflow(query: str, max_results: int) -> Dict[str, Any]:
    return {
        "steps": [
            {
                "id": "search",
                "module": "social.twitter.search_recent",
                "inputs": {"query": query, "max_results": max_results},
            }
        ]
    }


def reply_workflow(system_prompt: str) -> Dict[str, Any]:
    return {
        "steps": [
            {
                "id": "generate",
                "module": "ai.text.generate",
                "inputs": {
                    "system": system_prompt,
                    "prompt": "Write a reply to this tweet:\n\n{{ input.tweet_text }}",
                },
            },
            {
                "id": "reply",
                "module": "social.twitter.post_tweet",
                "inputs": {
                    "text": "{{ steps.generate.text }}",
                    "in_reply_to": "{{ input.tweet_id }}",
                },
            },
        ]
    }


class ReplyToTweetsJob(JobBase):
    @property
    def name(self) -> str:
        return REPLY_JOB

    def run(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        settings = ReplyJobSettings.resolve(load_job_settings(self.db.settings_repo, self.name), params)

        if not settings.search_query:
            return self._skip(
                "search query not configured - set it in the job settings or TWITTER_REPLY_SEARCH_QUERY"
            )
        if not settings.user_id:
            return self._skip("no job user configured - set userId or FLOWMATE_JOB_USER_ID")

        logger.info(f"[JOB] {self.name}: searching for '{settings.search_query}'")
        self._ensure_fresh_token(settings.user_id)

        search = self.executor.execute(
            search_workflow(settings.search_query, settings.max_results), settings.user_id
        )
        if search.error:
            logger.error(f"[JOB] {self.name}: search failed: {search.error.get('message')}")
            return {"job": self.name, "status": "failed", "stage": "search", "error": search.error}

        posts = search.outputs.get("search", {}).get("posts", [])
        filters = RankingFilters(
            minimum_likes=settings.minimum_likes,
            minimum_retweets=settings.minimum_retweets,
            search_from_today=settings.search_from_today,
            remove_links=settings.remove_links,
            remove_media=settings.remove_media,
        )
        selected = rank([EngagementCandidate.from_post(p) for p in posts], filters)

        if isinstance(selected, NoEligibleCandidate):
            logger.info(f"[JOB] {self.name}: no eligible post among {selected.considered}")
            return {"job": self.name, "status": "no_candidate", "considered": selected.considered}

        logger.info(
            f"[JOB] {self.name}: selected {selected.id} "
            f"(score={selected.score}, likes={selected.likes}, retweets={selected.retweets})"
        )
        result = self.executor.execute(
            reply_workflow(settings.system_prompt or DEFAULT_REPLY_SYSTEM_PROMPT),
            settings.user_id,
            dry_run=settings.dry_run,
            context={"tweet_id": selected.id, "tweet_text": selected.text},
        )
        if result.error:
            logger.error(f"[JOB] {self.name}: reply failed: {result.error.get('message')}")
            return {
                "job": self.name,
                "status": "failed",
                "stage": "reply",
                "selected": selected.id,
                "error": result.error,
            }

        reply = result.outputs["reply"]
        self.db.post_repo.record_post(
            content=reply.get("text", ""),
            external_id=reply.get("id"),
            status="dry_run" if settings.dry_run else "posted",
            in_reply_to=selected.id,
        )
        logger.info(f"[JOB] {self.name}: replied to {selected.id} with {reply.get('id')}")
        return {
            "job": self.name,
            "status": "completed",
            "dry_run": settings.dry_run,
            "selected": selected.id,
            "reply_id": reply.get("id"),
            "run_id": result.run_id,
        }
