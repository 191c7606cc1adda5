"""
Twitter Modules - search recent posts, post a tweet, post a thread.

All three authenticate with the user's connected OAuth2 account
(platform 'twitter_oauth2').
"""

from typing import Any, Dict, List

from flowmate.server.engine.module_interface import (
    ExecutableModule, ModuleExecutionError, ModuleInput, ModuleOutput
)
from flowmate.server.utils import uuid7_str
from .twitter_client import TwitterClient


class _TwitterModule(ExecutableModule):
    platform = "twitter_oauth2"

    def _client(self, context) -> TwitterClient:
        return TwitterClient(
            self.module_id,
            context.require_credential("access_token"),
            http=context.services.get("http_session"),
        )


class SearchRecentModule(_TwitterModule):
    """
    Search posts from the last seven days.

    Outputs:
        - posts: [{id, text, author_id, created_at, likes, retweets, has_links, has_media}]
        - count: Number of posts
    """

    @property
    def module_id(self) -> str:
        return "social.twitter.search_recent"

    @property
    def description(self) -> str:
        return "Search recent Twitter posts matching a query"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="query", type="string", description="Twitter search query"),
            ModuleInput(name="max_results", type="number", required=False, default=10,
                        description="Posts to fetch (10-100)"),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="posts", type="array"),
            ModuleOutput(name="count", type="number"),
        ]

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        query = inputs["query"]
        posts = self._client(context).search_recent(query, self.get_input_value(inputs, "max_results"))
        context.logger.info(f"[social.twitter.search_recent] {len(posts)} posts for '{query}'")
        return {"posts": posts, "count": len(posts)}


class PostTweetModule(_TwitterModule):
    """Post a single tweet, optionally as a reply."""

    side_effects = True

    @property
    def module_id(self) -> str:
        return "social.twitter.post_tweet"

    @property
    def description(self) -> str:
        return "Post a tweet, optionally as a reply to another post"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="text", type="string", description="Tweet text"),
            ModuleInput(name="in_reply_to", type="string", required=False,
                        description="Id of the post to reply to"),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="id", type="string", description="Posted tweet id"),
            ModuleOutput(name="text", type="string"),
        ]

    def get_mock_output(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return {"id": f"dry-run-{uuid7_str()}", "text": inputs.get("text", "")}

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        text = str(inputs["text"]).strip()
        if not text:
            raise ModuleExecutionError(self.module_id, "Tweet text is empty")
        result = self._client(context).post(text, self.get_input_value(inputs, "in_reply_to"))
        context.logger.info(f"[social.twitter.post_tweet] Posted {result['id']}")
        return result


class PostThreadModule(_TwitterModule):
    """Post a list of texts as a thread, each replying to the previous one."""

    side_effects = True

    @property
    def module_id(self) -> str:
        return "social.twitter.post_thread"

    @property
    def description(self) -> str:
        return "Post a thread of tweets, each replying to the previous"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="parts", type="array", description="Tweet texts in order"),
            ModuleInput(name="in_reply_to", type="string", required=False),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="ids", type="array", description="Posted tweet ids in order"),
            ModuleOutput(name="first_id", type="string"),
            ModuleOutput(name="count", type="number"),
        ]

    def get_mock_output(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        ids = [f"dry-run-{uuid7_str()}" for _ in inputs.get("parts") or []]
        return {"ids": ids, "first_id": ids[0] if ids else None, "count": len(ids)}

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        parts = [str(p).strip() for p in inputs["parts"] if str(p).strip()]
        if not parts:
            raise ModuleExecutionError(self.module_id, "Thread has no parts")

        client = self._client(context)
        ids: List[str] = []
        reply_to = self.get_input_value(inputs, "in_reply_to")
        for text in parts:
            try:
                posted = client.post(text, reply_to)
            except ModuleExecutionError as e:
                raise ModuleExecutionError(
                    self.module_id,
                    f"posted {len(ids)} of {len(parts)} parts before failing: {e}",
                    original_error=e,
                )
            ids.append(posted["id"])
            reply_to = posted["id"]

        context.logger.info(f"[social.twitter.post_thread] Posted {len(ids)} parts, first {ids[0]}")
        return {"ids": ids, "first_id": ids[0], "count": len(ids)}
