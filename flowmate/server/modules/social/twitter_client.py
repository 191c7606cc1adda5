"""
Twitter API v2 client used by the social.twitter modules.

Requests go through ``requests`` (or an injected session with the same
interface) with a bearer user-access token. HTTP and transport failures are
raised as ModuleExecutionError so the executor reports them as step failures.
"""

from typing import Any, Dict, List, Optional

import requests

from flowmate.server.engine.module_interface import ModuleExecutionError

API_BASE = "https://api.twitter.com/2"
TWEET_FIELDS = "created_at,public_metrics,entities,attachments,author_id"
DEFAULT_TIMEOUT = 30


class TwitterClient:
    def __init__(self, module_id: str, access_token: str, http=None, timeout: int = DEFAULT_TIMEOUT):
        self.module_id = module_id
        self.access_token = access_token
        self.http = http or requests
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{API_BASE}{path}"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            response = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.Timeout:
            raise ModuleExecutionError(self.module_id, f"Twitter API timed out after {self.timeout}s: {path}")
        except requests.RequestException as e:
            raise ModuleExecutionError(self.module_id, f"Twitter API request failed: {path} - {e}")

        try:
            data = response.json()
        except ValueError:
            data = {"text": response.text[:200]}

        if not 200 <= response.status_code < 300:
            detail = data.get("detail") or data.get("title") or data.get("text") or ""
            raise ModuleExecutionError(
                self.module_id, f"Twitter API error ({response.status_code}): {detail}"
            )
        return data

    def search_recent(self, query: str, max_results: int = 10) -> List[Dict[str, Any]]:
        """Recent posts matching ``query``, normalized for ranking."""
        data = self._request(
            "GET",
            "/tweets/search/recent",
            params={
                "query": query,
                "max_results": max(10, min(int(max_results), 100)),
                "tweet.fields": TWEET_FIELDS,
            },
        )
        return [normalize_tweet(t) for t in data.get("data", [])]

    def post(self, text: str, in_reply_to: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"text": text}
        if in_reply_to:
            body["reply"] = {"in_reply_to_tweet_id": str(in_reply_to)}
        data = self._request("POST", "/tweets", json=body)
        tweet = data.get("data") or {}
        if "id" not in tweet:
            raise ModuleExecutionError(self.module_id, "Twitter API response did not include a tweet id")
        return {"id": tweet["id"], "text": tweet.get("text", text)}


def normalize_tweet(tweet: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a v2 tweet into the fields the ranker reads."""
    metrics = tweet.get("public_metrics") or {}
    entities = tweet.get("entities") or {}
    attachments = tweet.get("attachments") or {}
    return {
        "id": tweet.get("id"),
        "text": tweet.get("text", ""),
        "author_id": tweet.get("author_id"),
        "created_at": tweet.get("created_at"),
        "likes": metrics.get("like_count", 0),
        "retweets": metrics.get("retweet_count", 0),
        "has_links": bool(entities.get("urls")),
        "has_media": bool(attachments.get("media_keys")),
    }
