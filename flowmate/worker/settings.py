"""
Job Settings Loader

Jobs are configured through flat ``app_settings`` rows keyed
``{job_name}_{setting_key}``. load_job_settings() materializes the mapping for
one job; ReplyJobSettings / PostJobSettings turn it into typed settings with
an explicit fallback chain per field:

    call-time parameter > stored setting > environment > default

except the job user, which is call-time parameter > FLOWMATE_JOB_USER_ID.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger("flowmate.worker")

REPLY_JOB = "reply-to-tweets"
POST_JOB = "post-tweets"

# Credential owner of a run. Only ever taken from call-time params or the
# environment; a stored value is ignored.
JOB_USER_KEY = "userId"


def load_job_settings(settings_repo, job_name: str) -> Dict[str, Any]:
    """
    Read every settings row and return the job's settings.

    Keys are filtered by the ``{job_name}_`` prefix, which is stripped. Each
    value is JSON-decoded; values that are not valid JSON are kept as the raw
    string. A failing settings store is logged and yields {}.
    """
    prefix = f"{job_name}_"
    try:
        rows = settings_repo.list_all()
    except Exception as e:
        logger.error(f"[JOB] Failed to load settings for '{job_name}': {e}")
        return {}

    settings: Dict[str, Any] = {}
    for row in rows:
        key = row.get("key") or ""
        if not key.startswith(prefix):
            continue
        value = row.get("value")
        try:
            settings[key[len(prefix):]] = json.loads(value)
        except (TypeError, ValueError):
            settings[key[len(prefix):]] = value
    return settings


def _first(*candidates: Any) -> Any:
    """First candidate that is not None or an empty string."""
    for candidate in candidates:
        if candidate is not None and candidate != "":
            return candidate
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        return None
    return bool(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _env(name: str, environ: Mapping[str, str]) -> Optional[str]:
    return environ.get(name) or None


@dataclass
class ReplyJobSettings:
    """Settings for the reply-to-tweets job."""

    search_query: Optional[str] = None
    system_prompt: Optional[str] = None
    minimum_likes: Optional[int] = None
    minimum_retweets: Optional[int] = None
    search_from_today: bool = False
    remove_links: bool = False
    remove_media: bool = False
    max_results: int = 50
    dry_run: bool = False
    user_id: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        stored: Mapping[str, Any],
        params: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ReplyJobSettings":
        """
        Build settings from call-time params, stored settings and environment.

        Call-time params use the ranking parameter names
        (minimumLikesCount, removePostsWithLinks, ...); stored settings use
        the settings-page names (minimumLikes, removeLinks, ...). Both
        spellings are accepted from either source.
        """
        params = params or {}
        environ = os.environ if environ is None else environ

        def pick(*keys: str) -> Any:
            return _first(
                _first(*(params.get(k) for k in keys)),
                _first(*(stored.get(k) for k in keys)),
            )

        return cls(
            search_query=_first(pick("searchQuery"), _env("TWITTER_REPLY_SEARCH_QUERY", environ)),
            system_prompt=_first(
                pick("systemPrompt", "prompt"), _env("TWITTER_REPLY_SYSTEM_PROMPT", environ)
            ),
            minimum_likes=_as_int(pick("minimumLikesCount", "minimumLikes")),
            minimum_retweets=_as_int(pick("minimumRetweetsCount", "minimumRetweets")),
            search_from_today=bool(_as_bool(pick("searchFromToday"))),
            remove_links=bool(_as_bool(pick("removePostsWithLinks", "removeLinks"))),
            remove_media=bool(_as_bool(pick("removePostsWithMedia", "removeMedia"))),
            max_results=_as_int(pick("maxResults")) or cls.max_results,
            dry_run=bool(_as_bool(pick("dryRun"))),
            user_id=_first(params.get(JOB_USER_KEY), _env("FLOWMATE_JOB_USER_ID", environ)),
        )


@dataclass
class PostJobSettings:
    """Settings for the post-tweets job."""

    prompt: Optional[str] = None
    system_prompt: Optional[str] = None
    is_thread: bool = True
    thread_length: int = 3
    dry_run: bool = False
    user_id: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        stored: Mapping[str, Any],
        params: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "PostJobSettings":
        params = params or {}
        environ = os.environ if environ is None else environ

        def pick(key: str) -> Any:
            return _first(params.get(key), stored.get(key))

        is_thread = _as_bool(pick("isThread"))
        thread_length = _as_int(pick("threadLength"))
        return cls(
            prompt=_first(pick("prompt"), _env("TWITTER_POST_PROMPT", environ)),
            system_prompt=pick("systemPrompt"),
            is_thread=cls.is_thread if is_thread is None else is_thread,
            thread_length=thread_length if thread_length and thread_length > 0 else cls.thread_length,
            dry_run=bool(_as_bool(pick("dryRun"))),
            user_id=_first(params.get(JOB_USER_KEY), _env("FLOWMATE_JOB_USER_ID", environ)),
        )
