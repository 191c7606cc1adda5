"""
Engagement Ranker

Picks the single post to act on from a candidate list: filter by the
configured predicates, score the eligible ones, take the top.

Score is ``likes + 2 * retweets`` (a retweet spreads a post further than a
like). Ties go to the newest post, then to the lowest id so identical inputs
always give the same answer.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union

RETWEET_WEIGHT = 2


@dataclass
class RankingFilters:
    """Filter predicates; a None threshold is vacuously satisfied."""

    minimum_likes: Optional[int] = None
    minimum_retweets: Optional[int] = None
    search_from_today: bool = False
    remove_links: bool = False
    remove_media: bool = False

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "RankingFilters":
        return cls(
            minimum_likes=params.get("minimumLikesCount"),
            minimum_retweets=params.get("minimumRetweetsCount"),
            search_from_today=bool(params.get("searchFromToday")),
            remove_links=bool(params.get("removePostsWithLinks")),
            remove_media=bool(params.get("removePostsWithMedia")),
        )


@dataclass
class EngagementCandidate:
    id: str
    likes: int
    retweets: int
    timestamp: datetime
    has_links: bool = False
    has_media: bool = False
    text: str = ""
    score: int = 0
    eligible: bool = False

    @classmethod
    def from_post(cls, post: Mapping[str, Any]) -> "EngagementCandidate":
        """Build from a normalized post (social.twitter.search_recent output)."""
        return cls(
            id=str(post["id"]),
            likes=int(post.get("likes") or 0),
            retweets=int(post.get("retweets") or 0),
            timestamp=parse_timestamp(post.get("created_at")),
            has_links=bool(post.get("has_links")),
            has_media=bool(post.get("has_media")),
            text=post.get("text", ""),
        )


@dataclass
class NoEligibleCandidate:
    """Nothing passed the filters. A normal outcome, not an error."""

    considered: int
    reason: str = "no candidate passed the filters"


RankResult = Union[EngagementCandidate, NoEligibleCandidate]


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into aware UTC."""
    if isinstance(value, datetime):
        dt = value
    elif value:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    else:
        dt = datetime.fromtimestamp(0, tz=timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def engagement_score(likes: int, retweets: int) -> int:
    return likes + RETWEET_WEIGHT * retweets


def is_eligible(candidate: EngagementCandidate, filters: RankingFilters, now: datetime) -> bool:
    if filters.minimum_likes is not None and candidate.likes < filters.minimum_likes:
        return False
    if filters.minimum_retweets is not None and candidate.retweets < filters.minimum_retweets:
        return False
    if filters.search_from_today and candidate.timestamp.date() != now.date():
        return False
    if filters.remove_links and candidate.has_links:
        return False
    if filters.remove_media and candidate.has_media:
        return False
    return True


def rank(
    candidates: Iterable[EngagementCandidate],
    filters: Optional[RankingFilters] = None,
    now: Optional[datetime] = None,
) -> RankResult:
    """
    Select the hottest, then newest, eligible candidate.

    Args:
        candidates: Candidates to consider (score/eligible are filled in)
        filters: Predicates; default filters accept everything
        now: Reference time for "today" (UTC calendar day); defaults to now

    Returns:
        The winning EngagementCandidate, or NoEligibleCandidate
    """
    filters = filters or RankingFilters()
    now = parse_timestamp(now or datetime.now(timezone.utc))

    candidates = list(candidates)
    eligible: List[EngagementCandidate] = []
    for candidate in candidates:
        candidate.score = engagement_score(candidate.likes, candidate.retweets)
        candidate.eligible = is_eligible(candidate, filters, now)
        if candidate.eligible:
            eligible.append(candidate)

    if not eligible:
        return NoEligibleCandidate(considered=len(candidates))

    # Stable sorts, least significant key first
    eligible.sort(key=lambda c: c.id)
    eligible.sort(key=lambda c: (c.score, c.timestamp), reverse=True)
    return eligible[0]
