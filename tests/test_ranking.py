from datetime import datetime, timezone

from flowmate.worker.ranking import (
    EngagementCandidate,
    NoEligibleCandidate,
    RankingFilters,
    engagement_score,
    parse_timestamp,
    rank,
)

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)


def _candidate(id, likes=0, retweets=0, ts="2026-03-10T12:00:00Z", links=False, media=False):
    return EngagementCandidate(
        id=id,
        likes=likes,
        retweets=retweets,
        timestamp=parse_timestamp(ts),
        has_links=links,
        has_media=media,
    )


def test_highest_score_wins():
    winner = rank([_candidate("a", likes=10), _candidate("b", likes=3, retweets=5)], now=NOW)
    assert winner.id == "b"
    assert winner.score == 13
    assert winner.eligible


def test_score_is_monotonic_in_likes_and_retweets():
    assert engagement_score(5, 1) > engagement_score(4, 1)
    assert engagement_score(5, 2) > engagement_score(5, 1)


def test_tie_goes_to_newer_candidate():
    older = _candidate("old", likes=4, ts="2026-03-10T08:00:00Z")
    newer = _candidate("new", likes=4, ts="2026-03-10T09:00:00Z")
    assert rank([older, newer], now=NOW).id == "new"
    assert rank([newer, older], now=NOW).id == "new"


def test_full_tie_is_deterministic():
    first = rank([_candidate("b", likes=1), _candidate("a", likes=1)], now=NOW)
    second = rank([_candidate("a", likes=1), _candidate("b", likes=1)], now=NOW)
    assert first.id == second.id == "a"


def test_minimum_thresholds_exclude_candidates():
    filters = RankingFilters(minimum_likes=5, minimum_retweets=1)
    winner = rank(
        [_candidate("loud", likes=100), _candidate("ok", likes=5, retweets=1)],
        filters,
        now=NOW,
    )
    assert winner.id == "ok"


def test_today_links_and_media_filters():
    filters = RankingFilters(search_from_today=True, remove_links=True, remove_media=True)
    candidates = [
        _candidate("yesterday", likes=50, ts="2026-03-09T23:59:00Z"),
        _candidate("link", likes=40, links=True),
        _candidate("media", likes=30, media=True),
        _candidate("plain", likes=1),
    ]
    assert rank(candidates, filters, now=NOW).id == "plain"


def test_no_eligible_candidate_is_a_value_not_an_error():
    result = rank([_candidate("a", likes=1)], RankingFilters(minimum_likes=10), now=NOW)
    assert isinstance(result, NoEligibleCandidate)
    assert result.considered == 1

    empty = rank([], now=NOW)
    assert isinstance(empty, NoEligibleCandidate)
    assert empty.considered == 0


def test_filters_from_params():
    filters = RankingFilters.from_params(
        {"minimumLikesCount": 3, "searchFromToday": True, "removePostsWithLinks": 1}
    )
    assert filters == RankingFilters(
        minimum_likes=3, minimum_retweets=None, search_from_today=True, remove_links=True, remove_media=False
    )


def test_candidate_from_normalized_post():
    candidate = EngagementCandidate.from_post(
        {
            "id": 42,
            "text": "hello",
            "created_at": "2026-03-10T10:00:00.000Z",
            "likes": 2,
            "retweets": 1,
            "has_links": True,
            "has_media": False,
        }
    )
    assert candidate.id == "42"
    assert candidate.timestamp == datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)
    assert candidate.has_links and not candidate.has_media
