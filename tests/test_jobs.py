import asyncio

import pytest

from flowmate.server.errors import NotFound
from flowmate.server.services import build_services
from flowmate.worker import loop as worker_loop
from flowmate.worker.jobs import PostTweetsJob, ReplyToTweetsJob, build_job
from flowmate.worker.loop import ScheduledJob, WorkerLoop
from flowmate.worker.settings import POST_JOB, REPLY_JOB
from flowmate.server.workflow.executor import WorkflowExecutor

from .conftest import FakeResponse

USER = "job-user"


def _tweet(id, likes=0, retweets=0, text="post", urls=False):
    tweet = {
        "id": id,
        "text": text,
        "created_at": "2026-03-10T10:00:00.000Z",
        "public_metrics": {"like_count": likes, "retweet_count": retweets},
    }
    if urls:
        tweet["entities"] = {"urls": [{"url": "https://t.co/x"}]}
    return tweet


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("TWITTER_REPLY_SEARCH_QUERY", "TWITTER_REPLY_SYSTEM_PROMPT", "TWITTER_POST_PROMPT", "FLOWMATE_JOB_USER_ID"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def job_executor(full_registry, resolver, db, http):
    return WorkflowExecutor(full_registry, resolver, workflow_repo=db.workflow_repo, services={"http_session": http})


@pytest.fixture
def connected(db, fake_provider):
    db.credential_repo.save(USER, "twitter_oauth2", fields={"access_token": "user-token"})
    db.credential_repo.save(USER, "openai", value="sk-test")


# =============================================================================
# Reply job
# =============================================================================

def test_reply_job_replies_to_best_candidate(db, job_executor, http, connected):
    db.settings_repo.set_job_settings(
        REPLY_JOB, {"searchQuery": "python", "removeLinks": True, "systemPrompt": "Be kind"}
    )
    http.add(
        "GET",
        "/tweets/search/recent",
        FakeResponse(
            200,
            {
                "data": [
                    _tweet("1", likes=3, text="quiet"),
                    _tweet("2", likes=50, text="linked", urls=True),
                    _tweet("3", likes=2, retweets=2, text="loud"),
                ]
            },
        ),
    )
    http.add("POST", "/tweets", FakeResponse(201, {"data": {"id": "900", "text": "generated"}}))

    summary = ReplyToTweetsJob(db, job_executor).run({"userId": USER})

    assert summary["status"] == "completed"
    assert summary["selected"] == "3"
    assert summary["reply_id"] == "900"

    post_call = [c for c in http.calls if c["method"] == "POST"][0]
    assert post_call["json"]["reply"] == {"in_reply_to_tweet_id": "3"}
    assert post_call["json"]["text"].startswith("generated: Write a reply to this tweet")

    posts = db.post_repo.list_posts(10)
    assert posts[0]["in_reply_to"] == "3"
    assert posts[0]["external_id"] == "900"
    assert posts[0]["status"] == "posted"


def test_reply_job_skips_without_query(db, job_executor):
    summary = ReplyToTweetsJob(db, job_executor).run({"userId": USER})
    assert summary["status"] == "skipped"
    assert "search query" in summary["reason"]


def test_reply_job_skips_without_user(db, job_executor):
    summary = ReplyToTweetsJob(db, job_executor).run({"searchQuery": "python"})
    assert summary["status"] == "skipped"


def test_reply_job_reports_no_candidate(db, job_executor, http, connected):
    http.add("GET", "/tweets/search/recent", FakeResponse(200, {"data": [_tweet("1", likes=1)]}))
    summary = ReplyToTweetsJob(db, job_executor).run(
        {"userId": USER, "searchQuery": "python", "minimumLikesCount": 10}
    )
    assert summary == {"job": REPLY_JOB, "status": "no_candidate", "considered": 1}
    assert db.post_repo.list_posts(10) == []


def test_reply_job_reports_search_failure(db, job_executor, http, connected):
    http.add("GET", "/tweets/search/recent", FakeResponse(429, {"title": "Too Many Requests"}))
    summary = ReplyToTweetsJob(db, job_executor).run({"userId": USER, "searchQuery": "python"})
    assert summary["status"] == "failed"
    assert summary["stage"] == "search"


# =============================================================================
# Post job
# =============================================================================

def test_post_job_dry_run_thread_is_recorded(db, job_executor, http, connected):
    db.settings_repo.set_job_settings(POST_JOB, {"prompt": "Write about tea", "threadLength": 2})
    summary = PostTweetsJob(db, job_executor).run({"userId": USER, "dryRun": True})

    assert summary["status"] == "completed"
    assert summary["dry_run"] is True
    assert summary["external_id"].startswith("dry-run-")
    assert http.calls == []

    post = db.post_repo.list_posts(10)[0]
    assert post["post_id"] == summary["post_id"]
    assert post["status"] == "dry_run"
    assert post["content"].startswith("generated: Write about tea")


def test_post_job_single_tweet(db, job_executor, http, connected):
    http.add("POST", "/tweets", FakeResponse(201, {"data": {"id": "77", "text": "hello"}}))
    summary = PostTweetsJob(db, job_executor).run({"userId": USER, "prompt": "Say hi", "isThread": False})
    assert summary["status"] == "completed"
    assert summary["external_id"] == "77"
    assert db.post_repo.list_posts(10)[0]["status"] == "posted"


def test_post_job_failure_is_reported_not_raised(db, job_executor, fake_provider):
    summary = PostTweetsJob(db, job_executor).run({"userId": USER, "prompt": "Say hi"})
    assert summary["status"] == "failed"
    assert summary["error"]["code"] == "credential_missing"


# =============================================================================
# Registry and worker loop
# =============================================================================

def test_build_job_unknown_name(db, job_executor):
    with pytest.raises(NotFound):
        build_job("nope", db, job_executor)
    assert isinstance(build_job(POST_JOB, db, job_executor), PostTweetsJob)


def test_worker_runs_job_through_services(db, full_registry, http, connected):
    services = build_services(db, registry=full_registry, http=http)
    summary = WorkerLoop(services, schedule=[]).run_job(POST_JOB, {"userId": USER, "prompt": "Tea", "dryRun": True})
    assert summary["status"] == "completed"


def test_worker_loop_survives_a_crashing_job(db, full_registry, http, monkeypatch):
    monkeypatch.setattr(worker_loop, "TICK_INTERVAL", 0)
    worker = WorkerLoop(
        build_services(db, registry=full_registry, http=http),
        schedule=[ScheduledJob("crashy", 0), ScheduledJob("last", 0)],
    )
    ran = []

    def fake_run_job(name, params=None):
        ran.append(name)
        if name == "crashy":
            raise RuntimeError("job blew up")
        worker.stop()
        return {"status": "completed"}

    monkeypatch.setattr(worker, "run_job", fake_run_job)
    asyncio.run(worker.run())
    assert ran == ["crashy", "last"]
