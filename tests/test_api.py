from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from flowmate.server.api import dependencies
from flowmate.server.api.app import app
from flowmate.server.api.auth import create_access_token
from flowmate.server.services import build_services
from flowmate.worker.settings import POST_JOB

from .conftest import FakeResponse


@pytest.fixture(autouse=True)
def app_env(monkeypatch):
    for name in ("TWITTER_CLIENT_ID", "TWITTER_CLIENT_SECRET", "OAUTH_SUCCESS_REDIRECT", "FLOWMATE_JOB_USER_ID"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def services(db, full_registry, http, monkeypatch):
    wired = build_services(db, registry=full_registry, http=http)
    monkeypatch.setattr(dependencies, "_db", db)
    monkeypatch.setattr(dependencies, "_services", wired)
    return wired


@pytest.fixture
def client(services):
    # Not used as a context manager: startup would connect to a real MongoDB
    return TestClient(app)


@pytest.fixture
def user_id(db):
    return db.user_repo.get_or_create_user("alice")


@pytest.fixture
def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


# =============================================================================
# Health and auth
# =============================================================================

def test_health_reports_database(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"


def test_protected_route_requires_auth(client):
    response = client.get("/threads")
    assert response.status_code == 401


def test_invalid_bearer_token_is_rejected(client):
    response = client.get("/threads", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_access_key_header_authenticates(client, db, user_id):
    key = db.user_repo.create_access_key(user_id)["access_key"]
    response = client.get("/threads", headers={"X-Access-Key": key})
    assert response.status_code == 200


# =============================================================================
# Modules
# =============================================================================

def test_modules_catalog_and_search(client):
    categories = client.get("/modules").json()["categories"]
    assert "social" in [c["name"] for c in categories]

    body = client.get("/modules/search", params={"q": "twitter"}).json()
    assert body["total"] == len(body["results"]) > 0
    assert "social.twitter.post_tweet" in [r["path"] for r in body["results"]]


def test_module_search_limit_is_lenient(client):
    assert client.get("/modules/search", params={"q": "", "limit": "abc"}).json()["total"] == 10
    assert client.get("/modules/search", params={"q": "", "limit": "-3"}).json()["total"] == 10
    assert client.get("/modules/search", params={"q": "", "limit": "1"}).json()["total"] == 1


# =============================================================================
# Threads
# =============================================================================

def test_threads_pagination(client, db, auth):
    for i in range(3):
        db.post_repo.record_post(content=f"post {i}", external_id=str(i))

    body = client.get("/threads", params={"limit": 2}, headers=auth).json()
    assert body["count"] == 2
    assert body["pagination"] == {"limit": 2, "offset": 0, "hasMore": True}
    assert set(body["threads"][0]) >= {"id", "content", "tweetId", "postedAt"}

    rest = client.get("/threads", params={"limit": 2, "offset": 2}, headers=auth).json()
    assert rest["count"] == 1
    assert rest["pagination"]["hasMore"] is False


def test_threads_limit_defaults_and_cap(client, auth):
    assert client.get("/threads", params={"limit": "x"}, headers=auth).json()["pagination"]["limit"] == 100
    assert client.get("/threads", params={"limit": 0}, headers=auth).json()["pagination"]["limit"] == 100
    assert client.get("/threads", params={"limit": 9999}, headers=auth).json()["pagination"]["limit"] == 500


# =============================================================================
# OAuth
# =============================================================================

def test_authorize_redirects_to_provider(client, auth, monkeypatch):
    monkeypatch.setenv("TWITTER_CLIENT_ID", "client-id")
    monkeypatch.setenv("TWITTER_CLIENT_SECRET", "client-secret")
    response = client.get("/authorize/twitter", headers=auth, follow_redirects=False)
    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.netloc == "twitter.com"
    assert parse_qs(location.query)["client_id"] == ["client-id"]


def test_authorize_without_app_credentials_is_500_not_redirect(client, auth):
    response = client.get("/authorize/twitter", headers=auth, follow_redirects=False)
    assert response.status_code == 500
    assert response.json()["detail"]["code"] == "credential_missing"


def test_authorize_unknown_provider(client, auth):
    response = client.get("/authorize/myspace", headers=auth, follow_redirects=False)
    assert response.status_code == 404


def test_callback_rejects_unknown_state(client):
    response = client.get("/callback/twitter", params={"state": "nope", "code": "c"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "invalid_state"


def test_full_authorization_round_trip(client, auth, http, db, user_id, monkeypatch):
    monkeypatch.setenv("TWITTER_CLIENT_ID", "client-id")
    monkeypatch.setenv("TWITTER_CLIENT_SECRET", "client-secret")
    location = client.get("/authorize/twitter", headers=auth, follow_redirects=False).headers["location"]
    state = parse_qs(urlparse(location).query)["state"][0]
    http.add(
        "POST",
        "/2/oauth2/token",
        FakeResponse(200, {"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 7200}),
    )

    response = client.get("/callback/twitter", params={"state": state, "code": "auth-code"})
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert db.credential_repo.get(user_id, "twitter_oauth2").fields["access_token"] == "access-1"

    replay = client.get("/callback/twitter", params={"state": state, "code": "auth-code"})
    assert replay.status_code == 400


# =============================================================================
# Workflows
# =============================================================================

ECHO_CONFIG = {
    "steps": [
        {"id": "first", "module": "test.util.echo", "inputs": {"value": "{{ input.topic }}"}},
        {"id": "send", "module": "test.util.send", "inputs": {"text": "{{ steps.first.value }}"}},
    ]
}


def _create(client, auth, config=ECHO_CONFIG):
    return client.post("/workflows", json={"name": "Echo", "config": config}, headers=auth)


def test_create_and_fetch_workflow(client, auth):
    created = _create(client, auth)
    assert created.status_code == 201
    workflow_id = created.json()["workflow_id"]

    fetched = client.get(f"/workflows/{workflow_id}", headers=auth).json()
    assert fetched["name"] == "Echo"
    assert [s["id"] for s in fetched["config"]["steps"]] == ["first", "send"]
    assert client.get("/workflows", headers=auth).json()["count"] == 1


def test_create_rejects_forward_reference(client, auth):
    config = {
        "steps": [
            {"id": "a", "module": "test.util.echo", "inputs": {"value": "{{ steps.b.value }}"}},
            {"id": "b", "module": "test.util.echo", "inputs": {"value": 1}},
        ]
    }
    response = _create(client, auth, config)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "invalid_binding"


def test_other_users_workflow_is_not_found(client, auth, db):
    workflow_id = _create(client, auth).json()["workflow_id"]
    other = db.user_repo.get_or_create_user("bob")
    response = client.get(f"/workflows/{workflow_id}", headers={"Authorization": f"Bearer {create_access_token(other)}"})
    assert response.status_code == 404


def test_run_workflow_dry_run_with_explicit_credentials(client, auth):
    from .conftest import SendModule

    workflow_id = _create(client, auth).json()["workflow_id"]
    response = client.post(
        f"/workflows/{workflow_id}/run",
        json={"dry_run": True, "context": {"topic": "tea"}, "credentials": {"slack": {"bot_token": "xoxb-1"}}},
        headers=auth,
    )
    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "completed"
    assert body["steps"][1]["outputs"] == {"message_id": "mock-id"}
    assert SendModule.sent == []

    runs = client.get(f"/workflows/{workflow_id}/runs", headers=auth).json()["runs"]
    assert runs[0]["run_id"] == body["run_id"]


def test_run_failure_is_reported_in_body(client, auth):
    workflow_id = _create(client, auth).json()["workflow_id"]
    body = client.post(f"/workflows/{workflow_id}/run", json={"context": {"topic": "tea"}}, headers=auth).json()
    assert body["status"] == "failed"
    assert body["error"]["code"] == "credential_missing"
    assert body["failed_step"]["id"] == "send"


# =============================================================================
# Credentials
# =============================================================================

def test_credentials_are_write_only(client, auth):
    saved = client.put(
        "/credentials/slack", json={"fields": {"bot_token": "xoxb-secret", "default_channel": "#general"}}, headers=auth
    )
    assert saved.json() == {"platform": "slack", "field_names": ["bot_token", "default_channel"]}

    listed = client.get("/credentials", headers=auth)
    assert "xoxb-secret" not in listed.text
    assert listed.json()["credentials"][0]["platform"] == "slack"

    assert client.delete("/credentials/slack", headers=auth).json()["deleted"] is True
    assert client.delete("/credentials/slack", headers=auth).status_code == 404


def test_credential_submission_is_validated(client, auth):
    response = client.put("/credentials/slack", json={"fields": {"default_channel": "#x"}}, headers=auth)
    assert response.status_code == 400
    assert client.put("/credentials/openai", json={"value": "sk-1"}, headers=auth).status_code == 200


def test_platform_catalog_is_public(client):
    platforms = client.get("/credentials/platforms").json()["platforms"]
    assert "twitter_oauth2" in [p["id"] for p in platforms]


# =============================================================================
# Job settings and runs
# =============================================================================

def test_job_settings_round_trip(client, auth):
    response = client.put(f"/settings/{POST_JOB}", json={"prompt": "Tea facts", "threadLength": 4}, headers=auth)
    assert response.json()["settings"] == {"prompt": "Tea facts", "threadLength": 4}
    assert client.get(f"/settings/{POST_JOB}", headers=auth).json()["settings"]["threadLength"] == 4


def test_unknown_job_is_404(client, auth):
    assert client.get("/settings/nope", headers=auth).status_code == 404
    assert client.post("/jobs/nope/run", json={}, headers=auth).status_code == 404


def test_run_job_defaults_to_caller(client, auth, db, user_id, fake_provider):
    db.credential_repo.save(user_id, "openai", value="sk-test")
    db.credential_repo.save(user_id, "twitter_oauth2", fields={"access_token": "token"})
    body = client.post(
        f"/jobs/{POST_JOB}/run", json={"params": {"prompt": "Tea", "dryRun": True}}, headers=auth
    ).json()
    assert body["status"] == "completed"
    assert body["dry_run"] is True


def test_run_job_as_another_user_is_forbidden(client, auth, db, user_id, fake_provider):
    bob = db.user_repo.get_or_create_user("bob")
    db.credential_repo.save(bob, "openai", value="sk-bob")
    db.credential_repo.save(bob, "twitter_oauth2", fields={"access_token": "bob-token"})

    response = client.post(
        f"/jobs/{POST_JOB}/run", json={"params": {"prompt": "Tea", "userId": bob}}, headers=auth
    )
    assert response.status_code == 403
    assert fake_provider.calls == []


def test_run_job_naming_the_caller_is_allowed(client, auth, db, user_id, fake_provider):
    db.credential_repo.save(user_id, "openai", value="sk-alice")
    db.credential_repo.save(user_id, "twitter_oauth2", fields={"access_token": "token"})
    body = client.post(
        f"/jobs/{POST_JOB}/run",
        json={"params": {"prompt": "Tea", "dryRun": True, "userId": user_id}},
        headers=auth,
    ).json()
    assert body["status"] == "completed"
    assert fake_provider.calls[0]["api_key"] == "sk-alice"


def test_job_user_cannot_be_stored_as_a_setting(client, auth, db):
    response = client.put(f"/settings/{POST_JOB}", json={"prompt": "Tea", "userId": "bob"}, headers=auth)
    assert response.status_code == 400
    assert "userId" not in client.get(f"/settings/{POST_JOB}", headers=auth).json()["settings"]
    assert db.settings_repo.get(f"{POST_JOB}_userId") is None
