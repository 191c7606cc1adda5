import pytest

from flowmate.server.credentials import CredentialResolver
from flowmate.server.errors import CredentialMissing, NotFound


def test_precedence_explicit_then_stored_then_env(db):
    resolver = CredentialResolver(db.credential_repo, environ={"OPENAI_API_KEY": "env-key"})
    db.credential_repo.save("u1", "openai", value="stored-key")

    assert resolver.resolve("u1", "openai", explicit={"value": "explicit-key"}) == {"api_key": "explicit-key"}
    assert resolver.resolve("u1", "openai") == {"api_key": "stored-key"}

    db.credential_repo.delete("u1", "openai")
    assert resolver.resolve("u1", "openai") == {"api_key": "env-key"}


def test_fields_merge_across_sources(db):
    resolver = CredentialResolver(db.credential_repo, environ={"SLACK_DEFAULT_CHANNEL": "#env"})
    db.credential_repo.save("u1", "slack", fields={"bot_token": "xoxb-stored"})

    assert resolver.resolve("u1", "slack") == {"bot_token": "xoxb-stored", "default_channel": "#env"}


def test_prefer_environment_ranks_complete_env_pair_above_stored(db):
    environ = {"TWITTER_CLIENT_ID": "env-id", "TWITTER_CLIENT_SECRET": "env-secret"}
    resolver = CredentialResolver(db.credential_repo, environ=environ)
    db.credential_repo.save(
        "u1", "twitter_oauth2_app", fields={"client_id": "stored-id", "client_secret": "stored-secret"}
    )

    assert resolver.resolve("u1", "twitter_oauth2_app", prefer_environment=True) == {
        "client_id": "env-id",
        "client_secret": "env-secret",
    }
    assert resolver.resolve("u1", "twitter_oauth2_app")["client_id"] == "stored-id"


def test_partial_env_app_credentials_never_mix_with_stored(db):
    resolver = CredentialResolver(db.credential_repo, environ={"TWITTER_CLIENT_ID": "env-id"})
    db.credential_repo.save(
        "u1", "twitter_oauth2_app", fields={"client_id": "stored-id", "client_secret": "stored-secret"}
    )

    assert resolver.resolve("u1", "twitter_oauth2_app", prefer_environment=True) == {
        "client_id": "stored-id",
        "client_secret": "stored-secret",
    }


def test_partial_env_app_credentials_without_stored_record_are_missing(db):
    resolver = CredentialResolver(db.credential_repo, environ={"TWITTER_CLIENT_ID": "env-id"})
    with pytest.raises(CredentialMissing):
        resolver.resolve("u1", "twitter_oauth2_app", prefer_environment=True)


def test_missing_required_fields_raise(db):
    resolver = CredentialResolver(db.credential_repo, environ={})
    with pytest.raises(CredentialMissing) as exc_info:
        resolver.resolve("u1", "twitter_oauth2_app")
    assert exc_info.value.platform == "twitter_oauth2_app"
    assert exc_info.value.missing_fields == ["client_id", "client_secret"]


def test_optional_fields_may_be_absent(db):
    resolver = CredentialResolver(db.credential_repo, environ={})
    db.credential_repo.save("u1", "twitter_oauth2", fields={"access_token": "tok"})
    assert resolver.resolve("u1", "twitter_oauth2") == {"access_token": "tok"}


def test_stored_credentials_belong_to_their_user(db):
    resolver = CredentialResolver(db.credential_repo, environ={})
    db.credential_repo.save("u1", "openai", value="u1-key")
    with pytest.raises(CredentialMissing):
        resolver.resolve("u2", "openai")


def test_explicit_fields_covering_everything_skip_persistence():
    class ExplodingRepo:
        def get(self, user_id, platform):
            raise AssertionError("stored credentials should not be read")

    resolver = CredentialResolver(ExplodingRepo(), environ={})
    assert resolver.resolve("u1", "openai", explicit={"api_key": "k"}) == {"api_key": "k"}


def test_unknown_platform_is_not_found(db):
    resolver = CredentialResolver(db.credential_repo, environ={})
    with pytest.raises(NotFound):
        resolver.resolve("u1", "myspace")


def test_validate_submission(resolver):
    assert resolver.validate_submission("openai", value="sk-x") == {"api_key": "sk-x"}
    assert resolver.validate_submission("slack", fields={"bot_token": "xoxb-1"}) == {"bot_token": "xoxb-1"}

    with pytest.raises(ValueError):
        resolver.validate_submission("myspace", value="x")
    with pytest.raises(ValueError):
        resolver.validate_submission("openai", fields={"api_key": "k", "extra": "x"})
    with pytest.raises(ValueError):
        resolver.validate_submission("slack", fields={"default_channel": "#general"})
    with pytest.raises(ValueError):
        resolver.validate_submission("twitter_oauth2_app", value="just-one")


def test_stored_secret_is_encrypted_at_rest(db):
    db.credential_repo.save("u1", "openai", value="sk-plaintext-secret")
    doc = db.db.credentials.find_one({"user_id": "u1", "platform": "openai"})
    assert "sk-plaintext-secret" not in str(doc)
    assert db.credential_repo.list_platforms("u1")[0]["platform"] == "openai"


def test_replacing_a_credential_keeps_its_creation_time(db):
    db.credential_repo.save("u1", "openai", value="sk-first")
    first = db.db.credentials.find_one({"user_id": "u1", "platform": "openai"})
    assert first["created_at"] is not None

    db.credential_repo.save("u1", "openai", value="sk-second")
    second = db.db.credentials.find_one({"user_id": "u1", "platform": "openai"})
    assert second["created_at"] == first["created_at"]
    assert second["updated_at"] >= first["created_at"]
    assert db.credential_repo.get("u1", "openai").value == "sk-second"
