"""
OAuth2 provider table.

Each provider names its endpoints, the fixed scope set it requests, the
platform its app (client) credentials resolve from and the platform the
resulting user tokens are stored under.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from flowmate.server.errors import NotFound


@dataclass(frozen=True)
class OAuthProvider:
    name: str
    authorize_url: str
    token_url: str
    scopes: Tuple[str, ...]
    app_platform: str
    token_platform: str


PROVIDERS: Dict[str, OAuthProvider] = {
    "twitter": OAuthProvider(
        name="twitter",
        authorize_url="https://twitter.com/i/oauth2/authorize",
        token_url="https://api.twitter.com/2/oauth2/token",
        scopes=("tweet.read", "tweet.write", "users.read", "offline.access"),
        app_platform="twitter_oauth2_app",
        token_platform="twitter_oauth2",
    ),
}


def get_provider(name: str) -> OAuthProvider:
    provider = PROVIDERS.get(name)
    if provider is None:
        raise NotFound(f"Unknown OAuth provider '{name}'")
    return provider
