"""
OAuth2 Authorization Lifecycle - authorize start and callback.

1. start_authorization: resolve the app's client credentials (environment
   first, then the user's stored app credential), create a PKCE verifier,
   challenge and state, persist the state row and build the provider URL.
2. complete_authorization: consume the state row atomically before anything
   else, reject unknown, consumed, expired or mismatched states, exchange the
   code with the stored verifier and store the user's tokens.

A state is single-use whatever the outcome of the exchange: a replayed state
always fails with InvalidState.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import requests

from flowmate.db.utils import as_naive_utc, utcnow
from flowmate.server.credentials import CredentialResolver
from flowmate.server.errors import CredentialMissing, InvalidState, OAuthExchangeError
from .pkce import code_challenge, generate_code_verifier, generate_state
from .providers import OAuthProvider, get_provider

logger = logging.getLogger("flowmate.oauth")

DEFAULT_STATE_TTL_SECONDS = 600
TOKEN_REQUEST_TIMEOUT = 30


@dataclass
class AuthorizationStart:
    url: str
    state: str


class OAuthLifecycle:
    """
    Runs the OAuth2 authorization-code flow with PKCE.

    Args:
        state_repo: OAuthStateRepository
        credential_repo: CredentialRepository (token storage)
        resolver: CredentialResolver (app client credentials)
        base_url: Public base URL; callback is <base_url>/callback/<provider>
        state_ttl_seconds: Age after which an unconsumed state is rejected
        http: requests-compatible session for token requests
        now: Clock returning naive UTC datetimes
    """

    def __init__(
        self,
        state_repo,
        credential_repo,
        resolver: CredentialResolver,
        base_url: Optional[str] = None,
        state_ttl_seconds: Optional[int] = None,
        http=None,
        now: Callable[[], datetime] = None,
    ):
        self.state_repo = state_repo
        self.credential_repo = credential_repo
        self.resolver = resolver
        self.base_url = (base_url or os.environ.get("APP_BASE_URL") or "http://localhost:8000").rstrip("/")
        if state_ttl_seconds is None:
            state_ttl_seconds = int(os.environ.get("OAUTH_STATE_TTL_SECONDS", DEFAULT_STATE_TTL_SECONDS))
        self.state_ttl = timedelta(seconds=state_ttl_seconds)
        self.http = http or requests
        self._now = now or utcnow

    def callback_url(self, provider_name: str) -> str:
        return f"{self.base_url}/callback/{provider_name}"

    def _app_credentials(self, user_id: str, provider: OAuthProvider) -> Dict[str, Any]:
        """Client id/secret: environment first, then the user's stored app credential."""
        return self.resolver.resolve(user_id, provider.app_platform, prefer_environment=True)

    # =========================================================================
    # Authorize start
    # =========================================================================

    def start_authorization(self, user_id: str, provider_name: str) -> AuthorizationStart:
        """
        Begin the flow for an authenticated user.

        Raises:
            NotFound: Unknown provider
            CredentialMissing: App client credentials unavailable from any source
        """
        provider = get_provider(provider_name)
        app = self._app_credentials(user_id, provider)

        verifier = generate_code_verifier()
        state = generate_state()
        self.state_repo.create(state, verifier, user_id, provider.name)

        query = urlencode(
            {
                "response_type": "code",
                "client_id": app["client_id"],
                "redirect_uri": self.callback_url(provider.name),
                "scope": " ".join(provider.scopes),
                "state": state,
                "code_challenge": code_challenge(verifier),
                "code_challenge_method": "S256",
            }
        )
        logger.info(f"[OAUTH] Authorization started: user={user_id} provider={provider.name}")
        return AuthorizationStart(url=f"{provider.authorize_url}?{query}", state=state)

    # =========================================================================
    # Callback
    # =========================================================================

    def complete_authorization(
        self,
        provider_name: str,
        state: Optional[str],
        code: Optional[str],
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Finish the flow from the provider's redirect.

        Returns:
            Summary {user_id, provider, platform, scope, expires_at}

        Raises:
            InvalidState: State absent, consumed, expired, for another
                provider, or the provider reported an error
            OAuthExchangeError: Token endpoint rejected the exchange
            NotFound: Unknown provider
        """
        provider = get_provider(provider_name)
        if not state:
            raise InvalidState("Missing OAuth state parameter")

        record = self.state_repo.consume(state)
        if record is None:
            logger.warning(f"[OAUTH] Rejected unknown or replayed state for {provider_name}")
            raise InvalidState("OAuth state is unknown or has already been used")

        if record.get("provider") != provider.name:
            raise InvalidState(
                f"OAuth state was issued for '{record.get('provider')}', not '{provider.name}'"
            )

        created_at = as_naive_utc(record.get("created_at"))
        if created_at is None or self._now() - created_at > self.state_ttl:
            raise InvalidState("OAuth state has expired; start the authorization again")

        if error:
            logger.warning(f"[OAUTH] Provider {provider.name} returned error '{error}'")
            raise InvalidState(f"Authorization was not granted: {error}")
        if not code:
            raise InvalidState("Missing authorization code")

        user_id = record["user_id"]
        app = self._app_credentials(user_id, provider)
        tokens = self._token_request(
            provider,
            app,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.callback_url(provider.name),
                "code_verifier": record["code_verifier"],
                "client_id": app["client_id"],
            },
        )
        fields = self._token_fields(tokens)
        self.credential_repo.save(user_id, provider.token_platform, fields=fields)

        logger.info(f"[OAUTH] Authorization completed: user={user_id} provider={provider.name}")
        return {
            "user_id": user_id,
            "provider": provider.name,
            "platform": provider.token_platform,
            "scope": fields.get("scope"),
            "expires_at": fields.get("expires_at"),
        }

    # =========================================================================
    # Refresh and housekeeping
    # =========================================================================

    def refresh_access_token(self, user_id: str, provider_name: str) -> Dict[str, Any]:
        """
        Exchange the stored refresh token for a new access token.

        Returns:
            The new token fields (also stored)

        Raises:
            CredentialMissing: No stored refresh token
            OAuthExchangeError: Provider rejected the refresh
        """
        provider = get_provider(provider_name)
        stored = self.credential_repo.get(user_id, provider.token_platform)
        refresh_token = stored.fields.get("refresh_token") if stored else None
        if not refresh_token:
            raise CredentialMissing(provider.token_platform, ["refresh_token"])

        app = self._app_credentials(user_id, provider)
        tokens = self._token_request(
            provider,
            app,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": app["client_id"],
            },
        )
        fields = self._token_fields(tokens, previous_refresh_token=refresh_token)
        self.credential_repo.save(user_id, provider.token_platform, fields=fields)
        logger.info(f"[OAUTH] Access token refreshed: user={user_id} provider={provider.name}")
        return fields

    def purge_states(self, older_than: Optional[datetime] = None) -> int:
        """Delete state rows older than the TTL (or ``older_than``)."""
        cutoff = older_than or (self._now() - self.state_ttl)
        removed = self.state_repo.purge(cutoff)
        if removed:
            logger.info(f"[OAUTH] Purged {removed} stale state rows")
        return removed

    def token_expired(self, fields: Dict[str, Any], leeway_seconds: int = 60) -> bool:
        """True if the stored token's expires_at is past (or within the leeway)."""
        expires_at = fields.get("expires_at")
        if not expires_at:
            return False
        try:
            expiry = as_naive_utc(datetime.fromisoformat(str(expires_at)))
        except ValueError:
            return False
        return expiry <= self._now() + timedelta(seconds=leeway_seconds)

    # =========================================================================
    # Token endpoint
    # =========================================================================

    def _token_request(self, provider: OAuthProvider, app: Dict[str, Any], data: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = self.http.post(
                provider.token_url,
                data=data,
                auth=(app["client_id"], app["client_secret"]),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=TOKEN_REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise OAuthExchangeError(f"Token request to {provider.name} failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not 200 <= response.status_code < 300:
            detail = payload.get("error_description") or payload.get("error") or response.text[:200]
            logger.error(f"[OAUTH] Token endpoint for {provider.name} returned {response.status_code}")
            raise OAuthExchangeError(
                f"{provider.name} rejected the token request ({response.status_code}): {detail}"
            )
        if not payload.get("access_token"):
            raise OAuthExchangeError(f"{provider.name} token response did not include an access token")
        return payload

    def _token_fields(self, tokens: Dict[str, Any], previous_refresh_token: Optional[str] = None) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "access_token": tokens["access_token"],
            "token_type": tokens.get("token_type", "bearer"),
        }
        refresh_token = tokens.get("refresh_token") or previous_refresh_token
        if refresh_token:
            fields["refresh_token"] = refresh_token
        if tokens.get("scope"):
            fields["scope"] = tokens["scope"]
        if tokens.get("expires_in"):
            expiry = self._now() + timedelta(seconds=int(tokens["expires_in"]))
            fields["expires_at"] = expiry.replace(tzinfo=timezone.utc).isoformat()
        return fields
