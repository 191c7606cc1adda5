"""
Platform Catalog - credential field schemas per platform.

Every platform a module or the OAuth lifecycle may need credentials for is a
``Platform`` member with an ordered list of field descriptors. The credential
form, submission validation and the resolver all read the same catalog.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Platform(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    COHERE = "cohere"
    TWITTER = "twitter"
    TWITTER_OAUTH2_APP = "twitter_oauth2_app"
    TWITTER_OAUTH2 = "twitter_oauth2"
    REDDIT = "reddit"
    SLACK = "slack"
    DISCORD = "discord"
    TELEGRAM = "telegram"
    TWILIO = "twilio"
    NOTION = "notion"
    AIRTABLE = "airtable"
    POSTGRESQL = "postgresql"
    STRIPE = "stripe"


@dataclass(frozen=True)
class CredentialField:
    """One named secret or setting of a platform credential."""

    key: str
    label: str
    sensitive: bool = True
    required: bool = True
    env: Optional[str] = None  # overrides <PLATFORM>_<KEY>
    description: str = ""

    def env_var(self, platform: str) -> str:
        return self.env or f"{platform}_{self.key}".upper()

    def to_dict(self, platform: str) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "sensitive": self.sensitive,
            "required": self.required,
            "env": self.env_var(platform),
            "description": self.description,
        }


@dataclass(frozen=True)
class PlatformSpec:
    platform: Platform
    name: str
    category: str
    fields: Tuple[CredentialField, ...] = field(default_factory=tuple)

    @property
    def required_fields(self) -> List[str]:
        return [f.key for f in self.fields if f.required]

    def field_keys(self) -> List[str]:
        return [f.key for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.platform.value,
            "name": self.name,
            "category": self.category,
            "fields": [f.to_dict(self.platform.value) for f in self.fields],
        }


def _api_key(label: str = "API Key", description: str = "") -> CredentialField:
    return CredentialField("api_key", label, description=description)


_CATALOG: Dict[Platform, PlatformSpec] = {
    # AI
    Platform.OPENAI: PlatformSpec(
        Platform.OPENAI, "OpenAI", "AI",
        (_api_key(description="Your OpenAI API key from platform.openai.com"),),
    ),
    Platform.ANTHROPIC: PlatformSpec(
        Platform.ANTHROPIC, "Anthropic Claude", "AI",
        (_api_key(description="Your Anthropic API key from console.anthropic.com"),),
    ),
    Platform.COHERE: PlatformSpec(Platform.COHERE, "Cohere", "AI", (_api_key(),)),
    # Social media
    Platform.TWITTER: PlatformSpec(
        Platform.TWITTER, "Twitter (API keys)", "Social Media",
        (
            CredentialField("api_key", "API Key"),
            CredentialField("api_secret", "API Secret"),
            CredentialField("access_token", "Access Token"),
            CredentialField("access_secret", "Access Token Secret"),
        ),
    ),
    Platform.TWITTER_OAUTH2_APP: PlatformSpec(
        Platform.TWITTER_OAUTH2_APP, "Twitter OAuth2 App", "Social Media",
        (
            CredentialField("client_id", "Client ID", sensitive=False, env="TWITTER_CLIENT_ID"),
            CredentialField("client_secret", "Client Secret", env="TWITTER_CLIENT_SECRET"),
        ),
    ),
    Platform.TWITTER_OAUTH2: PlatformSpec(
        Platform.TWITTER_OAUTH2, "Twitter (connected account)", "Social Media",
        (
            CredentialField("access_token", "Access Token"),
            CredentialField("refresh_token", "Refresh Token", required=False),
            CredentialField("expires_at", "Expires At", sensitive=False, required=False),
            CredentialField("scope", "Scope", sensitive=False, required=False),
            CredentialField("token_type", "Token Type", sensitive=False, required=False),
        ),
    ),
    Platform.REDDIT: PlatformSpec(
        Platform.REDDIT, "Reddit", "Social Media",
        (
            CredentialField("client_id", "Client ID", sensitive=False),
            CredentialField("client_secret", "Client Secret"),
            CredentialField("username", "Username", sensitive=False),
            CredentialField("password", "Password"),
        ),
    ),
    # Messaging
    Platform.SLACK: PlatformSpec(
        Platform.SLACK, "Slack", "Messaging",
        (
            CredentialField("bot_token", "Bot Token", description="xoxb-..."),
            CredentialField("default_channel", "Default Channel", sensitive=False, required=False),
        ),
    ),
    Platform.DISCORD: PlatformSpec(
        Platform.DISCORD, "Discord", "Messaging", (CredentialField("bot_token", "Bot Token"),)
    ),
    Platform.TELEGRAM: PlatformSpec(
        Platform.TELEGRAM, "Telegram", "Messaging", (CredentialField("bot_token", "Bot Token"),)
    ),
    Platform.TWILIO: PlatformSpec(
        Platform.TWILIO, "Twilio", "Messaging",
        (
            CredentialField("account_sid", "Account SID", sensitive=False),
            CredentialField("auth_token", "Auth Token"),
            CredentialField("phone_number", "Phone Number", sensitive=False),
        ),
    ),
    # Data
    Platform.NOTION: PlatformSpec(
        Platform.NOTION, "Notion", "Data", (_api_key("Integration Token"),)
    ),
    Platform.AIRTABLE: PlatformSpec(Platform.AIRTABLE, "Airtable", "Data", (_api_key(),)),
    Platform.POSTGRESQL: PlatformSpec(
        Platform.POSTGRESQL, "PostgreSQL", "Data",
        (
            CredentialField("host", "Host", sensitive=False),
            CredentialField("port", "Port", sensitive=False, required=False),
            CredentialField("database", "Database", sensitive=False),
            CredentialField("user", "User", sensitive=False),
            CredentialField("password", "Password"),
        ),
    ),
    # Payments
    Platform.STRIPE: PlatformSpec(
        Platform.STRIPE, "Stripe", "Payments", (CredentialField("secret_key", "Secret Key"),)
    ),
}


def get_platform_spec(platform: str) -> Optional[PlatformSpec]:
    """Catalog entry for a platform id, or None if the platform is unknown."""
    try:
        return _CATALOG[Platform(platform)]
    except ValueError:
        return None


def list_platforms() -> List[PlatformSpec]:
    return list(_CATALOG.values())
