"""
OAuth2 Authorization Lifecycle - PKCE, provider table, state handling.
"""

from .lifecycle import AuthorizationStart, OAuthLifecycle
from .providers import OAuthProvider, get_provider

__all__ = ["AuthorizationStart", "OAuthLifecycle", "OAuthProvider", "get_provider"]
