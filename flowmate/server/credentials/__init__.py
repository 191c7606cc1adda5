"""
Credentials - platform catalog and the credential resolution chain.
"""

from .platforms import CredentialField, Platform, PlatformSpec, get_platform_spec, list_platforms
from .resolver import CredentialResolver

__all__ = [
    "CredentialField",
    "CredentialResolver",
    "Platform",
    "PlatformSpec",
    "get_platform_spec",
    "list_platforms",
]
