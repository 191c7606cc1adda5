"""
PKCE helpers (RFC 7636).
"""

import base64
import hashlib
import secrets


def generate_code_verifier() -> str:
    """64 random bytes, url-safe base64 (86 chars, within the 43-128 limit)."""
    return secrets.token_urlsafe(64)


def code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    return secrets.token_urlsafe(32)
