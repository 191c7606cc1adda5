"""
Authentication utilities for the Flowmate API.

Supports three ways of presenting an identity:
1. httpOnly cookie with JWT (for web clients)
2. Authorization: Bearer <JWT> header
3. X-Access-Key header (for CLI/automation)

Tokens are issued out of band; there is no login flow.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException

# =============================================================================
# Configuration
# =============================================================================

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


def _secret_key() -> str:
    # Read per call so tests and .env loading can set it after import
    return os.environ.get("JWT_SECRET_KEY", "dev-secret-key-change-in-production")


# =============================================================================
# JWT Token Creation / Verification
# =============================================================================

def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """
    Create an access token (JWT) for a user.

    Args:
        user_id: User's unique identifier
        expires_minutes: Lifetime override

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "user_id": user_id,
        "type": "access",
        "exp": expires_at,
        "iat": now,
    }
    return jwt.encode(payload, _secret_key(), algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    if payload.get("type") != "access" or not payload.get("user_id"):
        raise HTTPException(status_code=401, detail="Invalid token type")
    return payload


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an 'Authorization: Bearer ...' header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
