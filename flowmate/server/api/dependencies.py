"""
Shared dependencies for FastAPI routes.

Provides dependency injection functions for database access, wired services
and authentication.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from .auth import bearer_token, verify_access_token

# Module-level references set by the app on startup
_db = None
_services = None


def set_db(db):
    """Set the database instance. Called during app startup."""
    global _db
    _db = db


def set_services(services):
    """Set the wired services (resolver, executor, OAuth). Called during app startup."""
    global _services
    _services = services


def get_db():
    """
    Dependency that returns the database.

    Raises HTTPException if database is not initialized.
    """
    if not _db:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return _db


def get_services():
    """
    Dependency that returns the wired services.

    Raises HTTPException if services are not initialized.
    """
    if not _services:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return _services


async def get_current_user_id(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_access_key: Optional[str] = Header(None, alias="X-Access-Key"),
) -> str:
    """
    Get user_id from either:
    1. httpOnly cookie (access_token)
    2. Authorization: Bearer JWT
    3. X-Access-Key header

    Raises:
        HTTPException: 401 if no method authenticates
    """
    for token in (request.cookies.get("access_token"), bearer_token(authorization)):
        if token:
            try:
                return verify_access_token(token)["user_id"]
            except HTTPException:
                # Invalid/expired - fall through to the next method
                pass

    if x_access_key:
        user = get_db().user_repo.get_user_by_access_key(x_access_key)
        if user:
            return user["user_id"]

    raise HTTPException(
        status_code=401,
        detail="Unauthorized - provide access_token cookie, Bearer token or X-Access-Key header",
    )
