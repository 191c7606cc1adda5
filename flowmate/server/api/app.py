"""
Flowmate REST API - FastAPI application setup.

This module sets up the FastAPI application and includes all route modules.
The actual route handlers are in the routes/ subpackage.

Endpoints are organized by function:
- modules: module catalog and search
- workflows: store and run workflows
- chat: chat-triggered workflow runs (SSE)
- oauth: OAuth2 PKCE authorize/callback
- credentials: per-user credential storage
- settings / jobs: scheduled job configuration and on-demand runs
- threads: posted history
"""

import logging
import os

# Load .env file if it exists (before other imports that might use env vars)
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowmate import __version__
from flowmate.db import Database
from flowmate.server.errors import (
    ConfigurationError,
    FlowmateError,
    InvalidState,
    NotFound,
    OAuthExchangeError,
)
from flowmate.server.services import build_services
from . import dependencies
from .routes import (
    chat_router,
    credentials_router,
    jobs_router,
    modules_router,
    oauth_router,
    settings_router,
    threads_router,
    workflows_router,
)

logger = logging.getLogger("flowmate.api")


# =============================================================================
# App Configuration
# =============================================================================

app = FastAPI(
    title="Flowmate API",
    description="Workflow automation across AI and social platforms",
    version=__version__,
)

# When using credentials (cookies), origins must be explicit, not "*"
cors_origins_str = os.environ.get("CORS_ORIGINS", "")
CORS_ORIGINS = (
    [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]
    if cors_origins_str
    else ["http://localhost:5173", "http://localhost:3000"]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

db = None


@app.on_event("startup")
async def startup():
    """Connect to MongoDB and wire services"""
    global db

    mongo_uri = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
    db_name = os.environ.get("MONGODB_DATABASE", "flowmate")

    db = Database(connection_string=mongo_uri, database_name=db_name)
    dependencies.set_db(db)
    dependencies.set_services(build_services(db))
    logger.info(f"[STARTUP] Connected to {db_name}; CORS origins: {CORS_ORIGINS}")


@app.on_event("shutdown")
async def shutdown():
    if db:
        db.close()
    logger.info("[SHUTDOWN] Server shutdown complete")


# =============================================================================
# Error Mapping
# =============================================================================

ERROR_STATUS = (
    (NotFound, 404),
    (InvalidState, 400),
    (OAuthExchangeError, 502),
    (ConfigurationError, 500),
)


def status_for(error: FlowmateError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


@app.exception_handler(FlowmateError)
async def flowmate_error_handler(request: Request, exc: FlowmateError):
    """Domain errors that escape a route become JSON errors with their code."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


# =============================================================================
# Include Route Modules
# =============================================================================

app.include_router(modules_router)
app.include_router(threads_router)
app.include_router(oauth_router)
app.include_router(workflows_router)
app.include_router(chat_router)
app.include_router(credentials_router)
app.include_router(settings_router)
app.include_router(jobs_router)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": __version__,
        "database": "connected" if dependencies._db else "not connected",
    }
