"""
Route modules for the Flowmate API.

Each module contains related endpoints that are mounted on the main app.
"""

from .modules import router as modules_router
from .threads import router as threads_router
from .oauth import router as oauth_router
from .workflows import router as workflows_router
from .chat import router as chat_router
from .credentials import router as credentials_router
from .settings import router as settings_router
from .jobs import router as jobs_router

__all__ = [
    "chat_router",
    "credentials_router",
    "jobs_router",
    "modules_router",
    "oauth_router",
    "settings_router",
    "threads_router",
    "workflows_router",
]
