"""
Repositories - one class per collection group.
"""

from .credential import CredentialRecord, CredentialRepository
from .oauth_state import OAuthStateRepository
from .post import PostRepository
from .settings import SettingsRepository
from .user import UserRepository
from .workflow import WorkflowRepository

__all__ = [
    "CredentialRecord",
    "CredentialRepository",
    "OAuthStateRepository",
    "PostRepository",
    "SettingsRepository",
    "UserRepository",
    "WorkflowRepository",
]
