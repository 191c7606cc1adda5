"""
Service wiring shared by the API process and the worker.
"""

from dataclasses import dataclass

from flowmate.db import Database
from flowmate.server.credentials import CredentialResolver
from flowmate.server.engine.module_registry import ModuleRegistry, get_registry
from flowmate.server.oauth import OAuthLifecycle
from flowmate.server.workflow.executor import WorkflowExecutor


@dataclass
class Services:
    db: Database
    registry: ModuleRegistry
    resolver: CredentialResolver
    executor: WorkflowExecutor
    oauth: OAuthLifecycle


def build_services(db: Database, registry: ModuleRegistry = None, http=None) -> Services:
    """
    Wire resolver, executor and OAuth lifecycle around a Database.

    Args:
        db: Connected Database
        registry: Module registry (the process-wide built-in registry by default)
        http: requests-compatible session shared by modules and token requests
    """
    registry = registry or get_registry()
    resolver = CredentialResolver(db.credential_repo)
    executor = WorkflowExecutor(
        registry,
        resolver,
        workflow_repo=db.workflow_repo,
        services={"http_session": http} if http is not None else None,
    )
    oauth = OAuthLifecycle(db.oauth_state_repo, db.credential_repo, resolver, http=http)
    return Services(db=db, registry=registry, resolver=resolver, executor=executor, oauth=oauth)
