"""
Models - pydantic models for workflow configs, run results and API bodies.
"""

from .workflow import (
    ErrorPolicy,
    RunResult,
    RunStatus,
    StepOutcome,
    StepStatus,
    WorkflowConfig,
    WorkflowStep,
)
from .requests import (
    ChatRequest,
    CreateWorkflowRequest,
    RunJobRequest,
    RunWorkflowRequest,
    SaveCredentialRequest,
)
from .responses import ModuleSearchResponse, ThreadsResponse

__all__ = [
    "ChatRequest",
    "CreateWorkflowRequest",
    "ErrorPolicy",
    "ModuleSearchResponse",
    "RunJobRequest",
    "RunResult",
    "RunStatus",
    "RunWorkflowRequest",
    "SaveCredentialRequest",
    "StepOutcome",
    "StepStatus",
    "ThreadsResponse",
    "WorkflowConfig",
    "WorkflowStep",
]
