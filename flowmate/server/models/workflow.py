"""
Workflow Models

Workflow configuration and run result models.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_STEP_ID = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ErrorPolicy(str, Enum):
    """What a step failure does to the rest of the run"""
    ABORT = "abort"
    CONTINUE = "continue"


class WorkflowStep(BaseModel):
    """One module call. Inputs are literals or Jinja2 bindings."""
    id: Optional[str] = None
    module: str
    inputs: Dict[str, Any] = Field(default_factory=dict)
    on_error: ErrorPolicy = ErrorPolicy.ABORT
    platform: Optional[str] = None  # overrides the module's credential platform

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _STEP_ID.match(value):
            raise ValueError(f"Step id '{value}' must be an identifier (letters, digits, underscore)")
        return value


class WorkflowConfig(BaseModel):
    """Ordered sequence of steps"""
    steps: List[WorkflowStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def _assign_step_ids(self) -> "WorkflowConfig":
        seen = set()
        for index, step in enumerate(self.steps):
            if step.id is None:
                step.id = f"step_{index}"
            if step.id in seen:
                raise ValueError(f"Duplicate step id '{step.id}'")
            seen.add(step.id)
        return self


class StepStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    """Run outcome. PARTIAL means only continue-policy steps failed."""
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class StepOutcome(BaseModel):
    index: int
    id: str
    path: str
    status: StepStatus
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None
    dry_run: bool = False
    duration_ms: int = 0


class RunResult(BaseModel):
    """Result (or partial result) of one workflow execution"""
    run_id: str
    workflow_id: Optional[str] = None
    user_id: Optional[str] = None
    status: RunStatus
    dry_run: bool = False
    steps: List[StepOutcome] = Field(default_factory=list)
    failed_step: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def outputs(self) -> Dict[str, Dict[str, Any]]:
        """step id -> outputs of every completed step"""
        return {
            s.id: s.outputs
            for s in self.steps
            if s.status == StepStatus.COMPLETED and s.outputs is not None
        }
