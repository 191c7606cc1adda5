"""
API Request Models

Pydantic models for API request bodies.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .workflow import WorkflowConfig


class CreateWorkflowRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    config: WorkflowConfig


class RunWorkflowRequest(BaseModel):
    """
    Request to run a stored workflow.

    ``credentials`` maps platform id -> fields (or {"value": ...}) and takes
    precedence over stored and environment credentials for this run only.
    """
    dry_run: bool = False
    context: Dict[str, Any] = Field(default_factory=dict)
    credentials: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class ChatRequest(BaseModel):
    """Chat turn: the conversation so far, newest message last"""
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    model: Optional[str] = None


class SaveCredentialRequest(BaseModel):
    """Either a single value or named fields; replaces the stored set"""
    value: Optional[str] = None
    fields: Dict[str, Any] = Field(default_factory=dict)


class RunJobRequest(BaseModel):
    """Call-time parameters; they override stored settings and environment"""
    params: Dict[str, Any] = Field(default_factory=dict)
