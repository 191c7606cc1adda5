"""
Error taxonomy shared by the engine, the OAuth lifecycle and the API.

Every error carries a stable ``code`` so API responses and step outcomes can
report the failure kind without parsing messages. Messages never contain
secret values.
"""

from typing import Any, Dict, List, Optional


class FlowmateError(Exception):
    """Base class for all domain errors."""

    code = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class ConfigurationError(FlowmateError):
    """Missing app secrets or server configuration. User-actionable, never retried."""

    code = "configuration_error"


class CredentialMissing(ConfigurationError):
    """No credential source yields the fields a platform requires."""

    code = "credential_missing"

    def __init__(self, platform: str, missing_fields: List[str]):
        self.platform = platform
        self.missing_fields = list(missing_fields)
        fields = ", ".join(self.missing_fields)
        super().__init__(
            f"Missing credentials for platform '{platform}' (fields: {fields}). "
            f"Add them on the credentials page or set the matching environment variables."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["platform"] = self.platform
        data["missing_fields"] = self.missing_fields
        return data


class NotFound(FlowmateError):
    code = "not_found"


class ModuleNotFound(NotFound):
    """Unknown module path. ``segment`` names the first part that did not resolve."""

    code = "module_not_found"

    def __init__(self, path: str, segment: str, detail: Optional[str] = None):
        self.path = path
        self.segment = segment
        super().__init__(detail or f"Module '{path}' not found: unknown {segment}")


class WorkflowNotFound(NotFound):
    code = "workflow_not_found"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow '{workflow_id}' not found")


class InvalidState(FlowmateError):
    """OAuth state is unknown, already consumed, expired or for another provider."""

    code = "invalid_state"


class OAuthExchangeError(FlowmateError):
    """The provider rejected the authorization-code or refresh-token exchange."""

    code = "oauth_exchange_failed"


class InvalidBinding(FlowmateError):
    """A step input references output that is not available to it."""

    code = "invalid_binding"

    def __init__(self, step_id: str, reference: str, reason: str):
        self.step_id = step_id
        self.reference = reference
        self.reason = reason
        super().__init__(f"Step '{step_id}' has invalid binding '{reference}': {reason}")


class StepFailed(FlowmateError):
    """A single step's invocation failed."""

    code = "step_failed"

    def __init__(self, step_index: int, path: str, message: str, cause: Optional[BaseException] = None):
        self.step_index = step_index
        self.path = path
        self.cause = cause
        super().__init__(f"Step {step_index} ({path}) failed: {message}")
