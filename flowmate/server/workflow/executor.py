"""
Workflow Executor - Runs a workflow config step by step.

Each step is resolved, bound, credentialed and invoked in order; a run holds
no state shared with other runs, so concurrent runs are independent. Step
failures are contained according to the step's error policy:

- abort (default): the run stops and reports the failing step
- continue: the failure is recorded, the step's outputs stay absent, and any
  later binding to them fails with InvalidBinding under the referencing
  step's own policy
"""

import logging
import time
from typing import Any, Dict, Mapping, Optional, Set, Union

from flowmate.server.credentials import CredentialResolver
from flowmate.server.engine.binding import BindingResolver, referenced_steps
from flowmate.server.engine.module_registry import ModuleRegistry
from flowmate.server.errors import FlowmateError, InvalidBinding, StepFailed
from flowmate.server.models.workflow import (
    ErrorPolicy,
    RunResult,
    RunStatus,
    StepOutcome,
    StepStatus,
    WorkflowConfig,
    WorkflowStep,
)
from flowmate.server.utils import sanitize_error_message, uuid7_str
from .context import StepContext


def _error_dict(error: Exception) -> Dict[str, Any]:
    if isinstance(error, FlowmateError):
        data = error.to_dict()
    else:
        data = {"code": "error", "message": str(error)}
    data["message"] = sanitize_error_message(data["message"])
    return data


class WorkflowExecutor:
    """
    Executes workflow configs against the module registry.

    Args:
        registry: Frozen module registry
        resolver: Credential resolver used for each step's platform
        workflow_repo: Optional WorkflowRepository; runs are summarised into
            workflow_runs when given
        services: Shared services exposed to modules through StepContext
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        resolver: CredentialResolver,
        workflow_repo=None,
        services: Dict[str, Any] = None,
        logger: logging.Logger = None,
    ):
        self.registry = registry
        self.resolver = resolver
        self.workflow_repo = workflow_repo
        self.services = services or {}
        self.logger = logger or logging.getLogger("flowmate.executor")

    # =========================================================================
    # Validation
    # =========================================================================

    def find_invalid_reference(self, config: WorkflowConfig) -> Optional[InvalidBinding]:
        """
        Check that every step binds only to steps declared before it.

        Returns:
            InvalidBinding for the first offending step, or None
        """
        earlier: Set[str] = set()
        all_ids = {step.id for step in config.steps}
        for step in config.steps:
            for ref in sorted(referenced_steps(step.inputs)):
                if ref not in earlier:
                    reason = (
                        f"forward reference to step '{ref}'"
                        if ref in all_ids
                        else f"unknown step '{ref}'"
                    )
                    return InvalidBinding(step.id, f"steps.{ref}", reason)
            earlier.add(step.id)
        return None

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(
        self,
        config: Union[WorkflowConfig, Mapping[str, Any]],
        user_id: Optional[str],
        *,
        workflow_id: Optional[str] = None,
        dry_run: bool = False,
        context: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> RunResult:
        """
        Execute a workflow for a user.

        Args:
            config: WorkflowConfig or its dict form
            user_id: User whose stored credentials are used
            workflow_id: Stored workflow id, recorded with the run
            dry_run: Replace side-effecting steps with their mock outputs
            context: Values bindings can read as ``input.<key>``
            credentials: platform -> explicit credential fields for this run

        Returns:
            RunResult; never raises for step-level failures
        """
        if not isinstance(config, WorkflowConfig):
            config = WorkflowConfig.model_validate(config)

        run_id = f"run_{uuid7_str()}"
        result = RunResult(
            run_id=run_id,
            workflow_id=workflow_id,
            user_id=user_id,
            status=RunStatus.COMPLETED,
            dry_run=dry_run,
        )
        self.logger.info(
            f"[EXECUTOR] Run {run_id} started: workflow={workflow_id} user={user_id} "
            f"steps={len(config.steps)} dry_run={dry_run}"
        )

        invalid = self.find_invalid_reference(config)
        if invalid is not None:
            index = next(i for i, s in enumerate(config.steps) if s.id == invalid.step_id)
            step = config.steps[index]
            self.logger.warning(f"[EXECUTOR] Run {run_id} rejected: {invalid}")
            result.steps.append(self._failed_outcome(index, step, invalid, 0))
            self._abort(result, index, step, invalid)
            return self._finish(result)

        completed: Dict[str, Dict[str, Any]] = {}
        failed: Set[str] = set()

        for index, step in enumerate(config.steps):
            started = time.monotonic()
            try:
                outputs, simulated = self._run_step(
                    index, step, user_id, completed, failed,
                    dry_run=dry_run,
                    run_id=run_id,
                    run_context=context or {},
                    credentials=credentials or {},
                )
            except FlowmateError as e:
                error: Exception = e
            except Exception as e:
                error = StepFailed(index, step.module, sanitize_error_message(e), cause=e)
            else:
                completed[step.id] = outputs
                result.steps.append(
                    StepOutcome(
                        index=index,
                        id=step.id,
                        path=step.module,
                        status=StepStatus.COMPLETED,
                        outputs=outputs,
                        dry_run=simulated,
                        duration_ms=int((time.monotonic() - started) * 1000),
                    )
                )
                continue

            duration_ms = int((time.monotonic() - started) * 1000)
            result.steps.append(self._failed_outcome(index, step, error, duration_ms))

            if step.on_error == ErrorPolicy.CONTINUE:
                self.logger.warning(
                    f"[EXECUTOR] Step {index} ({step.module}) failed, continuing: "
                    f"{sanitize_error_message(error)}"
                )
                failed.add(step.id)
                result.status = RunStatus.PARTIAL
                continue

            self.logger.error(
                f"[EXECUTOR] Step {index} ({step.module}) failed, aborting run {run_id}: "
                f"{sanitize_error_message(error)}"
            )
            self._abort(result, index, step, error)
            for skipped_index in range(index + 1, len(config.steps)):
                skipped = config.steps[skipped_index]
                result.steps.append(
                    StepOutcome(
                        index=skipped_index,
                        id=skipped.id,
                        path=skipped.module,
                        status=StepStatus.SKIPPED,
                    )
                )
            break

        return self._finish(result)

    def _run_step(
        self,
        index: int,
        step: WorkflowStep,
        user_id: Optional[str],
        completed: Dict[str, Dict[str, Any]],
        failed: Set[str],
        *,
        dry_run: bool,
        run_id: str,
        run_context: Dict[str, Any],
        credentials: Dict[str, Dict[str, Any]],
    ) -> tuple[Dict[str, Any], bool]:
        """Resolve, credential, bind, validate and invoke one step."""
        module = self.registry.get_module(step.module)

        step_credentials: Dict[str, Any] = {}
        platform = step.platform or module.platform
        if platform:
            step_credentials = self.resolver.resolve(
                user_id, platform, explicit=credentials.get(platform)
            )

        binder = BindingResolver(step.id, completed, failed, run_context)
        inputs = binder.resolve(step.inputs)

        is_valid, error_msg = module.validate_inputs(inputs)
        if not is_valid:
            raise StepFailed(index, step.module, f"input validation failed: {error_msg}")

        if dry_run and module.is_side_effecting(inputs):
            self.logger.info(f"[EXECUTOR] Step {index} ({step.module}) simulated (dry run)")
            return module.get_mock_output(inputs), True

        ctx = StepContext(
            run_id=run_id,
            user_id=user_id,
            step_id=step.id,
            step_index=index,
            platform=platform,
            credentials=step_credentials,
            dry_run=dry_run,
            run_context=run_context,
            services=self.services,
            logger=self.logger,
        )
        self.logger.info(f"[EXECUTOR] Step {index} ({step.module}) executing")
        outputs = module.execute(inputs, ctx)
        if not isinstance(outputs, dict):
            raise StepFailed(index, step.module, f"module returned {type(outputs).__name__}, expected a mapping")
        return outputs, False

    @staticmethod
    def _failed_outcome(index: int, step: WorkflowStep, error: Exception, duration_ms: int) -> StepOutcome:
        return StepOutcome(
            index=index,
            id=step.id,
            path=step.module,
            status=StepStatus.FAILED,
            error=_error_dict(error),
            duration_ms=duration_ms,
        )

    @staticmethod
    def _abort(result: RunResult, index: int, step: WorkflowStep, error: Exception) -> None:
        result.status = RunStatus.FAILED
        result.failed_step = {"index": index, "id": step.id, "path": step.module}
        result.error = _error_dict(error)

    def _finish(self, result: RunResult) -> RunResult:
        self.logger.info(f"[EXECUTOR] Run {result.run_id} finished: {result.status.value}")
        if self.workflow_repo is not None:
            try:
                self.workflow_repo.record_run(result.model_dump(mode="json"))
            except Exception as e:
                self.logger.error(f"[EXECUTOR] Failed to record run {result.run_id}: {e}")
        return result
