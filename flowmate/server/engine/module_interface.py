"""
Module Interface - Base classes for invocable workflow modules

This module contains:
1. Module I/O definitions (ModuleInput, ModuleOutput)
2. Module base classes (ModuleBase, ExecutableModule)
3. Module execution error

Modules are addressed by a three-segment id, ``category.module.function``
(e.g. 'social.twitter.post_tweet'). A module that talks to a third-party
platform declares that platform so the executor can resolve credentials for
it before invocation; a module that changes the outside world declares
side effects so dry runs can substitute its mock output.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class ModuleInput:
    """One named parameter a step may pass to the module."""
    name: str
    type: str  # 'string', 'number', 'object', 'array', 'boolean'
    required: bool = True
    default: Any = None
    description: str = ""


@dataclass
class ModuleOutput:
    """One named value in the mapping the module returns."""
    name: str
    type: str
    description: str = ""


# Synthetic values used when a module does not provide its own mock output
_MOCK_VALUES = {
    "string": "dry-run",
    "number": 0,
    "boolean": True,
    "object": {},
    "array": [],
}


class ModuleBase(ABC):
    """
    Catalog entry for an invocable capability.

    Instances carry no state between calls; the registry hands out a fresh
    one per lookup. Outputs of one step reach later steps only through
    bindings.
    """

    # Credential platform the module needs, or None
    platform: Optional[str] = None

    # True if invoking the module changes state outside the process
    side_effects: bool = False

    @property
    @abstractmethod
    def module_id(self) -> str:
        """
        Unique module path (e.g., 'ai.text.generate')

        Returns:
            str: Dot-separated category.module.function
        """
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable summary, searched by the module catalog."""
        pass

    @property
    @abstractmethod
    def inputs(self) -> List[ModuleInput]:
        """Accepted parameters, in signature order."""
        pass

    @property
    @abstractmethod
    def outputs(self) -> List[ModuleOutput]:
        """Keys of the mapping execute() returns."""
        pass

    @property
    def signature(self) -> str:
        """
        Parameter list as typed names, optional parameters marked with '?'.

        Example: '(query: string, max_results?: number)'
        """
        params = []
        for input_def in self.inputs:
            marker = "" if input_def.required else "?"
            params.append(f"{input_def.name}{marker}: {input_def.type}")
        return f"({', '.join(params)})"

    def validate_inputs(self, inputs: Dict[str, Any]) -> tuple[bool, Optional[str]]:
        """
        Check bound inputs: every required parameter present, nothing unknown.

        Returns:
            (True, None) or (False, reason)
        """
        missing = [i.name for i in self.inputs if i.required and inputs.get(i.name) is None]
        if missing:
            return False, f"Required input '{missing[0]}' missing"

        known = {i.name for i in self.inputs}
        unknown = sorted(set(inputs) - known)
        if unknown:
            return False, f"Unknown input(s): {', '.join(unknown)}"

        return True, None

    def get_input_value(self, inputs: Dict[str, Any], name: str) -> Any:
        """Bound value of a parameter, or its declared default when absent or None."""
        value = inputs.get(name)
        if value is not None:
            return value
        for declared in self.inputs:
            if declared.name == name:
                return declared.default
        return None

    def is_side_effecting(self, inputs: Dict[str, Any]) -> bool:
        """Whether this particular invocation would change external state."""
        return self.side_effects

    def get_mock_output(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Synthetic output used in dry runs.

        Shaped like the real output so downstream bindings still resolve.
        Modules with structured outputs override this.
        """
        return {o.name: copy.deepcopy(_MOCK_VALUES.get(o.type)) for o in self.outputs}


class ExecutableModule(ModuleBase):
    """
    Base class for modules the executor can invoke.

    execute() receives inputs that are already bound and validated.
    """

    @abstractmethod
    def execute(self, inputs: Dict[str, Any], context: "StepContext") -> Dict[str, Any]:
        """
        Run the capability once.

        Args:
            inputs: Bound parameters
            context: StepContext with this step's credentials, services and logger

        Returns:
            {output_name: value}

        Raises:
            ModuleExecutionError: The call failed in a way the module understands
        """
        pass


class ModuleExecutionError(Exception):
    """A module could not complete its call; the executor reports it as a step failure."""

    def __init__(self, module_id: str, message: str, original_error: Exception = None):
        self.module_id = module_id
        self.original_error = original_error
        super().__init__(f"Module '{module_id}' failed: {message}")
