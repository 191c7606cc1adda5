"""
Binding Resolver - Resolves Jinja2 bindings in step inputs.

Step inputs are literals or Jinja2 expressions over two namespaces:
- {{ steps.<step_id>.<output> }}  - output of an earlier, completed step
- {{ input.<key> }}               - run context (e.g. chat user_input)

A value that is exactly one expression evaluates to the referenced object
with its native type; strings with embedded expressions render to text.
Bindings nest inside dicts and lists.
"""

import re
from typing import Any, Dict, Iterable, Mapping, Set

from jinja2 import Environment, BaseLoader, StrictUndefined, TemplateError, Undefined, UndefinedError

from flowmate.server.errors import InvalidBinding

_STEP_REF_DOT = re.compile(r"\bsteps\.([A-Za-z_][A-Za-z0-9_]*)")
_STEP_REF_ITEM = re.compile(r"\bsteps\[\s*['\"]([^'\"]+)['\"]\s*\]")


class OutputEnvironment(Environment):
    """Dotted lookups read mapping keys before attributes, so an output named
    ``items`` or ``keys`` resolves to the data rather than the dict method."""

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping) and attribute in obj:
            return obj[attribute]
        return super().getattr(obj, attribute)


_env = OutputEnvironment(
    loader=BaseLoader(),
    autoescape=False,
    undefined=StrictUndefined,
    trim_blocks=False,
    lstrip_blocks=False,
)


def _strings(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _strings(item)


def is_template(value: str) -> bool:
    return "{{" in value or "{%" in value


def referenced_steps(value: Any) -> Set[str]:
    """Step ids referenced by any binding inside ``value``."""
    refs: Set[str] = set()
    for text in _strings(value):
        if not is_template(text):
            continue
        refs.update(_STEP_REF_DOT.findall(text))
        refs.update(_STEP_REF_ITEM.findall(text))
    return refs


class BindingResolver:
    """
    Resolves one step's inputs against completed step outputs.

    Args:
        step_id: Step whose inputs are being bound (for error messages)
        completed: step_id -> outputs of steps that completed
        failed: ids of earlier steps that failed under a continue policy
        run_context: values exposed as ``input``
    """

    def __init__(
        self,
        step_id: str,
        completed: Dict[str, Dict[str, Any]],
        failed: Set[str] = None,
        run_context: Dict[str, Any] = None,
    ):
        self.step_id = step_id
        self.completed = completed
        self.failed = failed or set()
        self._context = {"steps": completed, "input": run_context or {}}

    def resolve(self, value: Any) -> Any:
        """Recursively resolve every binding in a value."""
        if isinstance(value, str):
            return self._resolve_string(value)
        if isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.resolve(item) for item in value]
        return value

    def _check_references(self, value: str) -> None:
        for ref in sorted(referenced_steps(value)):
            if ref in self.failed:
                raise InvalidBinding(self.step_id, value, f"step '{ref}' failed and has no outputs")
            if ref not in self.completed:
                raise InvalidBinding(self.step_id, value, f"'{ref}' is not an earlier step")

    def _resolve_string(self, value: str) -> Any:
        if not is_template(value):
            return value

        self._check_references(value)

        stripped = value.strip()
        if stripped.startswith("{{") and stripped.endswith("}}"):
            inner = stripped[2:-2]
            if "{{" not in inner and "}}" not in inner:
                return self._eval_expression(inner.strip(), value)

        try:
            return _env.from_string(value).render(**self._context)
        except UndefinedError as e:
            raise InvalidBinding(self.step_id, value, e.message or "undefined value")
        except TemplateError as e:
            raise InvalidBinding(self.step_id, value, f"template error: {e}")

    def _eval_expression(self, expr: str, original: str) -> Any:
        """Evaluate a whole-value expression, keeping the result's native type."""
        try:
            compiled = _env.compile_expression(expr, undefined_to_none=False)
            result = compiled(**self._context)
        except UndefinedError as e:
            raise InvalidBinding(self.step_id, original, e.message or "undefined value")
        except TemplateError as e:
            raise InvalidBinding(self.step_id, original, f"template error: {e}")

        if isinstance(result, Undefined):
            raise InvalidBinding(self.step_id, original, "references an output that does not exist")
        return result
