"""
Text Utility Modules - template rendering and thread splitting.
"""

import re
from typing import Any, Dict, List

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from flowmate.server.engine.module_interface import (
    ExecutableModule, ModuleExecutionError, ModuleInput, ModuleOutput
)

TWEET_MAX_LENGTH = 280

# "1/", "2/5", "1." or "1)" at the start of a thread part
_NUMBERING = re.compile(r"^\s*\d+\s*(?:/\s*\d*|[.)](?=\s))\s*")


class RenderTemplateModule(ExecutableModule):
    """Render a Jinja2 template against a mapping of values."""

    def __init__(self):
        self._env = SandboxedEnvironment(autoescape=False, undefined=StrictUndefined)

    @property
    def module_id(self) -> str:
        return "utilities.text.render"

    @property
    def description(self) -> str:
        return "Render a text template with values from earlier steps"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="template", type="string", description="Jinja2 template"),
            ModuleInput(name="values", type="object", required=False, default=None),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [ModuleOutput(name="text", type="string")]

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        values = self.get_input_value(inputs, "values") or {}
        try:
            text = self._env.from_string(inputs["template"]).render(**values)
        except TemplateError as e:
            raise ModuleExecutionError(self.module_id, f"Template error: {e}", original_error=e)
        return {"text": text}


def _wrap(text: str, max_length: int) -> List[str]:
    """Split text into chunks of at most max_length, on word boundaries where possible."""
    chunks: List[str] = []
    current = ""
    for word in text.split():
        while len(word) > max_length:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(word[:max_length])
            word = word[max_length:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_length:
            current = candidate
        else:
            chunks.append(current)
            current = word
    if current:
        chunks.append(current)
    return chunks


def split_thread(text: str, max_parts: int = 0, max_length: int = TWEET_MAX_LENGTH) -> List[str]:
    """
    Split generated text into thread parts.

    Parts are separated by blank lines or by leading numbering ("1/", "2.");
    numbering is stripped. Parts longer than max_length are wrapped.
    max_parts > 0 keeps only the first max_parts parts.
    """
    lines = text.strip().splitlines()
    blocks: List[List[str]] = [[]]
    for line in lines:
        if not line.strip():
            if blocks[-1]:
                blocks.append([])
            continue
        if _NUMBERING.match(line) and blocks[-1]:
            blocks.append([])
        blocks[-1].append(_NUMBERING.sub("", line, count=1).strip())

    parts: List[str] = []
    for block in blocks:
        joined = " ".join(line for line in block if line)
        if joined:
            parts.extend(_wrap(joined, max_length))

    if max_parts and max_parts > 0:
        parts = parts[:max_parts]
    return parts


class SplitThreadModule(ExecutableModule):
    """Split text into tweet-sized thread parts."""

    @property
    def module_id(self) -> str:
        return "utilities.text.split_thread"

    @property
    def description(self) -> str:
        return "Split long text into a thread of tweet-sized parts"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="text", type="string"),
            ModuleInput(name="max_parts", type="number", required=False, default=0,
                        description="Keep at most this many parts (0 = all)"),
            ModuleInput(name="max_length", type="number", required=False, default=TWEET_MAX_LENGTH),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="parts", type="array"),
            ModuleOutput(name="count", type="number"),
        ]

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        parts = split_thread(
            str(inputs["text"]),
            int(self.get_input_value(inputs, "max_parts")),
            int(self.get_input_value(inputs, "max_length")),
        )
        if not parts:
            raise ModuleExecutionError(self.module_id, "Text is empty")
        return {"parts": parts, "count": len(parts)}
