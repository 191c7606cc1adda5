"""
Chat-triggered Workflow Execution

A chat turn streams a conversational response from a text provider; once
generation has finished (successfully or not) the workflow's stored config is
executed in the background with the user's raw input as run context.
Generation errors are reported in the stream; execution errors are logged and
kept on the turn. Neither blocks the other.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from starlette.concurrency import iterate_in_threadpool

from flowmate.server.ai import ProviderRegistry
from flowmate.server.credentials import CredentialResolver
from flowmate.server.models.workflow import RunResult
from flowmate.server.utils import sanitize_error_message
from .executor import WorkflowExecutor

logger = logging.getLogger("flowmate.chat")

# Strong references for fire-and-forget execution tasks
_background_tasks: Set[asyncio.Task] = set()


def _message_text(message: Dict[str, Any], parts_separator: str) -> str:
    content = message.get("content")
    if content:
        return content if isinstance(content, str) else json.dumps(content)
    parts = message.get("parts")
    if parts:
        return parts_separator.join(
            part.get("text") or "" for part in parts if part.get("type") == "text"
        )
    return ""


def extract_user_input(messages: List[Dict[str, Any]]) -> str:
    """Raw user input: the last message's content, or its text parts joined by spaces."""
    if not messages:
        return ""
    return _message_text(messages[-1], " ")


def format_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """User messages only, as {role, content}; parts joined by newlines; empties dropped."""
    formatted = []
    for message in messages:
        if message.get("role") != "user":
            continue
        text = _message_text(message, "\n")
        if text:
            formatted.append({"role": "user", "content": text})
    return formatted


def build_system_prompt(name: str, description: Optional[str]) -> str:
    return f"""You are a helpful AI assistant that executes workflows based on user input.

Workflow: {name}
Description: {description or 'No description'}

Your job is to:
1. Understand the user's request
2. Execute the workflow with appropriate parameters
3. Present the results in a clear, conversational way

Be friendly, concise, and helpful. If the workflow produces data, explain it clearly to the user.

IMPORTANT: When formatting tables, always use proper markdown table syntax:
| Column 1 | Column 2 |
|----------|----------|
| Data 1   | Data 2   |

Never use ASCII art tables with + and - characters. Always use the | and - markdown table format."""


@dataclass
class ChatTurn:
    """One chat request against a stored workflow, and what came of it."""

    workflow: Dict[str, Any]
    messages: List[Dict[str, Any]]
    model: Optional[str] = None
    response_text: str = ""
    generation_error: Optional[str] = None
    execution_task: Optional[asyncio.Task] = None
    run_result: Optional[RunResult] = None
    execution_error: Optional[str] = None
    _chunks: List[str] = field(default_factory=list, repr=False)

    @property
    def workflow_id(self) -> str:
        return self.workflow["workflow_id"]

    @property
    def user_id(self) -> str:
        return self.workflow["user_id"]

    @property
    def user_input(self) -> str:
        return extract_user_input(self.messages)


class ChatWorkflowRunner:
    """
    Streams a chat response, then triggers the workflow.

    Args:
        executor: WorkflowExecutor for the background run
        resolver: CredentialResolver for the text provider's API key
        provider_id: Text provider (and credential platform)
        model: Default model for the provider
    """

    def __init__(
        self,
        executor: WorkflowExecutor,
        resolver: CredentialResolver,
        provider_id: str = "openai",
        model: Optional[str] = None,
    ):
        self.executor = executor
        self.resolver = resolver
        self.provider_id = provider_id
        self.model = model

    def _open_stream(self, turn: ChatTurn):
        provider = ProviderRegistry.get(self.provider_id)
        credentials = self.resolver.resolve(turn.user_id, self.provider_id)
        return provider.stream(
            messages=format_messages(turn.messages),
            api_key=credentials["api_key"],
            model=turn.model or self.model,
            system=build_system_prompt(turn.workflow.get("name", ""), turn.workflow.get("description")),
        )

    async def stream(self, turn: ChatTurn) -> AsyncIterator[Dict[str, str]]:
        """
        Yield SSE events: delta*, then error (if generation failed), then done.

        The workflow run is scheduled after generation ends and before the
        final events are sent; a client that disconnects mid-generation
        cancels the turn and no run is scheduled.
        """
        logger.info(f"[CHAT] Turn started for workflow {turn.workflow_id} ({len(turn.messages)} messages)")
        try:
            deltas = self._open_stream(turn)
            async for delta in iterate_in_threadpool(deltas):
                turn._chunks.append(delta)
                yield {"event": "delta", "data": json.dumps({"text": delta})}
        except asyncio.CancelledError:
            logger.info(f"[CHAT] Client disconnected during generation for workflow {turn.workflow_id}")
            raise
        except Exception as e:
            turn.generation_error = sanitize_error_message(e)
            logger.error(f"[CHAT] Generation failed for workflow {turn.workflow_id}: {turn.generation_error}")

        turn.response_text = "".join(turn._chunks)
        self.schedule_execution(turn)

        if turn.generation_error:
            yield {
                "event": "error",
                "data": json.dumps({"source": "generation", "message": turn.generation_error}),
            }
        yield {
            "event": "done",
            "data": json.dumps({"text": turn.response_text, "workflow_run_scheduled": True}),
        }

    def schedule_execution(self, turn: ChatTurn) -> asyncio.Task:
        task = asyncio.create_task(self._execute(turn))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        turn.execution_task = task
        return task

    async def _execute(self, turn: ChatTurn) -> Optional[RunResult]:
        context = {"user_input": turn.user_input, "assistant_response": turn.response_text}
        try:
            result = await asyncio.to_thread(
                self.executor.execute,
                turn.workflow["config"],
                turn.user_id,
                workflow_id=turn.workflow_id,
                context=context,
            )
        except Exception as e:
            turn.execution_error = sanitize_error_message(e)
            logger.error(f"[CHAT] Workflow {turn.workflow_id} execution error: {turn.execution_error}")
            return None

        turn.run_result = result
        if result.error:
            turn.execution_error = result.error.get("message")
        logger.info(f"[CHAT] Workflow {turn.workflow_id} executed: {result.status.value}")
        return result
