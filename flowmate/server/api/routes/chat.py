"""
Chat route - streams an assistant reply, then runs the workflow.
"""

import asyncio
import json
import logging
import os

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from flowmate.server.models import ChatRequest
from flowmate.server.utils import sanitize_error_message
from flowmate.server.workflow.chat import ChatTurn, ChatWorkflowRunner
from ..dependencies import get_current_user_id, get_db, get_services
from .workflows import get_owned_workflow

logger = logging.getLogger("flowmate.api")

router = APIRouter(prefix="/workflows", tags=["chat"])

DEFAULT_CHAT_MODEL = "gpt-4-turbo"


@router.post("/{workflow_id}/chat")
async def chat_with_workflow(
    workflow_id: str,
    request: ChatRequest,
    db=Depends(get_db),
    services=Depends(get_services),
    user_id: str = Depends(get_current_user_id),
):
    """
    Stream a chat reply via Server-Sent Events (SSE).

    Events:
    - delta: next chunk of assistant text
    - error: generation failed (source=generation)
    - done: full assistant text; the workflow run has been scheduled

    The workflow runs in the background once generation ends, with the last
    user message and the assistant reply as its input context.
    """
    workflow = get_owned_workflow(db, workflow_id, user_id)
    runner = ChatWorkflowRunner(
        services.executor,
        services.resolver,
        provider_id=os.environ.get("CHAT_PROVIDER", "openai"),
        model=os.environ.get("CHAT_MODEL", DEFAULT_CHAT_MODEL),
    )
    turn = ChatTurn(workflow=workflow, messages=request.messages, model=request.model)

    async def event_generator():
        try:
            async for event in runner.stream(turn):
                yield event
        except asyncio.CancelledError:
            logger.info(f"[SSE] Client disconnected (CancelledError) for chat on {workflow_id}")
            raise
        except Exception as e:
            logger.exception(f"[SSE] Chat stream error for {workflow_id}")
            yield {"event": "error", "data": json.dumps({"source": "stream", "message": sanitize_error_message(str(e))})}

    return EventSourceResponse(event_generator(), send_timeout=5)
