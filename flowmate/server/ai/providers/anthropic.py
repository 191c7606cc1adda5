"""
Anthropic Provider - messages API, streamed or not.

Anthropic takes the system prompt as a separate parameter and requires
max_tokens on every request.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from anthropic import Anthropic

from ..base import TextProviderBase
from ..registry import register

logger = logging.getLogger("flowmate.ai")

DEFAULT_MAX_TOKENS = 4096


@register("anthropic")
class AnthropicProvider(TextProviderBase):
    """Anthropic messages provider."""

    default_model = "claude-sonnet-4-20250514"

    @property
    def provider_id(self) -> str:
        return "anthropic"

    def _build_request(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str],
        system: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        request = {
            "model": model or self.default_model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system:
            request["system"] = system
        if temperature is not None:
            request["temperature"] = temperature
        return request

    def generate(
        self,
        messages: List[Dict[str, str]],
        api_key: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        client = Anthropic(api_key=api_key)
        request = self._build_request(messages, model, system, temperature, max_tokens)
        logger.info(f"[AI REQUEST] Anthropic messages - model={request['model']}")

        response = client.messages.create(**request)

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = {
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
        }
        logger.info(f"[AI RESPONSE] Anthropic - tokens={usage['total_tokens']}")
        return {"content": content, "model": response.model, "usage": usage}

    def stream(
        self,
        messages: List[Dict[str, str]],
        api_key: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Iterator[str]:
        client = Anthropic(api_key=api_key)
        request = self._build_request(messages, model, system, temperature, max_tokens)
        logger.info(f"[AI REQUEST] Anthropic messages stream - model={request['model']}")

        with client.messages.stream(**request) as stream:
            for text in stream.text_stream:
                if text:
                    yield text
