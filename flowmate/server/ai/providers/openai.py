"""
OpenAI Provider - chat completions, streamed or not.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from openai import OpenAI

from ..base import TextProviderBase
from ..registry import register

logger = logging.getLogger("flowmate.ai")


@register("openai")
class OpenAIProvider(TextProviderBase):
    """OpenAI chat completions provider."""

    default_model = "gpt-4-turbo"

    @property
    def provider_id(self) -> str:
        return "openai"

    def _build_request(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str],
        system: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        api_messages = []
        if system:
            api_messages.append({"role": "system", "content": system})
        api_messages.extend({"role": m["role"], "content": m["content"]} for m in messages)

        request = {"model": model or self.default_model, "messages": api_messages}
        if temperature is not None:
            request["temperature"] = temperature
        if max_tokens is not None:
            request["max_tokens"] = max_tokens
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
        client = OpenAI(api_key=api_key)
        request = self._build_request(messages, model, system, temperature, max_tokens)
        logger.info(f"[AI REQUEST] OpenAI chat - model={request['model']}")

        response = client.chat.completions.create(**request)

        content = response.choices[0].message.content or ""
        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        logger.info(f"[AI RESPONSE] OpenAI - tokens={usage.get('total_tokens', 0)}")
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
        client = OpenAI(api_key=api_key)
        request = self._build_request(messages, model, system, temperature, max_tokens)
        logger.info(f"[AI REQUEST] OpenAI chat stream - model={request['model']}")

        stream = client.chat.completions.create(stream=True, **request)
        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        finally:
            stream.close()
