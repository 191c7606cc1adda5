"""
AI Text Generate Module - prompt in, text out.

The provider follows the step's credential platform: 'openai' by default,
or whatever the step overrides it with (e.g. "platform": "anthropic").
"""

from typing import Any, Dict, List

from flowmate.server.ai import ProviderRegistry
from flowmate.server.engine.module_interface import (
    ExecutableModule, ModuleExecutionError, ModuleInput, ModuleOutput
)


class TextGenerateModule(ExecutableModule):
    """
    Generate text with an LLM provider.

    Inputs:
        - prompt: User prompt
        - system: Optional system prompt
        - model: Model override (provider default otherwise)
        - temperature: Sampling temperature
        - max_tokens: Completion token limit

    Outputs:
        - text: Generated text
        - model: Model that answered
        - usage: Token usage
    """

    platform = "openai"

    @property
    def module_id(self) -> str:
        return "ai.text.generate"

    @property
    def description(self) -> str:
        return "Generate text from a prompt with an AI model (OpenAI or Anthropic)"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="prompt", type="string", description="User prompt"),
            ModuleInput(name="system", type="string", required=False, description="System prompt"),
            ModuleInput(name="model", type="string", required=False, description="Model id"),
            ModuleInput(name="temperature", type="number", required=False),
            ModuleInput(name="max_tokens", type="number", required=False),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="text", type="string", description="Generated text"),
            ModuleOutput(name="model", type="string"),
            ModuleOutput(name="usage", type="object"),
        ]

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        provider_id = context.platform or self.platform
        try:
            provider = ProviderRegistry.get(provider_id)
        except ValueError as e:
            raise ModuleExecutionError(self.module_id, str(e))

        result = provider.generate(
            messages=[{"role": "user", "content": str(inputs["prompt"])}],
            api_key=context.require_credential("api_key"),
            model=self.get_input_value(inputs, "model"),
            system=self.get_input_value(inputs, "system"),
            temperature=self.get_input_value(inputs, "temperature"),
            max_tokens=self.get_input_value(inputs, "max_tokens"),
        )
        text = (result.get("content") or "").strip()
        if not text:
            raise ModuleExecutionError(self.module_id, f"{provider_id} returned an empty response")
        return {"text": text, "model": result.get("model"), "usage": result.get("usage", {})}
