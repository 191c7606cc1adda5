"""
Text provider implementations.
"""

from .openai import OpenAIProvider
from .anthropic import AnthropicProvider

__all__ = ["OpenAIProvider", "AnthropicProvider"]
