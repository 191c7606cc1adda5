"""
AI Text Generation - provider registry and implementations.

Providers are auto-registered when imported via the @register decorator.
"""

from .base import TextProviderBase
from .registry import ProviderRegistry, register

# Import providers to trigger registration
from .providers import AnthropicProvider, OpenAIProvider

__all__ = ["AnthropicProvider", "OpenAIProvider", "ProviderRegistry", "TextProviderBase", "register"]
