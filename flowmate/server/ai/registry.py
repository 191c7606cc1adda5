"""
Provider Registry - Registration and lookup for text providers

Providers register themselves using the @register decorator; the registry
stores classes and creates a fresh instance on each get() call.
"""

from typing import Callable, Dict, Type

from .base import TextProviderBase


class ProviderRegistry:
    """
    Central registry for text-generation providers.

    Usage:
        @register("openai")
        class OpenAIProvider(TextProviderBase):
            ...

        provider = ProviderRegistry.get("openai")
    """

    _providers: Dict[str, Type[TextProviderBase]] = {}

    @classmethod
    def register(cls, provider_id: str, provider_class: Type[TextProviderBase]) -> None:
        # Re-registration replaces the class (tests install fakes this way)
        cls._providers[provider_id] = provider_class

    @classmethod
    def get(cls, provider_id: str) -> TextProviderBase:
        """
        Get a fresh provider instance by ID.

        Raises:
            ValueError: If provider_id is not registered
        """
        if provider_id not in cls._providers:
            available = list(cls._providers.keys())
            raise ValueError(
                f"Unknown provider: '{provider_id}'. "
                f"Available providers: {available}"
            )
        return cls._providers[provider_id]()


def register(provider_id: str) -> Callable[[Type[TextProviderBase]], Type[TextProviderBase]]:
    """Class decorator registering a provider under ``provider_id``."""

    def decorator(provider_class: Type[TextProviderBase]) -> Type[TextProviderBase]:
        ProviderRegistry.register(provider_id, provider_class)
        return provider_class

    return decorator
