"""
Text Provider Base - contract for text-generation providers.

A provider turns chat messages into text, either in one call or as a stream
of text deltas. Messages are plain dicts: {"role": "user"|"assistant", "content": str}.
The system prompt is passed separately because providers place it differently.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional


class TextProviderBase(ABC):
    """Base class for text-generation providers."""

    # Default model when the caller does not pick one
    default_model: str = ""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Provider id, also its credential platform (e.g. 'openai')."""
        pass

    @abstractmethod
    def generate(
        self,
        messages: List[Dict[str, str]],
        api_key: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Generate a full response.

        Returns:
            Dict with content (str), model and usage
        """
        pass

    @abstractmethod
    def stream(
        self,
        messages: List[Dict[str, str]],
        api_key: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Iterator[str]:
        """Yield text deltas as the provider produces them."""
        pass
