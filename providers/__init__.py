"""LLM provider abstraction for multi-model support."""

from .base import LLMProvider, LLMResponse, ProviderCallError
from .factory import get_provider
from .litellm_provider import LiteLLMProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ProviderCallError",
    "LiteLLMProvider",
    "get_provider",
]
