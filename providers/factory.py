"""Factory for creating LLM providers."""

from typing import Optional

from .base import LLMProvider
from .litellm_provider import LiteLLMProvider, PROVIDER_SYNONYMS, MODEL_ALIASES


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> LLMProvider:
    """Get an LLM provider instance.

    Every provider goes through LiteLLM; the provider name only decides how
    short model names are resolved.

    Args:
        provider_name: Provider key (openai, anthropic, gemini, deepseek); defaults to settings.provider
        model: Default model; defaults to settings.default_model
        metadata: Metadata passed to litellm with every call

    Returns:
        LLMProvider instance

    Examples:
        get_provider()
        get_provider("anthropic", "claude-sonnet")
        get_provider(model="gemini/gemini-2.5-pro")
    """
    from config import settings

    provider_name = provider_name or settings.provider
    key = PROVIDER_SYNONYMS.get(provider_name.lower(), provider_name.lower())
    if key not in MODEL_ALIASES:
        raise ValueError(
            f"Unknown provider: {provider_name}. "
            f"Available: {list(MODEL_ALIASES.keys())}"
        )
    return LiteLLMProvider(
        default_model=model or settings.default_model,
        provider_name=key,
        metadata=metadata,
    )
