"""LiteLLM-backed provider. Single implementation for all model calls."""

import logging
from typing import Optional

from .base import LLMProvider, LLMResponse, ProviderCallError

logger = logging.getLogger(__name__)


# LiteLLM model strings: provider/model-name (OpenAI can omit prefix)
DEFAULT_MODELS = {
    "anthropic": "anthropic/claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "gemini": "gemini/gemini-2.5-flash",
    "deepseek": "deepseek/deepseek-chat",
}

# Map provider + optional model -> LiteLLM model string
MODEL_ALIASES = {
    "anthropic": {
        None: "anthropic/claude-sonnet-4-20250514",
        "claude-sonnet": "anthropic/claude-sonnet-4-20250514",
        "claude-opus": "anthropic/claude-opus-4-20250514",
        "claude-haiku": "anthropic/claude-3-5-haiku-20241022",
    },
    "openai": {
        None: "gpt-4o",
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt-4.1": "gpt-4.1",
        "gpt-4.1-mini": "gpt-4.1-mini",
        "o3-mini": "o3-mini",
    },
    "gemini": {
        None: "gemini/gemini-2.5-flash",
        "gemini-2.5-flash": "gemini/gemini-2.5-flash",
        "gemini-2.5-pro": "gemini/gemini-2.5-pro",
    },
    "deepseek": {
        None: "deepseek/deepseek-chat",
        "deepseek-chat": "deepseek/deepseek-chat",
        "deepseek-coder": "deepseek/deepseek-coder",
    },
}

PROVIDER_SYNONYMS = {"claude": "anthropic", "gpt": "openai", "google": "gemini"}


def _match_alias(aliases: dict, model: str) -> Optional[str]:
    model_lower = model.lower()
    # Prefer longest alias match first (e.g. gpt-4o-mini before gpt-4o)
    for alias in sorted((a for a in aliases if a), key=len, reverse=True):
        if model_lower == alias or model_lower.startswith(alias + "-") or model_lower.startswith(alias + "."):
            return aliases[alias]
    return None


def _to_litellm_model(provider_name: Optional[str], model: Optional[str]) -> str:
    """Map provider + model to LiteLLM model string."""
    if model and "/" in model:
        return model
    if provider_name:
        key = PROVIDER_SYNONYMS.get(provider_name.lower(), provider_name.lower())
        if key in MODEL_ALIASES:
            aliases = MODEL_ALIASES[key]
            if model:
                matched = _match_alias(aliases, model)
                if matched:
                    return matched
                # no alias match: use provider prefix + model for non-OpenAI
                return model if key == "openai" else f"{key}/{model}"
            return aliases[None]
    if model:
        for aliases in MODEL_ALIASES.values():
            matched = _match_alias(aliases, model)
            if matched:
                return matched
        return model
    return DEFAULT_MODELS["openai"]


def _to_provider_error(exc: Exception) -> ProviderCallError:
    """Classify a litellm exception as retryable or not."""
    import litellm

    message = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, litellm.RateLimitError):
        return ProviderCallError(message, retryable=True, rate_limited=True)
    if isinstance(
        exc,
        (
            litellm.AuthenticationError,
            litellm.PermissionDeniedError,
            litellm.NotFoundError,
            litellm.BadRequestError,
        ),
    ):
        return ProviderCallError(message, retryable=False)
    # Timeouts, connection problems and 5xx are worth another attempt
    return ProviderCallError(message, retryable=True)


class LiteLLMProvider(LLMProvider):
    """Single provider that delegates to litellm.acompletion()."""

    def __init__(
        self,
        default_model: str,
        provider_name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ):
        """Initialize with the model to use by default.

        Args:
            default_model: Model name or LiteLLM model string (e.g. gpt-4o, anthropic/claude-sonnet-4-20250514).
            provider_name: Optional provider key used to resolve model aliases.
            metadata: Optional dict passed to litellm (e.g. project, run id) for cost logging.
        """
        self._default_model = default_model
        self._provider_name = provider_name
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def set_metadata(self, metadata: dict) -> None:
        """Merge metadata sent with every following call."""
        self._metadata = {**self._metadata, **metadata}

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        json_mode: bool = True,
    ) -> LLMResponse:
        import litellm

        resolved_model = _to_litellm_model(self._provider_name, model or self._default_model)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        kwargs = {
            "model": resolved_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "metadata": {**self._metadata},
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            error = _to_provider_error(e)
            logger.warning(
                "litellm call failed",
                extra={"model": resolved_model, "retryable": error.retryable, "error": str(e)},
            )
            raise error from e

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0
        hidden = getattr(response, "_hidden_params", None) or {}
        cost = float(hidden.get("response_cost", 0) or 0)
        model_id = getattr(response, "model", None) or resolved_model

        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            model=model_id,
            provider=self.name,
            cost=cost,
        )

    def is_available(self) -> bool:
        """LiteLLM reads API keys from env; we consider it available if the model is set."""
        return bool(self._default_model)
