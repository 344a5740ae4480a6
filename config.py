"""Configuration settings for the Site Foundry pipeline."""

# Load .env into os.environ so provider keys (e.g. OPENAI_API_KEY) reach litellm
from dotenv import load_dotenv

load_dotenv()

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Any, Dict, Literal, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Global settings for Site Foundry.

    Settings can be overridden via environment variables with SITE_FOUNDRY_ prefix.
    Example: SITE_FOUNDRY_MAX_REVISIONS=3
    """

    # Model config
    provider: str = Field(
        default="openai",
        description="Provider key used to resolve model aliases (openai, anthropic, gemini, deepseek)"
    )
    default_model: str = Field(
        default="gpt-4o",
        description="Default model for strategist, content and editor calls"
    )
    codex_model: str = Field(
        default="gpt-4o",
        description="Model used by the code renderer in model render mode"
    )
    max_tokens_per_agent_call: int = Field(
        default=8000,
        description="Upper bound for max_tokens of any single agent call (renderer excluded)"
    )
    api_timeout_seconds: int = Field(
        default=60,
        description="Fallback provider call timeout in seconds"
    )
    api_max_retries: int = Field(
        default=1,
        description="Retries per agent call after the first attempt"
    )

    # Revision loop and caching
    max_revisions: int = Field(
        default=2,
        ge=0,
        description="Content revisions after the first generation attempt"
    )
    cache_ttl_hours: float = Field(
        default=24,
        description="Content Pack reuse window in hours"
    )
    quality_threshold: float = Field(
        default=8.0,
        ge=0.0,
        le=10.0,
        description="Minimum weighted editor score for approval"
    )

    # Execution
    max_concurrency: int = Field(
        default=3,
        ge=1,
        description="Concurrent tasks within a phase"
    )
    strategy_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Deadline for the whole strategy phase; unset means the strategist's full retry budget"
    )
    render_timeout_seconds: float = Field(
        default=120.0,
        description="Deadline per render task"
    )
    store_timeout_seconds: float = Field(
        default=10.0,
        description="Deadline for a content pack store read or write"
    )
    render_mode: Literal["template", "model"] = Field(
        default="template",
        description="template renders deterministically, model asks the codex model"
    )

    # Token pricing (per 1M tokens) - gpt-4o
    input_token_cost_per_million: float = Field(
        default=2.50,
        description="Cost per 1M input tokens"
    )
    output_token_cost_per_million: float = Field(
        default=10.00,
        description="Cost per 1M output tokens"
    )

    # Paths
    output_dir: str = Field(
        default="./outputs",
        description="Rendered sites are written here"
    )
    content_pack_dir: str = Field(
        default="./workspace/content_packs",
        description="One JSON record per project for the file store"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit one JSON object per log line")

    model_config = {
        "env_prefix": "SITE_FOUNDRY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore extra env vars (e.g. OPENAI_API_KEY) not in schema
    }

    def get_output_path(self) -> Path:
        """Get output path as Path object."""
        return Path(self.output_dir)

    def get_content_pack_path(self) -> Path:
        return Path(self.content_pack_dir)

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_hours * 3600

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Calculate cost in USD for given token usage."""
        input_cost = (input_tokens / 1_000_000) * self.input_token_cost_per_million
        output_cost = (output_tokens / 1_000_000) * self.output_token_cost_per_million
        return input_cost + output_cost

    def model_for(self, role: str) -> str:
        """Resolve a model role ("default" or "codex") to a model name."""
        return self.codex_model if role == "codex" else self.default_model


# Per-agent call defaults. "model" is a role resolved through Settings.model_for.
AGENT_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "strategist": {
        "model": "default",
        "temperature": 0.7,
        "max_tokens": 4000,
        "timeout_seconds": 45.0,
    },
    "content-pack-generator": {
        "model": "default",
        "temperature": 0.6,
        "max_tokens": 8000,
        "timeout_seconds": 50.0,
    },
    "editor": {
        "model": "default",
        "temperature": 0.4,
        "max_tokens": 4000,
        "timeout_seconds": 40.0,
    },
    "code-renderer": {
        "model": "codex",
        "temperature": 0.2,
        "max_tokens": 20000,
        "timeout_seconds": 50.0,
    },
}


# Create singleton instance
settings = Settings()
