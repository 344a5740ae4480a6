"""Agent invoker and the base class all pipeline agents inherit from.

Every agent:
- Calls the model with its system prompt + the JSON schema of its output
- Validates output against the expected Pydantic contract
- Retries with the validation error fed back to the model
- Tracks token usage for the usage tracker
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from config import AGENT_DEFAULTS, Settings, settings as default_settings
from contracts import ErrorCode, TokenUsage
from providers import LLMProvider, ProviderCallError

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class AgentError(Exception):
    """Base class for agent call failures."""
    code: ErrorCode = ErrorCode.UNKNOWN
    retryable: bool = False

    def __init__(self, message: str, agent: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.agent = agent


class AgentTimeoutError(AgentError):
    """The model did not answer within the configured deadline."""
    code = ErrorCode.TIMEOUT
    retryable = True


class InvalidOutputError(AgentError):
    """The model answered, but the answer is not acceptable.

    ``partial`` keeps the parsed JSON (if any) so callers can salvage it.
    """
    code = ErrorCode.INVALID_OUTPUT
    retryable = True

    def __init__(self, message: str, agent: Optional[str] = None, partial: Optional[Dict[str, Any]] = None):
        super().__init__(message, agent)
        self.partial = partial


class ProviderError(AgentError):
    """The provider call itself failed (network, auth, rate limit)."""

    def __init__(self, message: str, agent: Optional[str] = None, retryable: bool = True, rate_limited: bool = False):
        super().__init__(message, agent)
        self.retryable = retryable
        self.code = ErrorCode.RATE_LIMIT if rate_limited else ErrorCode.PROVIDER_ERROR


# =============================================================================
# Config and result
# =============================================================================


@dataclass
class AgentConfig:
    """How one agent call is made.

    ``validate`` is an extra acceptance check on the parsed output. It returns
    False (or raises ValueError with a reason) to reject the output, which
    counts as an invalid output and is retried.
    """
    model: str
    max_tokens: int = 4096
    timeout_seconds: float = 60.0
    temperature: float = 0.7
    retries: int = 1
    backoff_seconds: float = 1.0
    json_mode: bool = True
    validate: Optional[Callable[[Any], bool]] = None

    @property
    def budget_seconds(self) -> float:
        """Worst-case wall time of one invocation: every attempt times out, plus backoff."""
        backoff = sum(self.backoff_seconds * (2 ** i) for i in range(self.retries))
        return self.timeout_seconds * (self.retries + 1) + backoff

    @classmethod
    def for_agent(cls, agent_name: str, settings: Optional[Settings] = None, **overrides: Any) -> "AgentConfig":
        """Build a config from AGENT_DEFAULTS, resolved through settings."""
        settings = settings or default_settings
        defaults = AGENT_DEFAULTS.get(agent_name, {})
        values: Dict[str, Any] = {
            "model": settings.model_for(defaults.get("model", "default")),
            "max_tokens": defaults.get("max_tokens", settings.max_tokens_per_agent_call),
            "timeout_seconds": defaults.get("timeout_seconds", float(settings.api_timeout_seconds)),
            "temperature": defaults.get("temperature", 0.7),
            "retries": settings.api_max_retries,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class AgentResult:
    """Outcome of an invocation. Model-side failures are reported, not raised."""
    success: bool
    output: Any = None
    error: Optional[AgentError] = None
    duration_ms: float = 0.0
    usage: TokenUsage = field(default_factory=TokenUsage)
    attempts: int = 0
    model: str = ""
    raw_response: Optional[str] = None
    # Latest parseable but rejected answer, kept whatever the final error was
    partial: Optional[Dict[str, Any]] = None

    def unwrap(self) -> Any:
        """Return the output, or raise the error that prevented it."""
        if self.success:
            return self.output
        raise self.error or AgentError("Agent produced no output")


# =============================================================================
# JSON extraction
# =============================================================================


def extract_json(response_text: str) -> Any:
    """Parse JSON from a model response, tolerating markdown code fences.

    Raises:
        json.JSONDecodeError: If no valid JSON can be found
    """
    text = response_text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Handle markdown code blocks; the closing fence is the last one, since
    # string values may contain fences of their own
    if "```" in text:
        opening = "```json" if "```json" in text else "```"
        start = text.find(opening) + len(opening)
        end = text.rfind("```")
        text = text[start:end if end >= start else None].strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Prose around a single object: cut from the first brace to the last
        first, last = text.find("{"), text.rfind("}")
        if first == -1 or last <= first:
            raise
        return json.loads(text[first:last + 1])


def build_user_prompt(sections: Dict[str, Any]) -> str:
    """Render titled prompt sections; models and dicts become indented JSON."""
    parts = []
    for title, body in sections.items():
        if body is None:
            continue
        if isinstance(body, BaseModel):
            text = body.model_dump_json(indent=2, by_alias=True)
        elif isinstance(body, (dict, list)):
            text = json.dumps(body, indent=2, ensure_ascii=False, default=str)
        else:
            text = str(body)
        parts.append(f"# {title.upper()}\n\n{text}")
    return "\n\n".join(parts)


# =============================================================================
# Invoker
# =============================================================================


class AgentInvoker:
    """Single entry point for every model call in the pipeline.

    Applies the deadline, parses and validates the answer and retries with
    exponential backoff. Retries stop early on non-retryable errors.
    """

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def invoke(
        self,
        agent_name: str,
        system_prompt: str,
        user_prompt: str,
        config: AgentConfig,
        output_schema: Optional[Type[BaseModel]] = None,
    ) -> AgentResult:
        """Invoke the model for one agent.

        Args:
            agent_name: Name used for logging and error attribution
            system_prompt: System/instruction prompt
            user_prompt: Task input
            config: Model, limits, retries and optional acceptance check
            output_schema: Pydantic model the JSON answer must validate against

        Returns:
            AgentResult; ``success`` is False when every attempt failed
        """
        started = time.perf_counter()
        usage = TokenUsage()
        last_error: Optional[AgentError] = None
        partial: Optional[Dict[str, Any]] = None
        raw_response: Optional[str] = None
        model = config.model
        attempts = 0

        for attempt in range(config.retries + 1):
            if last_error is not None:
                if not last_error.retryable:
                    break
                delay = config.backoff_seconds * (2 ** (attempt - 1))
                if delay > 0:
                    await asyncio.sleep(delay)

            attempts = attempt + 1
            message = user_prompt
            if isinstance(last_error, InvalidOutputError):
                message = (
                    f"{user_prompt}\n\n"
                    f"# PREVIOUS ERROR\n\n"
                    f"Your previous response was rejected. "
                    f"Error: {last_error.message}\n\n"
                    f"Please fix the issues and provide a valid JSON response."
                )

            attempt_started = time.perf_counter()
            try:
                response = await asyncio.wait_for(
                    self.provider.complete(
                        system_prompt=system_prompt,
                        user_message=message,
                        model=config.model,
                        max_tokens=config.max_tokens,
                        temperature=config.temperature,
                        json_mode=config.json_mode,
                    ),
                    timeout=config.timeout_seconds,
                )
            except asyncio.TimeoutError:
                last_error = AgentTimeoutError(
                    f"No response within {config.timeout_seconds}s", agent=agent_name
                )
                self._log_attempt(agent_name, attempts, attempt_started, None, last_error)
                continue
            except ProviderCallError as e:
                last_error = ProviderError(
                    str(e), agent=agent_name, retryable=e.retryable, rate_limited=e.rate_limited
                )
                self._log_attempt(agent_name, attempts, attempt_started, None, last_error)
                continue
            except Exception as e:
                last_error = ProviderError(f"{type(e).__name__}: {e}", agent=agent_name)
                self._log_attempt(agent_name, attempts, attempt_started, None, last_error)
                continue

            call_usage = TokenUsage(
                prompt_tokens=response.input_tokens,
                completion_tokens=response.output_tokens,
            )
            usage.add(call_usage)
            raw_response = response.content
            model = response.model or config.model

            try:
                output = self._parse_output(agent_name, response.content, config, output_schema)
            except InvalidOutputError as e:
                last_error = e
                if e.partial is not None:
                    partial = e.partial
                self._log_attempt(agent_name, attempts, attempt_started, call_usage, last_error)
                continue

            self._log_attempt(agent_name, attempts, attempt_started, call_usage, None)
            return AgentResult(
                success=True,
                output=output,
                duration_ms=_elapsed_ms(started),
                usage=usage,
                attempts=attempts,
                model=model,
                raw_response=raw_response,
            )

        if isinstance(last_error, InvalidOutputError) and last_error.partial is None:
            last_error.partial = partial
        return AgentResult(
            success=False,
            error=last_error,
            duration_ms=_elapsed_ms(started),
            usage=usage,
            attempts=attempts,
            model=model,
            raw_response=raw_response,
            partial=partial,
        )

    def _parse_output(
        self,
        agent_name: str,
        content: str,
        config: AgentConfig,
        output_schema: Optional[Type[BaseModel]],
    ) -> Any:
        try:
            data = extract_json(content)
        except json.JSONDecodeError as e:
            raise InvalidOutputError(f"Response is not valid JSON: {e}", agent=agent_name)

        partial = data if isinstance(data, dict) else None
        output = data
        if output_schema is not None:
            try:
                output = output_schema.model_validate(data)
            except ValidationError as e:
                raise InvalidOutputError(
                    f"Response does not match {output_schema.__name__}: {e}",
                    agent=agent_name,
                    partial=partial,
                )

        if config.validate is not None:
            try:
                accepted = config.validate(output)
            except ValueError as e:
                raise InvalidOutputError(str(e), agent=agent_name, partial=partial)
            if not accepted:
                raise InvalidOutputError("Output rejected by validation", agent=agent_name, partial=partial)

        return output

    def _log_attempt(
        self,
        agent_name: str,
        attempt: int,
        attempt_started: float,
        usage: Optional[TokenUsage],
        error: Optional[AgentError],
    ) -> None:
        extra = {
            "agent": agent_name,
            "attempt": attempt,
            "duration_ms": _elapsed_ms(attempt_started),
            "prompt_tokens": usage.prompt_tokens if usage else 0,
            "completion_tokens": usage.completion_tokens if usage else 0,
            "outcome": "success" if error is None else error.code.value,
        }
        if error is None:
            logger.info("%s attempt %d succeeded", agent_name, attempt, extra=extra)
        else:
            logger.warning("%s attempt %d failed: %s", agent_name, attempt, error.message, extra=extra)


def _elapsed_ms(since: float) -> float:
    return round((time.perf_counter() - since) * 1000, 1)


# =============================================================================
# Base agent
# =============================================================================


class BaseAgent(ABC):
    """Base class for all Site Foundry agents.

    Responsibilities:
    - Builds the system prompt including the output JSON schema
    - Calls the model through the shared AgentInvoker
    - Accumulates token usage across calls
    """

    def __init__(
        self,
        role: str,
        system_prompt: str,
        output_schema: Optional[Type[BaseModel]],
        invoker: AgentInvoker,
        config: Optional[AgentConfig] = None,
    ):
        """Initialize the agent.

        Args:
            role: Agent name (e.g. 'strategist', 'editor'); selects AGENT_DEFAULTS
            system_prompt: The agent's system prompt defining its behavior
            output_schema: Pydantic model class for validating output
            invoker: Shared invoker wrapping the model provider
            config: Override the per-agent defaults
        """
        self.role = role
        self.system_prompt = system_prompt
        self.output_schema = output_schema
        self.invoker = invoker
        self.config = config or AgentConfig.for_agent(role)
        self.total_usage = TokenUsage()

    def _build_full_system_prompt(self) -> str:
        """Build the complete system prompt including the output schema."""
        parts = [self.system_prompt]

        if self.output_schema is not None:
            parts.append("\n\n# OUTPUT FORMAT\n")
            parts.append("You MUST respond with valid JSON matching this schema:\n\n")
            parts.append(
                f"```json\n{json.dumps(self.output_schema.model_json_schema(by_alias=True), indent=2)}\n```"
            )

        return "".join(parts)

    async def _invoke(self, user_message: str, config: Optional[AgentConfig] = None) -> AgentResult:
        result = await self.invoker.invoke(
            agent_name=self.role,
            system_prompt=self._build_full_system_prompt(),
            user_prompt=user_message,
            config=config or self.config,
            output_schema=self.output_schema,
        )
        self.total_usage.add(result.usage)
        return result

    @abstractmethod
    def get_task_description(self) -> str:
        """Return a description of what this agent does.

        Used for logging and debugging.
        """
        pass


__all__ = [
    "AgentError",
    "AgentTimeoutError",
    "InvalidOutputError",
    "ProviderError",
    "AgentConfig",
    "AgentResult",
    "AgentInvoker",
    "BaseAgent",
    "TokenUsage",
    "build_user_prompt",
    "extract_json",
]
