"""Tests for the agent invoker: deadlines, retries, parsing and validation."""

import asyncio
import json

import pytest
from pydantic import BaseModel
from unittest.mock import AsyncMock, MagicMock

from agents import AgentConfig, AgentError, AgentInvoker, AgentTimeoutError, InvalidOutputError, ProviderError
from agents.base_agent import build_user_prompt, extract_json
from config import Settings
from contracts import ErrorCode
from providers import LLMProvider, LLMResponse, ProviderCallError


class Greeting(BaseModel):
    text: str


def response(content: str, prompt_tokens: int = 10, completion_tokens: int = 4) -> LLMResponse:
    return LLMResponse(
        content=content,
        input_tokens=prompt_tokens,
        output_tokens=completion_tokens,
        model="test-model",
        provider="mock",
    )


def make_invoker(*answers):
    provider = MagicMock(spec=LLMProvider)
    provider.complete = AsyncMock(side_effect=list(answers))
    return AgentInvoker(provider), provider


def config(**overrides) -> AgentConfig:
    values = {"model": "test-model", "retries": 1, "backoff_seconds": 0.0, "timeout_seconds": 5.0}
    values.update(overrides)
    return AgentConfig(**values)


def invoke(invoker: AgentInvoker, cfg: AgentConfig, schema=Greeting):
    return asyncio.run(invoker.invoke("tester", "System", "Say hello", cfg, schema))


class TestAgentInvoker:
    """Test AgentInvoker.invoke."""

    def test_success_on_first_attempt(self):
        invoker, provider = make_invoker(response('{"text": "Hallo"}'))

        result = invoke(invoker, config())

        assert result.success
        assert result.output == Greeting(text="Hallo")
        assert result.attempts == 1
        assert result.usage.total_tokens == 14
        assert result.model == "test-model"
        assert provider.complete.await_args.kwargs["json_mode"] is True

    def test_invalid_json_is_retried_with_the_error(self):
        invoker, provider = make_invoker(response("not json at all"), response('{"text": "Hallo"}'))

        result = invoke(invoker, config())

        assert result.success
        assert result.attempts == 2
        assert result.usage.prompt_tokens == 20
        retry_message = provider.complete.await_args_list[1].kwargs["user_message"]
        assert "# PREVIOUS ERROR" in retry_message
        assert "not valid JSON" in retry_message

    def test_schema_mismatch_keeps_partial_output(self):
        invoker, _ = make_invoker(response('{"greeting": "Hallo"}'))

        result = invoke(invoker, config(retries=0))

        assert not result.success
        assert isinstance(result.error, InvalidOutputError)
        assert result.error.code == ErrorCode.INVALID_OUTPUT
        assert result.error.partial == {"greeting": "Hallo"}
        assert result.raw_response == '{"greeting": "Hallo"}'

    def test_validate_predicate_rejects_output(self):
        def no_shouting(output: Greeting) -> bool:
            if output.text.isupper():
                raise ValueError("Do not shout")
            return True

        invoker, provider = make_invoker(response('{"text": "HALLO"}'), response('{"text": "Hallo"}'))

        result = invoke(invoker, config(validate=no_shouting))

        assert result.success
        assert result.attempts == 2
        assert "Do not shout" in provider.complete.await_args_list[1].kwargs["user_message"]

    def test_validate_returning_false(self):
        invoker, _ = make_invoker(response('{"text": "Hallo"}'))

        result = invoke(invoker, config(retries=0, validate=lambda output: False))

        assert not result.success
        assert result.error.message == "Output rejected by validation"

    def test_timeout_is_reported_after_every_attempt(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)
            return response('{"text": "too late"}')

        provider = MagicMock(spec=LLMProvider)
        provider.complete = AsyncMock(side_effect=slow)
        invoker = AgentInvoker(provider)

        result = invoke(invoker, config(timeout_seconds=0.01, retries=2))

        assert not result.success
        assert isinstance(result.error, AgentTimeoutError)
        assert result.error.code == ErrorCode.TIMEOUT
        assert result.attempts == 3

    def test_non_retryable_provider_error_stops_early(self):
        invoker, provider = make_invoker(
            ProviderCallError("invalid api key", retryable=False),
            response('{"text": "never reached"}'),
        )

        result = invoke(invoker, config(retries=3))

        assert not result.success
        assert isinstance(result.error, ProviderError)
        assert result.error.code == ErrorCode.PROVIDER_ERROR
        assert result.attempts == 1
        assert provider.complete.await_count == 1

    def test_rate_limit_is_retried(self):
        invoker, _ = make_invoker(
            ProviderCallError("429", retryable=True, rate_limited=True),
            response('{"text": "Hallo"}'),
        )

        result = invoke(invoker, config())

        assert result.success
        assert result.attempts == 2

    def test_rate_limit_code_when_exhausted(self):
        invoker, _ = make_invoker(ProviderCallError("429", retryable=True, rate_limited=True))

        result = invoke(invoker, config(retries=0))

        assert result.error.code == ErrorCode.RATE_LIMIT

    def test_unexpected_exception_becomes_provider_error(self):
        invoker, _ = make_invoker(RuntimeError("socket closed"), response('{"text": "Hallo"}'))

        result = invoke(invoker, config())

        assert result.success
        assert result.attempts == 2

    def test_without_schema_returns_parsed_json(self):
        invoker, _ = make_invoker(response('[1, 2, 3]'))

        result = invoke(invoker, config(), schema=None)

        assert result.output == [1, 2, 3]

    def test_unwrap(self):
        invoker, _ = make_invoker(response("nope"))

        result = invoke(invoker, config(retries=0))

        with pytest.raises(AgentError):
            result.unwrap()


class TestAgentConfig:
    """Test AgentConfig.for_agent."""

    def test_defaults_resolved_through_settings(self):
        settings = Settings(default_model="gpt-4o-mini", codex_model="o3-mini", api_max_retries=2)

        strategist = AgentConfig.for_agent("strategist", settings)
        renderer = AgentConfig.for_agent("code-renderer", settings)

        assert strategist.model == "gpt-4o-mini"
        assert strategist.retries == 2
        assert strategist.timeout_seconds == 45.0
        assert renderer.model == "o3-mini"
        assert renderer.temperature == 0.2

    def test_overrides_win(self):
        cfg = AgentConfig.for_agent("editor", Settings(), timeout_seconds=5.0)
        assert cfg.timeout_seconds == 5.0

    def test_unknown_agent_uses_settings_fallbacks(self):
        settings = Settings(api_timeout_seconds=30, max_tokens_per_agent_call=1234)
        cfg = AgentConfig.for_agent("someone-else", settings)
        assert cfg.timeout_seconds == 30.0
        assert cfg.max_tokens == 1234

    def test_budget_covers_every_attempt_and_backoff(self):
        cfg = config(retries=2, timeout_seconds=45.0, backoff_seconds=1.0)
        # 3 x 45s plus 1s and 2s of backoff
        assert cfg.budget_seconds == 138.0


class TestJsonHelpers:
    """Test extract_json and build_user_prompt."""

    def test_fenced_json(self):
        assert extract_json('Here you go:\n```json\n{"a": 1}\n```') == {"a": 1}

    def test_plain_fence(self):
        assert extract_json('```\n{"a": 2}\n```') == {"a": 2}

    def test_prose_around_object(self):
        assert extract_json('Sure! {"a": 3} Hope that helps.') == {"a": 3}

    def test_fences_inside_string_values(self):
        text = '{"files": [{"path": "README.md", "content": "```bash\\nnpm i\\n```"}]}'
        assert extract_json(text)["files"][0]["content"] == "```bash\nnpm i\n```"

    def test_fenced_answer_with_fences_inside(self):
        text = '```json\n{"content": "```ts\\nexport {}\\n```"}\n```'
        assert extract_json(text) == {"content": "```ts\nexport {}\n```"}

    def test_garbage_raises(self):
        with pytest.raises(json.JSONDecodeError):
            extract_json("no braces here")

    def test_build_user_prompt(self):
        prompt = build_user_prompt({
            "Project": {"name": "Acme"},
            "Skipped": None,
            "Your Task": "Write it",
        })
        assert prompt.startswith("# PROJECT\n\n{")
        assert "SKIPPED" not in prompt
        assert prompt.endswith("# YOUR TASK\n\nWrite it")
