"""End-to-end tests for the Pipeline Manager with a scripted provider."""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from contracts import ErrorCode, Phase, RunStatus
from orchestrator import ExecutionStrategy, PipelineManager, generate_sync, is_cache_fresh
from orchestrator.pipeline_manager import STRATEGY_DEADLINE_GRACE_SECONDS
from providers import ProviderCallError
from storage import ContentPackStoreError, InMemoryContentPackStore

from conftest import build_pack_payload, build_strategy_payload, build_verdict_payload


HARDCODED_RENDER = {
    "files": [{
        "path": "src/app/page.tsx",
        "content": "export default function Page() {\n  return <h1>Willkommen bei uns</h1>\n}\n",
        "type": "page",
    }],
}


def happy_scripts(**overrides):
    scripts = {
        "strategist": build_strategy_payload(),
        "content-pack-generator": build_pack_payload(),
        "editor": build_verdict_payload(score=9.0),
    }
    scripts.update(overrides)
    return scripts


def broken_pack_payload():
    payload = build_pack_payload()
    payload["navigation"]["items"] = []
    return payload


class BrokenStore(InMemoryContentPackStore):
    """Store whose reads and/or writes fail."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = True):
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def load_record(self, project_id):
        if self.fail_reads:
            raise ContentPackStoreError("disk unavailable")
        return await super().load_record(project_id)

    async def save_record(self, record):
        if self.fail_writes:
            raise ContentPackStoreError("disk full")
        await super().save_record(record)


def make_manager(provider, settings, store=None, **strategy_overrides):
    return PipelineManager(
        provider=provider,
        store=store if store is not None else InMemoryContentPackStore(),
        strategy=ExecutionStrategy.from_settings(settings, **strategy_overrides),
        settings=settings,
    )


def run(manager, intake, **kwargs):
    return asyncio.run(manager.generate(intake, **kwargs))


def codes(result):
    return [e.code for e in result.errors]


class TestHappyPath:
    """A clean run for Acme GmbH."""

    def test_generates_site(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts())
        manager = make_manager(provider, test_settings)

        result = run(manager, intake)

        assert result.success
        assert result.errors == []
        paths = [f.path for f in result.generated_files]
        assert "src/app/page.tsx" in paths
        assert "src/app/kontakt/page.tsx" in paths
        assert paths.count("src/content/site.ts") == 1
        assert result.content_pack.project_id == "acme-gmbh"
        assert result.verdict.approved
        assert result.metrics.quality_score == 9.0
        assert result.metrics.revision_count == 0
        assert not result.metrics.cache_hit
        assert [m.path for m in result.todo_markers if m.required] == [
            "legal.imprint.registryNumber",
            "legal.privacy.contactInfo",
        ]

    def test_every_agent_completes(self, scripted_provider, intake, test_settings):
        result = run(make_manager(scripted_provider(happy_scripts()), test_settings), intake)

        assert result.status == RunStatus.SUCCEEDED
        assert result.project_id == "acme-gmbh"
        assert result.completed_agents == ["strategist", "content-pack-generator", "editor", "code-renderer"]
        assert result.pending_agents == []
        assert result.skipped_agents == []

    def test_metrics_and_calls(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts())

        result = run(make_manager(provider, test_settings), intake)

        assert [c["role"] for c in provider.calls] == ["strategist", "content-pack-generator", "editor"]
        assert [p.name for p in result.metrics.phases] == [
            Phase.CACHE_CHECK.value,
            Phase.STRATEGY.value,
            Phase.CONTENT_GENERATION.value,
            Phase.REVIEW.value,
            Phase.CODE_RENDERING.value,
            Phase.ASSEMBLY.value,
        ]
        assert result.metrics.token_usage.total_tokens == 3 * 200
        assert result.metrics.estimated_cost_usd > 0
        assert result.metrics.cost_by_agent["code-renderer"] == 0.0
        assert set(result.metrics.cost_by_agent) == {"strategist", "content-pack-generator", "editor", "code-renderer"}
        assert result.run_id.startswith("run_")

    def test_pack_is_stored_with_score(self, scripted_provider, intake, test_settings):
        store = InMemoryContentPackStore()

        result = run(make_manager(scripted_provider(happy_scripts()), test_settings, store), intake)

        record = asyncio.run(store.load_record("acme-gmbh"))
        assert record.content_pack.hash == result.content_pack.hash
        assert record.quality_score == 9.0

    def test_intake_is_not_mutated(self, scripted_provider, intake, test_settings):
        before = intake.model_dump()
        run(make_manager(scripted_provider(happy_scripts()), test_settings), intake)
        assert intake.model_dump() == before

    def test_generate_sync(self, scripted_provider, intake, test_settings):
        result = generate_sync(
            intake,
            provider=scripted_provider(happy_scripts()),
            store=InMemoryContentPackStore(),
            settings=test_settings,
        )
        assert result.success


class TestCache:
    """Cache check before generation."""

    def test_second_run_reuses_pack(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts())
        store = InMemoryContentPackStore()
        manager = make_manager(provider, test_settings, store)

        first = run(manager, intake)
        second = run(manager, intake)

        assert second.success
        assert second.metrics.cache_hit
        assert second.content_pack.hash == first.content_pack.hash
        assert len(provider.calls_for("strategist")) == 1
        assert len(provider.calls_for("content-pack-generator")) == 1
        assert second.verdict is None
        assert second.completed_agents == ["code-renderer"]
        assert second.skipped_agents == ["strategist", "content-pack-generator", "editor"]
        assert second.pending_agents == []
        assert [p.name for p in second.metrics.phases] == [
            Phase.CACHE_CHECK.value,
            Phase.CODE_RENDERING.value,
            Phase.ASSEMBLY.value,
        ]
        assert asyncio.run(store.load_record("acme-gmbh")).quality_score == 9.0
        assert [m.path for m in second.todo_markers] == [m.path for m in first.todo_markers]

    def test_force_regenerate(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts())
        manager = make_manager(provider, test_settings)

        run(manager, intake)
        result = run(manager, intake, force_regenerate=True)

        assert not result.metrics.cache_hit
        assert len(provider.calls_for("strategist")) == 2

    def test_existing_pack_is_reused(self, scripted_provider, intake, test_settings, content_pack):
        provider = scripted_provider(happy_scripts())

        result = run(make_manager(provider, test_settings), intake, existing_pack=content_pack)

        assert result.metrics.cache_hit
        assert provider.calls == []

    def test_stale_pack_is_regenerated(self, scripted_provider, intake, test_settings, content_pack):
        provider = scripted_provider(happy_scripts())
        stale = content_pack.model_copy(
            update={"generated_at": datetime.now(timezone.utc) - timedelta(hours=25)}
        )

        result = run(make_manager(provider, test_settings), intake, existing_pack=stale)

        assert not result.metrics.cache_hit
        assert len(provider.calls_for("strategist")) == 1

    def test_changed_intake_is_regenerated(self, scripted_provider, intake, test_settings, content_pack):
        provider = scripted_provider(happy_scripts())
        changed = intake.model_copy(update={"brief": "Jetzt auch Elektroinstallation"})

        result = run(make_manager(provider, test_settings), changed, existing_pack=content_pack)

        assert not result.metrics.cache_hit

    def test_store_read_failure_is_a_warning(self, scripted_provider, intake, test_settings):
        store = BrokenStore(fail_reads=True, fail_writes=False)

        result = run(make_manager(scripted_provider(happy_scripts()), test_settings, store), intake)

        assert result.success
        assert codes(result) == [ErrorCode.CACHE_ERROR]
        assert result.errors[0].recoverable
        assert result.errors[0].phase == Phase.CACHE_CHECK.value


class TestIsCacheFresh:
    """Test is_cache_fresh."""

    def test_fresh(self, content_pack, intake):
        now = content_pack.generated_at + timedelta(hours=1)
        assert is_cache_fresh(content_pack, intake, ttl_seconds=24 * 3600, now=now)

    def test_expired(self, content_pack, intake):
        now = content_pack.generated_at + timedelta(hours=24)
        assert not is_cache_fresh(content_pack, intake, ttl_seconds=24 * 3600, now=now)

    def test_unstamped(self, pack_payload, intake):
        from contracts import ContentPack

        assert not is_cache_fresh(ContentPack.model_validate(pack_payload), intake, ttl_seconds=3600)

    def test_addon_order_does_not_matter(self, content_pack, intake):
        with_addons = intake.model_copy(update={"selected_addons": ["cms", "blog"]})
        reordered = intake.model_copy(update={"selected_addons": ["blog", "cms"]})
        pack = content_pack.model_copy(update={"intake_hash": with_addons.fingerprint()})
        assert is_cache_fresh(pack, reordered, ttl_seconds=3600)


class TestRevisionLoop:
    """Bounded content generation / review loop."""

    def test_revision_then_approval(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(editor=[
            build_verdict_payload(score=6.0, claimed_approved=False),
            build_verdict_payload(score=9.0),
        ]))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert result.errors == []
        assert result.metrics.revision_count == 1
        content_calls = provider.calls_for("content-pack-generator")
        assert len(content_calls) == 2
        assert "# REVISION FEEDBACK" in content_calls[1]["user_message"]
        assert "scored 6.0/10" in content_calls[1]["user_message"]

    def test_budget_is_bounded(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(editor=build_verdict_payload(score=6.0)))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert len(provider.calls_for("content-pack-generator")) == 3
        assert len(provider.calls_for("editor")) == 3
        assert result.metrics.revision_count == 2
        assert codes(result) == [ErrorCode.QUALITY_THRESHOLD]
        assert result.errors[0].recoverable
        assert result.metrics.quality_score == 6.0
        assert result.generated_files

    def test_critical_feedback_forces_revision(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(editor=[
            build_verdict_payload(score=9.5, critical=True),
            build_verdict_payload(score=9.0),
        ]))

        result = run(make_manager(provider, test_settings), intake)

        assert result.metrics.revision_count == 1
        assert "Impressum unvollständig" in provider.calls_for("content-pack-generator")[1]["user_message"]

    def test_zero_revisions(self, scripted_provider, intake, test_settings):
        settings = test_settings.model_copy(update={"max_revisions": 0})
        provider = scripted_provider(happy_scripts(editor=build_verdict_payload(score=6.0)))

        result = run(make_manager(provider, settings), intake)

        assert len(provider.calls_for("content-pack-generator")) == 1
        assert codes(result) == [ErrorCode.QUALITY_THRESHOLD]

    def test_structural_failure_skips_editor(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(**{
            "content-pack-generator": [broken_pack_payload(), build_pack_payload()],
        }))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert result.errors == []
        assert len(provider.calls_for("editor")) == 1
        retry_prompt = provider.calls_for("content-pack-generator")[1]["user_message"]
        assert "EMPTY_NAVIGATION" in retry_prompt

    def test_never_valid_pack_is_used_with_warning(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(**{"content-pack-generator": broken_pack_payload()}))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert provider.calls_for("editor") == []
        assert codes(result) == [ErrorCode.STRUCTURAL_VALIDATION]
        assert result.errors[0].recoverable
        assert result.content_pack.navigation.items == []
        assert result.skipped_agents == ["editor"]
        assert "content-pack-generator" in result.completed_agents

    def test_last_valid_pack_wins_over_broken_revision(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(
            editor=build_verdict_payload(score=6.0),
            **{"content-pack-generator": [build_pack_payload(), broken_pack_payload()]},
        ))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert codes(result) == [ErrorCode.QUALITY_THRESHOLD]
        assert result.content_pack.navigation.items
        assert result.metrics.quality_score == 6.0

    def test_content_failure_is_retried_next_attempt(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(**{
            "content-pack-generator": ["kein JSON", build_pack_payload()],
        }))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert codes(result) == [ErrorCode.INVALID_OUTPUT]
        assert result.metrics.revision_count == 1

    def test_content_failure_on_every_attempt_is_fatal(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(**{"content-pack-generator": "kein JSON"}))

        result = run(make_manager(provider, test_settings), intake)

        assert not result.success
        assert result.generated_files == []
        assert len(provider.calls_for("content-pack-generator")) == 3
        assert [e.recoverable for e in result.errors] == [True, True, True, False]
        assert result.errors[-1].code == ErrorCode.INVALID_OUTPUT

    def test_review_failure_proceeds_without_verdict(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(editor={"approved": True}))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert result.verdict is None
        assert result.metrics.quality_score is None
        assert [e.agent for e in result.errors] == ["editor"]
        assert result.errors[0].recoverable
        assert result.skipped_agents == ["editor"]


class TestStrategyFailures:
    """Strategy phase errors."""

    def test_provider_error_is_fatal(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(
            strategist=ProviderCallError("invalid api key", retryable=False),
        ))

        result = run(make_manager(provider, test_settings), intake)

        assert not result.success
        assert result.generated_files == []
        assert result.content_pack is None
        assert provider.calls_for("content-pack-generator") == []
        error = result.errors[0]
        assert error.agent == "strategist"
        assert error.phase == Phase.STRATEGY.value
        assert error.code == ErrorCode.PROVIDER_ERROR
        assert not error.recoverable
        assert result.status == RunStatus.FAILED
        assert result.completed_agents == []
        assert result.pending_agents == ["strategist", "content-pack-generator", "editor", "code-renderer"]

    def test_invalid_output_falls_back_to_default_strategy(self, scripted_provider, intake, test_settings):
        provider = scripted_provider(happy_scripts(strategist="Das kann ich leider nicht"))

        result = run(make_manager(provider, test_settings), intake)

        assert result.success
        assert codes(result) == [ErrorCode.INVALID_OUTPUT]
        assert result.errors[0].recoverable
        prompt = provider.calls_for("content-pack-generator")[0]["user_message"]
        assert '"/about"' in prompt
        assert '"/kontakt"' in prompt

    def test_strategy_deadline(self, scripted_provider, intake, test_settings):
        async def slow(_message):
            await asyncio.sleep(1)
            return build_strategy_payload()

        provider = scripted_provider(happy_scripts(strategist=slow))

        result = run(make_manager(provider, test_settings, strategy_timeout_seconds=0.05), intake)

        assert not result.success
        assert codes(result) == [ErrorCode.TIMEOUT]

    def test_partial_strategy_survives_a_timed_out_retry(self, scripted_provider, intake, test_settings):
        incomplete = build_strategy_payload()
        del incomplete["brandStrategy"]["identity"]["tagline"]

        async def hang(_message):
            await asyncio.sleep(2)
            return build_strategy_payload()

        settings = test_settings.model_copy(update={"api_max_retries": 1})
        provider = scripted_provider(happy_scripts(strategist=[incomplete, hang]))
        manager = make_manager(provider, settings)
        manager.strategist.config = replace(manager.strategist.config, timeout_seconds=0.2, backoff_seconds=0.0)

        result = run(manager, intake)

        assert result.success
        assert len(provider.calls_for("strategist")) == 2
        assert codes(result) == [ErrorCode.INVALID_OUTPUT]
        assert result.errors[0].details == {"attempts": 2, "last_error": "TIMEOUT"}
        prompt = provider.calls_for("content-pack-generator")[0]["user_message"]
        assert "Festpreise und Termintreue" in prompt

    def test_default_deadline_covers_the_retry_budget(self, scripted_provider, test_settings):
        settings = test_settings.model_copy(update={"api_max_retries": 1})
        manager = make_manager(scripted_provider(happy_scripts()), settings)

        budget = manager.strategist.config.budget_seconds

        assert budget == 2 * manager.strategist.config.timeout_seconds + manager.strategist.config.backoff_seconds
        assert manager.strategy_deadline() == budget + STRATEGY_DEADLINE_GRACE_SECONDS

    def test_configured_deadline_wins(self, scripted_provider, test_settings):
        manager = make_manager(scripted_provider(happy_scripts()), test_settings, strategy_timeout_seconds=12.0)
        assert manager.strategy_deadline() == 12.0


class TestRenderAndStore:
    """Rendering and assembly failures."""

    def test_render_failure_is_fatal(self, scripted_provider, intake, test_settings):
        store = InMemoryContentPackStore()
        provider = scripted_provider(happy_scripts(**{"code-renderer": HARDCODED_RENDER}))

        result = run(make_manager(provider, test_settings, store, render_mode="model"), intake)

        assert not result.success
        assert result.generated_files == []
        error = result.errors[-1]
        assert error.agent == "code-renderer"
        assert error.phase == Phase.CODE_RENDERING.value
        assert error.code == ErrorCode.INVALID_OUTPUT
        assert len(store) == 0
        assert result.completed_agents == ["strategist", "content-pack-generator", "editor"]
        assert result.pending_agents == ["code-renderer"]

    def test_model_render_success(self, scripted_provider, intake, test_settings):
        clean = {
            "files": [{
                "path": "src/app/page.tsx",
                "content": "import { contentPack } from '@/content/site'\n\n"
                           "export default function Page() {\n  return <h1>{contentPack.pages[0].title}</h1>\n}\n",
                "type": "page",
            }],
        }
        provider = scripted_provider(happy_scripts(**{"code-renderer": clean}))

        result = run(make_manager(provider, test_settings, render_mode="model"), intake)

        assert result.success
        assert len(provider.calls_for("code-renderer")) == 2
        assert "src/content/site.ts" in [f.path for f in result.generated_files]
        render_phase = next(p for p in result.metrics.phases if p.name == Phase.CODE_RENDERING.value)
        assert render_phase.token_usage.total_tokens == 2 * 200

    def test_store_write_failure_is_a_warning(self, scripted_provider, intake, test_settings):
        store = BrokenStore(fail_writes=True)

        result = run(make_manager(scripted_provider(happy_scripts()), test_settings, store), intake)

        assert result.success
        assert result.generated_files
        assert codes(result) == [ErrorCode.CACHE_ERROR]
        assert result.errors[0].phase == Phase.ASSEMBLY.value


@pytest.mark.parametrize("render_mode", ["template", "model"])
def test_execution_strategy_from_settings(test_settings, render_mode):
    strategy = ExecutionStrategy.from_settings(test_settings, render_mode=render_mode, max_concurrency=1)
    assert strategy.render_mode == render_mode
    assert strategy.max_concurrency == 1
    assert strategy.store_timeout_seconds == test_settings.store_timeout_seconds


class TestContentWarnings:
    """Non-blocking validation findings of the generated pack."""

    def test_warnings_are_recorded(self, scripted_provider, intake, test_settings):
        payload = build_pack_payload()
        payload["seo"][0]["title"] = "Acme GmbH | " + "Heizung " * 10
        provider = scripted_provider(happy_scripts(**{"content-pack-generator": payload}))
        manager = make_manager(provider, test_settings)

        first = run(manager, intake)
        second = run(manager, intake)

        assert first.success
        assert codes(first) == [ErrorCode.CONTENT_WARNING]
        warning = first.errors[0]
        assert warning.recoverable
        assert warning.agent == "content-pack-generator"
        assert warning.details == {"warnings": ["SEO title for / exceeds 60 characters"]}
        assert first.verdict.approved
        assert second.metrics.cache_hit
        assert second.errors == []
