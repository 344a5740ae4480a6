"""Pipeline Manager - central orchestrator for Site Foundry.

The Pipeline Manager is the main entry point that:
1. Reuses a fresh cached Content Pack when the intake has not changed
2. Develops the strategy once
3. Runs the bounded content generation / review loop
4. Renders the site with parallel render tasks
5. Stores the pack and returns files, metrics and recorded errors

State machine::

    CACHE_CHECK -> STRATEGY -> CONTENT_GENERATION <-> REVIEW
                -> CODE_RENDERING -> ASSEMBLY -> DONE | FAILED

A cache hit jumps from CACHE_CHECK straight to CODE_RENDERING.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from agents import (
    AgentConfig,
    AgentInvoker,
    CodeRendererAgent,
    ContentPackAgent,
    EditorAgent,
    StrategistAgent,
    extract_todo_markers,
    merge_page_definitions,
    quick_quality_check,
    recover_strategy,
    rejection_verdict,
    should_request_revision,
    validate_content_pack,
)
from config import Settings, settings as default_settings
from contracts import (
    AgentName,
    ContentPack,
    EditorVerdict,
    ErrorCode,
    GenerationMetrics,
    Phase,
    PipelineError,
    PipelineResult,
    ProjectIntake,
    RendererOutput,
    RunStatus,
    StrategistOutput,
    TodoMarker,
    TokenUsage,
)
from logging_config import get_run_id, set_run_id
from orchestrator.execution import ExecutionStrategy
from orchestrator.task_runner import ParallelTask, TaskStatus, run_parallel
from orchestrator.usage_tracker import UsageTracker
from providers import LLMProvider, get_provider
from storage import ContentPackStore, ContentPackStoreError, FileContentPackStore

logger = logging.getLogger(__name__)


class PipelineFatalError(Exception):
    """Stops the run; converted into a failed PipelineResult."""

    def __init__(self, error: PipelineError):
        super().__init__(error.message)
        self.error = error


PIPELINE_AGENTS = (
    AgentName.STRATEGIST,
    AgentName.CONTENT_PACK_GENERATOR,
    AgentName.EDITOR,
    AgentName.CODE_RENDERER,
)

# Slack on top of the strategist's retry budget when no deadline is configured
STRATEGY_DEADLINE_GRACE_SECONDS = 5.0


@dataclass
class PipelineRun:
    """Mutable state of one run, including the generation attempt counter.

    Every pipeline agent starts out pending and ends up completed or skipped.
    """
    run_id: str
    intake: ProjectIntake
    project_id: str = ""
    status: RunStatus = RunStatus.RUNNING
    phase: Phase = Phase.INITIALIZATION
    completed_agents: List[str] = field(default_factory=list)
    pending_agents: List[str] = field(default_factory=lambda: [a.value for a in PIPELINE_AGENTS])
    skipped_agents: List[str] = field(default_factory=list)
    attempt: int = 0
    cache_hit: bool = False
    strategy: Optional[StrategistOutput] = None
    pack: Optional[ContentPack] = None
    best_valid_pack: Optional[ContentPack] = None
    best_verdict: Optional[EditorVerdict] = None
    todo_markers: List[TodoMarker] = field(default_factory=list)
    verdict: Optional[EditorVerdict] = None
    rendered: Optional[RendererOutput] = None
    errors: List[PipelineError] = field(default_factory=list)
    started: float = field(default_factory=time.perf_counter)

    def __post_init__(self):
        if not self.project_id:
            self.project_id = self.intake.id

    @property
    def revision_count(self) -> int:
        return max(0, self.attempt - 1)

    def complete_agent(self, agent: str) -> None:
        if agent in self.pending_agents:
            self.pending_agents.remove(agent)
        if agent not in self.completed_agents:
            self.completed_agents.append(agent)

    def skip_agent(self, agent: str) -> None:
        """Drop a pending agent that did not contribute to this run."""
        if agent in self.pending_agents:
            self.pending_agents.remove(agent)
            self.skipped_agents.append(agent)

    def record_error(
        self,
        agent: str,
        code: ErrorCode,
        message: str,
        recoverable: bool,
        details: Optional[Dict[str, Any]] = None,
    ) -> PipelineError:
        error = PipelineError(
            agent=agent,
            phase=self.phase.value,
            code=code,
            message=message,
            recoverable=recoverable,
            details=details,
        )
        self.errors.append(error)
        log = logger.warning if recoverable else logger.error
        log(
            message,
            extra={"agent": agent, "phase": self.phase.value, "code": code.value, "recoverable": recoverable},
        )
        return error

    def fatal(self, agent: str, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None) -> PipelineFatalError:
        return PipelineFatalError(self.record_error(agent, code, message, recoverable=False, details=details))


def new_run_id() -> str:
    return f"run_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


def is_cache_fresh(
    pack: ContentPack,
    intake: ProjectIntake,
    ttl_seconds: float,
    now: Optional[datetime] = None,
) -> bool:
    """A cached pack is reusable when younger than the TTL and built from the same intake."""
    age = pack.age_seconds(now)
    return age is not None and age < ttl_seconds and pack.intake_hash == intake.fingerprint()


class PipelineManager:
    """Central state machine for website generation runs.

    Responsibilities:
    - Decide between cached reuse and fresh generation
    - Drive the bounded revision loop
    - Run render tasks in parallel under the execution strategy
    - Record every error and produce a complete or empty result
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        store: Optional[ContentPackStore] = None,
        strategy: Optional[ExecutionStrategy] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the Pipeline Manager.

        Args:
            provider: Model provider; defaults to the configured LiteLLM provider
            store: Content Pack store; defaults to the file store under content_pack_dir
            strategy: Concurrency, deadlines and render mode; defaults from settings
            settings: Settings override (tests)
        """
        self.settings = settings or default_settings
        self.provider = provider or get_provider()
        self.store = store if store is not None else FileContentPackStore(self.settings.get_content_pack_path())
        self.strategy = strategy or ExecutionStrategy.from_settings(self.settings)

        invoker = AgentInvoker(self.provider)
        self.strategist = StrategistAgent(invoker, AgentConfig.for_agent("strategist", self.settings))
        self.content_agent = ContentPackAgent(
            invoker, AgentConfig.for_agent("content-pack-generator", self.settings)
        )
        self.editor = EditorAgent(
            invoker,
            AgentConfig.for_agent("editor", self.settings),
            quality_threshold=self.settings.quality_threshold,
        )
        self.renderer = CodeRendererAgent(
            invoker,
            AgentConfig.for_agent("code-renderer", self.settings),
            render_mode=self.strategy.render_mode,
        )

    def strategy_deadline(self) -> float:
        """Configured strategy deadline, or the strategist's full retry budget plus slack."""
        if self.strategy.strategy_timeout_seconds is not None:
            return self.strategy.strategy_timeout_seconds
        return self.strategist.config.budget_seconds + STRATEGY_DEADLINE_GRACE_SECONDS

    async def generate(
        self,
        intake: ProjectIntake,
        existing_pack: Optional[ContentPack] = None,
        force_regenerate: bool = False,
    ) -> PipelineResult:
        """Execute a complete generation run.

        Args:
            intake: Project intake, never mutated
            existing_pack: Candidate pack to reuse instead of the stored one
            force_regenerate: Ignore any cached pack

        Returns:
            PipelineResult; on failure it carries no files and the errors
        """
        run = PipelineRun(run_id=new_run_id(), intake=intake)
        tracker = UsageTracker(self.settings)
        previous_run_id = get_run_id()
        set_run_id(run.run_id)
        logger.info(
            "Pipeline started",
            extra={"project_id": intake.id, "force_regenerate": force_regenerate, "render_mode": self.strategy.render_mode},
        )

        try:
            cached = await self._check_cache(run, tracker, existing_pack, force_regenerate)
            if cached is not None:
                run.cache_hit = True
                run.pack = cached
                run.todo_markers = extract_todo_markers(cached)
                for agent in (AgentName.STRATEGIST, AgentName.CONTENT_PACK_GENERATOR, AgentName.EDITOR):
                    run.skip_agent(agent.value)
            else:
                await self._develop_strategy(run, tracker)
                await self._generate_content(run, tracker)
                # Still pending when no review succeeded
                run.skip_agent(AgentName.EDITOR.value)
                self._report_content_warnings(run)

            await self._render(run, tracker)
            await self._assemble(run, tracker)
            run.phase = Phase.DONE
            run.status = RunStatus.SUCCEEDED
            return self._build_result(run, tracker, success=True)

        except PipelineFatalError:
            run.phase = Phase.FAILED
            run.status = RunStatus.FAILED
            return self._build_result(run, tracker, success=False)

        except Exception as e:
            logger.exception("Pipeline crashed")
            run.record_error(AgentName.PROJECT_MANAGER.value, ErrorCode.FATAL, f"{type(e).__name__}: {e}", recoverable=False)
            run.phase = Phase.FAILED
            run.status = RunStatus.FAILED
            return self._build_result(run, tracker, success=False)

        finally:
            set_run_id(previous_run_id)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _check_cache(
        self,
        run: PipelineRun,
        tracker: UsageTracker,
        existing_pack: Optional[ContentPack],
        force_regenerate: bool,
    ) -> Optional[ContentPack]:
        run.phase = Phase.CACHE_CHECK
        with tracker.phase(Phase.CACHE_CHECK):
            if force_regenerate:
                logger.info("Cache bypassed", extra={"project_id": run.project_id})
                return None

            candidate = existing_pack
            if candidate is None:
                try:
                    candidate = await asyncio.wait_for(
                        self.store.load(run.project_id), timeout=self.strategy.store_timeout_seconds
                    )
                except asyncio.TimeoutError:
                    run.record_error(
                        AgentName.PROJECT_MANAGER.value,
                        ErrorCode.CACHE_ERROR,
                        f"Content pack store read timed out after {self.strategy.store_timeout_seconds}s",
                        recoverable=True,
                    )
                except ContentPackStoreError as e:
                    run.record_error(AgentName.PROJECT_MANAGER.value, ErrorCode.CACHE_ERROR, str(e), recoverable=True)

            if candidate is not None and is_cache_fresh(candidate, run.intake, self.settings.cache_ttl_seconds):
                logger.info("Cache hit", extra={"project_id": run.project_id, "hash": candidate.hash})
                return candidate

            logger.info("Cache miss", extra={"project_id": run.project_id, "had_candidate": candidate is not None})
            return None

    async def _develop_strategy(self, run: PipelineRun, tracker: UsageTracker) -> None:
        run.phase = Phase.STRATEGY
        agent = AgentName.STRATEGIST.value
        deadline = self.strategy_deadline()
        with tracker.phase(Phase.STRATEGY):
            try:
                result = await asyncio.wait_for(self.strategist.develop(run.intake), timeout=deadline)
            except asyncio.TimeoutError:
                raise run.fatal(agent, ErrorCode.TIMEOUT, f"Strategy phase exceeded {deadline}s")
            tracker.record(Phase.STRATEGY, agent, result.usage)

        strategy = recover_strategy(result, run.intake)
        if strategy is None:
            error = result.error
            raise run.fatal(
                agent,
                error.code if error else ErrorCode.FATAL,
                f"Strategy development failed: {error.message if error else 'no output'}",
                details={"attempts": result.attempts},
            )
        if not result.success:
            run.record_error(
                agent,
                ErrorCode.INVALID_OUTPUT,
                "Strategist output incomplete, merged with the default strategy",
                recoverable=True,
                details={
                    "attempts": result.attempts,
                    "last_error": result.error.code.value if result.error else None,
                },
            )
        run.strategy = strategy
        run.complete_agent(agent)

    async def _generate_content(self, run: PipelineRun, tracker: UsageTracker) -> None:
        """Bounded generation / review loop with at most max_revisions + 1 attempts."""
        intake = run.intake
        pages = merge_page_definitions(run.strategy.site_structure.pages, list(intake.pages))
        addons = list(intake.selected_addons)
        max_attempts = self.settings.max_revisions + 1
        threshold = self.settings.quality_threshold
        feedback = None
        generator = AgentName.CONTENT_PACK_GENERATOR.value

        while run.attempt < max_attempts:
            run.attempt += 1
            run.phase = Phase.CONTENT_GENERATION
            with tracker.phase(Phase.CONTENT_GENERATION):
                result = await self.content_agent.generate(
                    run.strategy, intake, pages, addons, revision_feedback=feedback
                )
                tracker.record(Phase.CONTENT_GENERATION, generator, result.usage)

            if not result.success:
                error = result.error
                run.record_error(
                    generator,
                    error.code if error else ErrorCode.UNKNOWN,
                    f"Content generation attempt {run.attempt} failed: {error.message if error else 'no output'}",
                    recoverable=True,
                    details={"attempt": run.attempt},
                )
                continue

            run.pack = result.output.content_pack
            run.todo_markers = result.output.todo_markers
            run.complete_agent(generator)

            run.phase = Phase.REVIEW
            report = validate_content_pack(run.pack)
            if not report.valid:
                logger.warning(
                    "Content pack failed structural validation",
                    extra={"attempt": run.attempt, "issues": [e.message for e in report.errors]},
                )
                run.verdict = rejection_verdict(run.pack)
                feedback = run.verdict
                continue

            run.best_valid_pack = run.pack
            with tracker.phase(Phase.REVIEW):
                review = await self.editor.review(run.strategy, run.pack)
                tracker.record(Phase.REVIEW, AgentName.EDITOR.value, review.usage)

            if not review.success:
                error = review.error
                run.verdict = None
                run.record_error(
                    AgentName.EDITOR.value,
                    error.code if error else ErrorCode.UNKNOWN,
                    f"Quality review failed, proceeding without a verdict: {error.message if error else 'no output'}",
                    recoverable=True,
                )
                return

            run.verdict = review.output
            run.complete_agent(AgentName.EDITOR.value)
            run.best_verdict = run.verdict
            if not should_request_revision(run.verdict, threshold):
                logger.info(
                    "Content approved",
                    extra={"attempt": run.attempt, "final_score": run.verdict.final_score},
                )
                return
            feedback = run.verdict
            logger.info(
                "Revision requested",
                extra={"attempt": run.attempt, "final_score": run.verdict.final_score, "max_attempts": max_attempts},
            )

        self._settle_exhausted_budget(run, max_attempts)

    def _settle_exhausted_budget(self, run: PipelineRun, max_attempts: int) -> None:
        """Pick the best available pack once every attempt is used up."""
        if run.pack is None:
            last = run.errors[-1] if run.errors else None
            raise run.fatal(
                AgentName.CONTENT_PACK_GENERATOR.value,
                last.code if last else ErrorCode.FATAL,
                f"No content pack was produced in {max_attempts} attempts",
            )

        if run.best_valid_pack is not None:
            if run.pack is not run.best_valid_pack:
                run.pack = run.best_valid_pack
                run.todo_markers = extract_todo_markers(run.pack)
                run.verdict = run.best_verdict
            score = run.verdict.final_score if run.verdict else None
            run.record_error(
                AgentName.EDITOR.value,
                ErrorCode.QUALITY_THRESHOLD,
                f"Revision budget exhausted after {max_attempts} attempts; "
                f"proceeding with the last structurally valid content pack (score {score})",
                recoverable=True,
                details={"attempts": run.attempt, "final_score": score},
            )
        else:
            _, issues = quick_quality_check(run.pack)
            run.record_error(
                AgentName.CONTENT_PACK_GENERATOR.value,
                ErrorCode.STRUCTURAL_VALIDATION,
                f"Revision budget exhausted after {max_attempts} attempts; "
                f"proceeding with a structurally incomplete content pack",
                recoverable=True,
                details={"attempts": run.attempt, "issues": issues},
            )

    async def _render(self, run: PipelineRun, tracker: UsageTracker) -> None:
        run.phase = Phase.CODE_RENDERING
        agent = AgentName.CODE_RENDERER.value
        addons = list(run.intake.selected_addons)
        jobs = self.renderer.plan(run.pack, run.intake, addons)
        tasks = [
            ParallelTask(
                id=job.id,
                name=job.name,
                execute=job.run,
                timeout=self.strategy.render_timeout_seconds,
                critical=True,
            )
            for job in jobs
        ]

        before = self.renderer.total_usage.model_copy()
        with tracker.phase(Phase.CODE_RENDERING):
            batch = await run_parallel(
                tasks,
                max_concurrency=self.strategy.max_concurrency,
                stop_on_critical_failure=self.strategy.stop_on_critical_failure,
                default_timeout=self.strategy.render_timeout_seconds,
            )
            after = self.renderer.total_usage
            tracker.record(
                Phase.CODE_RENDERING,
                agent,
                TokenUsage(
                    prompt_tokens=after.prompt_tokens - before.prompt_tokens,
                    completion_tokens=after.completion_tokens - before.completion_tokens,
                ),
            )

        if not batch.success:
            failures = [r for r in batch.failures() if r.status != TaskStatus.CANCELLED] or batch.failures()
            first = failures[0]
            raise run.fatal(
                agent,
                first.error_code or ErrorCode.FATAL,
                f"Render task {first.task_id} failed: {first.error}",
                details={"failed_tasks": [r.task_id for r in batch.failures()]},
            )

        run.rendered = self.renderer.assemble(
            run.pack, run.intake, [r.output for r in batch.results], addons
        )
        run.complete_agent(agent)

    def _report_content_warnings(self, run: PipelineRun) -> None:
        """Record non-blocking validation findings of the pack that will be rendered."""
        warnings = validate_content_pack(run.pack).warnings
        if warnings:
            run.record_error(
                AgentName.CONTENT_PACK_GENERATOR.value,
                ErrorCode.CONTENT_WARNING,
                f"Content pack has {len(warnings)} validation warning(s): {'; '.join(warnings)}",
                recoverable=True,
                details={"warnings": warnings},
            )

    async def _assemble(self, run: PipelineRun, tracker: UsageTracker) -> None:
        run.phase = Phase.ASSEMBLY
        score = run.verdict.final_score if run.verdict and not run.cache_hit else None
        with tracker.phase(Phase.ASSEMBLY):
            try:
                await asyncio.wait_for(
                    self.store.store(run.project_id, run.pack, score),
                    timeout=self.strategy.store_timeout_seconds,
                )
            except asyncio.TimeoutError:
                run.record_error(
                    AgentName.PROJECT_MANAGER.value,
                    ErrorCode.CACHE_ERROR,
                    f"Content pack store write timed out after {self.strategy.store_timeout_seconds}s",
                    recoverable=True,
                )
            except ContentPackStoreError as e:
                run.record_error(AgentName.PROJECT_MANAGER.value, ErrorCode.CACHE_ERROR, str(e), recoverable=True)

    # ------------------------------------------------------------------
    # Result
    # ------------------------------------------------------------------

    def _build_result(self, run: PipelineRun, tracker: UsageTracker, success: bool) -> PipelineResult:
        total_ms = round((time.perf_counter() - run.started) * 1000, 1)
        metrics = GenerationMetrics(
            total_duration_ms=total_ms,
            phases=tracker.phase_metrics(),
            token_usage=tracker.token_usage,
            estimated_cost_usd=tracker.estimated_cost_usd,
            cost_by_agent=tracker.get_cost_by_agent(),
            cache_hit=run.cache_hit,
            revision_count=run.revision_count,
            quality_score=run.verdict.final_score if run.verdict else None,
        )

        progress = {
            "project_id": run.project_id,
            "status": run.status,
            "completed_agents": list(run.completed_agents),
            "pending_agents": list(run.pending_agents),
            "skipped_agents": list(run.skipped_agents),
        }
        if success:
            rendered = run.rendered
            result = PipelineResult(
                run_id=run.run_id,
                success=True,
                **progress,
                content_pack=run.pack,
                generated_files=rendered.files,
                dependencies=rendered.dependencies,
                env_variables=rendered.env_variables,
                todo_markers=run.todo_markers,
                verdict=run.verdict,
                metrics=metrics,
                errors=run.errors,
            )
        else:
            result = PipelineResult(
                run_id=run.run_id,
                success=False,
                **progress,
                verdict=run.verdict,
                metrics=metrics,
                errors=run.errors,
            )

        logger.info(
            "Pipeline finished",
            extra={
                "success": success,
                "status": run.status.value,
                "cache_hit": run.cache_hit,
                "attempts": run.attempt,
                "file_count": len(result.generated_files),
                "error_count": len(run.errors),
                "duration_ms": total_ms,
                "estimated_cost_usd": metrics.estimated_cost_usd,
            },
        )
        logger.debug("Usage manifest", extra={"usage": tracker.generate_manifest()})
        return result


async def generate(
    intake: ProjectIntake,
    existing_pack: Optional[ContentPack] = None,
    force_regenerate: bool = False,
    **manager_kwargs: Any,
) -> PipelineResult:
    """Convenience function to run the pipeline once.

    Args:
        intake: Project intake
        existing_pack: Candidate pack to reuse
        force_regenerate: Ignore any cached pack
        **manager_kwargs: provider, store, strategy or settings for PipelineManager

    Returns:
        PipelineResult
    """
    manager = PipelineManager(**manager_kwargs)
    return await manager.generate(intake, existing_pack=existing_pack, force_regenerate=force_regenerate)


def generate_sync(
    intake: ProjectIntake,
    existing_pack: Optional[ContentPack] = None,
    force_regenerate: bool = False,
    **manager_kwargs: Any,
) -> PipelineResult:
    """Blocking wrapper around ``generate`` for the CLI."""
    return asyncio.run(
        generate(intake, existing_pack=existing_pack, force_regenerate=force_regenerate, **manager_kwargs)
    )
