"""Parallel and phased execution of async tasks.

Tasks run under a hard concurrency ceiling with a per-task deadline. A failed
critical task can cancel its siblings; phases run one after another and each
phase sees the outputs of the phases before it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from contracts import ErrorCode

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_RETRIES = 2


class TaskStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass
class ParallelTask:
    """A unit of work.

    ``execute`` is an async callable. Under ``run_parallel`` it takes no
    arguments; under ``run_phased`` it receives the outputs of the earlier
    phases as ``{task_id: output}``.
    """
    id: str
    name: str
    execute: Callable[..., Awaitable[Any]]
    timeout: Optional[float] = None
    critical: bool = True


@dataclass
class TaskResult:
    task_id: str
    name: str
    status: TaskStatus
    output: Any = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    duration_ms: float = 0.0
    critical: bool = True

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.SUCCESS


@dataclass
class BatchResult:
    """Results in task declaration order."""
    results: List[TaskResult]
    success: bool
    total_duration_ms: float

    def outputs(self) -> Dict[str, Any]:
        return {r.task_id: r.output for r in self.results if r.success}

    def failures(self) -> List[TaskResult]:
        return [r for r in self.results if not r.success]


@dataclass
class TaskPhase:
    name: str
    tasks: List[ParallelTask]
    max_concurrency: Optional[int] = None
    stop_on_critical_failure: bool = True


@dataclass
class PhaseResult:
    name: str
    skipped: bool = False
    batch: Optional[BatchResult] = None

    @property
    def success(self) -> bool:
        return not self.skipped and self.batch is not None and self.batch.success


@dataclass
class PhasedResult:
    phases: List[PhaseResult]
    success: bool
    total_duration_ms: float
    outputs: Dict[str, Any] = field(default_factory=dict)


def _elapsed_ms(since: float) -> float:
    return round((time.perf_counter() - since) * 1000, 1)


async def run_parallel(
    tasks: List[ParallelTask],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    stop_on_critical_failure: bool = True,
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    inputs: Optional[Dict[str, Any]] = None,
) -> BatchResult:
    """Run tasks concurrently, at most ``max_concurrency`` at a time.

    Args:
        tasks: Tasks to run
        max_concurrency: Ceiling on simultaneously running tasks; the rest wait
        stop_on_critical_failure: Cancel in-flight and queued tasks when a critical task fails
        default_timeout: Deadline for tasks without their own ``timeout``
        inputs: When given, passed to every ``execute`` call

    Returns:
        BatchResult; ``success`` is False iff a critical task did not succeed
    """
    started = time.perf_counter()
    if not tasks:
        return BatchResult(results=[], success=True, total_duration_ms=0.0)

    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    stopping = asyncio.Event()
    results: List[Optional[TaskResult]] = [None] * len(tasks)
    running: List[asyncio.Task] = []

    def cancelled_result(task: ParallelTask, since: float) -> TaskResult:
        return TaskResult(
            task_id=task.id,
            name=task.name,
            status=TaskStatus.CANCELLED,
            error="Cancelled after a critical task failed",
            error_code=ErrorCode.CANCELLED,
            duration_ms=_elapsed_ms(since),
            critical=task.critical,
        )

    async def run_one(index: int, task: ParallelTask) -> None:
        task_started = time.perf_counter()
        try:
            async with semaphore:
                if stopping.is_set():
                    results[index] = cancelled_result(task, task_started)
                    return
                task_started = time.perf_counter()
                timeout = task.timeout if task.timeout is not None else default_timeout
                call = task.execute(inputs) if inputs is not None else task.execute()
                output = await asyncio.wait_for(call, timeout=timeout)
                results[index] = TaskResult(
                    task_id=task.id,
                    name=task.name,
                    status=TaskStatus.SUCCESS,
                    output=output,
                    duration_ms=_elapsed_ms(task_started),
                    critical=task.critical,
                )
                return
        except asyncio.CancelledError:
            if not stopping.is_set():
                raise
            results[index] = cancelled_result(task, task_started)
            return
        except asyncio.TimeoutError:
            results[index] = TaskResult(
                task_id=task.id,
                name=task.name,
                status=TaskStatus.TIMEOUT,
                error=f"Task timed out after {timeout}s",
                error_code=ErrorCode.TIMEOUT,
                duration_ms=_elapsed_ms(task_started),
                critical=task.critical,
            )
        except Exception as e:
            logger.exception("Task %s failed", task.id)
            code = getattr(e, "code", None)
            results[index] = TaskResult(
                task_id=task.id,
                name=task.name,
                status=TaskStatus.FAILED,
                error=f"{type(e).__name__}: {e}",
                error_code=code if isinstance(code, ErrorCode) else ErrorCode.UNKNOWN,
                duration_ms=_elapsed_ms(task_started),
                critical=task.critical,
            )

        logger.warning(
            "Task %s did not succeed: %s",
            task.id,
            results[index].error,
            extra={"task_id": task.id, "critical": task.critical},
        )
        if task.critical and stop_on_critical_failure and not stopping.is_set():
            stopping.set()
            current = asyncio.current_task()
            for other in running:
                if other is not current and not other.done():
                    other.cancel()

    running.extend(asyncio.create_task(run_one(i, t)) for i, t in enumerate(tasks))
    await asyncio.gather(*running)

    final = [r if r is not None else cancelled_result(t, started) for r, t in zip(results, tasks)]
    success = not any(r.critical and not r.success for r in final)
    return BatchResult(results=final, success=success, total_duration_ms=_elapsed_ms(started))


async def run_sequential(
    tasks: List[ParallelTask],
    stop_on_critical_failure: bool = True,
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> BatchResult:
    """Run tasks one at a time in declaration order."""
    return await run_parallel(
        tasks,
        max_concurrency=1,
        stop_on_critical_failure=stop_on_critical_failure,
        default_timeout=default_timeout,
    )


async def run_phased(
    phases: List[TaskPhase],
    stop_on_phase_failure: bool = True,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> PhasedResult:
    """Run phases in order; tasks inside a phase run in parallel.

    Each task receives the outputs of all earlier phases. After a failed phase
    the remaining phases are reported as skipped when ``stop_on_phase_failure``.
    """
    started = time.perf_counter()
    outputs: Dict[str, Any] = {}
    phase_results: List[PhaseResult] = []
    failed = False

    for phase in phases:
        if failed and stop_on_phase_failure:
            logger.info("Skipping phase %s after an earlier failure", phase.name)
            phase_results.append(PhaseResult(name=phase.name, skipped=True))
            continue

        batch = await run_parallel(
            phase.tasks,
            max_concurrency=phase.max_concurrency or max_concurrency,
            stop_on_critical_failure=phase.stop_on_critical_failure,
            default_timeout=default_timeout,
            inputs=dict(outputs),
        )
        phase_results.append(PhaseResult(name=phase.name, batch=batch))
        outputs.update(batch.outputs())
        if not batch.success:
            failed = True

    return PhasedResult(
        phases=phase_results,
        success=not failed,
        total_duration_ms=_elapsed_ms(started),
        outputs=outputs,
    )


async def with_retry(
    fn: Callable[[], Awaitable[Any]],
    retries: int = DEFAULT_RETRIES,
    delay: float = 1.0,
    backoff: float = 2.0,
) -> Any:
    """Await ``fn()``, retrying on exceptions with exponential backoff.

    Raises the last exception once ``retries`` extra attempts are used up.
    """
    wait = delay
    for attempt in range(retries + 1):
        try:
            return await fn()
        except Exception as e:
            if attempt == retries:
                raise
            logger.info("Attempt %d failed (%s), retrying in %.1fs", attempt + 1, e, wait)
            if wait > 0:
                await asyncio.sleep(wait)
            wait *= backoff
