"""Orchestrator module for Site Foundry execution control."""

from .execution import ExecutionStrategy
from .task_runner import (
    BatchResult,
    ParallelTask,
    PhasedResult,
    TaskPhase,
    TaskResult,
    TaskStatus,
    run_parallel,
    run_phased,
    run_sequential,
    with_retry,
)
from .usage_tracker import UsageTracker
from .pipeline_manager import (
    PipelineFatalError,
    PipelineManager,
    PipelineRun,
    generate,
    generate_sync,
    is_cache_fresh,
)

__all__ = [
    "ExecutionStrategy",
    "BatchResult",
    "ParallelTask",
    "PhasedResult",
    "TaskPhase",
    "TaskResult",
    "TaskStatus",
    "run_parallel",
    "run_phased",
    "run_sequential",
    "with_retry",
    "UsageTracker",
    "PipelineFatalError",
    "PipelineManager",
    "PipelineRun",
    "generate",
    "generate_sync",
    "is_cache_fresh",
]
