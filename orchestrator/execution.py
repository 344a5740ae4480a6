"""Execution strategy injected into the pipeline manager."""

from dataclasses import dataclass, replace
from typing import Any, Optional

from config import Settings, settings as default_settings


@dataclass(frozen=True)
class ExecutionStrategy:
    """How a pipeline run executes: concurrency, deadlines and failure policy.

    Attributes:
        max_concurrency: Ceiling on concurrently running render tasks
        strategy_timeout_seconds: Deadline for the whole strategy phase; None
            derives it from the strategist's retry budget
        render_timeout_seconds: Deadline per render task
        store_timeout_seconds: Deadline per store read or write
        stop_on_critical_failure: Cancel sibling render tasks after a critical failure
        render_mode: "template" or "model"
    """
    max_concurrency: int = 3
    strategy_timeout_seconds: Optional[float] = None
    render_timeout_seconds: float = 120.0
    store_timeout_seconds: float = 10.0
    stop_on_critical_failure: bool = True
    render_mode: str = "template"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "ExecutionStrategy":
        settings = settings or default_settings
        strategy = cls(
            max_concurrency=settings.max_concurrency,
            strategy_timeout_seconds=settings.strategy_timeout_seconds,
            render_timeout_seconds=settings.render_timeout_seconds,
            store_timeout_seconds=settings.store_timeout_seconds,
            render_mode=settings.render_mode,
        )
        return replace(strategy, **overrides) if overrides else strategy
