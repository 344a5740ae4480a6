"""Usage tracker for phase timings, token usage and estimated cost.

Collects what each agent call used during one pipeline run and produces the
metrics attached to the result, plus a JSON manifest by agent and phase.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Union

from config import Settings, settings as default_settings
from contracts import Phase, PhaseMetric, TokenUsage


class UsageTracker:
    """Accumulates per-phase durations, agents and token usage for one run.

    A phase entered more than once (content generation during revisions)
    accumulates into a single metric.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._phases: Dict[str, PhaseMetric] = {}
        self._by_agent: Dict[str, TokenUsage] = {}
        self._calls: List[Dict[str, Any]] = []

    def _metric(self, phase: Union[Phase, str]) -> PhaseMetric:
        name = phase.value if isinstance(phase, Phase) else phase
        if name not in self._phases:
            self._phases[name] = PhaseMetric(name=name)
        return self._phases[name]

    @contextmanager
    def phase(self, phase: Union[Phase, str]) -> Iterator[PhaseMetric]:
        """Time a block and add its duration to the phase."""
        metric = self._metric(phase)
        started = time.perf_counter()
        try:
            yield metric
        finally:
            metric.duration_ms = round(metric.duration_ms + (time.perf_counter() - started) * 1000, 1)

    def record(self, phase: Union[Phase, str], agent: str, usage: TokenUsage) -> None:
        """Record token usage of one agent call in a phase."""
        metric = self._metric(phase)
        if agent not in metric.agents:
            metric.agents.append(agent)
        metric.token_usage.add(usage)
        self._by_agent.setdefault(agent, TokenUsage()).add(usage)
        self._calls.append({
            "phase": metric.name,
            "agent": agent,
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "cost_usd": round(self.cost_of(usage), 6),
        })

    def cost_of(self, usage: TokenUsage) -> float:
        return self.settings.calculate_cost(usage.prompt_tokens, usage.completion_tokens)

    @property
    def token_usage(self) -> TokenUsage:
        total = TokenUsage()
        for metric in self._phases.values():
            total.add(metric.token_usage)
        return total

    @property
    def estimated_cost_usd(self) -> float:
        return round(self.cost_of(self.token_usage), 6)

    def phase_metrics(self) -> List[PhaseMetric]:
        return [m.model_copy(deep=True) for m in self._phases.values()]

    def get_cost_by_agent(self) -> Dict[str, float]:
        return {agent: round(self.cost_of(usage), 6) for agent, usage in self._by_agent.items()}

    def get_cost_by_phase(self) -> Dict[str, float]:
        return {name: round(self.cost_of(m.token_usage), 6) for name, m in self._phases.items()}

    def generate_manifest(self) -> Dict[str, Any]:
        """Generate a JSON-serialisable usage manifest."""
        total = self.token_usage
        return {
            "summary": {
                "total_prompt_tokens": total.prompt_tokens,
                "total_completion_tokens": total.completion_tokens,
                "total_tokens": total.total_tokens,
                "estimated_cost_usd": self.estimated_cost_usd,
            },
            "by_agent": self.get_cost_by_agent(),
            "by_phase": self.get_cost_by_phase(),
            "phases": [m.to_json_dict() for m in self._phases.values()],
            "detailed_records": list(self._calls),
        }
