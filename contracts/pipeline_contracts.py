"""Pipeline contracts: phases, errors, metrics and the final result."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, computed_field

from .base import ContractModel
from .content_pack_contracts import ContentPack, TodoMarker
from .editor_contracts import EditorVerdict
from .renderer_contracts import DependencySpec, EnvVariable, GeneratedFile


class AgentName(str, Enum):
    """Names used for logging, error attribution and per-agent defaults."""
    STRATEGIST = "strategist"
    CONTENT_PACK_GENERATOR = "content-pack-generator"
    EDITOR = "editor"
    CODE_RENDERER = "code-renderer"
    PROJECT_MANAGER = "project-manager"


class Phase(str, Enum):
    """States of the orchestrator state machine."""
    INITIALIZATION = "initialization"
    CACHE_CHECK = "cache-check"
    STRATEGY = "strategy"
    CONTENT_GENERATION = "content-generation"
    REVIEW = "quality-review"
    CODE_RENDERING = "code-rendering"
    ASSEMBLY = "assembly"
    DONE = "done"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Terminal (or current) status of a run."""
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorCode(str, Enum):
    TIMEOUT = "TIMEOUT"
    INVALID_OUTPUT = "INVALID_OUTPUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    STRUCTURAL_VALIDATION = "STRUCTURAL_VALIDATION"
    QUALITY_THRESHOLD = "QUALITY_THRESHOLD"
    CACHE_ERROR = "CACHE_ERROR"
    CANCELLED = "CANCELLED"
    CONTENT_WARNING = "CONTENT_WARNING"
    FATAL = "FATAL"
    UNKNOWN = "UNKNOWN"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineError(ContractModel):
    """An error recorded during a run; recoverable ones are warnings."""
    agent: str
    phase: str
    code: ErrorCode
    message: str
    recoverable: bool
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=utc_now)


class TokenUsage(ContractModel):
    """Prompt/completion token counts."""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @computed_field
    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def add(self, other: "TokenUsage") -> None:
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens


class PhaseMetric(ContractModel):
    """Duration, agents and token usage of one phase."""
    name: str
    duration_ms: float = 0.0
    agents: List[str] = Field(default_factory=list)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)


class GenerationMetrics(ContractModel):
    """Aggregated metrics of a run."""
    total_duration_ms: float = 0.0
    phases: List[PhaseMetric] = Field(default_factory=list)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    estimated_cost_usd: float = 0.0
    cost_by_agent: Dict[str, float] = Field(default_factory=dict)
    cache_hit: bool = False
    revision_count: int = 0
    quality_score: Optional[float] = None


class PipelineResult(ContractModel):
    """Outcome of ``generate()``: either success with files, or failure with errors."""
    run_id: str
    success: bool
    project_id: str = ""
    status: RunStatus = RunStatus.RUNNING
    completed_agents: List[str] = Field(default_factory=list)
    pending_agents: List[str] = Field(default_factory=list)
    skipped_agents: List[str] = Field(default_factory=list)
    content_pack: Optional[ContentPack] = None
    generated_files: List[GeneratedFile] = Field(default_factory=list)
    dependencies: List[DependencySpec] = Field(default_factory=list)
    env_variables: List[EnvVariable] = Field(default_factory=list)
    todo_markers: List[TodoMarker] = Field(default_factory=list)
    verdict: Optional[EditorVerdict] = None
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    errors: List[PipelineError] = Field(default_factory=list)

    @property
    def warnings(self) -> List[PipelineError]:
        return [e for e in self.errors if e.recoverable]
