"""Agent implementations for Site Foundry.

Each agent owns one step of website generation: strategy, copy, review and
code rendering.
"""

from .base_agent import (
    AgentConfig,
    AgentError,
    AgentInvoker,
    AgentResult,
    AgentTimeoutError,
    BaseAgent,
    InvalidOutputError,
    ProviderError,
)
from .strategist_agent import (
    StrategistAgent,
    StrategistInput,
    get_default_site_structure,
    merge_with_default_strategy,
    recover_strategy,
)
from .content_pack_agent import (
    ContentPackAgent,
    ContentPackOutput,
    compute_content_hash,
    extract_todo_markers,
    flatten_strings,
    merge_page_definitions,
    stamp_content_pack,
    validate_content_pack,
)
from .editor_agent import (
    QUALITY_THRESHOLD,
    EditorAgent,
    calculate_final_score,
    quick_quality_check,
    rejection_verdict,
    should_request_revision,
)
from .code_renderer_agent import (
    CodeRendererAgent,
    RenderJob,
    find_untraceable_literals,
    get_required_dependencies,
    get_required_env_variables,
    get_section_component_name,
)

__all__ = [
    # Base
    "AgentConfig",
    "AgentError",
    "AgentInvoker",
    "AgentResult",
    "AgentTimeoutError",
    "BaseAgent",
    "InvalidOutputError",
    "ProviderError",
    # Strategist
    "StrategistAgent",
    "StrategistInput",
    "get_default_site_structure",
    "merge_with_default_strategy",
    "recover_strategy",
    # Content Pack Generator
    "ContentPackAgent",
    "ContentPackOutput",
    "compute_content_hash",
    "extract_todo_markers",
    "flatten_strings",
    "merge_page_definitions",
    "stamp_content_pack",
    "validate_content_pack",
    # Editor
    "QUALITY_THRESHOLD",
    "EditorAgent",
    "calculate_final_score",
    "quick_quality_check",
    "rejection_verdict",
    "should_request_revision",
    # Code Renderer
    "CodeRendererAgent",
    "RenderJob",
    "find_untraceable_literals",
    "get_required_dependencies",
    "get_required_env_variables",
    "get_section_component_name",
]
