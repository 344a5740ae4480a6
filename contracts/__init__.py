"""Pydantic contracts for the Site Foundry pipeline.

All agent-to-agent handoffs are typed through these contracts.
"""

from .base import ContractModel

from .intake_contracts import (
    PackageTier,
    SectionInput,
    PageInput,
    LocationInput,
    ProjectIntake,
)

from .strategy_contracts import (
    BrandVoice,
    PagePriority,
    BrandIdentity,
    ToneOfVoice,
    PersonaDefinition,
    BrandStrategy,
    ContentPillar,
    CtaStrategy,
    ContentStrategy,
    PageStructure,
    SiteStructure,
    CompetitiveInsight,
    StrategistOutput,
)

from .content_pack_contracts import (
    CONTENT_PACK_VERSION,
    SectionType,
    CtaButton,
    ImageContent,
    AddressInfo,
    SiteSettings,
    SectionStyle,
    SectionContent,
    PageSettings,
    PageContent,
    SeoContent,
    ImprintContent,
    PrivacyContent,
    LegalContent,
    NavItem,
    NavigationContent,
    FooterLink,
    FooterColumn,
    FooterBottom,
    FooterContent,
    NotFoundContent,
    LoadingContent,
    ErrorContent,
    ToastMessages,
    ComponentContent,
    ContentPack,
    SectionDefinition,
    PageDefinition,
    TodoMarker,
    StructuralIssue,
    ValidationReport,
)

from .editor_contracts import (
    FeedbackSeverity,
    FeedbackCategory,
    QualityScores,
    EditorFeedback,
    RevisionRequest,
    EditorVerdict,
    feedback_summary,
)

from .renderer_contracts import (
    FileType,
    GeneratedFile,
    DependencySpec,
    EnvVariable,
    RendererOutput,
)

from .pipeline_contracts import (
    AgentName,
    Phase,
    RunStatus,
    ErrorCode,
    PipelineError,
    TokenUsage,
    PhaseMetric,
    GenerationMetrics,
    PipelineResult,
    utc_now,
)

__all__ = [
    "ContractModel",
    # Intake
    "PackageTier",
    "SectionInput",
    "PageInput",
    "LocationInput",
    "ProjectIntake",
    # Strategy
    "BrandVoice",
    "PagePriority",
    "BrandIdentity",
    "ToneOfVoice",
    "PersonaDefinition",
    "BrandStrategy",
    "ContentPillar",
    "CtaStrategy",
    "ContentStrategy",
    "PageStructure",
    "SiteStructure",
    "CompetitiveInsight",
    "StrategistOutput",
    # Content Pack
    "CONTENT_PACK_VERSION",
    "SectionType",
    "CtaButton",
    "ImageContent",
    "AddressInfo",
    "SiteSettings",
    "SectionStyle",
    "SectionContent",
    "PageSettings",
    "PageContent",
    "SeoContent",
    "ImprintContent",
    "PrivacyContent",
    "LegalContent",
    "NavItem",
    "NavigationContent",
    "FooterLink",
    "FooterColumn",
    "FooterBottom",
    "FooterContent",
    "NotFoundContent",
    "LoadingContent",
    "ErrorContent",
    "ToastMessages",
    "ComponentContent",
    "ContentPack",
    "SectionDefinition",
    "PageDefinition",
    "TodoMarker",
    "StructuralIssue",
    "ValidationReport",
    # Editor
    "FeedbackSeverity",
    "FeedbackCategory",
    "QualityScores",
    "EditorFeedback",
    "RevisionRequest",
    "EditorVerdict",
    "feedback_summary",
    # Renderer
    "FileType",
    "GeneratedFile",
    "DependencySpec",
    "EnvVariable",
    "RendererOutput",
    # Pipeline
    "AgentName",
    "Phase",
    "RunStatus",
    "ErrorCode",
    "PipelineError",
    "TokenUsage",
    "PhaseMetric",
    "GenerationMetrics",
    "PipelineResult",
    "utc_now",
]
