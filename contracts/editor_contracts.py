"""Editor contracts: quality scores, feedback and the review verdict.

The verdict is a derived artifact. It is kept for the audit trail only and
never persisted as authoritative state.
"""

from enum import Enum
from typing import Dict, List

from pydantic import Field

from .base import ContractModel


class FeedbackSeverity(str, Enum):
    """Severity of an editor feedback item."""
    CRITICAL = "critical"  # Blocks approval
    MAJOR = "major"
    MINOR = "minor"
    SUGGESTION = "suggestion"


class FeedbackCategory(str, Enum):
    CONTENT = "content"
    BRAND = "brand"
    SEO = "seo"
    TECHNICAL = "technical"
    UX = "ux"
    ACCESSIBILITY = "accessibility"


class QualityScores(ContractModel):
    """Five 1-10 quality dimensions plus the model's own overall score.

    ``overall`` is 0 when the model leaves it out; it never feeds the final score.
    """
    overall: float = Field(0.0, ge=0, le=10)
    content_quality: float = Field(..., ge=1, le=10)
    brand_consistency: float = Field(..., ge=1, le=10)
    seo_optimization: float = Field(..., ge=1, le=10)
    accessibility: float = Field(..., ge=1, le=10)
    technical_accuracy: float = Field(..., ge=1, le=10)
    feedback: List[str] = Field(default_factory=list)


class EditorFeedback(ContractModel):
    """A single severity-tagged feedback item."""
    category: FeedbackCategory = FeedbackCategory.CONTENT
    severity: FeedbackSeverity
    location: str = Field("general", description="Path to the element, or 'general'")
    issue: str
    suggestion: str = ""


class RevisionRequest(ContractModel):
    """A revision instruction addressed to a named upstream agent."""
    agent: str = Field("content-pack-generator", description="strategist, content-pack-generator or code-renderer")
    instruction: str
    priority: str = Field("medium", description="high, medium or low")
    affected_paths: List[str] = Field(default_factory=list)


class EditorVerdict(ContractModel):
    """The editor's review verdict."""
    approved: bool = False
    scores: QualityScores
    feedback: List[EditorFeedback] = Field(default_factory=list)
    revisions: List[RevisionRequest] = Field(default_factory=list)
    final_score: float = Field(0.0, ge=0, le=10)

    def has_critical_feedback(self) -> bool:
        return any(f.severity == FeedbackSeverity.CRITICAL for f in self.feedback)

    def revisions_for(self, agent: str) -> List[RevisionRequest]:
        return [r for r in self.revisions if r.agent == agent]


def feedback_summary(feedback: List[EditorFeedback]) -> Dict[str, int]:
    """Count feedback items per severity."""
    counts = {severity.value: 0 for severity in FeedbackSeverity}
    for item in feedback:
        counts[item.severity.value] += 1
    return counts
