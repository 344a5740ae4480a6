"""Editor Agent - quality gate between content generation and rendering.

The model scores the Content Pack on five dimensions. The final score and the
approval are recalculated here, independently of what the model claims:

- final score = weighted mean of the five dimensions, one decimal
- approved   = final score >= threshold AND no critical feedback
"""

import logging
import math
from typing import List, Optional, Tuple

from agents.base_agent import AgentConfig, AgentInvoker, AgentResult, BaseAgent, build_user_prompt
from agents.content_pack_agent import validate_content_pack
from contracts import (
    ContentPack,
    EditorFeedback,
    EditorVerdict,
    FeedbackCategory,
    FeedbackSeverity,
    GeneratedFile,
    QualityScores,
    RevisionRequest,
    StrategistOutput,
    feedback_summary,
)

logger = logging.getLogger(__name__)

QUALITY_THRESHOLD = 8.0

SCORE_WEIGHTS = {
    "content_quality": 0.25,
    "brand_consistency": 0.20,
    "seo_optimization": 0.20,
    "accessibility": 0.15,
    "technical_accuracy": 0.20,
}


class EditorAgent(BaseAgent):
    """Reviews the Content Pack and decides whether it needs another revision."""

    SYSTEM_PROMPT = """You are a meticulous Senior Editor and quality reviewer for business websites.

## Your Responsibilities

Review the Content Pack against the brand strategy and score it from 1 to 10 on:
- contentQuality: clarity, persuasiveness, grammar and spelling
- brandConsistency: voice and messaging match the strategy
- seoOptimization: titles, descriptions, headings, keywords
- accessibility: alt texts, link texts, readable structure
- technicalAccuracy: complete, consistent, correct structure

## Feedback

For every issue give category (content, brand, seo, technical, ux, accessibility),
severity (critical, major, minor, suggestion), location (path in the pack or
"general"), the issue and a concrete suggestion. Address revision requests to
the agent that must act ("content-pack-generator" for copy changes).

## Critical Issues (must be fixed)

- Missing or incorrect legal information
- Major grammar or spelling errors
- Accessibility violations
- Brand voice inconsistency
- Missing key content sections

## Approval

Approve only if the weighted score is >= {threshold} and there is no critical
feedback. Be constructive but thorough.
"""

    def __init__(
        self,
        invoker: AgentInvoker,
        config: Optional[AgentConfig] = None,
        quality_threshold: float = QUALITY_THRESHOLD,
    ):
        """Initialize the Editor Agent."""
        self.quality_threshold = quality_threshold
        super().__init__(
            role="editor",
            system_prompt=self.SYSTEM_PROMPT.replace("{threshold}", str(quality_threshold)),
            output_schema=EditorVerdict,
            invoker=invoker,
            config=config,
        )

    def get_task_description(self) -> str:
        return "Score the Content Pack and request revisions where needed"

    def build_prompt(
        self,
        strategy: StrategistOutput,
        pack: ContentPack,
        generated_files: Optional[List[GeneratedFile]] = None,
    ) -> str:
        brand = strategy.brand_strategy
        overview = {
            "pages": [
                {
                    "slug": p.slug,
                    "name": p.name,
                    "sectionCount": len(p.sections),
                    "sections": [s.type.value for s in p.sections],
                }
                for p in pack.pages
            ],
            "navigation": pack.navigation.to_json_dict(),
            "footerTagline": pack.footer.tagline,
            "hasImprint": pack.legal.imprint is not None,
            "hasPrivacy": pack.legal.privacy is not None,
            "seoEntries": len(pack.seo),
        }
        code_summary = (
            [{"path": f.path, "type": f.type.value, "contentLength": len(f.content)} for f in generated_files[:5]]
            if generated_files
            else "No code submitted for review"
        )
        personas = ", ".join(p.name for p in brand.target_personas) or "not specified"
        return build_user_prompt({
            "Brand Strategy": brand,
            "Content Pack Overview": overview,
            "Sample Page Content": pack.root_page() or (pack.pages[0] if pack.pages else None),
            "SEO": [s.to_json_dict() for s in pack.seo],
            "Site Settings": pack.site_settings,
            "Generated Code Files": code_summary,
            "Your Task": (
                "Review this Content Pack and provide quality scores with detailed feedback.\n\n"
                f"Brand voice should be: {brand.tone_of_voice.primary}\n"
                f"Target personas: {personas}\n\n"
                "Provide specific, actionable feedback for any issues found."
            ),
        })

    async def review(
        self,
        strategy: StrategistOutput,
        pack: ContentPack,
        generated_files: Optional[List[GeneratedFile]] = None,
    ) -> AgentResult:
        """Review a Content Pack.

        Returns:
            AgentResult whose output is an EditorVerdict with recalculated
            ``final_score`` and ``approved``
        """
        logger.info(
            "Starting quality review",
            extra={"agent": self.role, "page_count": len(pack.pages), "has_code": bool(generated_files)},
        )
        result = await self._invoke(self.build_prompt(strategy, pack, generated_files))
        if not result.success:
            return result

        verdict = finalize_verdict(result.output, self.quality_threshold)
        result.output = verdict
        logger.info(
            "Quality review complete",
            extra={
                "agent": self.role,
                "approved": verdict.approved,
                "final_score": verdict.final_score,
                "feedback": feedback_summary(verdict.feedback),
                "revision_requests": len(verdict.revisions),
            },
        )
        return result


def calculate_final_score(scores: QualityScores) -> float:
    """Weighted mean of the five quality dimensions, rounded half up to one decimal."""
    weighted = sum(getattr(scores, name) * weight for name, weight in SCORE_WEIGHTS.items())
    return math.floor(weighted * 10 + 0.5) / 10


def finalize_verdict(verdict: EditorVerdict, threshold: float = QUALITY_THRESHOLD) -> EditorVerdict:
    """Recalculate score and approval; the model's own claim is ignored."""
    final_score = calculate_final_score(verdict.scores)
    approved = final_score >= threshold and not verdict.has_critical_feedback()
    if approved != verdict.approved:
        logger.info(
            "Overriding editor approval claim",
            extra={"claimed": verdict.approved, "approved": approved, "final_score": final_score},
        )
    return verdict.model_copy(update={"final_score": final_score, "approved": approved})


def should_request_revision(verdict: EditorVerdict, threshold: float = QUALITY_THRESHOLD) -> bool:
    """Revise when not approved, on any critical feedback, or below the threshold."""
    return (
        not verdict.approved
        or verdict.has_critical_feedback()
        or verdict.final_score < threshold
    )


def quick_quality_check(pack: ContentPack) -> Tuple[bool, List[str]]:
    """Structural pre-check without a model call.

    Returns:
        (passed, issues) where issues are human-readable messages
    """
    report = validate_content_pack(pack)
    return report.valid, [e.message for e in report.errors]


def rejection_verdict(pack: ContentPack) -> EditorVerdict:
    """Verdict for a pack that failed the structural pre-check.

    Every structural issue becomes critical feedback, so the verdict is never
    approved and always requests a revision. The scores are zero, below the
    1-10 range a model review may return, so they are built unvalidated.
    """
    report = validate_content_pack(pack)
    feedback = [
        EditorFeedback(
            category=FeedbackCategory.TECHNICAL,
            severity=FeedbackSeverity.CRITICAL,
            location=issue.path,
            issue=issue.message,
            suggestion=f"Provide {issue.path}",
        )
        for issue in report.errors
    ]
    return EditorVerdict(
        approved=False,
        scores=QualityScores.model_construct(
            overall=0.0,
            content_quality=0.0,
            brand_consistency=0.0,
            seo_optimization=0.0,
            accessibility=0.0,
            technical_accuracy=0.0,
            feedback=[issue.message for issue in report.errors],
        ),
        feedback=feedback,
        revisions=[
            RevisionRequest(
                agent="content-pack-generator",
                instruction=f"Fix structural issue {issue.code}: {issue.message}",
                priority="high",
                affected_paths=[issue.path],
            )
            for issue in report.errors
        ],
        final_score=0.0,
    )
