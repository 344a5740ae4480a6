"""Strategist Agent - brand strategy, content strategy and site structure.

Runs first and once per pipeline run. Everything downstream builds on its
output, so when the model's answer is incomplete the missing parts are filled
from a deterministic default strategy.
"""

import logging
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from agents.base_agent import (
    AgentConfig,
    AgentInvoker,
    AgentResult,
    BaseAgent,
    InvalidOutputError,
    build_user_prompt,
)
from contracts import (
    BrandIdentity,
    BrandStrategy,
    CompetitiveInsight,
    ContentStrategy,
    PackageTier,
    PagePriority,
    PageStructure,
    ProjectIntake,
    SiteStructure,
    StrategistOutput,
)

logger = logging.getLogger(__name__)


class StrategistInput(BaseModel):
    """Input for the Strategist Agent."""
    project_name: str
    brief: str
    target_audience: str
    website_style: str
    package_type: str
    industry: Optional[str] = None
    optimization_goal: Optional[str] = None
    selected_addons: list[str] = Field(default_factory=list)

    @classmethod
    def from_intake(cls, intake: ProjectIntake) -> "StrategistInput":
        return cls(
            project_name=intake.name,
            brief=intake.brief,
            target_audience=intake.target_audience,
            website_style=intake.website_style,
            package_type=intake.package_type.value,
            industry=intake.industry,
            optimization_goal=intake.optimization_goal,
            selected_addons=list(intake.selected_addons),
        )


def _is_complete_strategy(output: StrategistOutput) -> bool:
    if not output.is_complete():
        raise ValueError(
            "brandStrategy.identity.name and .tagline must be non-empty "
            "and siteStructure.pages must list at least one page"
        )
    return True


class StrategistAgent(BaseAgent):
    """Develops the brand and content strategy the rest of the pipeline follows.

    The output is accepted only when the brand identity has a name and a
    tagline and at least one page is proposed.
    """

    SYSTEM_PROMPT = """You are an experienced Brand Strategist and digital marketing expert who plans websites for small and mid-sized businesses.

## Your Mission

Analyze the client's business and produce a brand strategy, a content strategy
and a site structure that the copywriting and development agents will follow.

## Expertise

- Brand positioning and differentiation
- Target audience analysis and persona development
- Content strategy and information architecture
- Conversion optimization

## Guidelines

1. Create a distinct brand voice; avoid generic corporate speak
2. Focus on what makes THIS business special
3. Target personas must be specific and realistic
4. Calls to action are action-oriented
5. The site structure supports the conversion funnel
6. The home page has the slug "/"
7. Section lists use these types: hero, features, services, about, team,
   testimonials, portfolio, pricing, faq, contact, cta, stats, logos,
   timeline, comparison, gallery, newsletter, blog-preview

## Critical Rules

- brandStrategy.identity.name and brandStrategy.identity.tagline are REQUIRED
- siteStructure.pages must contain at least one page
- Respond with JSON only
"""

    def __init__(self, invoker: AgentInvoker, config: Optional[AgentConfig] = None):
        """Initialize the Strategist Agent."""
        config = config or AgentConfig.for_agent("strategist")
        config.validate = _is_complete_strategy
        super().__init__(
            role="strategist",
            system_prompt=self.SYSTEM_PROMPT,
            output_schema=StrategistOutput,
            invoker=invoker,
            config=config,
        )

    def get_task_description(self) -> str:
        return "Develop brand strategy, content strategy and site structure"

    def build_prompt(self, intake: ProjectIntake) -> str:
        strategist_input = StrategistInput.from_intake(intake)
        focus = [
            "1. A distinct, memorable brand identity",
            "2. A deep understanding of the target audience",
            "3. Compelling key messages",
            "4. A site structure built for conversion",
            "5. Competitive opportunities",
        ]
        return build_user_prompt({
            "Project Overview": strategist_input,
            "Your Task": (
                "Create a comprehensive brand strategy, content strategy and site structure.\n\n"
                "Focus on:\n" + "\n".join(focus) + "\n\n"
                f"The website style is: {intake.website_style}\n"
                f"The package type is: {intake.package_type.value}"
                + (f"\nThe industry is: {intake.industry}" if intake.industry else "")
            ),
        })

    async def develop(self, intake: ProjectIntake) -> AgentResult:
        """Ask the model for a strategy.

        Returns:
            AgentResult with a StrategistOutput on success. Use
            ``recover_strategy`` to salvage a failed result.
        """
        logger.info(
            "Starting brand strategy development",
            extra={"agent": self.role, "project": intake.name},
        )
        result = await self._invoke(self.build_prompt(intake))
        if result.success:
            output: StrategistOutput = result.output
            logger.info(
                "Strategy complete",
                extra={
                    "agent": self.role,
                    "pages": len(output.site_structure.pages),
                    "personas": len(output.brand_strategy.target_personas),
                },
            )
        return result


def get_default_site_structure(package_type: Union[PackageTier, str]) -> SiteStructure:
    """Default information architecture for a package tier.

    Every tier gets home, about and contact; premium and enterprise add
    services and portfolio.
    """
    tier = PackageTier(package_type)
    pages = [
        PageStructure(
            slug="/",
            name="Home",
            purpose="Primary landing page for conversions",
            sections=["hero", "features", "services", "testimonials", "cta"],
            priority=PagePriority.HIGH,
        ),
        PageStructure(
            slug="/about",
            name="About",
            purpose="Build trust and show brand story",
            sections=["hero", "about", "team", "values"],
            priority=PagePriority.MEDIUM,
        ),
        PageStructure(
            slug="/contact",
            name="Contact",
            purpose="Lead generation",
            sections=["hero", "contact", "faq"],
            priority=PagePriority.HIGH,
        ),
    ]

    if tier.is_extended:
        pages.extend([
            PageStructure(
                slug="/services",
                name="Services",
                purpose="Showcase offerings in detail",
                sections=["hero", "services", "pricing", "cta"],
                priority=PagePriority.HIGH,
            ),
            PageStructure(
                slug="/portfolio",
                name="Portfolio",
                purpose="Show work and build credibility",
                sections=["hero", "portfolio", "testimonials"],
                priority=PagePriority.MEDIUM,
            ),
        ])

    return SiteStructure(
        pages=pages,
        navigation_flow="Home → Services → Portfolio → About → Contact",
        conversion_funnel=["Awareness", "Interest", "Desire", "Action"],
    )


def _salvage(model: type, data: Dict[str, Any], *keys: str) -> Optional[BaseModel]:
    """Validate the first present key of ``data`` against ``model``, or None."""
    for key in keys:
        if key in data and data[key] is not None:
            try:
                return model.model_validate(data[key])
            except ValidationError:
                return None
    return None


def merge_with_default_strategy(
    partial: Optional[Union[StrategistOutput, Dict[str, Any]]],
    intake: ProjectIntake,
) -> StrategistOutput:
    """Fill whatever the model did not deliver with the default strategy.

    ``partial`` is either a parsed StrategistOutput or the raw JSON of a
    rejected answer; parts that do not validate are replaced by defaults.
    """
    if isinstance(partial, StrategistOutput):
        data = partial.model_dump(by_alias=True)
    else:
        data = dict(partial or {})

    brand = _salvage(BrandStrategy, data, "brandStrategy", "brand_strategy") or BrandStrategy()
    if not brand.identity.name.strip():
        brand.identity = BrandIdentity.model_validate({
            **brand.identity.model_dump(),
            "name": intake.name,
            "logo_url": brand.identity.logo_url or intake.logo_url,
        })

    content = _salvage(ContentStrategy, data, "contentStrategy", "content_strategy") or ContentStrategy()

    structure = _salvage(SiteStructure, data, "siteStructure", "site_structure")
    if structure is None or not structure.pages:
        structure = get_default_site_structure(intake.package_type)

    competitive = []
    for item in data.get("competitiveAnalysis") or data.get("competitive_analysis") or []:
        try:
            competitive.append(CompetitiveInsight.model_validate(item))
        except ValidationError:
            continue

    recommendations = data.get("recommendations") or []
    if not isinstance(recommendations, list):
        recommendations = []

    return StrategistOutput(
        brand_strategy=brand,
        content_strategy=content,
        site_structure=structure,
        competitive_analysis=competitive,
        recommendations=[str(r) for r in recommendations],
    )


def recover_strategy(result: AgentResult, intake: ProjectIntake) -> Optional[StrategistOutput]:
    """Turn a failed strategist result into a usable strategy, if possible.

    Recoverable when the model answered at least once: a rejected answer
    on the last attempt, or parseable output from an earlier attempt that
    was followed by a timeout or provider failure. Returns None otherwise.
    """
    if result.success:
        return result.output
    partial = result.partial
    if isinstance(result.error, InvalidOutputError) and result.error.partial is not None:
        partial = result.error.partial
    if partial is None and not isinstance(result.error, InvalidOutputError):
        return None
    logger.warning(
        "Strategist output incomplete, merging with default strategy",
        extra={
            "agent": "strategist",
            "has_partial": partial is not None,
            "error_code": result.error.code.value if result.error else None,
        },
    )
    return merge_with_default_strategy(partial, intake)
