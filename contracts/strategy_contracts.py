"""Strategist contracts: brand strategy, content strategy and site structure.

These are read-only inputs to every later stage and are only regenerated by a
full pipeline restart.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import ContractModel


class BrandVoice(str, Enum):
    """Overall voice of the brand."""
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    PLAYFUL = "playful"
    LUXURIOUS = "luxurious"
    TECHNICAL = "technical"


class PagePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BrandIdentity(ContractModel):
    """Core brand identity, reused verbatim in the Content Pack site settings."""
    name: str = Field("", description="Brand name")
    tagline: str = Field("", description="10-15 words max")
    short_description: str = Field("", description="1-2 sentences")
    long_description: str = Field("", description="Brand story, 3-5 paragraphs")
    logo_url: Optional[str] = None
    favicon: Optional[str] = None
    brand_voice: BrandVoice = BrandVoice.PROFESSIONAL
    personality: List[str] = Field(default_factory=list)


class ToneOfVoice(ContractModel):
    """Writing guidelines derived from the brand voice."""
    primary: str = "professional"
    descriptors: List[str] = Field(default_factory=list)
    do_list: List[str] = Field(default_factory=list)
    dont_list: List[str] = Field(default_factory=list)
    example_phrases: List[str] = Field(default_factory=list)


class PersonaDefinition(ContractModel):
    """A target persona."""
    name: str
    role: str = ""
    goals: List[str] = Field(default_factory=list)
    pain_points: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)


class BrandStrategy(ContractModel):
    """Brand positioning and messaging."""
    identity: BrandIdentity = Field(default_factory=BrandIdentity)
    positioning: str = ""
    unique_value_proposition: str = ""
    key_messages: List[str] = Field(default_factory=list)
    tone_of_voice: ToneOfVoice = Field(default_factory=ToneOfVoice)
    target_personas: List[PersonaDefinition] = Field(default_factory=list)


class ContentPillar(ContractModel):
    name: str
    description: str = ""
    topics: List[str] = Field(default_factory=list)


class CtaStrategy(ContractModel):
    """A call to action and where it is placed."""
    type: str = Field("primary", description="primary, secondary or micro")
    text: str
    placement: List[str] = Field(default_factory=list)
    goal: str = ""


class ContentStrategy(ContractModel):
    """Content pillars, topics and calls to action."""
    pillars: List[ContentPillar] = Field(default_factory=list)
    key_topics: List[str] = Field(default_factory=list)
    call_to_actions: List[CtaStrategy] = Field(default_factory=list)
    content_gaps: List[str] = Field(default_factory=list)


class PageStructure(ContractModel):
    """A proposed page and its ordered section types."""
    slug: str = Field(..., description="'/' for the home page")
    name: str
    purpose: str = ""
    sections: List[str] = Field(default_factory=list, description="Ordered section types")
    priority: PagePriority = PagePriority.MEDIUM


class SiteStructure(ContractModel):
    """Proposed information architecture."""
    pages: List[PageStructure] = Field(default_factory=list)
    navigation_flow: str = ""
    conversion_funnel: List[str] = Field(default_factory=list)


class CompetitiveInsight(ContractModel):
    aspect: str
    observation: str = ""
    opportunity: str = ""


class StrategistOutput(ContractModel):
    """Everything the Strategist produces."""
    brand_strategy: BrandStrategy = Field(default_factory=BrandStrategy)
    content_strategy: ContentStrategy = Field(default_factory=ContentStrategy)
    site_structure: SiteStructure = Field(default_factory=SiteStructure)
    competitive_analysis: List[CompetitiveInsight] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    def is_complete(self) -> bool:
        """Identity name and tagline are set and at least one page is proposed."""
        identity = self.brand_strategy.identity
        return bool(
            identity.name.strip()
            and identity.tagline.strip()
            and self.site_structure.pages
        )
