"""Content Pack contracts - the single source of truth for all website content.

The Content Pack holds every piece of text and structure the rendered site
shows. The Code Renderer only renders it and never invents copy.

Parsing is intentionally lenient: missing parts default to empty values so
that structural completeness is judged by validation, not by the parser.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from .base import ContractModel
from .strategy_contracts import BrandIdentity


CONTENT_PACK_VERSION = "1.0.0"


class SectionType(str, Enum):
    """Section type tag; selects the shape of the section content payload."""
    HERO = "hero"
    FEATURES = "features"
    SERVICES = "services"
    ABOUT = "about"
    TEAM = "team"
    TESTIMONIALS = "testimonials"
    PORTFOLIO = "portfolio"
    PRICING = "pricing"
    FAQ = "faq"
    CONTACT = "contact"
    CTA = "cta"
    STATS = "stats"
    LOGOS = "logos"
    TIMELINE = "timeline"
    COMPARISON = "comparison"
    GALLERY = "gallery"
    NEWSLETTER = "newsletter"
    BLOG_PREVIEW = "blog-preview"
    CUSTOM = "custom"


# =============================================================================
# Shared building blocks
# =============================================================================


class CtaButton(ContractModel):
    text: str
    url: str
    variant: str = Field("primary", description="primary, secondary, outline, ghost or link")
    icon: Optional[str] = None
    icon_position: str = "right"
    open_in_new_tab: bool = False


class ImageContent(ContractModel):
    src: str
    alt: str
    width: Optional[int] = None
    height: Optional[int] = None
    caption: Optional[str] = None
    credit: Optional[str] = None


class AddressInfo(ContractModel):
    street: str = ""
    city: str = ""
    state: Optional[str] = None
    postal_code: str = ""
    country: str = ""
    formatted: str = ""


class AnnouncementBanner(ContractModel):
    text: str
    link: Optional[str] = None
    link_text: Optional[str] = None
    dismissible: bool = True


# =============================================================================
# Site settings
# =============================================================================


class DarkModeColors(ContractModel):
    background: str = "#0f172a"
    background_alt: str = "#1e293b"
    text: str = "#f8fafc"
    text_muted: str = "#94a3b8"


class ColorScheme(ContractModel):
    """HEX colour palette, including dark mode variants."""
    primary: str = "#2563eb"
    primary_dark: str = "#1d4ed8"
    primary_light: str = "#60a5fa"
    secondary: str = "#0f172a"
    secondary_dark: str = "#020617"
    secondary_light: str = "#334155"
    accent: str = "#f59e0b"
    background: str = "#ffffff"
    background_alt: str = "#f8fafc"
    text: str = "#0f172a"
    text_muted: str = "#64748b"
    text_inverse: str = "#ffffff"
    success: str = "#16a34a"
    warning: str = "#d97706"
    error: str = "#dc2626"
    dark: DarkModeColors = Field(default_factory=DarkModeColors)


class FontWeights(ContractModel):
    light: int = 300
    regular: int = 400
    medium: int = 500
    semibold: int = 600
    bold: int = 700


class TypographySettings(ContractModel):
    heading_font: str = "Inter"
    body_font: str = "Inter"
    mono_font: str = "JetBrains Mono"
    base_font_size: int = 16
    line_height: float = 1.6
    font_weights: FontWeights = Field(default_factory=FontWeights)


class ContactInfo(ContractModel):
    email: str = ""
    phone: Optional[str] = None
    address: Optional[AddressInfo] = None
    map_embed: Optional[str] = None


class CustomSocialLink(ContractModel):
    name: str
    url: str
    icon: str = ""


class SocialLinks(ContractModel):
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    youtube: Optional[str] = None
    github: Optional[str] = None
    tiktok: Optional[str] = None
    discord: Optional[str] = None
    custom: List[CustomSocialLink] = Field(default_factory=list)


class BusinessInfo(ContractModel):
    legal_name: str = ""
    type: str = Field("agency", description="freelancer, agency, startup, enterprise or nonprofit")
    founded_year: Optional[int] = None
    employee_count: Optional[str] = None
    industries: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    awards: List[str] = Field(default_factory=list)


class SiteSettings(ContractModel):
    """Versioned site-wide settings."""
    brand: BrandIdentity = Field(default_factory=BrandIdentity)
    colors: ColorScheme = Field(default_factory=ColorScheme)
    typography: TypographySettings = Field(default_factory=TypographySettings)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    social: SocialLinks = Field(default_factory=SocialLinks)
    business: BusinessInfo = Field(default_factory=BusinessInfo)


# =============================================================================
# Pages and sections
# =============================================================================


class SectionStyle(ContractModel):
    background: str = "light"
    background_image: Optional[str] = None
    padding: str = "large"
    width: str = "default"
    alignment: str = "center"
    animation: str = "fade"


class SectionContent(ContractModel):
    """One ordered section of a page.

    ``content`` is the type-specific payload (hero CTAs, FAQ items, contact
    form fields, ...), keyed by the section ``type``.
    """
    id: str
    type: SectionType
    order: int = 0
    headline: Optional[str] = None
    subheadline: Optional[str] = None
    eyebrow: Optional[str] = None
    description: Optional[str] = None
    content: Dict[str, Any] = Field(default_factory=dict)
    style: SectionStyle = Field(default_factory=SectionStyle)

    @model_validator(mode="before")
    @classmethod
    def _collect_payload(cls, data: Any) -> Any:
        # Models often put payload keys (items, primaryCta, ...) next to the headline
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields) | {f.alias for f in cls.model_fields.values() if f.alias}
        extra = {k: v for k, v in data.items() if k not in known}
        if not extra:
            return data
        folded = {k: v for k, v in data.items() if k in known}
        content = dict(folded.get("content") or {})
        for key, value in extra.items():
            content.setdefault(key, value)
        folded["content"] = content
        return folded

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_types_become_custom(cls, value: Any) -> Any:
        if isinstance(value, str) and value not in {t.value for t in SectionType}:
            return SectionType.CUSTOM.value
        return value


class PageSettings(ContractModel):
    show_in_navigation: bool = True
    navigation_label: Optional[str] = None
    navigation_order: int = 0
    is_landing_page: bool = False
    template: str = "default"


class PageContent(ContractModel):
    """A page and its ordered sections."""
    id: str
    slug: str = Field("", description="'/' for the home page, '/about', ...")
    name: str = ""
    title: str = Field("", description="H1 headline")
    subtitle: Optional[str] = None
    description: str = Field("", description="Meta description")
    sections: List[SectionContent] = Field(default_factory=list)
    settings: PageSettings = Field(default_factory=PageSettings)

    @property
    def is_root(self) -> bool:
        return self.slug == "/"


# =============================================================================
# SEO
# =============================================================================


class SeoContent(ContractModel):
    """SEO metadata for one page."""
    page_slug: str
    title: str = Field("", description="50-60 chars")
    description: str = Field("", description="150-160 chars")
    keywords: List[str] = Field(default_factory=list)
    og_image: Optional[ImageContent] = None
    og_type: str = "website"
    canonical: Optional[str] = None
    no_index: bool = False
    structured_data: Optional[Dict[str, Any]] = None


# =============================================================================
# Legal
# =============================================================================


class ImprintContent(ContractModel):
    """Impressum. Unknown facts are ``{{TODO: ...}}`` placeholders."""
    company_name: str = ""
    legal_form: Optional[str] = None
    representative: Optional[str] = None
    address: AddressInfo = Field(default_factory=AddressInfo)
    email: str = ""
    phone: Optional[str] = None
    vat_id: Optional[str] = None
    registry_court: Optional[str] = None
    registry_number: Optional[str] = None
    responsible_for_content: Optional[str] = None
    additional_info: Optional[str] = None


class LegalSection(ContractModel):
    id: str
    title: str
    content: str


class PrivacyContent(ContractModel):
    """Datenschutzerklaerung."""
    last_updated: str = ""
    introduction: str = ""
    sections: List[LegalSection] = Field(default_factory=list)
    contact_info: str = ""
    dpo_info: Optional[str] = None


class TermsContent(ContractModel):
    last_updated: str = ""
    introduction: str = ""
    sections: List[LegalSection] = Field(default_factory=list)


class CookieItem(ContractModel):
    name: str
    purpose: str = ""
    duration: str = ""
    provider: str = ""


class CookieCategory(ContractModel):
    id: str
    name: str
    description: str = ""
    required: bool = False
    cookies: List[CookieItem] = Field(default_factory=list)


class CookiesContent(ContractModel):
    introduction: str = ""
    categories: List[CookieCategory] = Field(default_factory=list)
    management_info: str = ""


class LegalContent(ContractModel):
    imprint: Optional[ImprintContent] = None
    privacy: Optional[PrivacyContent] = None
    terms: Optional[TermsContent] = None
    cookies: Optional[CookiesContent] = None


# =============================================================================
# Navigation and footer
# =============================================================================


class NavItem(ContractModel):
    id: str
    label: str
    url: str
    children: List["NavItem"] = Field(default_factory=list)
    icon: Optional[str] = None
    badge: Optional[str] = None


class NavigationContent(ContractModel):
    logo: Optional[ImageContent] = None
    logo_text: Optional[str] = None
    items: List[NavItem] = Field(default_factory=list)
    cta_button: Optional[CtaButton] = None
    show_theme_toggle: bool = True
    sticky: bool = True
    transparent: bool = False


class FooterLink(ContractModel):
    label: str
    url: str
    external: bool = False


class FooterColumn(ContractModel):
    id: str
    title: str
    links: List[FooterLink] = Field(default_factory=list)


class FooterBottom(ContractModel):
    copyright: str = ""
    links: List[FooterLink] = Field(default_factory=list)
    show_social: bool = True


class FooterNewsletter(ContractModel):
    headline: str
    description: str = ""
    placeholder: str = ""
    button_text: str = ""


class FooterContent(ContractModel):
    logo: Optional[ImageContent] = None
    tagline: Optional[str] = None
    columns: List[FooterColumn] = Field(default_factory=list)
    bottom: FooterBottom = Field(default_factory=FooterBottom)
    newsletter: Optional[FooterNewsletter] = None


# =============================================================================
# Default component copy
# =============================================================================


class NotFoundContent(ContractModel):
    headline: str
    description: str
    cta: CtaButton
    image: Optional[ImageContent] = None


class LoadingContent(ContractModel):
    text: str
    show_spinner: bool = True


class ErrorContent(ContractModel):
    headline: str
    description: str
    retry_cta: CtaButton


class ToastMessages(ContractModel):
    contact_success: str
    contact_error: str
    newsletter_success: str
    newsletter_error: str
    generic_error: str


class ComponentContent(ContractModel):
    """Copy for reusable components: 404, loading, error and toasts."""
    announcement: Optional[AnnouncementBanner] = None
    not_found: NotFoundContent
    loading: LoadingContent
    error: ErrorContent
    toasts: ToastMessages


# =============================================================================
# The Content Pack
# =============================================================================


class ContentPack(ContractModel):
    """The single source of truth for all textual and structural content."""
    version: str = CONTENT_PACK_VERSION
    generated_at: Optional[datetime] = None
    project_id: str = ""
    hash: str = Field("", description="Content hash, calculated after generation")
    intake_hash: str = Field("", description="Fingerprint of the intake that produced this pack")

    site_settings: SiteSettings = Field(default_factory=SiteSettings)
    pages: List[PageContent] = Field(default_factory=list)
    seo: List[SeoContent] = Field(default_factory=list)
    legal: LegalContent = Field(default_factory=LegalContent)
    navigation: NavigationContent = Field(default_factory=NavigationContent)
    footer: FooterContent = Field(default_factory=FooterContent)
    components: Optional[ComponentContent] = None

    def root_page(self) -> Optional[PageContent]:
        return next((p for p in self.pages if p.is_root), None)

    def seo_for(self, slug: str) -> Optional[SeoContent]:
        return next((s for s in self.seo if s.page_slug == slug), None)

    def age_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        """Seconds since generation, or None if the pack was never stamped."""
        if self.generated_at is None:
            return None
        generated = self.generated_at
        if generated.tzinfo is None:
            generated = generated.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        return (now - generated).total_seconds()


# =============================================================================
# Generator side products
# =============================================================================


class SectionDefinition(ContractModel):
    """A section requested from the generator."""
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)


class PageDefinition(ContractModel):
    """A page requested from the generator (merged skeleton)."""
    slug: str
    name: str
    sections: List[SectionDefinition] = Field(default_factory=list)


class TodoMarker(ContractModel):
    """A placeholder for a fact the system could not know."""
    path: str = Field(..., description="Dotted path of the string inside the pack")
    placeholder: str = Field(..., description="The full '{{TODO: ...}}' marker")
    description: str
    required: bool = Field(False, description="True for legal/imprint content")


class StructuralIssue(ContractModel):
    """A violated Content Pack invariant."""
    code: str
    path: str
    message: str


class ValidationReport(ContractModel):
    """Result of structural Content Pack validation."""
    valid: bool
    errors: List[StructuralIssue] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def error_codes(self) -> List[str]:
        return [e.code for e in self.errors]

    def summary(self) -> str:
        return "; ".join(e.message for e in self.errors)
