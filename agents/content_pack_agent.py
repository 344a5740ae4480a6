"""Content Pack Generator Agent - writes every piece of website copy.

The Content Pack is the single source of truth for the rendered site. The
agent asks the model for the whole pack, then stamps it (project id, version,
timestamp, intake fingerprint, content hash), fills default component copy
and collects the ``{{TODO: ...}}`` placeholders the model left for facts it
could not know.

The structural checks in ``validate_content_pack`` decide whether a pack is
usable; parsing alone never does.
"""

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from agents.base_agent import AgentConfig, AgentInvoker, AgentResult, BaseAgent, build_user_prompt
from contracts import (
    CONTENT_PACK_VERSION,
    ComponentContent,
    ContentPack,
    EditorVerdict,
    PageDefinition,
    PageInput,
    PageStructure,
    ProjectIntake,
    SectionDefinition,
    StrategistOutput,
    StructuralIssue,
    TodoMarker,
    ValidationReport,
    feedback_summary,
)

logger = logging.getLogger(__name__)

TODO_PATTERN = re.compile(r"\{\{TODO:\s*([^}]+)\}\}")

SEO_TITLE_MAX = 60
SEO_DESCRIPTION_MAX = 160

# Structural issue codes
MISSING_ROOT_PAGE = "MISSING_ROOT_PAGE"
EMPTY_NAVIGATION = "EMPTY_NAVIGATION"
MISSING_FOOTER_TAGLINE = "MISSING_FOOTER_TAGLINE"
MISSING_SEO = "MISSING_SEO"
MISSING_IMPRINT = "MISSING_IMPRINT"
MISSING_PRIVACY = "MISSING_PRIVACY"
MISSING_BRAND_NAME = "MISSING_BRAND_NAME"
MISSING_PAGE_SLUG = "MISSING_PAGE_SLUG"


class ContentPackOutput(BaseModel):
    """A stamped Content Pack plus what was learned while producing it."""
    content_pack: ContentPack
    todo_markers: List[TodoMarker] = Field(default_factory=list)
    generation_notes: List[str] = Field(default_factory=list)


class ContentPackAgent(BaseAgent):
    """Writes the complete Content Pack from strategy, intake and page skeleton."""

    SYSTEM_PROMPT = """You are a senior Content Architect. You write the complete Content Pack: the single source of truth for all website content.

## Your Mission

Produce one JSON object holding ALL text and structure of the website. The
developers will ONLY render this content. They cannot invent any text.

## Critical Rules

1. EVERY piece of text shown on the website MUST be in the Content Pack
2. Use realistic, professional copy, never Lorem Ipsum
3. For unknown facts (legal details, registry numbers, credentials) use
   {{TODO: description}} placeholders
4. Match the brand voice and tone from the strategy
5. Headlines are benefit-focused, CTAs action-oriented
6. Follow SEO best practices: titles up to 60 characters, descriptions up to 160

## Required Parts

- siteSettings.brand.name
- pages: one page per requested page definition, the home page with slug "/"
- every section has id, type, order, headline fields and its payload
  (items, CTAs, form fields, ...) under "content"
- navigation.items: at least one item per page shown in the navigation
- footer.tagline
- seo: one entry per page, keyed by pageSlug
- legal.imprint and legal.privacy (placeholders allowed)
- components: 404, loading, error and toast copy

## Language

- Write in German unless the brief asks otherwise
- Use natural German, not literal translations from English

Return ONLY the complete JSON Content Pack.
"""

    def __init__(self, invoker: AgentInvoker, config: Optional[AgentConfig] = None):
        """Initialize the Content Pack Generator Agent."""
        super().__init__(
            role="content-pack-generator",
            system_prompt=self.SYSTEM_PROMPT,
            output_schema=ContentPack,
            invoker=invoker,
            config=config,
        )

    def get_task_description(self) -> str:
        return "Write the complete Content Pack for the website"

    def build_prompt(
        self,
        strategy: StrategistOutput,
        intake: ProjectIntake,
        pages: List[PageDefinition],
        addons: List[str],
        revision_feedback: Optional[EditorVerdict] = None,
    ) -> str:
        project_data = intake.model_dump(
            mode="json",
            by_alias=True,
            include={
                "name", "primary_color", "secondary_color", "website_style", "target_audience",
                "brief", "contact_email", "contact_phone", "industry", "location", "logo_url",
            },
        )
        sections: Dict[str, Any] = {
            "Brand Strategy": strategy.brand_strategy,
            "Content Strategy": strategy.content_strategy,
            "Site Structure": strategy.site_structure,
            "Project Data": project_data,
            "Pages to Generate": [p.model_dump(by_alias=True) for p in pages],
            "Enabled Addons": addons,
            "Your Task": (
                "Create the complete Content Pack JSON for this website.\n\n"
                f"1. Brand voice: {strategy.brand_strategy.tone_of_voice.primary}\n"
                f"2. Target audience: {intake.target_audience}\n"
                f"3. Website style: {intake.website_style}\n"
                f"4. Optimization goal: {intake.optimization_goal}"
            ),
        }
        if revision_feedback is not None:
            sections["Revision Feedback"] = format_revision_feedback(revision_feedback)
        return build_user_prompt(sections)

    async def generate(
        self,
        strategy: StrategistOutput,
        intake: ProjectIntake,
        pages: List[PageDefinition],
        addons: Optional[List[str]] = None,
        revision_feedback: Optional[EditorVerdict] = None,
    ) -> AgentResult:
        """Generate and stamp a Content Pack.

        Returns:
            AgentResult whose output is a ContentPackOutput on success
        """
        addons = list(addons if addons is not None else intake.selected_addons)
        logger.info(
            "Starting Content Pack generation",
            extra={
                "agent": self.role,
                "project_id": intake.id,
                "page_count": len(pages),
                "revision": revision_feedback is not None,
            },
        )

        result = await self._invoke(self.build_prompt(strategy, intake, pages, addons, revision_feedback))
        if not result.success:
            return result

        pack = stamp_content_pack(result.output, intake)
        todo_markers = extract_todo_markers(pack)
        section_count = sum(len(p.sections) for p in pack.pages)
        result.output = ContentPackOutput(
            content_pack=pack,
            todo_markers=todo_markers,
            generation_notes=[
                f"Generated {len(pack.pages)} pages",
                f"Total sections: {section_count}",
                f"TODO markers: {len(todo_markers)}",
            ],
        )
        logger.info(
            "Content Pack complete",
            extra={
                "agent": self.role,
                "page_count": len(pack.pages),
                "section_count": section_count,
                "todo_count": len(todo_markers),
                "hash": pack.hash,
            },
        )
        return result


def format_revision_feedback(feedback: EditorVerdict) -> str:
    """Describe what the previous attempt got wrong.

    Structural failures arrive as a rejection verdict with critical feedback.
    """
    counts = feedback_summary(feedback.feedback)
    lines = [
        f"The previous Content Pack scored {feedback.final_score}/10 and was not approved "
        f"({counts['critical']} critical, {counts['major']} major issues).",
        "Address this feedback:",
    ]
    for item in feedback.feedback:
        line = f"- [{item.severity.value}] {item.location}: {item.issue}"
        if item.suggestion:
            line += f" -> {item.suggestion}"
        lines.append(line)
    for revision in feedback.revisions_for("content-pack-generator"):
        lines.append(f"- ({revision.priority}) {revision.instruction}")
    return "\n".join(lines)


def merge_page_definitions(
    strategy_pages: List[PageStructure],
    user_pages: List[PageInput],
) -> List[PageDefinition]:
    """Merge the strategist's pages with the user's page skeleton.

    Strategy pages come first; a user page with the same slug replaces the
    strategy page in place, other user pages are appended.
    """
    merged: Dict[str, PageDefinition] = {}

    for page in strategy_pages:
        merged[page.slug] = PageDefinition(
            slug=page.slug,
            name=page.name,
            sections=[SectionDefinition(type=s) for s in page.sections],
        )

    for page in user_pages:
        merged[page.slug] = PageDefinition(
            slug=page.slug,
            name=page.name,
            sections=[SectionDefinition(type=s.section_type, config=dict(s.config)) for s in page.sections],
        )

    return list(merged.values())


def default_component_content() -> ComponentContent:
    """German default copy for 404, loading, error and toast messages."""
    return ComponentContent.model_validate({
        "announcement": None,
        "notFound": {
            "headline": "Seite nicht gefunden",
            "description": "Die gesuchte Seite existiert leider nicht oder wurde verschoben.",
            "cta": {
                "text": "Zur Startseite",
                "url": "/",
                "variant": "primary",
                "icon": "Home",
                "iconPosition": "left",
            },
        },
        "loading": {"text": "Wird geladen...", "showSpinner": True},
        "error": {
            "headline": "Ein Fehler ist aufgetreten",
            "description": "Bitte versuchen Sie es später erneut oder kontaktieren Sie uns.",
            "retryCta": {
                "text": "Erneut versuchen",
                "url": "#",
                "variant": "primary",
                "icon": "RefreshCw",
                "iconPosition": "left",
            },
        },
        "toasts": {
            "contactSuccess": "Vielen Dank für Ihre Nachricht! Wir melden uns schnellstmöglich bei Ihnen.",
            "contactError": "Leider konnte Ihre Nachricht nicht gesendet werden. Bitte versuchen Sie es erneut.",
            "newsletterSuccess": "Erfolgreich für den Newsletter angemeldet!",
            "newsletterError": "Anmeldung fehlgeschlagen. Bitte versuchen Sie es erneut.",
            "genericError": "Ein Fehler ist aufgetreten. Bitte versuchen Sie es erneut.",
        },
    })


def compute_content_hash(pack: ContentPack) -> str:
    """SHA-256 of the canonical JSON of the pack, without hash and timestamp."""
    data = pack.model_dump(mode="json", by_alias=True, exclude={"hash", "generated_at"})
    canonical = json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def stamp_content_pack(
    pack: ContentPack,
    intake: ProjectIntake,
    now: Optional[datetime] = None,
) -> ContentPack:
    """Return a copy with metadata, default components and the content hash."""
    stamped = pack.model_copy(deep=True)
    stamped.project_id = intake.id
    stamped.generated_at = now or datetime.now(timezone.utc)
    stamped.version = CONTENT_PACK_VERSION
    stamped.intake_hash = intake.fingerprint()
    if stamped.components is None:
        stamped.components = default_component_content()
    stamped.hash = compute_content_hash(stamped)
    return stamped


def iter_string_leaves(value: Any, path: str = "") -> Iterator[Tuple[str, str]]:
    """Yield (dotted path, string) for every string leaf of a JSON structure."""
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from iter_string_leaves(item, f"{path}[{index}]")
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from iter_string_leaves(item, f"{path}.{key}" if path else key)


def flatten_strings(pack: ContentPack) -> List[str]:
    """Every string value in the pack, in document order."""
    return [text for _, text in iter_string_leaves(pack.to_json_dict())]


def extract_todo_markers(pack: Union[ContentPack, Dict[str, Any]]) -> List[TodoMarker]:
    """Collect every ``{{TODO: ...}}`` placeholder with its path in the pack.

    Markers inside legal content (imprint included) are required: the site
    must not go live with them unresolved.
    """
    data = pack.to_json_dict() if isinstance(pack, ContentPack) else pack
    markers = []
    for path, text in iter_string_leaves(data):
        for match in TODO_PATTERN.finditer(text):
            markers.append(TodoMarker(
                path=path,
                placeholder=match.group(0),
                description=match.group(1).strip(),
                required="imprint" in path or "legal" in path,
            ))
    return markers


def validate_content_pack(pack: ContentPack) -> ValidationReport:
    """Check the structural invariants of a Content Pack.

    Errors (each with its own code): missing brand name, no page with slug
    "/", pages without slug, empty navigation, missing footer tagline, a page
    without SEO entry, missing imprint, missing privacy policy.
    Warnings: pages without sections, SEO title/description too long.
    """
    errors: List[StructuralIssue] = []
    warnings: List[str] = []

    if not pack.site_settings.brand.name.strip():
        errors.append(StructuralIssue(
            code=MISSING_BRAND_NAME,
            path="siteSettings.brand.name",
            message="Missing brand name",
        ))

    if not pack.pages:
        errors.append(StructuralIssue(
            code=MISSING_ROOT_PAGE,
            path="pages",
            message="No pages defined",
        ))
    elif pack.root_page() is None:
        errors.append(StructuralIssue(
            code=MISSING_ROOT_PAGE,
            path="pages",
            message="No page with slug '/'",
        ))

    for index, page in enumerate(pack.pages):
        if not page.slug:
            errors.append(StructuralIssue(
                code=MISSING_PAGE_SLUG,
                path=f"pages[{index}].slug",
                message=f"Page {index} missing slug",
            ))
            continue
        if not page.sections:
            warnings.append(f'Page "{page.name or page.slug}" has no sections')
        if pack.seo_for(page.slug) is None:
            errors.append(StructuralIssue(
                code=MISSING_SEO,
                path=f"seo[{page.slug}]",
                message=f"No SEO entry for page {page.slug}",
            ))

    if not pack.navigation.items:
        errors.append(StructuralIssue(
            code=EMPTY_NAVIGATION,
            path="navigation.items",
            message="Navigation has no items",
        ))

    if not (pack.footer.tagline or "").strip():
        errors.append(StructuralIssue(
            code=MISSING_FOOTER_TAGLINE,
            path="footer.tagline",
            message="Footer has no tagline",
        ))

    if pack.legal.imprint is None:
        errors.append(StructuralIssue(
            code=MISSING_IMPRINT,
            path="legal.imprint",
            message="Legal imprint is missing",
        ))
    if pack.legal.privacy is None:
        errors.append(StructuralIssue(
            code=MISSING_PRIVACY,
            path="legal.privacy",
            message="Privacy policy is missing",
        ))

    for seo in pack.seo:
        if len(seo.title) > SEO_TITLE_MAX:
            warnings.append(f"SEO title for {seo.page_slug} exceeds {SEO_TITLE_MAX} characters")
        if len(seo.description) > SEO_DESCRIPTION_MAX:
            warnings.append(f"SEO description for {seo.page_slug} exceeds {SEO_DESCRIPTION_MAX} characters")

    return ValidationReport(valid=not errors, errors=errors, warnings=warnings)
