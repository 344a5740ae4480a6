"""Code Renderer Agent - turns an approved Content Pack into a Next.js project.

Two render modes:

- ``template``: deterministic rendering from ``agents.templates``; no model call
- ``model``: the model writes the files; outputs with visible text that cannot
  be traced back to the pack are rejected and retried by the invoker

Both modes share the same post-processing, so the data file
``src/content/site.ts`` always carries the canonical pack export.
"""

import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

from agents import templates
from agents.base_agent import AgentConfig, AgentInvoker, BaseAgent, build_user_prompt
from agents.content_pack_agent import flatten_strings
from contracts import (
    ContentPack,
    DependencySpec,
    EnvVariable,
    FileType,
    GeneratedFile,
    ProjectIntake,
    RendererOutput,
    SectionType,
)

logger = logging.getLogger(__name__)

RENDER_MODES = ("template", "model")

DEFAULT_BUILD_INSTRUCTIONS = [
    "npm install",
    "cp .env.example .env.local",
    "npm run dev",
]

CLIENT_MARKERS = ("useState", "useEffect", "onClick", "motion.")
SCRIPT_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")
JSX_SUFFIXES = (".tsx", ".jsx")

IMPORT_LINE = re.compile(r"""^import\s+(?:.+\s+from\s+)?['"][^'"]+['"];?\s*$""")
USE_CLIENT_LINE = re.compile(r"""^\s*['"]use client['"];?\s*$""")

# Visible text: inline JSX text, JSX text alone on its line, and literal
# values of text-bearing attributes.
INLINE_TEXT = re.compile(r"(?<![=\-])>([^<>{}\n]+)<")
BLOCK_TEXT = re.compile(r"(?<![=\-])>[ \t]*\n[ \t]*([^<>{}\n;=()]+?)[ \t]*\n[ \t]*<")
TEXT_ATTRIBUTE = re.compile(r"""\b(?:alt|title|aria-label|placeholder)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
HTML_ENTITY = re.compile(r"&#?\w+;")
LETTER = re.compile(r"[^\W\d_]")


# =============================================================================
# Dependencies and environment
# =============================================================================

BASE_DEPENDENCIES = [
    DependencySpec(name="framer-motion", version="^11.0.0", reason="Animations"),
    DependencySpec(name="lucide-react", version="^0.400.0", reason="Icons"),
    DependencySpec(name="class-variance-authority", version="^0.7.0", reason="Component variants"),
    DependencySpec(name="clsx", version="^2.1.0", reason="Class names"),
    DependencySpec(name="tailwind-merge", version="^2.2.0", reason="Tailwind class merging"),
]

ADDON_DEPENDENCIES = {
    "cms": [
        DependencySpec(name="@sanity/client", version="^6.0.0", reason="Sanity CMS client"),
        DependencySpec(name="@sanity/image-url", version="^1.0.0", reason="Sanity image URLs"),
    ],
    "booking_form": [
        DependencySpec(name="resend", version="^3.0.0", reason="Email sending"),
    ],
    "blog": [
        DependencySpec(name="@portabletext/react", version="^3.0.0", reason="Rich text rendering"),
        DependencySpec(name="next-mdx-remote", version="^4.0.0", reason="MDX support"),
    ],
}


def get_required_dependencies(addons: Iterable[str] = ()) -> List[DependencySpec]:
    """npm packages the rendered project needs for the selected add-ons."""
    dependencies = list(BASE_DEPENDENCIES)
    for addon in addons:
        dependencies.extend(ADDON_DEPENDENCIES.get(addon, []))
    return _unique_by_name(dependencies)


def get_required_env_variables(intake: ProjectIntake, addons: Iterable[str] = ()) -> List[EnvVariable]:
    """Environment variables the rendered project needs."""
    addons = set(addons)
    env = [
        EnvVariable(name="NEXT_PUBLIC_SITE_URL", value=None, description="Production site URL", required=True),
    ]
    if "cms" in addons and intake.sanity_project_id:
        env.extend([
            EnvVariable(
                name="NEXT_PUBLIC_SANITY_PROJECT_ID",
                value=intake.sanity_project_id,
                description="Sanity project ID",
                required=True,
            ),
            EnvVariable(
                name="NEXT_PUBLIC_SANITY_DATASET",
                value=intake.sanity_dataset or "production",
                description="Sanity dataset",
                required=True,
            ),
            EnvVariable(name="SANITY_API_TOKEN", value=None, description="Sanity API token", required=False),
        ])
    if "booking_form" in addons:
        env.extend([
            EnvVariable(name="RESEND_API_KEY", value=None, description="Resend API key for emails", required=True),
            EnvVariable(
                name="CONTACT_EMAIL",
                value=intake.contact_email,
                description="Email address for contact form submissions",
                required=True,
            ),
        ])
    return env


def get_section_component_name(section_type: SectionType) -> str:
    return templates.section_component_name(section_type)


def _unique_by_name(items: list) -> list:
    seen: Dict[str, object] = {}
    for item in items:
        seen.setdefault(item.name, item)
    return list(seen.values())


# =============================================================================
# Post-processing
# =============================================================================


def hoist_imports(content: str) -> str:
    """Move top-level single-line imports to the top and drop duplicates.

    A ``'use client'`` directive stays the first statement.
    """
    directive = False
    imports: List[str] = []
    body: List[str] = []
    for line in content.split("\n"):
        if USE_CLIENT_LINE.match(line):
            directive = True
        elif IMPORT_LINE.match(line):
            statement = line.rstrip()
            if statement not in imports:
                imports.append(statement)
        else:
            body.append(line)

    if not imports and not directive:
        return content

    while body and not body[0].strip():
        body.pop(0)

    parts = []
    if directive:
        parts.append("'use client'")
    if imports:
        parts.append("\n".join(imports))
    parts.append("\n".join(body))
    return "\n\n".join(parts)


def needs_client_directive(content: str) -> bool:
    return any(marker in content for marker in CLIENT_MARKERS)


def ensure_use_client(content: str) -> str:
    """Prepend ``'use client'`` when client-only APIs are used."""
    if not needs_client_directive(content):
        return content
    if any(USE_CLIENT_LINE.match(line) for line in content.split("\n")[:3]):
        return content
    return "'use client'\n\n" + content


def post_process_files(files: List[GeneratedFile], pack: ContentPack) -> List[GeneratedFile]:
    """Normalise rendered files and inject the canonical content export."""
    processed = []
    for generated in files:
        if generated.path == templates.CONTENT_DATA_PATH:
            continue
        content = generated.content.replace("\r\n", "\n")
        if generated.path.endswith(SCRIPT_SUFFIXES):
            content = hoist_imports(content)
        if generated.path.endswith(JSX_SUFFIXES):
            content = ensure_use_client(content)
        processed.append(generated.model_copy(update={"content": content}))

    processed.append(GeneratedFile(
        path=templates.CONTENT_DATA_PATH,
        content=templates.content_pack_module(pack),
        type=FileType.UTILITY,
    ))
    if not any(f.path == templates.CONTENT_TYPES_PATH for f in processed):
        processed.append(GeneratedFile(
            path=templates.CONTENT_TYPES_PATH,
            content=templates.CONTENT_TYPES,
            type=FileType.SCHEMA,
        ))
    return processed


# =============================================================================
# Traceability
# =============================================================================


def _normalise(text: str) -> str:
    return " ".join(text.split())


def _visible_literals(content: str) -> List[str]:
    found = []
    for pattern in (INLINE_TEXT, BLOCK_TEXT):
        found.extend(m.group(1) for m in pattern.finditer(content))
    for match in TEXT_ATTRIBUTE.finditer(content):
        found.append(match.group(1) if match.group(1) is not None else match.group(2))
    literals = []
    for text in found:
        text = _normalise(text)
        if LETTER.search(HTML_ENTITY.sub("", text)):
            literals.append(text)
    return literals


def find_untraceable_literals(files: List[GeneratedFile], pack: ContentPack) -> List[Tuple[str, str]]:
    """Visible literal strings in JSX files that the pack does not contain.

    Returns:
        (path, literal) pairs, in file order
    """
    known: Set[str] = {_normalise(text) for text in flatten_strings(pack)}
    untraceable = []
    for generated in files:
        if not generated.path.endswith(JSX_SUFFIXES):
            continue
        for literal in _visible_literals(generated.content):
            if literal not in known:
                untraceable.append((generated.path, literal))
    return untraceable


def traceability_check(pack: ContentPack) -> Callable[[RendererOutput], bool]:
    """Build the invoker ``validate`` predicate for model-rendered output."""
    def check(output: RendererOutput) -> bool:
        untraceable = find_untraceable_literals(output.files, pack)
        if untraceable:
            listed = "; ".join(f"{path}: {text!r}" for path, text in untraceable[:10])
            raise ValueError(
                "Visible text must come from the content pack via contentPack imports. "
                f"Hardcoded text found: {listed}"
            )
        return True
    return check


# =============================================================================
# Agent
# =============================================================================


@dataclass
class RenderJob:
    """An independently renderable group of files."""
    id: str
    name: str
    run: Callable[[], Awaitable[RendererOutput]]


class CodeRendererAgent(BaseAgent):
    """Renders the Next.js App Router project for a Content Pack."""

    SYSTEM_PROMPT = """You are an expert Next.js developer building production websites with React, TypeScript and Tailwind CSS.

## Your Responsibilities

Write the Next.js 14 App Router files for a website whose content comes
entirely from a Content Pack.

## Technical Stack

- Next.js 14 with App Router, React 18, TypeScript
- Tailwind CSS, Framer Motion, Lucide React icons

## File Structure

- src/app/layout.tsx, src/app/page.tsx, src/app/[slug]/page.tsx, src/app/globals.css
- src/components/layout/ (Header, Footer)
- src/components/sections/ (one component per section type)
- src/components/ui/
- src/content/site.ts (the Content Pack export; it is injected for you)
- src/lib/utils.ts

## Critical Rules

1. NEVER hardcode visible text. Every heading, paragraph, label, button text,
   alt text, title, aria-label and placeholder is read from the content pack:
   import { contentPack, siteSettings, navigation, footer, legal, components } from '@/content/site'
2. Use TypeScript throughout and semantic HTML
3. Mark components that use hooks or event handlers with 'use client'
4. Every import must resolve to a file you produce or a listed dependency
5. Respond with JSON only
"""

    def __init__(
        self,
        invoker: AgentInvoker,
        config: Optional[AgentConfig] = None,
        render_mode: str = "template",
    ):
        """Initialize the Code Renderer Agent."""
        if render_mode not in RENDER_MODES:
            raise ValueError(f"Unknown render mode: {render_mode}. Available: {', '.join(RENDER_MODES)}")
        self.render_mode = render_mode
        super().__init__(
            role="code-renderer",
            system_prompt=self.SYSTEM_PROMPT,
            output_schema=RendererOutput,
            invoker=invoker,
            config=config,
        )

    def get_task_description(self) -> str:
        return "Render the Next.js project from the Content Pack"

    def plan(
        self,
        pack: ContentPack,
        intake: ProjectIntake,
        addons: Optional[List[str]] = None,
    ) -> List[RenderJob]:
        """Split rendering into jobs that can run concurrently."""
        addons = list(addons if addons is not None else intake.selected_addons)
        if self.render_mode == "model":
            return [
                RenderJob("shared", "Shared components", lambda: self._render_with_model(pack, intake, addons, "shared")),
                RenderJob("pages", "Page files", lambda: self._render_with_model(pack, intake, addons, "pages")),
            ]

        async def shell() -> RendererOutput:
            files = templates.render_shell(pack) + templates.render_support(pack, intake, addons)
            return RendererOutput(files=files)

        async def sections() -> RendererOutput:
            return RendererOutput(files=templates.render_sections(pack, addons))

        async def pages() -> RendererOutput:
            return RendererOutput(files=templates.render_pages(pack))

        return [
            RenderJob("shell", "Layout and support files", shell),
            RenderJob("sections", "Section components", sections),
            RenderJob("pages", "Page files", pages),
        ]

    def assemble(
        self,
        pack: ContentPack,
        intake: ProjectIntake,
        parts: List[RendererOutput],
        addons: Optional[List[str]] = None,
    ) -> RendererOutput:
        """Merge job outputs, add build manifests and post-process every file."""
        addons = list(addons if addons is not None else intake.selected_addons)
        files: Dict[str, GeneratedFile] = {}
        extra_dependencies: List[DependencySpec] = []
        extra_env: List[EnvVariable] = []
        instructions: List[str] = []
        for part in parts:
            for generated in part.files:
                files[generated.path] = generated
            extra_dependencies.extend(part.dependencies)
            extra_env.extend(part.env_variables)
            instructions.extend(i for i in part.build_instructions if i not in instructions)

        dependencies = _unique_by_name(get_required_dependencies(addons) + extra_dependencies)
        env_variables = _unique_by_name(get_required_env_variables(intake, addons) + extra_env)

        manifest = templates.package_json(intake, dependencies)
        files[manifest.path] = manifest
        env_file = templates.env_example(env_variables)
        if env_file is not None:
            files[env_file.path] = env_file

        output = RendererOutput(
            files=post_process_files(list(files.values()), pack),
            dependencies=dependencies,
            env_variables=env_variables,
            build_instructions=instructions or list(DEFAULT_BUILD_INSTRUCTIONS),
        )
        logger.info(
            "Code rendering complete",
            extra={
                "agent": self.role,
                "render_mode": self.render_mode,
                "file_count": len(output.files),
                "dependency_count": len(output.dependencies),
            },
        )
        return output

    async def render(
        self,
        pack: ContentPack,
        intake: ProjectIntake,
        addons: Optional[List[str]] = None,
    ) -> RendererOutput:
        """Render every job in order and assemble the result.

        The orchestrator runs ``plan()`` jobs concurrently instead; both paths
        produce the same output.
        """
        parts = [await job.run() for job in self.plan(pack, intake, addons)]
        return self.assemble(pack, intake, parts, addons)

    def build_prompt(self, pack: ContentPack, intake: ProjectIntake, addons: List[str], scope: str) -> str:
        slugs = [p.slug for p in pack.pages]
        section_types = sorted({s.type for p in pack.pages for s in p.sections}, key=lambda t: t.value)
        if scope == "pages":
            task = (
                "Write one App Router page file per page slug: "
                + ", ".join(f"{s} -> {templates.page_file_path(s)}" for s in slugs)
                + ". Also write legal pages for the legal documents in the pack. "
                "Pages render their sections through SectionRenderer from '@/components/sections'."
            )
        else:
            task = (
                "Write src/app/layout.tsx, src/app/globals.css, src/app/not-found.tsx, "
                "src/app/loading.tsx, src/app/error.tsx, the Header and Footer layout components, "
                "src/components/sections/index.tsx exporting SectionRenderer, and one section component per type: "
                + ", ".join(f"{t.value} -> {get_section_component_name(t)}" for t in section_types)
                + ". Add tailwind.config.ts, next.config.js and src/lib/utils.ts."
            )
        return build_user_prompt({
            "Content Pack": pack.to_json_dict(),
            "Project": {"name": intake.name, "style": intake.website_style, "addons": addons},
            "Required Dependencies": [d.to_json_dict() for d in get_required_dependencies(addons)],
            "Your Task": task + "\n\nEvery visible string must be read from the content pack.",
        })

    async def _render_with_model(
        self,
        pack: ContentPack,
        intake: ProjectIntake,
        addons: List[str],
        scope: str,
    ) -> RendererOutput:
        config = dataclasses.replace(self.config, validate=traceability_check(pack))
        logger.info("Rendering with model", extra={"agent": self.role, "scope": scope})
        result = await self._invoke(self.build_prompt(pack, intake, addons, scope), config)
        return result.unwrap()

