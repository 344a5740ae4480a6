"""Tests for Content Pack generation, stamping, TODO markers and validation."""

import asyncio
from datetime import datetime, timezone

from agents import (
    AgentConfig,
    AgentInvoker,
    ContentPackAgent,
    ContentPackOutput,
    compute_content_hash,
    extract_todo_markers,
    merge_page_definitions,
    rejection_verdict,
    stamp_content_pack,
    validate_content_pack,
)
from agents.content_pack_agent import (
    EMPTY_NAVIGATION,
    MISSING_BRAND_NAME,
    MISSING_FOOTER_TAGLINE,
    MISSING_IMPRINT,
    MISSING_PAGE_SLUG,
    MISSING_PRIVACY,
    MISSING_ROOT_PAGE,
    MISSING_SEO,
    flatten_strings,
    format_revision_feedback,
)
from contracts import (
    CONTENT_PACK_VERSION,
    ContentPack,
    EditorVerdict,
    PageInput,
    PageStructure,
)


def make_pages(intake, strategy):
    return merge_page_definitions(strategy.site_structure.pages, list(intake.pages))


class TestStamping:
    """Test stamp_content_pack and compute_content_hash."""

    def test_stamp_sets_metadata(self, pack_payload, intake):
        now = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

        pack = stamp_content_pack(ContentPack.model_validate(pack_payload), intake, now=now)

        assert pack.project_id == "acme-gmbh"
        assert pack.generated_at == now
        assert pack.version == CONTENT_PACK_VERSION
        assert pack.intake_hash == intake.fingerprint()
        assert pack.components is not None
        assert pack.components.not_found.headline == "Seite nicht gefunden"
        assert len(pack.hash) == 64

    def test_stamp_does_not_mutate_input(self, pack_payload, intake):
        raw = ContentPack.model_validate(pack_payload)
        stamp_content_pack(raw, intake)
        assert raw.hash == ""
        assert raw.components is None

    def test_hash_ignores_generation_time(self, pack_payload, intake):
        raw = ContentPack.model_validate(pack_payload)
        first = stamp_content_pack(raw, intake, now=datetime(2026, 1, 1, tzinfo=timezone.utc))
        second = stamp_content_pack(raw, intake, now=datetime(2026, 6, 1, tzinfo=timezone.utc))
        assert first.hash == second.hash

    def test_hash_changes_with_content(self, content_pack):
        changed = content_pack.model_copy(deep=True)
        changed.footer.tagline = "Neu: jetzt auch Elektro"
        assert compute_content_hash(changed) != content_pack.hash

    def test_hash_matches_recomputation(self, content_pack):
        assert compute_content_hash(content_pack) == content_pack.hash


class TestTodoMarkers:
    """Test extract_todo_markers."""

    def test_legal_markers_are_required(self, content_pack):
        markers = extract_todo_markers(content_pack)

        assert [m.path for m in markers] == ["legal.imprint.registryNumber", "legal.privacy.contactInfo"]
        assert markers[0].description == "Handelsregisternummer eintragen"
        assert markers[0].placeholder == "{{TODO: Handelsregisternummer eintragen}}"
        assert all(m.required for m in markers)

    def test_content_markers_are_optional(self, pack_payload, intake):
        pack_payload["pages"][0]["sections"][0]["subheadline"] = "Seit {{TODO: Gründungsjahr}} in Berlin"
        pack = stamp_content_pack(ContentPack.model_validate(pack_payload), intake)

        marker = next(m for m in extract_todo_markers(pack) if m.description == "Gründungsjahr")

        assert marker.path == "pages[0].sections[0].subheadline"
        assert not marker.required

    def test_multiple_markers_in_one_string(self):
        markers = extract_todo_markers({"footer": {"tagline": "{{TODO: Ort}} und {{TODO:Jahr}}"}})
        assert [m.description for m in markers] == ["Ort", "Jahr"]

    def test_flatten_strings_walks_every_leaf(self, content_pack):
        strings = flatten_strings(content_pack)
        assert "Wärme, die bleibt" in strings
        assert "Schreiben Sie uns" in strings
        assert "Nachricht senden" in strings


class TestValidateContentPack:
    """Test validate_content_pack."""

    def test_valid_pack(self, content_pack):
        report = validate_content_pack(content_pack)
        assert report.valid
        assert report.errors == []

    def test_empty_pack_reports_every_missing_part(self):
        report = validate_content_pack(ContentPack())

        assert not report.valid
        assert set(report.error_codes()) == {
            MISSING_BRAND_NAME,
            MISSING_ROOT_PAGE,
            EMPTY_NAVIGATION,
            MISSING_FOOTER_TAGLINE,
            MISSING_IMPRINT,
            MISSING_PRIVACY,
        }

    def test_empty_navigation(self, pack_payload):
        pack_payload["navigation"]["items"] = []
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        assert report.error_codes() == [EMPTY_NAVIGATION]
        assert "Navigation has no items" in report.summary()

    def test_missing_root_page(self, pack_payload):
        pack_payload["pages"][0]["slug"] = "/start"
        pack_payload["seo"][0]["pageSlug"] = "/start"
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        assert report.error_codes() == [MISSING_ROOT_PAGE]

    def test_page_without_seo(self, pack_payload):
        pack_payload["seo"] = pack_payload["seo"][:1]
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        assert report.error_codes() == [MISSING_SEO]
        assert report.errors[0].path == "seo[/kontakt]"

    def test_page_without_slug(self, pack_payload):
        pack_payload["pages"][1]["slug"] = ""
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        assert MISSING_PAGE_SLUG in report.error_codes()

    def test_missing_legal_documents(self, pack_payload):
        pack_payload["legal"] = {}
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        assert report.error_codes() == [MISSING_IMPRINT, MISSING_PRIVACY]

    def test_blank_footer_tagline(self, pack_payload):
        pack_payload["footer"]["tagline"] = "   "
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        assert report.error_codes() == [MISSING_FOOTER_TAGLINE]

    def test_warnings_do_not_invalidate(self, pack_payload):
        pack_payload["seo"][0]["title"] = "x" * 61
        pack_payload["pages"][1]["sections"] = []

        report = validate_content_pack(ContentPack.model_validate(pack_payload))

        assert report.valid
        assert len(report.warnings) == 2


class TestMergePageDefinitions:
    """Test merge_page_definitions."""

    def test_user_pages_replace_in_place_and_append(self):
        strategy_pages = [
            PageStructure(slug="/", name="Home", sections=["hero", "features"]),
            PageStructure(slug="/about", name="About", sections=["about"]),
        ]
        user_pages = [
            PageInput.model_validate({"id": "p1", "name": "Start", "slug": "/", "sections": [
                {"id": "s1", "sectionType": "hero", "config": {"variant": "split"}},
            ]}),
            PageInput(id="p2", name="Kontakt", slug="/kontakt"),
        ]

        merged = merge_page_definitions(strategy_pages, user_pages)

        assert [p.slug for p in merged] == ["/", "/about", "/kontakt"]
        assert merged[0].name == "Start"
        assert merged[0].sections[0].config == {"variant": "split"}
        assert [s.type for s in merged[1].sections] == ["about"]

    def test_strategy_only(self, strategy):
        merged = merge_page_definitions(strategy.site_structure.pages, [])
        assert [p.name for p in merged] == ["Startseite", "Kontakt"]


class TestContentPackAgent:
    """Test ContentPackAgent.generate."""

    def make_agent(self, provider) -> ContentPackAgent:
        return ContentPackAgent(AgentInvoker(provider), AgentConfig(model="test-model", retries=0, backoff_seconds=0))

    def test_generate_returns_stamped_pack(self, scripted_provider, intake, strategy, pack_payload):
        provider = scripted_provider({"content-pack-generator": pack_payload})

        result = asyncio.run(self.make_agent(provider).generate(strategy, intake, make_pages(intake, strategy)))

        assert result.success
        output = result.output
        assert isinstance(output, ContentPackOutput)
        assert output.content_pack.project_id == "acme-gmbh"
        assert output.content_pack.hash
        assert len(output.todo_markers) == 2
        assert "Generated 2 pages" in output.generation_notes
        assert "Total sections: 5" in output.generation_notes

    def test_prompt_contains_pages_and_voice(self, scripted_provider, intake, strategy, pack_payload):
        provider = scripted_provider({"content-pack-generator": pack_payload})

        asyncio.run(self.make_agent(provider).generate(strategy, intake, make_pages(intake, strategy), ["blog"]))

        prompt = provider.calls[0]["user_message"]
        assert "# PAGES TO GENERATE" in prompt
        assert '"/kontakt"' in prompt
        assert "Brand voice: professional" in prompt
        assert "# REVISION FEEDBACK" not in prompt

    def test_structural_feedback_reaches_the_prompt(self, scripted_provider, intake, strategy, pack_payload):
        pack_payload["navigation"]["items"] = []
        report = validate_content_pack(ContentPack.model_validate(pack_payload))
        provider = scripted_provider({"content-pack-generator": pack_payload})

        asyncio.run(self.make_agent(provider).generate(
            strategy, intake, make_pages(intake, strategy), revision_feedback=report
        ))

        prompt = provider.calls[0]["user_message"]
        assert "# REVISION FEEDBACK" in prompt
        assert "[EMPTY_NAVIGATION] navigation.items" in prompt

    def test_model_failure_is_returned(self, scripted_provider, intake, strategy):
        provider = scripted_provider({"content-pack-generator": "Leider kein JSON"})

        result = asyncio.run(self.make_agent(provider).generate(strategy, intake, make_pages(intake, strategy)))

        assert not result.success
        assert result.output is None


class TestRevisionFeedback:
    """Test format_revision_feedback for editor verdicts."""

    def test_verdict_feedback(self, verdict_payload):
        verdict = EditorVerdict.model_validate(verdict_payload(score=6.5, critical=True, claimed_approved=False))

        text = format_revision_feedback(verdict)

        assert "scored 6.5/10" in text
        assert "1 critical" in text
        assert "- [critical] legal.imprint: Impressum unvollständig -> Vertretungsberechtigte Person angeben" in text
        assert "- (low) Stadtteil in den Titel aufnehmen" in text

    def test_structural_rejection_feedback(self, pack_payload):
        pack_payload["navigation"]["items"] = []
        verdict = rejection_verdict(ContentPack.model_validate(pack_payload))

        text = format_revision_feedback(verdict)

        assert "scored 0.0/10" in text
        assert "- [critical] navigation.items: Navigation has no items -> Provide navigation.items" in text
        assert f"- (high) Fix structural issue {EMPTY_NAVIGATION}: Navigation has no items" in text
