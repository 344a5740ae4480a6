"""Shared fixtures: a scripted model provider and an Acme GmbH project."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from config import Settings
from contracts import ContentPack, ProjectIntake, StrategistOutput
from providers import LLMProvider, LLMResponse


class ScriptedProvider(LLMProvider):
    """Answers model calls from per-agent scripts.

    The calling agent is recognised from its system prompt. A script entry is
    a dict (sent as JSON), a string, an exception instance (raised), or a
    callable taking the user message and returning one of those; coroutine
    functions are awaited. Entries are consumed in order and the last one
    repeats.
    """

    ROLES = {
        "Brand Strategist": "strategist",
        "Content Architect": "content-pack-generator",
        "Senior Editor": "editor",
        "Next.js developer": "code-renderer",
    }

    def __init__(self, scripts: Optional[Dict[str, Any]] = None, tokens: tuple = (120, 80)):
        self.scripts: Dict[str, List[Any]] = {}
        for role, script in (scripts or {}).items():
            self.scripts[role] = list(script) if isinstance(script, list) else [script]
        self.tokens = tokens
        self.calls: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return "test-model"

    def role_for(self, system_prompt: str) -> str:
        for marker, role in self.ROLES.items():
            if marker in system_prompt:
                return role
        return "unknown"

    def calls_for(self, role: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["role"] == role]

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        json_mode: bool = True,
    ) -> LLMResponse:
        role = self.role_for(system_prompt)
        self.calls.append({"role": role, "user_message": user_message, "model": model})
        script = self.scripts.get(role)
        if not script:
            raise RuntimeError(f"No scripted answer for {role}")
        answer = script.pop(0) if len(script) > 1 else script[0]

        if asyncio.iscoroutinefunction(answer):
            answer = await answer(user_message)
        elif callable(answer):
            answer = answer(user_message)
        if isinstance(answer, BaseException):
            raise answer

        content = answer if isinstance(answer, str) else json.dumps(answer, ensure_ascii=False)
        return LLMResponse(
            content=content,
            input_tokens=self.tokens[0],
            output_tokens=self.tokens[1],
            model=model or self.default_model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        return True


def build_strategy_payload() -> Dict[str, Any]:
    return {
        "brandStrategy": {
            "identity": {
                "name": "Acme GmbH",
                "tagline": "Haustechnik, auf die Sie bauen können",
                "shortDescription": "Meisterbetrieb für Heizung und Sanitär in Berlin.",
                "brandVoice": "professional",
                "personality": ["zuverlässig", "nahbar"],
            },
            "positioning": "Der verlässliche Meisterbetrieb für Berliner Altbauten",
            "uniqueValueProposition": "Festpreise und Termintreue",
            "keyMessages": ["Festpreise ohne Überraschungen", "Termine, die eingehalten werden"],
            "toneOfVoice": {"primary": "professional", "descriptors": ["klar", "freundlich"]},
            "targetPersonas": [{"name": "Hausbesitzerin Petra", "role": "Eigentümerin"}],
        },
        "contentStrategy": {
            "pillars": [{"name": "Heizung", "topics": ["Wärmepumpe", "Wartung"]}],
            "keyTopics": ["Heizungstausch"],
            "callToActions": [{"type": "primary", "text": "Jetzt anfragen", "placement": ["hero"]}],
        },
        "siteStructure": {
            "pages": [
                {"slug": "/", "name": "Startseite", "sections": ["hero", "features", "cta"], "priority": "high"},
                {"slug": "/kontakt", "name": "Kontakt", "sections": ["contact", "faq"], "priority": "high"},
            ],
            "navigationFlow": "Startseite → Kontakt",
        },
        "recommendations": ["Kundenstimmen sammeln"],
    }


def build_pack_payload() -> Dict[str, Any]:
    return {
        "siteSettings": {
            "brand": {
                "name": "Acme GmbH",
                "tagline": "Haustechnik, auf die Sie bauen können",
                "shortDescription": "Meisterbetrieb für Heizung und Sanitär in Berlin.",
            },
            "contact": {"email": "info@acme.example", "phone": "+49 30 1234567"},
        },
        "pages": [
            {
                "id": "home",
                "slug": "/",
                "name": "Startseite",
                "title": "Ihr Meisterbetrieb für Haustechnik",
                "description": "Heizung und Sanitär in Berlin zum Festpreis.",
                "sections": [
                    {
                        "id": "hero",
                        "type": "hero",
                        "order": 0,
                        "headline": "Wärme, die bleibt",
                        "subheadline": "Heizungstausch zum Festpreis in ganz Berlin",
                        "content": {"primaryCta": {"text": "Jetzt anfragen", "url": "/kontakt"}},
                    },
                    {
                        "id": "features",
                        "type": "features",
                        "order": 1,
                        "headline": "Warum Acme",
                        "items": [
                            {"title": "Festpreise", "description": "Sie wissen vorher, was es kostet."},
                            {"title": "Termintreue", "description": "Wir kommen, wann wir es sagen."},
                        ],
                    },
                    {
                        "id": "cta",
                        "type": "cta",
                        "order": 2,
                        "headline": "Bereit für Ihre neue Heizung?",
                        "content": {"primaryCta": {"text": "Beratung vereinbaren", "url": "/kontakt"}},
                    },
                ],
            },
            {
                "id": "kontakt",
                "slug": "/kontakt",
                "name": "Kontakt",
                "title": "Kontakt",
                "description": "So erreichen Sie uns.",
                "sections": [
                    {
                        "id": "contact",
                        "type": "contact",
                        "order": 0,
                        "headline": "Schreiben Sie uns",
                        "content": {
                            "formFields": [
                                {"id": "f-name", "name": "name", "label": "Ihr Name", "type": "text", "required": True},
                                {"id": "f-email", "name": "email", "label": "E-Mail", "type": "email", "required": True},
                            ],
                            "submitButton": {"text": "Nachricht senden", "url": "#"},
                        },
                    },
                    {
                        "id": "faq",
                        "type": "faq",
                        "order": 1,
                        "headline": "Häufige Fragen",
                        "content": {
                            "items": [
                                {"question": "Wie schnell sind Sie vor Ort?", "answer": "Meist innerhalb von 48 Stunden."},
                            ],
                        },
                    },
                ],
            },
        ],
        "seo": [
            {"pageSlug": "/", "title": "Acme GmbH | Haustechnik Berlin", "description": "Heizung und Sanitär zum Festpreis."},
            {"pageSlug": "/kontakt", "title": "Kontakt | Acme GmbH", "description": "Jetzt unverbindlich anfragen."},
        ],
        "legal": {
            "imprint": {
                "companyName": "Acme GmbH",
                "address": {"street": "Musterstraße 1", "city": "Berlin", "postalCode": "10115", "country": "Deutschland"},
                "email": "info@acme.example",
                "registryNumber": "{{TODO: Handelsregisternummer eintragen}}",
            },
            "privacy": {
                "lastUpdated": "2026-01-01",
                "introduction": "Der Schutz Ihrer Daten ist uns wichtig.",
                "sections": [{"id": "general", "title": "Allgemeines", "content": "Wir verarbeiten Daten nur zweckgebunden."}],
                "contactInfo": "{{TODO: Datenschutzbeauftragten benennen}}",
            },
        },
        "navigation": {
            "items": [
                {"id": "home", "label": "Startseite", "url": "/"},
                {"id": "kontakt", "label": "Kontakt", "url": "/kontakt"},
            ],
            "ctaButton": {"text": "Anfrage starten", "url": "/kontakt"},
        },
        "footer": {
            "tagline": "Haustechnik aus Berlin seit 2004",
            "bottom": {
                "copyright": "© 2026 Acme GmbH",
                "links": [
                    {"label": "Impressum", "url": "/impressum"},
                    {"label": "Datenschutz", "url": "/datenschutz"},
                ],
            },
        },
    }


def build_verdict_payload(score: float = 9.0, critical: bool = False, claimed_approved: bool = True) -> Dict[str, Any]:
    feedback = [
        {"category": "seo", "severity": "minor", "location": "seo[/]", "issue": "Titel etwas kurz", "suggestion": "Ort ergänzen"},
    ]
    if critical:
        feedback.append({
            "category": "content",
            "severity": "critical",
            "location": "legal.imprint",
            "issue": "Impressum unvollständig",
            "suggestion": "Vertretungsberechtigte Person angeben",
        })
    return {
        "approved": claimed_approved,
        "scores": {
            "overall": score,
            "contentQuality": score,
            "brandConsistency": score,
            "seoOptimization": score,
            "accessibility": score,
            "technicalAccuracy": score,
        },
        "feedback": feedback,
        "revisions": [
            {"agent": "content-pack-generator", "instruction": "Stadtteil in den Titel aufnehmen", "priority": "low"},
        ],
        "finalScore": score,
    }


@pytest.fixture
def intake() -> ProjectIntake:
    return ProjectIntake.model_validate({
        "id": "acme-gmbh",
        "name": "Acme GmbH",
        "brief": "Meisterbetrieb für Heizung und Sanitär in Berlin",
        "targetAudience": "Hausbesitzer in Berlin",
        "websiteStyle": "modern",
        "packageType": "standard",
        "industry": "Handwerk",
        "contactEmail": "info@acme.example",
        "pages": [
            {"id": "p-home", "name": "Startseite", "slug": "/", "sections": [{"id": "s1", "sectionType": "hero"}]},
            {"id": "p-contact", "name": "Kontakt", "slug": "/kontakt", "sections": [{"id": "s2", "sectionType": "contact"}]},
        ],
    })


@pytest.fixture
def strategy_payload() -> Dict[str, Any]:
    return build_strategy_payload()


@pytest.fixture
def strategy(strategy_payload) -> StrategistOutput:
    return StrategistOutput.model_validate(strategy_payload)


@pytest.fixture
def pack_payload() -> Dict[str, Any]:
    return build_pack_payload()


@pytest.fixture
def content_pack(pack_payload, intake) -> ContentPack:
    from agents import stamp_content_pack

    return stamp_content_pack(ContentPack.model_validate(pack_payload), intake)


@pytest.fixture
def verdict_payload() -> Callable[..., Dict[str, Any]]:
    return build_verdict_payload


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        api_max_retries=0,
        max_revisions=2,
        content_pack_dir=str(tmp_path / "packs"),
        output_dir=str(tmp_path / "out"),
    )
