"""
Pytest configuration and fixtures for Pageblitz tests.
"""

import os

import pytest

# Set test environment before importing pageblitz/onboarding modules
os.environ["PAGEBLITZ_ENV"] = "development"
os.environ["PAGEBLITZ_LOG_PROMPTS"] = "false"
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("SUPABASE_URL", "")

from onboarding.content import (  # noqa: E402
    ColorScheme,
    SectionItem,
    SectionType,
    WebsiteData,
    WebsiteSection,
)
from onboarding.directory import BusinessFacts  # noqa: E402
from onboarding.session import OnboardingSession  # noqa: E402

from fakes import FakeCheckout, FakeGenerator, FakeMediaStore, FakeStepStore  # noqa: E402


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def base_document() -> WebsiteData:
    """Generated base document for a roofer."""
    return WebsiteData(
        business_name="Dachdeckerei Müller",
        tagline="Dächer vom Profi",
        description="Wir decken Dächer in Bocholt.",
        sections=[
            WebsiteSection(type=SectionType.HERO, headline="Dächer vom Profi", subheadline="Seit 1990"),
            WebsiteSection(type=SectionType.ABOUT, headline="Über uns", content="Familienbetrieb"),
            WebsiteSection(
                type=SectionType.SERVICES,
                headline="Leistungen",
                items=[SectionItem(title="Neueindeckung"), SectionItem(title="Reparatur")],
            ),
            WebsiteSection(type=SectionType.TESTIMONIALS, headline="Kundenstimmen"),
            WebsiteSection(type=SectionType.CTA, headline="Jetzt anfragen", content="Rufen Sie an"),
            WebsiteSection(type=SectionType.CONTACT, headline="Kontakt", content="Bocholt"),
        ],
        color_scheme=ColorScheme(primary="#111111", secondary="#222222", accent="#333333"),
    )


@pytest.fixture
def facts() -> BusinessFacts:
    return BusinessFacts(
        name="Dachdeckerei Müller",
        address="Musterstraße 12, 46395 Bocholt, Deutschland",
        phone="02871 12345",
        category="Roofing contractor",
    )


@pytest.fixture
def store() -> FakeStepStore:
    return FakeStepStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def make_session(base_document, store, generator):
    """Factory for sessions wired to fakes."""

    def _make(**overrides) -> OnboardingSession:
        kwargs = dict(
            website_id=42,
            base_document=base_document,
            generator=generator,
            store=store,
            checkout_service=FakeCheckout(),
            media_store=FakeMediaStore(),
        )
        kwargs.update(overrides)
        return OnboardingSession(**kwargs)

    return _make
