"""
Tests for LLM content generation (call_llm patched out).
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from onboarding.content import WebsiteData
from onboarding.directory import BusinessFacts
from onboarding.errors import UpstreamError
from onboarding.generation import (
    GeneratedText,
    LLMContentGenerator,
    SuggestedService,
    SuggestedServices,
    build_context,
)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


CONTEXT = build_context("Tapas Bar Sol", "Tapas-Bar", "Markt 1, 46395 Bocholt")


class TestBuildContext:

    def test_contains_name_and_category(self):
        assert "Unternehmensname: Tapas Bar Sol" in CONTEXT
        assert "Branche: Tapas-Bar" in CONTEXT

    def test_default_category(self):
        assert "Branche: Handwerk" in build_context("Müller", "")


class TestGenerateText:

    def test_strips_quotes(self):
        mock = AsyncMock(return_value=GeneratedText(text='"Spanien mitten in Bocholt"'))
        with patch("onboarding.generation.call_llm", mock):
            text = _run(LLMContentGenerator().generate_text("tagline", CONTEXT))

        assert text == "Spanien mitten in Bocholt"
        kwargs = mock.call_args.kwargs
        assert kwargs["response_model"] is GeneratedText
        assert kwargs["purpose"] == "tagline"
        assert CONTEXT in kwargs["user_prompt"]

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            _run(LLMContentGenerator().generate_text("legal_owner", CONTEXT))

    def test_failure_becomes_upstream_error(self):
        mock = AsyncMock(side_effect=RuntimeError("rate limited"))
        with patch("onboarding.generation.call_llm", mock):
            with pytest.raises(UpstreamError):
                _run(LLMContentGenerator().generate_text("usp", CONTEXT))


class TestSuggestServices:

    def test_maps_to_service_items(self):
        result = SuggestedServices(services=[
            SuggestedService(title="Tapas am Abend", description="Wechselnde Karte"),
            SuggestedService(title="Catering", description="Für Feiern bis 80 Personen"),
        ])
        with patch("onboarding.generation.call_llm", AsyncMock(return_value=result)):
            services = _run(LLMContentGenerator().suggest_services(CONTEXT))

        assert [s.title for s in services] == ["Tapas am Abend", "Catering"]
        assert services[1].description == "Für Feiern bis 80 Personen"


class TestGenerateWebsite:

    def test_directory_rating_wins(self):
        document = WebsiteData(business_name="Sol", google_rating=5.0, google_review_count=999)
        facts = BusinessFacts(name="Sol", rating=4.4, review_count=87)
        with patch("onboarding.generation.call_llm", AsyncMock(return_value=document)):
            result = _run(LLMContentGenerator().generate_website(facts))

        assert result.google_rating == 4.4
        assert result.google_review_count == 87
