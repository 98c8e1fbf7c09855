"""
Content Generation - LLM-written website copy.

Three jobs, all through call_llm (Instructor structured output):
- generate_text: one field (tagline, description, USP, target audience)
- suggest_services: 3-4 typical services for the business
- generate_website: the base content document for a business

The onboarding chat only needs the first two; generate_website produces the
base document the live preview patches.
"""

import logging
from typing import Protocol

from pydantic import BaseModel, Field

from pageblitz.llm.client import call_llm

from .content import WebsiteData
from .directory import BusinessFacts
from .errors import UpstreamError
from .state import ServiceItem

logger = logging.getLogger(__name__)


class ContentGenerator(Protocol):
    async def generate_text(self, field: str, context: str) -> str: ...

    async def suggest_services(self, context: str) -> list[ServiceItem]: ...

    async def generate_website(self, facts: BusinessFacts) -> WebsiteData: ...


# =============================================================================
# Response models
# =============================================================================

class GeneratedText(BaseModel):
    text: str = Field(description="Der fertige Text, ohne Anführungszeichen")


class SuggestedService(BaseModel):
    title: str = Field(description="Kurzer Name der Leistung (2-4 Wörter)")
    description: str = Field(description="Ein Satz, was der Kunde bekommt")


class SuggestedServices(BaseModel):
    services: list[SuggestedService] = Field(min_length=1, max_length=4)


# =============================================================================
# Prompts
# =============================================================================

SYSTEM_PROMPT = """Du bist Texter für Websites kleiner Unternehmen in Deutschland.
Du schreibst kurz, konkret und ohne Floskeln. Du duzt nie den Endkunden,
sondern sprichst ihn mit "Sie" an. Erfinde keine Zahlen, Auszeichnungen oder
Jahreszahlen, die nicht im Kontext stehen."""

FIELD_INSTRUCTIONS: dict[str, str] = {
    "tagline": "Schreibe einen Slogan (max. 8 Wörter), der sofort klar macht, was das Unternehmen macht.",
    "description": "Schreibe eine Unternehmensbeschreibung in 2-3 Sätzen: was, für wen, was zeichnet es aus.",
    "usp": "Formuliere das Alleinstellungsmerkmal in einem Satz.",
    "target_audience": "Beschreibe die idealen Kunden in einem Satz.",
}

WEBSITE_INSTRUCTIONS = """Erstelle den Inhalt einer One-Page-Website.
Abschnitte in dieser Reihenfolge: hero, about, services (3-4 items), features
(3 items), testimonials (leer lassen, wenn keine echten Bewertungen bekannt),
cta, contact. Setze seoTitle (max. 60 Zeichen) und seoDescription
(max. 155 Zeichen)."""


def build_context(
    business_name: str,
    category: str,
    address: str = "",
    description: str = "",
) -> str:
    """Business context line shared by all generation prompts."""
    return (
        f"Unternehmensname: {business_name}, Branche: {category or 'Handwerk'}, "
        f"Adresse: {address}, Beschreibung: {description}"
    )


class LLMContentGenerator:
    """ContentGenerator backed by the OpenAI client."""

    async def generate_text(self, field: str, context: str) -> str:
        instruction = FIELD_INSTRUCTIONS.get(field)
        if instruction is None:
            raise ValueError(f"No text generation for field: {field}")

        try:
            result = await call_llm(
                response_model=GeneratedText,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=f"{instruction}\n\n{context}",
                purpose=field,
            )
        except Exception as e:
            logger.error(f"Text generation failed for {field}: {e}")
            raise UpstreamError("KI-Generierung fehlgeschlagen") from e

        return result.text.strip().strip('"„“')

    async def suggest_services(self, context: str) -> list[ServiceItem]:
        try:
            result = await call_llm(
                response_model=SuggestedServices,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=f"Nenne die 3-4 wichtigsten Leistungen dieses Unternehmens.\n\n{context}",
                purpose="services",
            )
        except Exception as e:
            logger.error(f"Service suggestion failed: {e}")
            raise UpstreamError("KI-Vorschläge konnten nicht geladen werden") from e

        return [ServiceItem(title=s.title, description=s.description) for s in result.services]

    async def generate_website(self, facts: BusinessFacts) -> WebsiteData:
        context = build_context(facts.name, facts.category or "", facts.address)
        try:
            document = await call_llm(
                response_model=WebsiteData,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=f"{WEBSITE_INSTRUCTIONS}\n\n{context}",
                purpose="website",
                temperature=0.8,
            )
        except Exception as e:
            logger.error(f"Website generation failed for {facts.name}: {e}")
            raise UpstreamError("Website konnte nicht generiert werden") from e

        # Real directory data wins over anything the model produced
        document.google_rating = facts.rating
        document.google_review_count = facts.review_count
        return document
