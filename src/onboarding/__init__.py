"""
Pageblitz Onboarding Engine.

Conversational wizard that personalizes a generated website. Walks the owner
through a fixed list of chat steps, validates each answer, keeps the answers
in an OnboardingState, autosaves every step without blocking, and derives a
live preview document from the generated base document plus the answers.

Sections:
1. Business - category, brand, name, texts, services, audience
2. Legal - Impressum data (owner, address, contact, VAT id)
3. Extras - add-ons, menu / price list, sub-pages, preview, checkout
"""

from .session import OnboardingSession, SubmitResult
from .state import OnboardingState, AddOn
from .steps import ChatStep, StepGraph
from .preview import compose
from .pricing import price

__all__ = [
    "OnboardingSession",
    "SubmitResult",
    "OnboardingState",
    "AddOn",
    "ChatStep",
    "StepGraph",
    "compose",
    "price",
]
