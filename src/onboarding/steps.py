"""
Onboarding Step Graph.

The chat walks a fixed, ordered list of steps. The only branch is after the
add-ons step (menu / price-list editors), and the only backward move is
reopening a confirmed legal-data step for correction.
"""

import logging
from enum import Enum

from pageblitz.config import settings

from .errors import StepGraphError

logger = logging.getLogger(__name__)


class ChatStep(str, Enum):
    """Onboarding chat steps."""
    WELCOME = "welcome"                    # Pre-start, not part of STEP_ORDER
    BUSINESS_CATEGORY = "businessCategory"
    BRAND_COLOR = "brandColor"
    BRAND_LOGO = "brandLogo"
    BUSINESS_NAME = "businessName"
    TAGLINE = "tagline"
    DESCRIPTION = "description"
    USP = "usp"
    SERVICES = "services"
    TARGET_AUDIENCE = "targetAudience"
    LEGAL_OWNER = "legalOwner"
    LEGAL_STREET = "legalStreet"
    LEGAL_ZIP_CITY = "legalZipCity"
    LEGAL_EMAIL = "legalEmail"
    LEGAL_PHONE = "legalPhone"
    LEGAL_VAT = "legalVat"
    ADDONS = "addons"
    MENU = "menu"                          # Only via ADDONS branch
    PRICELIST = "pricelist"                # Only via ADDONS branch
    SUBPAGES = "subpages"
    EMAIL = "email"
    HIDE_SECTIONS = "hideSections"
    PREVIEW = "preview"
    CHECKOUT = "checkout"


STEP_ORDER: list[ChatStep] = [
    ChatStep.BUSINESS_CATEGORY,
    ChatStep.BRAND_COLOR,
    ChatStep.BRAND_LOGO,
    ChatStep.BUSINESS_NAME,
    ChatStep.TAGLINE,
    ChatStep.DESCRIPTION,
    ChatStep.USP,
    ChatStep.SERVICES,
    ChatStep.TARGET_AUDIENCE,
    ChatStep.LEGAL_OWNER,
    ChatStep.LEGAL_STREET,
    ChatStep.LEGAL_ZIP_CITY,
    ChatStep.LEGAL_EMAIL,
    ChatStep.LEGAL_PHONE,
    ChatStep.LEGAL_VAT,
    ChatStep.ADDONS,
    ChatStep.MENU,
    ChatStep.PRICELIST,
    ChatStep.SUBPAGES,
    ChatStep.EMAIL,
    ChatStep.HIDE_SECTIONS,
    ChatStep.PREVIEW,
    ChatStep.CHECKOUT,
]

# Preview region to scroll to while a step is active
STEP_FOCUS: dict[ChatStep, str | None] = {
    ChatStep.WELCOME: None,
    ChatStep.BUSINESS_CATEGORY: "hero",
    ChatStep.BRAND_COLOR: "hero",
    ChatStep.BRAND_LOGO: "header",
    ChatStep.BUSINESS_NAME: "header",
    ChatStep.TAGLINE: "hero",
    ChatStep.DESCRIPTION: "hero",
    ChatStep.USP: "features",
    ChatStep.SERVICES: "services",
    ChatStep.TARGET_AUDIENCE: "cta",
    ChatStep.LEGAL_OWNER: "footer",
    ChatStep.LEGAL_STREET: "footer",
    ChatStep.LEGAL_ZIP_CITY: "footer",
    ChatStep.LEGAL_EMAIL: "footer",
    ChatStep.LEGAL_PHONE: "footer",
    ChatStep.LEGAL_VAT: "footer",
    ChatStep.ADDONS: None,
    ChatStep.MENU: "menu",
    ChatStep.PRICELIST: "pricelist",
    ChatStep.SUBPAGES: None,
    ChatStep.EMAIL: None,
    ChatStep.HIDE_SECTIONS: None,
    ChatStep.PREVIEW: None,
    ChatStep.CHECKOUT: None,
}

LEGAL_STEPS: frozenset[ChatStep] = frozenset({
    ChatStep.LEGAL_OWNER,
    ChatStep.LEGAL_STREET,
    ChatStep.LEGAL_ZIP_CITY,
    ChatStep.LEGAL_EMAIL,
    ChatStep.LEGAL_PHONE,
    ChatStep.LEGAL_VAT,
})

# Free-text steps that offer AI generation
TEXT_STEPS: frozenset[ChatStep] = frozenset({
    ChatStep.TAGLINE,
    ChatStep.DESCRIPTION,
    ChatStep.USP,
    ChatStep.TARGET_AUDIENCE,
})

# Steps answered through structured UI (buttons, lists) instead of the text input
INTERACTIVE_STEPS: frozenset[ChatStep] = frozenset({
    ChatStep.BRAND_COLOR,
    ChatStep.BRAND_LOGO,
    ChatStep.SERVICES,
    ChatStep.ADDONS,
    ChatStep.MENU,
    ChatStep.PRICELIST,
    ChatStep.SUBPAGES,
    ChatStep.HIDE_SECTIONS,
    ChatStep.PREVIEW,
    ChatStep.CHECKOUT,
})


def step_index(step: ChatStep) -> int:
    """Index of a step in STEP_ORDER (used as the autosave step number)."""
    return STEP_ORDER.index(step)


def get_next_step(step: ChatStep, *, menu: bool = False, pricelist: bool = False) -> ChatStep | None:
    """
    Determine the successor of a step.

    `menu` / `pricelist` are the active add-on flags; they only matter for
    the ADDONS → MENU → PRICELIST → SUBPAGES branch.
    Returns None after the last step.
    """
    if step == ChatStep.WELCOME:
        return STEP_ORDER[0]

    if step == ChatStep.ADDONS:
        if menu:
            return ChatStep.MENU
        if pricelist:
            return ChatStep.PRICELIST
        return ChatStep.SUBPAGES

    if step == ChatStep.MENU:
        return ChatStep.PRICELIST if pricelist else ChatStep.SUBPAGES

    if step == ChatStep.PRICELIST:
        return ChatStep.SUBPAGES

    idx = STEP_ORDER.index(step)
    if idx + 1 < len(STEP_ORDER):
        return STEP_ORDER[idx + 1]
    return None


class StepGraph:
    """
    Cursor over the onboarding steps.

    Forward-only, except `reopen()` for legal steps. After a reopened step is
    confirmed, `advance()` returns to where the user was before.
    """

    def __init__(self, start: ChatStep = ChatStep.WELCOME):
        self._current = start
        self._resume_at: ChatStep | None = None

    @property
    def current_step(self) -> ChatStep:
        return self._current

    @property
    def is_reopened(self) -> bool:
        return self._resume_at is not None

    def advance(
        self,
        next_step: ChatStep | None = None,
        *,
        menu: bool = False,
        pricelist: bool = False,
    ) -> ChatStep:
        """
        Move to the next step.

        With `next_step`, jump to that step instead. It must be a step the
        graph can legally reach from here.
        """
        if self._resume_at is not None and next_step is None:
            target = self._resume_at
            self._resume_at = None
            self._current = target
            return target

        natural = get_next_step(self._current, menu=menu, pricelist=pricelist)

        if next_step is not None:
            if not self._is_reachable(next_step):
                return self._invalid(f"Cannot jump from {self._current.value} to {next_step.value}")
            self._resume_at = None
            self._current = next_step
            return next_step

        if natural is None:
            return self._invalid(f"Cannot advance past {self._current.value}")

        self._current = natural
        return natural

    def reopen(self, step: ChatStep) -> ChatStep:
        """Re-edit an already confirmed legal step."""
        if step not in LEGAL_STEPS:
            return self._invalid(f"Step {step.value} cannot be reopened")
        reached = self._resume_at or self._current
        if reached == ChatStep.WELCOME or step_index(step) >= step_index(reached):
            return self._invalid(f"Step {step.value} has not been confirmed yet")

        if self._resume_at is None:
            self._resume_at = self._current
        self._current = step
        return step

    def progress(self) -> tuple[int, int]:
        """(position, total) for a progress bar."""
        if self._current == ChatStep.WELCOME:
            return (0, len(STEP_ORDER))
        return (step_index(self._current), len(STEP_ORDER))

    def _is_reachable(self, target: ChatStep) -> bool:
        if target == ChatStep.WELCOME:
            return False
        if self._current == ChatStep.ADDONS:
            return target in (ChatStep.MENU, ChatStep.PRICELIST, ChatStep.SUBPAGES)
        if self._current == ChatStep.MENU:
            return target in (ChatStep.PRICELIST, ChatStep.SUBPAGES)
        return target == get_next_step(self._current)

    def _invalid(self, message: str) -> ChatStep:
        if settings.is_development:
            raise StepGraphError(message)
        logger.error(f"Ignored step transition: {message}")
        return self._current
