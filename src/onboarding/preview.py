"""
Live Preview Compositor.

compose() patches the generated base document with the owner's answers.
It is a pure function: it always starts from a deep copy of the base
document, so composing twice with the same inputs gives equal documents and
nothing accumulates between calls.
"""

from typing import Callable

from .content import (
    ColorScheme,
    PreviewDocument,
    SectionItem,
    SectionType,
    WebsiteData,
    WebsiteSection,
)
from .forms import HEX_COLOR_RE
from .state import AddOn, MenuCategory, OnboardingState

GALLERY_PLACEHOLDERS = 6

SectionPatch = Callable[[WebsiteSection, OnboardingState], WebsiteSection | None]


def _contact_lines(state: OnboardingState) -> list[str]:
    lines = []
    if state.legal_street:
        lines.append(state.legal_street)
    if state.legal_zip or state.legal_city:
        lines.append(f"{state.legal_zip} {state.legal_city}".strip())
    if state.legal_phone:
        lines.append(f"Tel.: {state.legal_phone}")
    if state.legal_email:
        lines.append(state.legal_email)
    return lines


# =============================================================================
# Section patches (return None to drop the section)
# =============================================================================

def _patch_hero(section: WebsiteSection, state: OnboardingState) -> WebsiteSection:
    if state.tagline:
        section.headline = state.tagline
    if state.description:
        section.subheadline = state.description
    if state.hero_image_url:
        section.background_image = state.hero_image_url
    return section


def _patch_about(section: WebsiteSection, state: OnboardingState) -> WebsiteSection:
    if state.description:
        section.content = state.description
    if state.business_name:
        section.headline = f"Über {state.business_name}"
    return section


def _patch_services(section: WebsiteSection, state: OnboardingState) -> WebsiteSection | None:
    if state.top_services_skipped:
        return None
    filled = state.filled_services()
    if filled:
        section.items = [
            SectionItem(title=s.title.strip(), description=s.description.strip())
            for s in filled
        ]
    return section


def _patch_cta(section: WebsiteSection, state: OnboardingState) -> WebsiteSection:
    if state.target_audience:
        section.content = state.target_audience
    return section


def _patch_contact(section: WebsiteSection, state: OnboardingState) -> WebsiteSection:
    lines = _contact_lines(state)
    if lines:
        section.content = "\n".join(lines)
    return section


def _keep(section: WebsiteSection, state: OnboardingState) -> WebsiteSection:
    return section


SECTION_PATCHES: dict[SectionType, SectionPatch] = {
    SectionType.HERO: _patch_hero,
    SectionType.ABOUT: _patch_about,
    SectionType.SERVICES: _patch_services,
    SectionType.CTA: _patch_cta,
    SectionType.TESTIMONIALS: _keep,
    SectionType.GALLERY: _keep,
    SectionType.CONTACT: _patch_contact,
    SectionType.FEATURES: _keep,
    SectionType.FAQ: _keep,
    SectionType.TEAM: _keep,
    SectionType.MENU: _keep,
    SectionType.PRICELIST: _keep,
}


# =============================================================================
# Optional sections
# =============================================================================

def _has_content(categories: list[MenuCategory]) -> bool:
    return any(not c.is_empty() for c in categories)


def flatten_categories(categories: list[MenuCategory]) -> list[SectionItem]:
    """Menu categories → flat (item, category) list for the renderer."""
    return [
        SectionItem(
            title=item.name.strip(),
            description=item.description.strip() or None,
            price=item.price.strip() or None,
            category=category.name.strip() or None,
        )
        for category in categories
        for item in category.items
        if item.name.strip()
    ]


def _build_menu(state: OnboardingState, section_type: SectionType) -> WebsiteSection:
    if section_type == SectionType.MENU:
        return WebsiteSection(
            type=SectionType.MENU,
            headline="Speisekarte",
            items=flatten_categories(state.menu_categories),
        )
    return WebsiteSection(
        type=SectionType.PRICELIST,
        headline="Preisliste",
        items=flatten_categories(state.pricelist_categories),
    )


def _build_gallery() -> WebsiteSection:
    return WebsiteSection(
        type=SectionType.GALLERY,
        headline="Galerie",
        items=[SectionItem(title=f"Bild {i}") for i in range(1, GALLERY_PLACEHOLDERS + 1)],
    )


def _build_contact(state: OnboardingState) -> WebsiteSection:
    lines = _contact_lines(state)
    return WebsiteSection(
        type=SectionType.CONTACT,
        headline="Kontakt",
        content="\n".join(lines) or None,
        cta_text="Jetzt anfragen",
    )


def _add_before_contact(sections: list[WebsiteSection], section: WebsiteSection) -> None:
    for idx, existing in enumerate(sections):
        if existing.type == SectionType.CONTACT:
            sections.insert(idx, section)
            return
    sections.append(section)


# =============================================================================
# Compose
# =============================================================================

def brand_color_scheme(base: ColorScheme | None, brand_color: str) -> ColorScheme | None:
    """Base scheme with the brand color as primary/secondary/accent."""
    if base is None or not HEX_COLOR_RE.match(brand_color or ""):
        return base
    return base.model_copy(update={
        "primary": brand_color,
        "secondary": brand_color,
        "accent": brand_color,
    })


def compose(
    base: WebsiteData,
    state: OnboardingState,
    hidden_sections: set[SectionType] | None = None,
) -> PreviewDocument:
    """
    Build the live preview document.

    Args:
        base: Generated content document (never mutated)
        state: Current onboarding answers
        hidden_sections: Section types to leave out (defaults to state.hidden_sections)
    """
    hidden = state.hidden_sections if hidden_sections is None else hidden_sections

    doc = PreviewDocument.model_validate(base.model_dump())

    # Identity
    if state.business_name:
        doc.business_name = state.business_name
    if state.tagline:
        doc.tagline = state.tagline
    if state.description:
        doc.description = state.description

    # Hidden sections + per-type patches
    sections: list[WebsiteSection] = []
    for section in doc.sections:
        if section.type in hidden:
            continue
        patched = SECTION_PATCHES[section.type](section, state)
        if patched is not None:
            sections.append(patched)

    # Menu / price list
    for add_on, section_type, categories in (
        (AddOn.MENU, SectionType.MENU, state.menu_categories),
        (AddOn.PRICELIST, SectionType.PRICELIST, state.pricelist_categories),
    ):
        if not state.has_add_on(add_on) or section_type in hidden or not _has_content(categories):
            continue
        built = _build_menu(state, section_type)
        existing = next((s for s in sections if s.type == section_type), None)
        if existing is not None:
            existing.items = built.items
        else:
            _add_before_contact(sections, built)

    # Gallery placeholder
    if (
        state.has_add_on(AddOn.GALLERY)
        and SectionType.GALLERY not in hidden
        and not any(s.type == SectionType.GALLERY for s in sections)
    ):
        _add_before_contact(sections, _build_gallery())

    # Exactly one contact section
    contacts = [s for s in sections if s.type == SectionType.CONTACT]
    if len(contacts) > 1:
        first = contacts[0]
        sections = [s for s in sections if s.type != SectionType.CONTACT or s is first]
    elif not contacts and SectionType.CONTACT not in hidden:
        sections.append(_build_contact(state))

    doc.sections = sections

    # Rendering hints
    if HEX_COLOR_RE.match(state.brand_color or ""):
        doc.brand_color = state.brand_color
        doc.color_scheme = brand_color_scheme(doc.color_scheme, state.brand_color)

    if state.brand_logo.startswith("font:"):
        doc.logo_font = state.brand_logo.removeprefix("font:")
        doc.logo_url = None
    elif state.brand_logo.startswith("url:"):
        doc.logo_url = state.brand_logo.removeprefix("url:")
        doc.logo_font = None

    if state.headline_font:
        doc.headline_font = state.headline_font

    return doc
