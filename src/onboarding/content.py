"""
Website content document models.

The content generation service returns a WebsiteData document (camelCase
JSON). The live preview is the same document patched with onboarding answers,
plus a few rendering hints (PreviewDocument).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SectionType(str, Enum):
    """Section types a layout can render."""
    HERO = "hero"
    ABOUT = "about"
    SERVICES = "services"
    TESTIMONIALS = "testimonials"
    GALLERY = "gallery"
    CONTACT = "contact"
    CTA = "cta"
    FEATURES = "features"
    FAQ = "faq"
    TEAM = "team"
    MENU = "menu"
    PRICELIST = "pricelist"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class SectionItem(_CamelModel):
    title: str | None = None
    description: str | None = None
    icon: str | None = None
    rating: float | None = None
    author: str | None = None
    question: str | None = None
    answer: str | None = None
    # Menu / price-list items
    price: str | None = None
    category: str | None = None
    image_url: str | None = None


class WebsiteSection(_CamelModel):
    type: SectionType
    headline: str | None = None
    subheadline: str | None = None
    content: str | None = None
    items: list[SectionItem] = Field(default_factory=list)
    cta_text: str | None = None
    cta_link: str | None = None
    background_image: str | None = None


class FooterLink(_CamelModel):
    label: str
    href: str


class Footer(_CamelModel):
    text: str = ""
    links: list[FooterLink] = Field(default_factory=list)


class ColorScheme(_CamelModel):
    primary: str
    secondary: str
    accent: str
    background: str = "#ffffff"
    surface: str = "#f8fafc"
    text: str = "#0f172a"
    text_light: str = "#64748b"
    gradient: str | None = None


class WebsiteData(_CamelModel):
    """Generated site content (the base document)."""
    business_name: str = ""
    tagline: str = ""
    description: str = ""
    sections: list[WebsiteSection] = Field(default_factory=list)
    seo_title: str = ""
    seo_description: str = ""
    footer: Footer = Field(default_factory=Footer)
    google_rating: float | None = None
    google_review_count: int | None = None
    color_scheme: ColorScheme | None = None


class PreviewDocument(WebsiteData):
    """WebsiteData with onboarding choices attached for the renderer."""
    brand_color: str | None = None
    logo_font: str | None = None
    logo_url: str | None = None
    headline_font: str | None = None

    def section_types(self) -> list[SectionType]:
        return [s.type for s in self.sections]

    def get_section(self, section_type: SectionType) -> WebsiteSection | None:
        for section in self.sections:
            if section.type == section_type:
                return section
        return None
