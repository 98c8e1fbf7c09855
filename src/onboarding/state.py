"""
Onboarding State Management.

Accumulates everything the owner answers during the chat. Every field has a
neutral default; the state is valid at any point and only checkout needs the
legal fields. Serialized to dict/JSON for autosave and session resume.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any
import json
import re

from .content import SectionType


class AddOn(str, Enum):
    """Optional paid features."""
    CONTACT_FORM = "contactForm"
    GALLERY = "gallery"
    MENU = "menu"            # Speisekarte (restaurant, café, bakery)
    PRICELIST = "pricelist"  # Preisliste (hairdresser, beauty, fitness)


FOOD_CATEGORY_RE = re.compile(
    r"restaurant|café|cafe|bistro|bäckerei|bakery|bar|tapas|pizza|sushi|burger|imbiss|gastronomie"
)
BEAUTY_CATEGORY_RE = re.compile(r"friseur|hair|beauty|kosmetik|nail|spa|massage|barber|waxing|lash|brow")
FITNESS_CATEGORY_RE = re.compile(r"fitness|gym|sport|yoga|pilates|crossfit|kampfsport|personal trainer")


def available_add_ons(category: str) -> list[AddOn]:
    """Add-ons offered for a business category, in display order."""
    category = (category or "").lower()
    offered = [AddOn.CONTACT_FORM, AddOn.GALLERY]
    if FOOD_CATEGORY_RE.search(category):
        offered.append(AddOn.MENU)
    if BEAUTY_CATEGORY_RE.search(category) or FITNESS_CATEGORY_RE.search(category):
        offered.append(AddOn.PRICELIST)
    return offered


@dataclass
class ServiceItem:
    """One entry of the services section."""
    title: str = ""
    description: str = ""


@dataclass
class SubPage:
    """An extra page billed per month."""
    id: str
    name: str = ""
    description: str = ""


@dataclass
class MenuItem:
    """One dish or priced service."""
    name: str = ""
    description: str = ""
    price: str = ""


@dataclass
class MenuCategory:
    """A named group of menu / price-list items."""
    name: str = ""
    items: list[MenuItem] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.name.strip() and not any(i.name.strip() for i in self.items)


# State fields the owner can set by answering a step
TEXT_FIELDS = (
    "business_category",
    "business_name",
    "tagline",
    "description",
    "usp",
    "target_audience",
    "legal_owner",
    "legal_street",
    "legal_zip",
    "legal_city",
    "legal_email",
    "legal_phone",
    "legal_vat_id",
    "brand_color",
    "brand_logo",
    "headline_font",
    "hero_image_url",
    "about_image_url",
    "email",
)

LEGAL_FIELDS = (
    "legal_owner",
    "legal_street",
    "legal_zip",
    "legal_city",
    "legal_email",
    "legal_phone",
)


@dataclass
class OnboardingState:
    """
    Main onboarding session state.

    Mutated field by field through `apply()`. Pre-fill from generated content
    and directory facts goes through `prefill()`, which never touches fields
    listed in `edited_fields`.
    """
    website_id: int | None = None

    # Business facts
    business_category: str = ""
    business_name: str = ""
    tagline: str = ""
    description: str = ""
    usp: str = ""
    target_audience: str = ""
    top_services: list[ServiceItem] = field(default_factory=list)
    top_services_skipped: bool = False

    # Legal / contact (Impressum)
    legal_owner: str = ""
    legal_street: str = ""
    legal_zip: str = ""
    legal_city: str = ""
    legal_email: str = ""
    legal_phone: str = ""
    legal_vat_id: str = ""
    legal_consent: bool = False

    # Design
    brand_color: str = ""
    brand_logo: str = ""     # "font:<name>" or "url:<href>"
    headline_font: str = ""
    hero_image_url: str = ""
    about_image_url: str = ""

    # Add-ons and structured content
    add_ons: dict[AddOn, bool] = field(default_factory=lambda: {a: False for a in AddOn})
    sub_pages: list[SubPage] = field(default_factory=list)
    menu_categories: list[MenuCategory] = field(default_factory=list)
    pricelist_categories: list[MenuCategory] = field(default_factory=list)

    # Reminder address
    email: str = ""

    # Preview
    hidden_sections: set[SectionType] = field(default_factory=set)

    # Fields the owner touched (pre-fill must not overwrite them)
    edited_fields: set[str] = field(default_factory=set)

    # Metadata
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        """Set timestamps if not provided."""
        now = datetime.utcnow().isoformat()
        if not self.created_at:
            self.created_at = now
        if not self.updated_at:
            self.updated_at = now

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def apply(self, values: dict[str, Any], *, edited: bool = True) -> None:
        """Merge field updates (last write wins per field)."""
        for name, value in values.items():
            if not hasattr(self, name):
                raise AttributeError(f"Unknown onboarding field: {name}")
            setattr(self, name, value)
            if edited:
                self.edited_fields.add(name)
        self.updated_at = datetime.utcnow().isoformat()

    def prefill(self, values: dict[str, Any]) -> list[str]:
        """
        Fill fields from an external source.

        Skips empty values and fields the owner already edited.
        Returns the names of fields that were filled.
        """
        filled = []
        for name, value in values.items():
            if name in self.edited_fields or not value:
                continue
            if not hasattr(self, name):
                continue
            setattr(self, name, value)
            filled.append(name)
        return filled

    def set_add_on(self, add_on: AddOn, enabled: bool) -> None:
        self.add_ons[add_on] = enabled
        self.edited_fields.add("add_ons")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_add_on(self, add_on: AddOn) -> bool:
        return self.add_ons.get(add_on, False)

    def active_add_ons(self) -> list[AddOn]:
        return [a for a in AddOn if self.has_add_on(a)]

    def filled_services(self) -> list[ServiceItem]:
        return [s for s in self.top_services if s.title.strip()]

    def named_sub_pages(self) -> list[SubPage]:
        return [p for p in self.sub_pages if p.name.strip()]

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Serialize state to dict for JSON storage."""
        data = asdict(self)
        data["add_ons"] = {a.value: enabled for a, enabled in self.add_ons.items()}
        data["hidden_sections"] = sorted(s.value for s in self.hidden_sections)
        data["edited_fields"] = sorted(self.edited_fields)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingState":
        """Deserialize state from dict."""
        data = dict(data)

        if "add_ons" in data:
            data["add_ons"] = {AddOn(k): bool(v) for k, v in data["add_ons"].items()}
        if "hidden_sections" in data:
            data["hidden_sections"] = {SectionType(s) for s in data["hidden_sections"]}
        if "edited_fields" in data:
            data["edited_fields"] = set(data["edited_fields"])

        data["top_services"] = [
            ServiceItem(**s) if isinstance(s, dict) else s
            for s in data.get("top_services", [])
        ]
        data["sub_pages"] = [
            SubPage(**p) if isinstance(p, dict) else p
            for p in data.get("sub_pages", [])
        ]
        for key in ("menu_categories", "pricelist_categories"):
            data[key] = [_category_from_dict(c) for c in data.get(key, [])]

        return cls(**data)

    def to_json(self) -> str:
        """Serialize state to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "OnboardingState":
        """Deserialize state from JSON string."""
        return cls.from_dict(json.loads(json_str))


def _category_from_dict(data: dict | MenuCategory) -> MenuCategory:
    if isinstance(data, MenuCategory):
        return data
    return MenuCategory(
        name=data.get("name", ""),
        items=[MenuItem(**i) if isinstance(i, dict) else i for i in data.get("items", [])],
    )
