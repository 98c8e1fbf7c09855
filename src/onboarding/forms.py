"""
Onboarding Forms - Field validation for chat answers.

Each chat step turns raw text into field updates for OnboardingState, or a
rejection the chat shows next to the input. Rejections are values, never
exceptions: the step simply stays where it is.

Legal fields are also modeled as a pydantic form (LegalDetailsForm) which
gates checkout.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ValidationError, field_validator

from .state import OnboardingState, LEGAL_FIELDS
from .steps import ChatStep, TEXT_STEPS

logger = logging.getLogger(__name__)


# =============================================================================
# Patterns
# =============================================================================

ZIP_CITY_RE = re.compile(r"^(\d{5})\s+(.+)$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
VAT_RE = re.compile(r"^DE\d{9}$", re.IGNORECASE)
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

# "Please write it for me" - German and English wording
AI_INTENT_RE = re.compile(
    r"vorschlag|generier|mach mir|erstell|schreib|idee|hilf|automatisch"
    r"|suggest|generate|write|help|\bki\b|\bai\b",
    re.IGNORECASE,
)

CONFIRMATION_WORDS = {"ja", "j", "yes", "y", "yep", "yup", "stimmt", "ok", "okay", "klar", "passt", "genau", "richtig"}

NO_VAT_ANSWERS = {"", "nein", "no", "kein", "keine", "none", "n/a", "-"}

# Step → state field for plain single-field steps
STEP_FIELDS: dict[ChatStep, str] = {
    ChatStep.BUSINESS_CATEGORY: "business_category",
    ChatStep.BUSINESS_NAME: "business_name",
    ChatStep.TAGLINE: "tagline",
    ChatStep.DESCRIPTION: "description",
    ChatStep.USP: "usp",
    ChatStep.TARGET_AUDIENCE: "target_audience",
    ChatStep.LEGAL_OWNER: "legal_owner",
    ChatStep.LEGAL_STREET: "legal_street",
    ChatStep.LEGAL_EMAIL: "legal_email",
    ChatStep.LEGAL_PHONE: "legal_phone",
    ChatStep.LEGAL_VAT: "legal_vat_id",
    ChatStep.EMAIL: "email",
}


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class Accepted:
    """Input accepted; `values` are the state updates, `display` the chat echo."""
    values: dict[str, Any] = field(default_factory=dict)
    display: str = ""


@dataclass(frozen=True)
class Rejected:
    """Input rejected; `reason` is machine-readable, `message` user-facing."""
    reason: str
    message: str


@dataclass(frozen=True)
class SuggestionRequested:
    """The owner asked the assistant to write the text for `field`."""
    field: str


ValidationResult = Union[Accepted, Rejected, SuggestionRequested]


# =============================================================================
# Field validators
# =============================================================================

def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())


def detect_ai_intent(value: str) -> bool:
    """True if the answer asks for a generated suggestion instead of giving one."""
    return bool(AI_INTENT_RE.search(value))


def validate_owner(value: str) -> ValidationResult:
    value = collapse_whitespace(value)
    if len(value.split()) < 2:
        return Rejected("format", "Bitte gib deinen vollständigen Namen ein (Vor- und Nachname)")
    return Accepted({"legal_owner": value}, value)


def validate_street(value: str) -> ValidationResult:
    value = value.strip()
    if not value:
        return Rejected("required", "Bitte gib Straße und Hausnummer ein")
    if not re.search(r"\d", value):
        return Rejected("format", "Bitte gib auch die Hausnummer an (z.B. Musterstraße 12)")
    return Accepted({"legal_street": value}, value)


def parse_zip_city(value: str) -> tuple[str, str] | None:
    """Split "46395 Bocholt" into ("46395", "Bocholt"); None if malformed."""
    match = ZIP_CITY_RE.match(value.strip())
    if not match:
        return None
    return match.group(1), collapse_whitespace(match.group(2))


def validate_zip_city(value: str) -> ValidationResult:
    parsed = parse_zip_city(value)
    if parsed is None:
        return Rejected("format", "Bitte im Format 'PLZ Stadt' eingeben, z.B. 46395 Bocholt")
    zip_code, city = parsed
    return Accepted({"legal_zip": zip_code, "legal_city": city}, f"{zip_code} {city}")


def validate_email(value: str, field_name: str = "legal_email") -> ValidationResult:
    value = value.strip()
    if not EMAIL_RE.match(value):
        return Rejected("format", "Bitte gib eine gültige E-Mail-Adresse ein (z.B. info@firma.de)")
    return Accepted({field_name: value}, value)


def validate_phone(value: str) -> ValidationResult:
    value = value.strip()
    if not value:
        return Rejected("required", "Bitte gib eine Telefonnummer ein")
    return Accepted({"legal_phone": value}, value)


def normalize_vat(value: str) -> str | None:
    """
    Normalize a VAT id answer.

    Returns "" for "no VAT id" answers (Kleinunternehmer), the uppercased id
    for DE + 9 digits, and None for anything else.
    """
    value = value.strip()
    if value.lower() in NO_VAT_ANSWERS:
        return ""
    if VAT_RE.match(value):
        return value.upper()
    return None


def validate_vat(value: str) -> ValidationResult:
    vat_id = normalize_vat(value)
    if vat_id is None:
        return Rejected(
            "format",
            "USt-IdNr. muss das Format DE123456789 haben (DE + 9 Ziffern). "
            "Schreib 'Nein' wenn du keine hast.",
        )
    display = vat_id or "Keine USt-IdNr. (Kleinunternehmer)"
    return Accepted({"legal_vat_id": vat_id}, display)


def validate_text(step: ChatStep, value: str) -> ValidationResult:
    """Free-text answers: anything non-empty, unless it asks for AI help."""
    field_name = STEP_FIELDS[step]
    value = value.strip()
    if not value:
        return Rejected("required", "Bitte gib eine Antwort ein")
    if step in TEXT_STEPS and detect_ai_intent(value):
        return SuggestionRequested(field_name)
    return Accepted({field_name: value}, value)


def is_confirmation(value: str) -> bool:
    """Confirmation answers like "Ja, stimmt!" or "passt"."""
    words = re.findall(r"\w+", value.lower())
    return bool(words) and all(w in CONFIRMATION_WORDS for w in words)


def validate_business_name(value: str, current_name: str = "") -> ValidationResult:
    """Empty input or a confirmation keeps the pre-filled name."""
    value = value.strip()
    if not value or is_confirmation(value):
        if not current_name:
            return Rejected("required", "Bitte gib den Namen deines Unternehmens ein")
        return Accepted({}, f'Ja, "{current_name}" stimmt! ✓')
    return Accepted({"business_name": value}, value)


def validate_brand_color(value: str) -> ValidationResult:
    value = value.strip()
    if not HEX_COLOR_RE.match(value):
        return Rejected("format", "Bitte wähle eine Farbe im Format #RRGGBB")
    return Accepted({"brand_color": value.lower()}, value.lower())


def validate(step: ChatStep, raw: str, state: OnboardingState | None = None) -> ValidationResult:
    """
    Validate a text answer for a step.

    Interactive steps (services, add-ons, ...) are not answered through text
    and are rejected here.
    """
    raw = raw or ""

    if step == ChatStep.BUSINESS_NAME:
        return validate_business_name(raw, state.business_name if state else "")
    if step in (ChatStep.TAGLINE, ChatStep.DESCRIPTION, ChatStep.USP,
                ChatStep.TARGET_AUDIENCE, ChatStep.BUSINESS_CATEGORY):
        return validate_text(step, raw)
    if step == ChatStep.LEGAL_OWNER:
        return validate_owner(raw)
    if step == ChatStep.LEGAL_STREET:
        return validate_street(raw)
    if step == ChatStep.LEGAL_ZIP_CITY:
        return validate_zip_city(raw)
    if step == ChatStep.LEGAL_EMAIL:
        return validate_email(raw)
    if step == ChatStep.LEGAL_PHONE:
        return validate_phone(raw)
    if step == ChatStep.LEGAL_VAT:
        return validate_vat(raw)
    if step == ChatStep.EMAIL:
        return validate_email(raw, "email")
    if step == ChatStep.BRAND_COLOR:
        return validate_brand_color(raw)

    logger.debug(f"No text validator for step {step.value}")
    return Rejected("unsupported", "Bitte nutze die Auswahl unter der Nachricht")


# =============================================================================
# Legal details form (checkout gate)
# =============================================================================

class LegalDetailsForm(BaseModel):
    """Impressum data required before checkout."""

    legal_owner: str
    legal_street: str
    legal_zip: str
    legal_city: str
    legal_email: str
    legal_phone: str
    legal_vat_id: str = ""

    @field_validator("legal_owner")
    @classmethod
    def full_name(cls, v: str) -> str:
        if len(v.split()) < 2:
            raise ValueError("first and last name required")
        return v

    @field_validator("legal_street")
    @classmethod
    def has_house_number(cls, v: str) -> str:
        if not re.search(r"\d", v):
            raise ValueError("house number required")
        return v

    @field_validator("legal_zip")
    @classmethod
    def five_digit_zip(cls, v: str) -> str:
        if not re.fullmatch(r"\d{5}", v):
            raise ValueError("zip must have 5 digits")
        return v

    @field_validator("legal_city", "legal_phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("legal_email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        if not EMAIL_RE.match(v):
            raise ValueError("invalid email")
        return v

    @field_validator("legal_vat_id")
    @classmethod
    def vat_shape(cls, v: str) -> str:
        if v and not VAT_RE.match(v):
            raise ValueError("VAT id must be DE + 9 digits")
        return v.upper()


def missing_for_checkout(state: OnboardingState) -> list[str]:
    """
    Names of fields that block checkout.

    Returns an empty list when legal data is complete and consent is given.
    """
    missing: list[str] = []
    try:
        LegalDetailsForm(
            **{name: getattr(state, name) for name in LEGAL_FIELDS},
            legal_vat_id=state.legal_vat_id,
        )
    except ValidationError as e:
        for error in e.errors():
            missing.append(str(error["loc"][0]))
    if not state.legal_consent:
        missing.append("legal_consent")
    return missing


def can_checkout(state: OnboardingState) -> bool:
    return not missing_for_checkout(state)
