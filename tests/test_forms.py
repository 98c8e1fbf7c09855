"""
Tests for onboarding field validators and the checkout gate.
"""

import pytest

from onboarding.forms import (
    Accepted,
    LegalDetailsForm,
    Rejected,
    SuggestionRequested,
    can_checkout,
    detect_ai_intent,
    missing_for_checkout,
    normalize_vat,
    parse_zip_city,
    validate,
)
from onboarding.state import OnboardingState
from onboarding.steps import ChatStep


class TestLegalValidators:
    """Impressum fields."""

    def test_owner_needs_first_and_last_name(self):
        assert isinstance(validate(ChatStep.LEGAL_OWNER, "Müller"), Rejected)
        result = validate(ChatStep.LEGAL_OWNER, "  Hans   Müller ")
        assert result == Accepted({"legal_owner": "Hans Müller"}, "Hans Müller")

    def test_street_needs_house_number(self):
        rejected = validate(ChatStep.LEGAL_STREET, "Musterstraße")
        assert isinstance(rejected, Rejected)
        assert rejected.reason == "format"
        assert validate(ChatStep.LEGAL_STREET, "Musterstraße 12").values == {"legal_street": "Musterstraße 12"}

    def test_empty_street_is_required(self):
        assert validate(ChatStep.LEGAL_STREET, "   ").reason == "required"

    def test_zip_city_splits_into_two_fields(self):
        result = validate(ChatStep.LEGAL_ZIP_CITY, "46395 Bocholt")
        assert result.values == {"legal_zip": "46395", "legal_city": "Bocholt"}

    @pytest.mark.parametrize("raw", ["4639 Bocholt", "Bocholt 46395", "46395", "abcde Bocholt"])
    def test_zip_city_rejects_malformed(self, raw):
        result = validate(ChatStep.LEGAL_ZIP_CITY, raw)
        assert isinstance(result, Rejected)
        assert result.reason == "format"

    @pytest.mark.parametrize("raw", ["46395 Bocholt", "46395    Bad   Bocholt", "10115 Berlin Mitte "])
    def test_zip_city_round_trip_is_whitespace_normalized(self, raw):
        result = validate(ChatStep.LEGAL_ZIP_CITY, raw)
        rebuilt = f"{result.values['legal_zip']} {result.values['legal_city']}"
        assert rebuilt == " ".join(raw.split())

    def test_parse_zip_city_none_for_garbage(self):
        assert parse_zip_city("keine Ahnung") is None

    def test_email_shape(self):
        assert isinstance(validate(ChatStep.LEGAL_EMAIL, "info@firma"), Rejected)
        assert validate(ChatStep.LEGAL_EMAIL, " info@firma.de ").values == {"legal_email": "info@firma.de"}

    def test_reminder_email_targets_email_field(self):
        assert validate(ChatStep.EMAIL, "chef@firma.de").values == {"email": "chef@firma.de"}

    def test_phone_non_empty(self):
        assert isinstance(validate(ChatStep.LEGAL_PHONE, ""), Rejected)
        assert validate(ChatStep.LEGAL_PHONE, "02871 12345").values == {"legal_phone": "02871 12345"}


class TestVat:
    """USt-IdNr. normalization."""

    def test_lowercase_id_is_uppercased(self):
        result = validate(ChatStep.LEGAL_VAT, "de123456789")
        assert result.values == {"legal_vat_id": "DE123456789"}

    @pytest.mark.parametrize("raw", ["", "nein", "Nein", "-", "none", "n/a"])
    def test_no_vat_answers_normalize_to_empty(self, raw):
        result = validate(ChatStep.LEGAL_VAT, raw)
        assert isinstance(result, Accepted)
        assert result.values == {"legal_vat_id": ""}

    def test_eight_digits_rejected(self):
        result = validate(ChatStep.LEGAL_VAT, "DE12345")
        assert isinstance(result, Rejected)
        assert result.reason == "format"
        assert "DE + 9 Ziffern" in result.message

    def test_normalize_vat_returns_none_for_invalid(self):
        assert normalize_vat("AT123456789") is None


class TestFreeText:
    """Tagline, description, USP, audience."""

    @pytest.mark.parametrize("raw", [
        "generate me a suggestion",
        "Kannst du mir einen Vorschlag machen?",
        "schreib du das bitte",
        "KI soll das machen",
    ])
    def test_ai_intent_requests_suggestion(self, raw):
        result = validate(ChatStep.TAGLINE, raw)
        assert result == SuggestionRequested("tagline")

    def test_target_audience_field_name(self):
        assert validate(ChatStep.TARGET_AUDIENCE, "help") == SuggestionRequested("target_audience")

    def test_plain_text_accepted(self):
        result = validate(ChatStep.USP, "Festpreisgarantie")
        assert result.values == {"usp": "Festpreisgarantie"}

    def test_empty_text_rejected(self):
        assert validate(ChatStep.DESCRIPTION, "  ").reason == "required"

    def test_ai_words_need_word_boundaries(self):
        assert not detect_ai_intent("Maisfelder und Kiesgruben")

    def test_category_never_requests_suggestion(self):
        result = validate(ChatStep.BUSINESS_CATEGORY, "Restaurant")
        assert result.values == {"business_category": "Restaurant"}


class TestBusinessName:

    def test_confirmation_keeps_prefilled_name(self):
        state = OnboardingState(business_name="Dachdeckerei Müller")
        result = validate(ChatStep.BUSINESS_NAME, "Ja, stimmt!", state)
        assert isinstance(result, Accepted)
        assert result.values == {}

    def test_new_name_replaces(self):
        state = OnboardingState(business_name="Alt")
        assert validate(ChatStep.BUSINESS_NAME, "Neu GmbH", state).values == {"business_name": "Neu GmbH"}

    def test_confirmation_without_name_rejected(self):
        assert isinstance(validate(ChatStep.BUSINESS_NAME, "ok", OnboardingState()), Rejected)


class TestInteractiveSteps:

    def test_brand_color_hex(self):
        assert validate(ChatStep.BRAND_COLOR, "#1A2B3C").values == {"brand_color": "#1a2b3c"}
        assert isinstance(validate(ChatStep.BRAND_COLOR, "blue"), Rejected)

    def test_structured_steps_reject_text(self):
        result = validate(ChatStep.SERVICES, "Dachsanierung")
        assert isinstance(result, Rejected)
        assert result.reason == "unsupported"


class TestCheckoutGate:

    @pytest.fixture
    def complete_state(self) -> OnboardingState:
        return OnboardingState(
            legal_owner="Hans Müller",
            legal_street="Musterstraße 12",
            legal_zip="46395",
            legal_city="Bocholt",
            legal_email="info@firma.de",
            legal_phone="02871 12345",
            legal_consent=True,
        )

    def test_complete_state_can_checkout(self, complete_state):
        assert missing_for_checkout(complete_state) == []
        assert can_checkout(complete_state)

    def test_missing_consent_blocks(self, complete_state):
        complete_state.legal_consent = False
        assert missing_for_checkout(complete_state) == ["legal_consent"]

    def test_empty_state_lists_every_field(self):
        missing = missing_for_checkout(OnboardingState())
        for name in ("legal_owner", "legal_street", "legal_zip", "legal_city",
                     "legal_email", "legal_phone", "legal_consent"):
            assert name in missing

    def test_form_uppercases_vat(self):
        form = LegalDetailsForm(
            legal_owner="Hans Müller",
            legal_street="Musterstraße 12",
            legal_zip="46395",
            legal_city="Bocholt",
            legal_email="info@firma.de",
            legal_phone="1",
            legal_vat_id="de123456789",
        )
        assert form.legal_vat_id == "DE123456789"
