"""
Tests for the OnboardingSession orchestrator.

Drives the whole chat headless: validator → log → state → autosave →
step graph → live preview.
"""

import asyncio

import pytest

from fakes import FakeCheckout, FakeGenerator, FakeStepStore
from onboarding.content import SectionType
from onboarding.conversation import Role
from onboarding.errors import AmendmentError, CheckoutNotReadyError, StepGraphError, UpstreamError
from onboarding.state import AddOn, MenuCategory, MenuItem, ServiceItem
from onboarding.steps import ChatStep, step_index


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


TEXT_ANSWERS = {
    ChatStep.BUSINESS_CATEGORY: "Bauunternehmen",
    ChatStep.BUSINESS_NAME: "ja",
    ChatStep.TAGLINE: "Dächer vom Profi",
    ChatStep.DESCRIPTION: "Wir decken Dächer im Münsterland.",
    ChatStep.USP: "Festpreisgarantie",
    ChatStep.TARGET_AUDIENCE: "Hausbesitzer in Bocholt",
    ChatStep.LEGAL_OWNER: "Hans Müller",
    ChatStep.LEGAL_STREET: "Musterstraße 12",
    ChatStep.LEGAL_ZIP_CITY: "46395 Bocholt",
    ChatStep.LEGAL_EMAIL: "info@firma.de",
    ChatStep.LEGAL_PHONE: "02871 12345",
    ChatStep.LEGAL_VAT: "nein",
    ChatStep.EMAIL: "chef@firma.de",
}


async def _answer(session):
    step = session.current_step
    if step in TEXT_ANSWERS:
        return await session.handle_submit(TEXT_ANSWERS[step])
    if step == ChatStep.BRAND_COLOR:
        return session.set_brand_color("#FF6600")
    if step == ChatStep.BRAND_LOGO:
        return session.set_logo(font="Montserrat")
    if step == ChatStep.SERVICES:
        return session.submit_services([ServiceItem("Dachsanierung", "Alles aus einer Hand")])
    if step == ChatStep.ADDONS:
        return session.set_add_ons([AddOn.CONTACT_FORM])
    if step == ChatStep.SUBPAGES:
        return session.submit_sub_pages([])
    if step == ChatStep.HIDE_SECTIONS:
        return session.confirm_hidden_sections()
    if step == ChatStep.PREVIEW:
        return session.confirm_preview()
    raise AssertionError(f"No canned answer for {step}")


async def _drive(session, target: ChatStep):
    """Answer every step until `target` is active."""
    session.start()
    while session.current_step != target:
        result = await _answer(session)
        assert result.status == "advanced", result


class TestStart:

    def test_start_greets_and_asks_first_question(self, make_session):
        session = make_session()
        assert session.start() == ChatStep.BUSINESS_CATEGORY
        assert [m.role for m in session.messages] == [Role.ASSISTANT, Role.ASSISTANT]
        assert "Branche" in session.messages[-1].text

    def test_start_twice_is_noop(self, make_session):
        session = make_session()
        session.start()
        count = len(session.messages)
        session.start()
        assert len(session.messages) == count

    def test_prefill_from_base_document(self, make_session):
        session = make_session()
        assert session.state.business_name == "Dachdeckerei Müller"
        assert [s.title for s in session.state.top_services] == ["Neueindeckung", "Reparatur"]
        assert session.live_document is not None

    def test_prefill_from_facts(self, make_session, facts):
        session = make_session(facts=facts)
        assert session.state.business_category == "Dachdecker"
        assert session.state.legal_street == "Musterstraße 12"
        assert (session.state.legal_zip, session.state.legal_city) == ("46395", "Bocholt")
        assert session.state.legal_phone == "02871 12345"

    def test_prefill_never_overwrites_edits(self, make_session, facts):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.BUSINESS_NAME)
            await session.handle_submit("Müller Bedachungen GmbH")

        _run(_test())
        session.prefill(facts=facts)
        assert session.state.business_name == "Müller Bedachungen GmbH"

    def test_no_base_document_means_no_preview(self, make_session):
        session = make_session(base_document=None)

        async def _test():
            session.start()
            return await session.handle_submit("Restaurant")

        assert _run(_test()).status == "advanced"
        assert session.live_document is None


class TestScenarios:

    def test_category_advances_to_color(self, make_session, store):
        session = make_session()

        async def _test():
            session.start()
            result = await session.handle_submit("Restaurant")
            await session.autosave.drain()
            return result

        result = _run(_test())
        assert result.status == "advanced"
        assert session.state.business_category == "Restaurant"
        assert session.current_step == ChatStep.BRAND_COLOR
        assert store.saves == [(42, 0, {"business_category": "Restaurant"})]

    def test_suggestion_fills_input_buffer_without_advancing(self, make_session, generator):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.TAGLINE)
            return await session.handle_submit("generate me a suggestion")

        result = _run(_test())
        assert result.status == "suggested"
        assert result.input_buffer == "Ihr Dach in besten Händen"
        assert session.current_step == ChatStep.TAGLINE
        assert session.state.tagline == "Dächer vom Profi"
        assert generator.calls[0][0] == "tagline"
        assert "Dachdeckerei Müller" in generator.calls[0][1]

    def test_suggestion_failure_is_reported_not_raised(self, make_session):
        session = make_session(generator=FakeGenerator(fail=True))

        async def _test():
            await _drive(session, ChatStep.USP)
            return await session.handle_submit("hilf mir bitte")

        result = _run(_test())
        assert result.status == "error"
        assert session.current_step == ChatStep.USP

    def test_accepting_suggestion_that_mentions_help_words(self, make_session):
        suggestion = "Wir erstellen Dächer, die Generationen halten."
        generator = FakeGenerator(text=suggestion)
        session = make_session(generator=generator)

        async def _test():
            await _drive(session, ChatStep.DESCRIPTION)
            first = await session.handle_submit("schreib mir was")
            second = await session.handle_submit(first.input_buffer)
            return first, second

        first, second = _run(_test())
        assert first.status == "suggested"
        assert second.status == "advanced"
        assert session.state.description == suggestion
        assert session.current_step == ChatStep.USP
        assert len(generator.calls) == 1

    def test_edited_suggestion_with_help_words_asks_again(self, make_session):
        session = make_session(generator=FakeGenerator(text="Wir erstellen Dächer."))

        async def _test():
            await _drive(session, ChatStep.DESCRIPTION)
            await session.handle_submit("schreib mir was")
            return await session.handle_submit("Wir erstellen Dächer und Fassaden.")

        assert _run(_test()).status == "suggested"
        assert session.current_step == ChatStep.DESCRIPTION

    def test_skip_services_removes_section(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.SERVICES)
            session.state.top_services = []
            return session.skip_services()

        result = _run(_test())
        assert result.status == "advanced"
        assert session.state.top_services_skipped
        assert SectionType.SERVICES not in session.live_document.section_types()
        assert session.current_step == ChatStep.TARGET_AUDIENCE

    def test_vat_with_eight_digits_rejected(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.LEGAL_VAT)
            count = len(session.messages)
            result = await session.handle_submit("DE12345")
            return result, count

        result, count = _run(_test())
        assert result.status == "rejected"
        assert result.reason == "format"
        assert session.state.legal_vat_id == ""
        assert session.current_step == ChatStep.LEGAL_VAT
        assert len(session.messages) == count


class TestAutosaveIntegration:

    def test_hanging_autosave_does_not_block_advance(self, make_session):
        session = make_session(store=FakeStepStore(hang=True))

        async def _test():
            session.start()
            await session.handle_submit("Restaurant")
            session.set_brand_color("#123456")
            return session.autosave.pending()

        assert _run(_test()) == 2
        assert session.current_step == ChatStep.BRAND_LOGO

    def test_failing_autosave_does_not_surface(self, make_session):
        session = make_session(store=FakeStepStore(fail=True))

        async def _test():
            await _drive(session, ChatStep.TAGLINE)
            await session.autosave.drain()

        _run(_test())
        assert session.current_step == ChatStep.TAGLINE

    def test_structured_values_saved_as_json(self, make_session, store):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.TARGET_AUDIENCE)
            await session.autosave.drain()

        _run(_test())
        saved = {step: data for _, step, data in store.saves}
        assert saved[step_index(ChatStep.SERVICES)]["top_services"] == [
            {"title": "Dachsanierung", "description": "Alles aus einer Hand"}
        ]
        assert saved[step_index(ChatStep.BRAND_LOGO)] == {"brand_logo": "font:Montserrat"}


class TestAmend:

    def test_amend_zip_city_updates_both_fields_and_preview(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.ADDONS)

        _run(_test())
        message = session.log.user_answers(ChatStep.LEGAL_ZIP_CITY)[0]

        result = session.amend(message.id, "10115   Berlin")

        assert result.status == "amended"
        assert (session.state.legal_zip, session.state.legal_city) == ("10115", "Berlin")
        assert session.log.get(message.id).text == "10115 Berlin"
        assert "10115 Berlin" in session.live_document.get_section(SectionType.CONTACT).content
        assert session.current_step == ChatStep.ADDONS

    def test_invalid_amendment_changes_nothing(self, make_session):
        session = make_session()
        _run(_drive(session, ChatStep.ADDONS))
        message = session.log.user_answers(ChatStep.LEGAL_ZIP_CITY)[0]

        result = session.amend(message.id, "Berlin")

        assert result.status == "rejected"
        assert session.state.legal_zip == "46395"
        assert session.log.get(message.id).text == "46395 Bocholt"

    def test_assistant_message_cannot_be_amended(self, make_session):
        session = make_session()
        session.start()
        with pytest.raises(AmendmentError):
            session.amend(session.messages[0].id, "x")

    def test_amended_text_with_help_words_is_taken_literally(self, make_session):
        session = make_session()
        _run(_drive(session, ChatStep.SERVICES))
        message = session.log.user_answers(ChatStep.USP)[0]

        session.amend(message.id, "Wir schreiben Service groß")

        assert session.state.usp == "Wir schreiben Service groß"


class TestBranchingAndReopen:

    def test_menu_and_pricelist_branch(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.ADDONS)
            session.state.business_category = "Tapas-Bar & Yoga"
            assert session.set_add_ons([AddOn.MENU, AddOn.PRICELIST]).step == ChatStep.MENU
            menu = [MenuCategory("Tapas", [MenuItem("Oliven", price="3,50")]), MenuCategory()]
            assert session.submit_menu(menu).step == ChatStep.PRICELIST
            assert session.submit_pricelist([]).step == ChatStep.SUBPAGES

        _run(_test())
        assert len(session.state.menu_categories) == 1
        assert SectionType.MENU in session.live_document.section_types()

    def test_add_on_not_offered_for_category_is_rejected(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.ADDONS)
            return session.set_add_ons([AddOn.CONTACT_FORM, AddOn.MENU])

        result = _run(_test())
        assert result.status == "rejected"
        assert result.reason == "unavailable"
        assert session.current_step == ChatStep.ADDONS
        assert not session.state.has_add_on(AddOn.MENU)
        assert not session.state.has_add_on(AddOn.CONTACT_FORM)

    def test_restaurant_can_book_menu(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.ADDONS)
            session.state.business_category = "Restaurant"
            return session.set_add_ons([AddOn.MENU])

        assert _run(_test()).step == ChatStep.MENU
        assert session.state.has_add_on(AddOn.MENU)

    def test_reopen_legal_step_returns_to_resume_point(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.SUBPAGES)
            assert session.reopen(ChatStep.LEGAL_EMAIL) == ChatStep.LEGAL_EMAIL
            return await session.handle_submit("neu@firma.de")

        result = _run(_test())
        assert result.step == ChatStep.SUBPAGES
        assert session.state.legal_email == "neu@firma.de"

    def test_reopen_text_step_is_programmer_error(self, make_session):
        session = make_session()
        _run(_drive(session, ChatStep.ADDONS))
        with pytest.raises(StepGraphError):
            session.reopen(ChatStep.TAGLINE)

    def test_action_for_inactive_step_is_rejected(self, make_session):
        session = make_session()
        session.start()
        result = session.skip_services()
        assert result.status == "rejected"
        assert result.reason == "step"
        assert not session.state.top_services_skipped


class TestStructuredSteps:

    def test_services_need_a_title(self, make_session):
        session = make_session()
        _run(_drive(session, ChatStep.SERVICES))
        result = session.submit_services([ServiceItem("  ", "nur Beschreibung")])
        assert result.status == "rejected"
        assert session.current_step == ChatStep.SERVICES

    def test_suggest_services_does_not_advance(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.SERVICES)
            return await session.suggest_services()

        services = _run(_test())
        assert [s.title for s in services] == ["Dachsanierung", "Reparatur"]
        assert session.current_step == ChatStep.SERVICES

    def test_upload_logo(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.BRAND_LOGO)
            return await session.upload_logo(b"\x89PNG", "image/png")

        result = _run(_test())
        assert result.status == "advanced"
        assert session.state.brand_logo == "url:https://cdn.example/42/logo.png"
        assert session.live_document.logo_url == "https://cdn.example/42/logo.png"

    def test_brand_color_reaches_preview(self, make_session):
        session = make_session()
        _run(_drive(session, ChatStep.BRAND_LOGO))
        assert session.live_document.brand_color == "#ff6600"

    def test_toggle_hidden_section(self, make_session):
        session = make_session()
        assert session.toggle_hidden_section(SectionType.TESTIMONIALS)
        assert SectionType.TESTIMONIALS not in session.live_document.section_types()
        assert not session.toggle_hidden_section(SectionType.TESTIMONIALS)
        assert SectionType.TESTIMONIALS in session.live_document.section_types()

    def test_toggle_hidden_section_is_autosaved(self, make_session, store):
        session = make_session()
        hide_index = step_index(ChatStep.HIDE_SECTIONS)

        async def _test():
            session.toggle_hidden_section(SectionType.TESTIMONIALS)
            session.toggle_hidden_section(SectionType.FAQ)
            await session.autosave.drain()

        _run(_test())
        assert store.saves[-1] == (42, hide_index, {"hidden_sections": ["faq", "testimonials"]})

    def test_subscribers_notified_and_unsubscribed(self, make_session):
        session = make_session()
        seen = []
        unsubscribe = session.subscribe(seen.append)

        session.toggle_hidden_section(SectionType.FAQ)
        unsubscribe()
        session.toggle_hidden_section(SectionType.FAQ)

        assert len(seen) == 1

    def test_failing_subscriber_does_not_break_session(self, make_session):
        session = make_session()

        def boom(document):
            raise RuntimeError("render failed")

        session.subscribe(boom)
        assert session.toggle_hidden_section(SectionType.FAQ)


class TestCheckout:

    def test_checkout_requires_consent(self, make_session):
        session = make_session()

        async def _test():
            await _drive(session, ChatStep.CHECKOUT)
            await session.checkout()

        with pytest.raises(CheckoutNotReadyError) as exc:
            _run(_test())
        assert exc.value.missing == ["legal_consent"]

    def test_checkout_completes_and_returns_url(self, make_session, store):
        checkout = FakeCheckout()
        session = make_session(checkout_service=checkout)

        async def _test():
            await _drive(session, ChatStep.CHECKOUT)
            session.set_legal_consent(True)
            return await session.checkout()

        assert _run(_test()) == "https://pay.example/session/1"
        assert store.completed == [42]
        order = checkout.orders[0]
        assert order.add_ons == ["contactForm"]
        assert str(order.first_period_price) == "43.90"
        assert order.customer_email == "chef@firma.de"

    def test_checkout_without_service_is_upstream_error(self, make_session):
        session = make_session(checkout_service=None)

        async def _test():
            await _drive(session, ChatStep.CHECKOUT)
            session.set_legal_consent(True)
            await session.checkout()

        with pytest.raises(UpstreamError):
            _run(_test())


class TestClose:

    def test_closed_session_stops_refreshing(self, make_session):
        session = make_session()
        document = session.live_document
        session.close()
        session.toggle_hidden_section(SectionType.FAQ)
        assert session.live_document is document
        assert not session.autosave.enabled

    def test_to_dict(self, make_session):
        session = make_session()
        session.start()
        data = session.to_dict()
        assert data["current_step"] == "businessCategory"
        assert data["progress"] == {"position": 0, "total": 23}
        assert "Restaurant" in data["quick_replies"]
