"""
Onboarding Session - the chat orchestrator.

One OnboardingSession owns the state, the conversation log and the step graph
of a single onboarding run. Every user action goes the same way:

    validate → log the answer → merge into state → autosave (not awaited)
    → advance the step graph → recompute the live preview → notify subscribers

All collaborators (content generator, step store, media store, checkout
service) are injected so the whole flow runs headless in tests.
"""

import logging
import uuid
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Literal

from .autosave import AutosaveBridge
from .checkout import CheckoutService, build_order
from .content import PreviewDocument, SectionType, WebsiteData
from .conversation import ConversationLog, ConversationMessage, Role
from .directory import BusinessFacts, translate_category
from .errors import CheckoutNotReadyError, UpstreamError
from .forms import (
    Accepted,
    Rejected,
    SuggestionRequested,
    ValidationResult,
    missing_for_checkout,
    validate,
    validate_brand_color,
)
from .generation import ContentGenerator, build_context
from .persistence import MediaStore, StepStore
from .preview import compose
from .pricing import price
from .prompts import get_quick_replies, get_step_prompt
from .reservation import reservation_deadline, reservation_key
from .state import AddOn, MenuCategory, OnboardingState, ServiceItem, SubPage, available_add_ons
from .steps import ChatStep, StepGraph, step_index

logger = logging.getLogger(__name__)

SubmitStatus = Literal["advanced", "rejected", "suggested", "amended", "error"]
Subscriber = Callable[[PreviewDocument], None]


@dataclass
class SubmitResult:
    """
    Outcome of a user action.

    `message` is the inline text shown near the input (rejections, errors).
    `input_buffer` carries a generated suggestion the owner can accept or edit.
    """
    status: SubmitStatus
    step: ChatStep
    message: str = ""
    reason: str | None = None
    input_buffer: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in ("advanced", "amended", "suggested")


def _jsonable(value: Any) -> Any:
    """Autosave payloads go over the wire as JSON."""
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {_jsonable(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, set):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class OnboardingSession:
    """Headless onboarding chat for one generated website."""

    def __init__(
        self,
        *,
        website_id: int | None = None,
        base_document: WebsiteData | None = None,
        facts: BusinessFacts | None = None,
        generator: ContentGenerator | None = None,
        store: StepStore | None = None,
        media_store: MediaStore | None = None,
        checkout_service: CheckoutService | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.id = uuid.uuid4().hex
        self.website_id = website_id
        self.base_document = base_document
        self.facts = facts

        self.state = OnboardingState(website_id=website_id)
        self.log = ConversationLog(clock=clock) if clock else ConversationLog()
        self.graph = StepGraph()

        self._generator = generator
        self._store = store
        self._media_store = media_store
        self._checkout_service = checkout_service
        self.autosave = AutosaveBridge(store, website_id)

        self._document: PreviewDocument | None = None
        self._suggestions: dict[ChatStep, str] = {}
        self._subscribers: list[Subscriber] = []
        self._closed = False

        if base_document is not None or facts is not None:
            self.prefill(base_document, facts)

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def current_step(self) -> ChatStep:
        return self.graph.current_step

    @property
    def live_document(self) -> PreviewDocument | None:
        """Current preview, or None while the base document is still generating."""
        return self._document

    @property
    def messages(self) -> list[ConversationMessage]:
        return self.log.messages

    def quick_replies(self) -> list[str]:
        return get_quick_replies(self.current_step, self.state, self.facts)

    def progress(self) -> tuple[int, int]:
        return self.graph.progress()

    def price(self, is_first_period: bool = False) -> Decimal:
        return price(self.state, is_first_period)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for preview updates. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def reservation(self, store, now: datetime | None = None, hours: int = 24) -> datetime:
        """Reservation deadline for this website (written on first call)."""
        key = reservation_key(self.website_id if self.website_id is not None else self.id)
        return reservation_deadline(store, key, now=now, duration=timedelta(hours=hours))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> ChatStep:
        """Greet and move from welcome to the first real step."""
        if self.current_step != ChatStep.WELCOME:
            return self.current_step

        self._say(get_step_prompt(ChatStep.WELCOME, self.state, self.facts))
        return self._advance()

    def prefill(self, base: WebsiteData | None = None, facts: BusinessFacts | None = None) -> list[str]:
        """
        Pre-fill state from the generated document and directory facts.

        Fields the owner already edited are never overwritten. Returns the
        names of filled fields.
        """
        filled: list[str] = []

        if base is not None:
            self.base_document = base
            filled += self.state.prefill({
                "business_name": base.business_name,
                "tagline": base.tagline,
                "description": base.description,
            })
            if not self.state.top_services and "top_services" not in self.state.edited_fields:
                services = next((s for s in base.sections if s.type == SectionType.SERVICES), None)
                if services is not None:
                    items = [
                        ServiceItem(title=i.title or "", description=i.description or "")
                        for i in services.items
                        if i.title
                    ]
                    filled += self.state.prefill({"top_services": items})

        if facts is not None:
            self.facts = facts
            filled += self.state.prefill(facts.prefill_values())

        if filled:
            logger.debug(f"Prefilled {len(filled)} fields: {', '.join(filled)}")
        self._refresh()
        return filled

    def close(self) -> None:
        """Tear down: late autosaves and callbacks become no-ops."""
        self._closed = True
        self.autosave.close()
        self._subscribers.clear()

    # -------------------------------------------------------------------------
    # Text answers
    # -------------------------------------------------------------------------

    async def handle_submit(self, raw: str, step: ChatStep | None = None) -> SubmitResult:
        """Validate a typed answer for the current step and advance on success."""
        step = step or self.current_step
        if step != self.current_step:
            return self._wrong_step(step)

        result = validate(step, raw, self.state)

        suggested = self._suggestions.get(step)
        if isinstance(result, SuggestionRequested) and suggested and raw.strip() == suggested:
            # Accepting a generated text, even if it reads like a request for help
            result = Accepted({result.field: suggested}, suggested)

        if isinstance(result, SuggestionRequested):
            return await self._suggest(step, result.field)

        return self._submit_validated(step, result)

    async def suggest_text(self, field_name: str) -> str:
        """Ask the generator for one field's text."""
        if self._generator is None:
            raise UpstreamError("KI-Generierung nicht verfügbar")
        return await self._generator.generate_text(field_name, self._context())

    async def _suggest(self, step: ChatStep, field_name: str) -> SubmitResult:
        try:
            text = await self.suggest_text(field_name)
        except UpstreamError as e:
            logger.warning(f"Suggestion for {field_name} failed: {e}")
            return SubmitResult("error", step, message=str(e), reason="upstream")

        if self._closed:
            return SubmitResult("error", step, reason="closed")
        self._suggestions[step] = text.strip()
        return SubmitResult("suggested", step, input_buffer=text)

    # -------------------------------------------------------------------------
    # Structured answers
    # -------------------------------------------------------------------------

    def set_brand_color(self, color: str) -> SubmitResult:
        if self.current_step != ChatStep.BRAND_COLOR:
            return self._wrong_step(ChatStep.BRAND_COLOR)
        return self._submit_validated(ChatStep.BRAND_COLOR, validate_brand_color(color))

    def set_logo(
        self,
        *,
        font: str | None = None,
        url: str | None = None,
        headline_font: str | None = None,
    ) -> SubmitResult:
        """Pick a font for a text logo, or use an uploaded logo URL."""
        step = ChatStep.BRAND_LOGO
        if self.current_step != step:
            return self._wrong_step(step)
        if not font and not url:
            return SubmitResult("rejected", step, reason="required",
                                message="Bitte lade ein Logo hoch oder wähle eine Schriftart")

        values: dict[str, Any] = {"brand_logo": f"url:{url}" if url else f"font:{font}"}
        if headline_font:
            values["headline_font"] = headline_font
        display = "Logo hochgeladen ✓" if url else f"Schriftart: {font}"
        return self._commit_and_advance(step, values, display)

    async def upload_logo(self, data: bytes, mime_type: str) -> SubmitResult:
        step = ChatStep.BRAND_LOGO
        if self.current_step != step:
            return self._wrong_step(step)
        if self._media_store is None or self.website_id is None:
            return SubmitResult("error", step, reason="upstream", message="Upload nicht verfügbar")

        try:
            url = await self._media_store.upload(self.website_id, data, mime_type, kind="logo")
        except UpstreamError as e:
            return SubmitResult("error", step, reason="upstream", message=str(e))

        if self._closed:
            return SubmitResult("error", step, reason="closed")
        return self.set_logo(url=url)

    def submit_services(self, services: Iterable[ServiceItem]) -> SubmitResult:
        step = ChatStep.SERVICES
        if self.current_step != step:
            return self._wrong_step(step)

        filled = [
            ServiceItem(title=s.title.strip(), description=s.description.strip())
            for s in services
            if s.title.strip()
        ]
        if not filled:
            return SubmitResult("rejected", step, reason="required",
                                message="Bitte gib mindestens eine Leistung ein oder überspringe den Schritt")

        values = {"top_services": filled, "top_services_skipped": False}
        return self._commit_and_advance(step, values, ", ".join(s.title for s in filled))

    def skip_services(self) -> SubmitResult:
        """Owner explicitly chose no services section."""
        step = ChatStep.SERVICES
        if self.current_step != step:
            return self._wrong_step(step)
        values = {"top_services": [], "top_services_skipped": True}
        return self._commit_and_advance(step, values, "Leistungen überspringen")

    async def suggest_services(self) -> list[ServiceItem]:
        """Generated service proposals for the services editor (does not advance)."""
        if self._generator is None:
            raise UpstreamError("KI-Vorschläge nicht verfügbar")
        return await self._generator.suggest_services(self._context())

    def set_add_ons(self, selected: Iterable[AddOn]) -> SubmitResult:
        step = ChatStep.ADDONS
        if self.current_step != step:
            return self._wrong_step(step)

        chosen = set(selected)
        unavailable = chosen - set(available_add_ons(self.state.business_category))
        if unavailable:
            names = ", ".join(sorted(a.value for a in unavailable))
            return SubmitResult("rejected", step, reason="unavailable",
                                message=f"Für deine Branche nicht verfügbar: {names}")

        add_ons = {a: a in chosen for a in AddOn}
        labels = [a.value for a in AddOn if add_ons[a]]
        return self._commit_and_advance(step, {"add_ons": add_ons}, ", ".join(labels) or "Keine Extras")

    def submit_menu(self, categories: list[MenuCategory]) -> SubmitResult:
        return self._submit_categories(ChatStep.MENU, "menu_categories", categories)

    def submit_pricelist(self, categories: list[MenuCategory]) -> SubmitResult:
        return self._submit_categories(ChatStep.PRICELIST, "pricelist_categories", categories)

    def _submit_categories(self, step: ChatStep, field_name: str, categories: list[MenuCategory]) -> SubmitResult:
        if self.current_step != step:
            return self._wrong_step(step)
        kept = [c for c in categories if not c.is_empty()]
        count = sum(len(c.items) for c in kept)
        return self._commit_and_advance(step, {field_name: kept}, f"{len(kept)} Kategorien, {count} Einträge")

    def submit_sub_pages(self, pages: list[SubPage]) -> SubmitResult:
        step = ChatStep.SUBPAGES
        if self.current_step != step:
            return self._wrong_step(step)
        named = [p for p in pages if p.name.strip()]
        display = ", ".join(p.name.strip() for p in named) or "Keine Unterseiten"
        return self._commit_and_advance(step, {"sub_pages": named}, display)

    def toggle_hidden_section(self, section_type: SectionType) -> bool:
        """Show/hide a section in the preview. Returns True if now hidden."""
        hidden = set(self.state.hidden_sections)
        hidden.symmetric_difference_update({section_type})
        self.state.apply({"hidden_sections": hidden})
        self._save(ChatStep.HIDE_SECTIONS, {"hidden_sections": hidden})
        self._refresh()
        return section_type in hidden

    def confirm_hidden_sections(self) -> SubmitResult:
        step = ChatStep.HIDE_SECTIONS
        if self.current_step != step:
            return self._wrong_step(step)
        hidden = set(self.state.hidden_sections)
        display = ", ".join(sorted(s.value for s in hidden)) or "Alle Bereiche anzeigen"
        return self._commit_and_advance(step, {"hidden_sections": hidden}, display)

    def confirm_preview(self) -> SubmitResult:
        step = ChatStep.PREVIEW
        if self.current_step != step:
            return self._wrong_step(step)
        return self._commit_and_advance(step, {}, "Sieht gut aus! 👍")

    def set_legal_consent(self, consent: bool) -> None:
        self.state.apply({"legal_consent": consent})
        self._save(self.current_step, {"legal_consent": consent})

    # -------------------------------------------------------------------------
    # Corrections
    # -------------------------------------------------------------------------

    def amend(self, message_id: str, text: str) -> SubmitResult:
        """
        Edit an earlier answer in place.

        The new text goes through the step's validator again; a rejection
        leaves both the transcript and the state untouched. Raises
        AmendmentError for messages that cannot be amended.
        """
        message = self.log.check_amendable(message_id)
        step = message.step

        result = validate(step, text, self.state)
        if isinstance(result, SuggestionRequested):
            # An amendment is the owner's final text, even if it mentions "help"
            result = Accepted({result.field: text.strip()}, text.strip())
        if isinstance(result, Rejected):
            return SubmitResult("rejected", step, message=result.message, reason=result.reason)

        self.log.amend(message_id, result.display or text.strip())
        self.state.apply(result.values)
        self._save(step, result.values)
        self._refresh()
        logger.info(f"Amended {step.value} answer {message_id}")
        return SubmitResult("amended", step)

    def reopen(self, step: ChatStep) -> ChatStep:
        """Go back to a confirmed legal step; the next answer returns here."""
        before = self.current_step
        current = self.graph.reopen(step)
        if current != before:
            self._say(get_step_prompt(current, self.state, self.facts))
        return current

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    async def checkout(self) -> str:
        """
        Complete onboarding and open a payment session.

        Returns the payment redirect URL. Raises CheckoutNotReadyError when
        legal data or consent is missing, UpstreamError when a collaborator
        fails.
        """
        missing = missing_for_checkout(self.state)
        if missing:
            raise CheckoutNotReadyError(missing)
        if self.website_id is None or self._checkout_service is None:
            raise UpstreamError("Checkout nicht verfügbar")

        if self._store is not None:
            await self._store.complete(self.website_id)

        order = build_order(self.state, self.website_id)
        try:
            url = await self._checkout_service.create_session(order)
        except UpstreamError:
            raise
        except Exception as e:
            logger.error(f"Checkout session failed for website {self.website_id}: {e}")
            raise UpstreamError("Checkout konnte nicht gestartet werden") from e

        logger.info(f"Checkout started for website {self.website_id}: {order.first_period_price} {order.currency}")
        return url

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _submit_validated(self, step: ChatStep, result: ValidationResult) -> SubmitResult:
        if isinstance(result, Rejected):
            return SubmitResult("rejected", step, message=result.message, reason=result.reason)
        if isinstance(result, SuggestionRequested):
            return SubmitResult("rejected", step, reason="unsupported")
        return self._commit_and_advance(step, result.values, result.display)

    def _commit_and_advance(self, step: ChatStep, values: dict[str, Any], display: str) -> SubmitResult:
        self.log.append(Role.USER, display, step=step)
        if values:
            self.state.apply(values)
            self._save(step, values)
        self._advance()
        self._refresh()
        return SubmitResult("advanced", self.current_step)

    def _advance(self) -> ChatStep:
        before = self.current_step
        current = self.graph.advance(
            menu=self.state.has_add_on(AddOn.MENU),
            pricelist=self.state.has_add_on(AddOn.PRICELIST),
        )
        if current != before:
            self._say(get_step_prompt(current, self.state, self.facts))
        return current

    def _say(self, text: str) -> None:
        if text:
            self.log.append(Role.ASSISTANT, text)

    def _save(self, step: ChatStep, values: dict[str, Any]) -> None:
        if step == ChatStep.WELCOME:
            return
        self.autosave.save(step_index(step), _jsonable(values))

    def _refresh(self) -> None:
        if self._closed or self.base_document is None:
            return
        self._document = compose(self.base_document, self.state)
        for callback in list(self._subscribers):
            try:
                callback(self._document)
            except Exception as e:
                logger.error(f"Preview subscriber failed: {e}")

    def _wrong_step(self, step: ChatStep) -> SubmitResult:
        message = f"{step.value} is not the active step ({self.current_step.value})"
        logger.warning(message)
        return SubmitResult("rejected", self.current_step, reason="step", message=message)

    def _context(self) -> str:
        facts = self.facts or BusinessFacts()
        return build_context(
            self.state.business_name or facts.name,
            self.state.business_category or translate_category(facts.category or ""),
            facts.address,
            self.state.description,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        position, total = self.progress()
        return {
            "id": self.id,
            "website_id": self.website_id,
            "current_step": self.current_step.value,
            "progress": {"position": position, "total": total},
            "reopened": self.graph.is_reopened,
            "quick_replies": self.quick_replies(),
            "messages": self.log.to_list(),
            "state": self.state.to_dict(),
        }
