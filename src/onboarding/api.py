"""
Onboarding API Endpoints.

Separate router from the app's health/ops routes. Each onboarding chat is an
OnboardingSession kept in an in-memory registry; the browser drives it with
one request per user action and renders the returned transcript and preview.
"""

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from .content import SectionType, WebsiteData
from .directory import BusinessFacts, DirectoryClient
from .errors import AmendmentError, CheckoutNotReadyError, StepGraphError, UpstreamError
from .generation import LLMContentGenerator
from .pricing import CURRENCY, price_breakdown
from .session import OnboardingSession, SubmitResult
from .state import AddOn, MenuCategory, MenuItem, ServiceItem, SubPage
from .steps import ChatStep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Session registry
# =============================================================================

SessionFactory = Callable[..., OnboardingSession]


def build_session(
    website_id: int | None = None,
    base_document: WebsiteData | None = None,
    facts: BusinessFacts | None = None,
) -> OnboardingSession:
    """Default wiring: OpenAI for text, Supabase for autosave and uploads."""
    from pageblitz import db, llm
    from .persistence import SupabaseMediaStore, SupabaseStepStore

    has_db = db.is_configured()
    return OnboardingSession(
        website_id=website_id,
        base_document=base_document,
        facts=facts,
        generator=LLMContentGenerator() if llm.is_configured() else None,
        store=SupabaseStepStore() if has_db else None,
        media_store=SupabaseMediaStore() if has_db else None,
    )


class SessionRegistry:
    """Live sessions by id (single process)."""

    def __init__(self, factory: SessionFactory = build_session):
        self._factory = factory
        self._sessions: dict[str, OnboardingSession] = {}

    def create(self, **kwargs) -> OnboardingSession:
        session = self._factory(**kwargs)
        self._sessions[session.id] = session
        logger.info(f"Onboarding session {session.id} created (website {session.website_id})")
        return session

    def get(self, session_id: str) -> OnboardingSession | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()

    def __len__(self) -> int:
        return len(self._sessions)


_registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    return _registry


def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> OnboardingSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown onboarding session: {session_id}")
    return session


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateSessionRequest(BaseModel):
    website_id: int | None = None
    base_document: WebsiteData | None = None
    facts: BusinessFacts | None = None
    directory_query: str | None = None  # Maps link or "name city"
    generate: bool = False              # Generate the base document from facts


class SubmitRequest(BaseModel):
    text: str = ""
    step: ChatStep | None = None


class AmendRequest(BaseModel):
    text: str


class ServiceModel(BaseModel):
    title: str = ""
    description: str = ""


class ServicesRequest(BaseModel):
    services: list[ServiceModel] = Field(default_factory=list)


class BrandColorRequest(BaseModel):
    color: str


class LogoRequest(BaseModel):
    font: str | None = None
    url: str | None = None
    headline_font: str | None = None


class AddOnsRequest(BaseModel):
    add_ons: list[AddOn] = Field(default_factory=list)


class MenuItemModel(BaseModel):
    name: str = ""
    description: str = ""
    price: str = ""


class MenuCategoryModel(BaseModel):
    name: str = ""
    items: list[MenuItemModel] = Field(default_factory=list)


class CategoriesRequest(BaseModel):
    categories: list[MenuCategoryModel] = Field(default_factory=list)


class SubPageModel(BaseModel):
    id: str
    name: str = ""
    description: str = ""


class SubPagesRequest(BaseModel):
    sub_pages: list[SubPageModel] = Field(default_factory=list)


class HiddenSectionsRequest(BaseModel):
    hidden: list[SectionType] = Field(default_factory=list)
    confirm: bool = True


class ReopenRequest(BaseModel):
    step: ChatStep


class CheckoutRequest(BaseModel):
    legal_consent: bool | None = None


class SessionResponse(BaseModel):
    id: str
    website_id: int | None
    current_step: str
    progress: dict
    reopened: bool
    quick_replies: list[str]
    messages: list[dict]
    state: dict


class ActionResponse(BaseModel):
    """Result of one user action plus the updated session."""
    status: str
    step: str
    message: str = ""
    reason: str | None = None
    input_buffer: str | None = None
    session: SessionResponse


class PreviewResponse(BaseModel):
    loading: bool
    document: dict | None = None


class PriceLineModel(BaseModel):
    label: str
    amount: str


class PriceResponse(BaseModel):
    currency: str
    first_period: str
    regular: str
    lines: list[PriceLineModel]


class CheckoutResponse(BaseModel):
    url: str


# =============================================================================
# Helpers
# =============================================================================


def _session_response(session: OnboardingSession) -> SessionResponse:
    return SessionResponse(**session.to_dict())


def _action_response(result: SubmitResult, session: OnboardingSession) -> ActionResponse:
    return ActionResponse(
        status=result.status,
        step=result.step.value,
        message=result.message,
        reason=result.reason,
        input_buffer=result.input_buffer,
        session=_session_response(session),
    )


def _upstream(e: UpstreamError) -> HTTPException:
    logger.warning(f"Upstream failure: {e}")
    return HTTPException(status_code=502, detail=str(e))


def _categories(request: CategoriesRequest) -> list[MenuCategory]:
    return [
        MenuCategory(name=c.name, items=[MenuItem(**i.model_dump()) for i in c.items])
        for c in request.categories
    ]


# =============================================================================
# Endpoints: Session
# =============================================================================


@router.post("/sessions", response_model=SessionResponse)
async def create_session(
    request: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionResponse:
    """Start an onboarding chat, optionally looking up the business first."""
    facts = request.facts
    base_document = request.base_document

    try:
        if facts is None and request.directory_query:
            facts = await DirectoryClient().lookup(request.directory_query)
        if base_document is None and request.generate and facts is not None:
            base_document = await LLMContentGenerator().generate_website(facts)
    except UpstreamError as e:
        raise _upstream(e)

    session = registry.create(
        website_id=request.website_id,
        base_document=base_document,
        facts=facts,
    )
    session.start()
    return _session_response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session_state(session: OnboardingSession = Depends(get_session)) -> SessionResponse:
    return _session_response(session)


@router.delete("/sessions/{session_id}")
async def close_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    if registry.get(session_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown onboarding session: {session_id}")
    registry.remove(session_id)
    return {"closed": True}


# =============================================================================
# Endpoints: Answers
# =============================================================================


@router.post("/sessions/{session_id}/submit", response_model=ActionResponse)
async def submit_answer(
    request: SubmitRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    """Typed answer for the current step."""
    result = await session.handle_submit(request.text, request.step)
    return _action_response(result, session)


@router.post("/sessions/{session_id}/messages/{message_id}/amend", response_model=ActionResponse)
async def amend_message(
    message_id: str,
    request: AmendRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    try:
        result = session.amend(message_id, request.text)
    except AmendmentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _action_response(result, session)


@router.post("/sessions/{session_id}/reopen", response_model=SessionResponse)
async def reopen_step(
    request: ReopenRequest,
    session: OnboardingSession = Depends(get_session),
) -> SessionResponse:
    try:
        reopened = session.reopen(request.step)
    except StepGraphError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if reopened != request.step:
        raise HTTPException(status_code=400, detail=f"Step {request.step.value} cannot be reopened")
    return _session_response(session)


@router.post("/sessions/{session_id}/brand-color", response_model=ActionResponse)
async def set_brand_color(
    request: BrandColorRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    return _action_response(session.set_brand_color(request.color), session)


@router.post("/sessions/{session_id}/logo", response_model=ActionResponse)
async def set_logo(
    request: LogoRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    result = session.set_logo(font=request.font, url=request.url, headline_font=request.headline_font)
    return _action_response(result, session)


@router.post("/sessions/{session_id}/services", response_model=ActionResponse)
async def submit_services(
    request: ServicesRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    services = [ServiceItem(title=s.title, description=s.description) for s in request.services]
    return _action_response(session.submit_services(services), session)


@router.post("/sessions/{session_id}/services/skip", response_model=ActionResponse)
async def skip_services(session: OnboardingSession = Depends(get_session)) -> ActionResponse:
    return _action_response(session.skip_services(), session)


@router.post("/sessions/{session_id}/services/suggest")
async def suggest_services(session: OnboardingSession = Depends(get_session)) -> dict:
    try:
        services = await session.suggest_services()
    except UpstreamError as e:
        raise _upstream(e)
    return {"services": [{"title": s.title, "description": s.description} for s in services]}


@router.post("/sessions/{session_id}/addons", response_model=ActionResponse)
async def set_add_ons(
    request: AddOnsRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    return _action_response(session.set_add_ons(request.add_ons), session)


@router.post("/sessions/{session_id}/menu", response_model=ActionResponse)
async def submit_menu(
    request: CategoriesRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    return _action_response(session.submit_menu(_categories(request)), session)


@router.post("/sessions/{session_id}/pricelist", response_model=ActionResponse)
async def submit_pricelist(
    request: CategoriesRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    return _action_response(session.submit_pricelist(_categories(request)), session)


@router.post("/sessions/{session_id}/subpages", response_model=ActionResponse)
async def submit_sub_pages(
    request: SubPagesRequest,
    session: OnboardingSession = Depends(get_session),
) -> ActionResponse:
    pages = [SubPage(**p.model_dump()) for p in request.sub_pages]
    return _action_response(session.submit_sub_pages(pages), session)


@router.post("/sessions/{session_id}/hidden-sections")
async def set_hidden_sections(
    request: HiddenSectionsRequest,
    session: OnboardingSession = Depends(get_session),
) -> dict[str, Any]:
    """Replace the hidden set; confirm the step when it is active."""
    wanted = set(request.hidden)
    for section_type in wanted.symmetric_difference(session.state.hidden_sections):
        session.toggle_hidden_section(section_type)

    result = None
    if request.confirm and session.current_step == ChatStep.HIDE_SECTIONS:
        result = session.confirm_hidden_sections()

    return {
        "hidden": sorted(s.value for s in session.state.hidden_sections),
        "status": result.status if result else None,
        "session": _session_response(session).model_dump(),
    }


# =============================================================================
# Endpoints: Preview & checkout
# =============================================================================


@router.get("/sessions/{session_id}/preview", response_model=PreviewResponse)
async def get_preview(session: OnboardingSession = Depends(get_session)) -> PreviewResponse:
    document = session.live_document
    if document is None:
        return PreviewResponse(loading=True)
    return PreviewResponse(loading=False, document=document.model_dump(by_alias=True, mode="json"))


@router.post("/sessions/{session_id}/preview/confirm", response_model=ActionResponse)
async def confirm_preview(session: OnboardingSession = Depends(get_session)) -> ActionResponse:
    return _action_response(session.confirm_preview(), session)


@router.get("/sessions/{session_id}/price", response_model=PriceResponse)
async def get_price(session: OnboardingSession = Depends(get_session)) -> PriceResponse:
    return PriceResponse(
        currency=CURRENCY,
        first_period=str(session.price(is_first_period=True)),
        regular=str(session.price(is_first_period=False)),
        lines=[
            PriceLineModel(label=line.label, amount=str(line.amount))
            for line in price_breakdown(session.state, is_first_period=True)
        ],
    )


@router.post("/sessions/{session_id}/checkout", response_model=CheckoutResponse)
async def checkout(
    request: CheckoutRequest,
    session: OnboardingSession = Depends(get_session),
) -> CheckoutResponse:
    if request.legal_consent is not None:
        session.set_legal_consent(request.legal_consent)

    try:
        url = await session.checkout()
    except CheckoutNotReadyError as e:
        raise HTTPException(status_code=400, detail={"missing": e.missing})
    except UpstreamError as e:
        raise _upstream(e)

    return CheckoutResponse(url=url)
