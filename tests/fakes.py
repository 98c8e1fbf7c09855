"""Fakes for the onboarding collaborators (step store, generator, checkout, media)."""

import asyncio

from onboarding.errors import UpstreamError
from onboarding.state import ServiceItem


class FakeStepStore:
    """Records saves; optionally fails or never resolves."""

    def __init__(self, fail: bool = False, hang: bool = False):
        self.fail = fail
        self.hang = hang
        self.saves: list[tuple[int, int, dict]] = []
        self.completed: list[int] = []

    async def save_step(self, website_id, step_index, data):
        if self.hang:
            await asyncio.Event().wait()
        if self.fail:
            raise ConnectionError("backend down")
        self.saves.append((website_id, step_index, data))

    async def complete(self, website_id):
        self.completed.append(website_id)


class FakeGenerator:
    """ContentGenerator returning canned text."""

    def __init__(self, text: str = "Ihr Dach in besten Händen", fail: bool = False):
        self.text = text
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    async def generate_text(self, field, context):
        self.calls.append((field, context))
        if self.fail:
            raise UpstreamError("KI-Generierung fehlgeschlagen")
        return self.text

    async def suggest_services(self, context):
        self.calls.append(("services", context))
        if self.fail:
            raise UpstreamError("KI-Vorschläge konnten nicht geladen werden")
        return [ServiceItem("Dachsanierung", "Komplett aus einer Hand"), ServiceItem("Reparatur", "")]

    async def generate_website(self, facts):
        raise UpstreamError("not used")


class FakeCheckout:
    def __init__(self, url: str = "https://pay.example/session/1"):
        self.url = url
        self.orders = []

    async def create_session(self, order):
        self.orders.append(order)
        return self.url


class FakeMediaStore:
    def __init__(self):
        self.uploads = []

    async def upload(self, website_id, data, mime_type, kind="logo"):
        self.uploads.append((website_id, len(data), mime_type, kind))
        return f"https://cdn.example/{website_id}/{kind}.png"
