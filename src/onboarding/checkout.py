"""
Checkout order.

The order is the contract between onboarding and the payment provider: it is
built once from the final OnboardingState when the owner unlocks the site.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Protocol
import json

from .pricing import CURRENCY, price
from .state import AddOn, OnboardingState


@dataclass
class CheckoutOrder:
    """Everything the payment provider needs to open a checkout session."""
    website_id: int
    add_ons: list[str] = field(default_factory=list)
    sub_pages: int = 0
    first_period_price: Decimal = Decimal("0.00")
    regular_price: Decimal = Decimal("0.00")
    currency: str = CURRENCY
    customer_email: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["first_period_price"] = str(self.first_period_price)
        data["regular_price"] = str(self.regular_price)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class CheckoutService(Protocol):
    """Payment provider: returns the URL that completes payment."""

    async def create_session(self, order: CheckoutOrder) -> str: ...


def build_order(state: OnboardingState, website_id: int) -> CheckoutOrder:
    """Build the paid order from the final onboarding state."""
    return CheckoutOrder(
        website_id=website_id,
        add_ons=[a.value for a in AddOn if state.has_add_on(a)],
        sub_pages=len(state.named_sub_pages()),
        first_period_price=price(state, is_first_period=True),
        regular_price=price(state, is_first_period=False),
        customer_email=state.email or state.legal_email,
    )
