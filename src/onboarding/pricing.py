"""
Checkout price calculation.

Monthly subscription in EUR: an intro base price for the first month, the
regular base price afterwards, plus fixed monthly surcharges per add-on and
per named sub-page.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .state import AddOn, OnboardingState

CURRENCY = "EUR"

BASE_PRICE_INTRO = Decimal("39.00")    # First month intro offer
BASE_PRICE_REGULAR = Decimal("79.00")
ADD_ON_PRICE = Decimal("4.90")
SUB_PAGE_PRICE = Decimal("9.90")

ADD_ON_LABELS: dict[AddOn, str] = {
    AddOn.CONTACT_FORM: "Kontaktformular",
    AddOn.GALLERY: "Bildergalerie",
    AddOn.MENU: "Speisekarte",
    AddOn.PRICELIST: "Preisliste",
}

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceLine:
    label: str
    amount: Decimal


def price_breakdown(state: OnboardingState, is_first_period: bool = False) -> list[PriceLine]:
    """Line items for the checkout summary."""
    lines = [PriceLine("Basis-Website", BASE_PRICE_INTRO if is_first_period else BASE_PRICE_REGULAR)]
    for add_on in state.active_add_ons():
        lines.append(PriceLine(ADD_ON_LABELS[add_on], ADD_ON_PRICE))
    for page in state.named_sub_pages():
        lines.append(PriceLine(f"Unterseite: {page.name.strip()}", SUB_PAGE_PRICE))
    return lines


def price(state: OnboardingState, is_first_period: bool = False) -> Decimal:
    """Monthly total, rounded to cents."""
    total = sum((line.amount for line in price_breakdown(state, is_first_period)), Decimal("0"))
    return total.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_price(amount: Decimal) -> str:
    """German display format: 43,90 €"""
    return f"{amount.quantize(_CENT):.2f}".replace(".", ",") + " €"
