"""
Business directory facts.

The Google Maps business profile (GMB) is the second pre-fill source for the
onboarding state next to the generated content. This module normalizes those
facts: German category names, address splitting for quick replies, and a
small Places API client.
"""

import logging
import re
from urllib.parse import unquote_plus

import httpx
from pydantic import BaseModel, Field

from .errors import UpstreamError

logger = logging.getLogger(__name__)

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
DETAIL_FIELDS = "name,formatted_address,formatted_phone_number,website,rating,user_ratings_total,opening_hours,types"


class BusinessFacts(BaseModel):
    """Facts from the business directory profile."""
    name: str = ""
    address: str = ""
    phone: str | None = None
    email: str | None = None
    category: str | None = None
    website: str | None = None
    rating: float | None = None
    review_count: int | None = None
    opening_hours: list[str] = Field(default_factory=list)

    def prefill_values(self) -> dict[str, str]:
        """OnboardingState fields this profile can pre-fill."""
        street, zip_city = split_address(self.address)
        values = {
            "business_name": self.name,
            "business_category": translate_category(self.category or ""),
            "legal_email": self.email or "",
            "legal_phone": self.phone or "",
            "legal_street": street or "",
            "email": self.email or "",
        }
        if zip_city:
            values["legal_zip"], values["legal_city"] = zip_city.split(None, 1)
        return values


# =============================================================================
# Category translation
# =============================================================================

# Maps categories sometimes come back in English even for German requests
GMB_CATEGORY_MAP: dict[str, str] = {
    # Food & Beverage
    "Restaurant": "Restaurant",
    "Italian restaurant": "Italienisches Restaurant",
    "Greek restaurant": "Griechisches Restaurant",
    "Turkish restaurant": "Türkisches Restaurant",
    "Asian restaurant": "Asiatisches Restaurant",
    "Pizza restaurant": "Pizzeria",
    "Pizzeria": "Pizzeria",
    "Fast food restaurant": "Fast-Food-Restaurant",
    "Steakhouse": "Steakhouse",
    "Café": "Café",
    "Cafe": "Café",
    "Coffee shop": "Café",
    "Bakery": "Bäckerei",
    "Pastry shop": "Konditorei",
    "Ice cream shop": "Eisdiele",
    "Bar": "Bar",
    "Pub": "Kneipe",
    "Tapas bar": "Tapas-Bar",
    # Beauty & Health
    "Hair salon": "Friseur",
    "Hairdresser": "Friseur",
    "Barber shop": "Barbershop",
    "Beauty salon": "Kosmetikstudio",
    "Nail salon": "Nagelstudio",
    "Massage therapist": "Massagepraxis",
    "Physiotherapist": "Physiotherapie",
    "Dentist": "Zahnarzt",
    "Doctor": "Arzt",
    "Gym": "Fitness-Studio",
    "Fitness center": "Fitness-Studio",
    "Yoga studio": "Yoga-Studio",
    # Trades
    "Plumber": "Sanitärinstallateur",
    "Electrician": "Elektriker",
    "Roofing contractor": "Dachdecker",
    "Painter": "Maler",
    "Carpenter": "Tischler",
    "General contractor": "Bauunternehmen",
    "Construction company": "Bauunternehmen",
    "Landscaper": "Garten- und Landschaftsbau",
    "Auto repair shop": "Autowerkstatt",
    "Car repair and maintenance": "Autowerkstatt",
    # Services
    "Lawyer": "Anwaltskanzlei",
    "Law firm": "Anwaltskanzlei",
    "Accountant": "Steuerberater",
    "Tax consultant": "Steuerberater",
    "Real estate agency": "Immobilienmakler",
    "Insurance agency": "Versicherungsagentur",
    "Photographer": "Fotograf",
    "Cleaning service": "Reinigungsservice",
    "Florist": "Blumenladen",
}


def translate_category(category: str) -> str:
    """
    Translate a maps category to German.

    Exact match first, then case-insensitive, then partial containment.
    Unknown categories are returned unchanged.
    """
    if not category:
        return category

    if category in GMB_CATEGORY_MAP:
        return GMB_CATEGORY_MAP[category]

    lower = category.lower()
    for key, value in GMB_CATEGORY_MAP.items():
        if key.lower() == lower:
            return value

    for key, value in GMB_CATEGORY_MAP.items():
        key_lower = key.lower()
        if key_lower in lower or lower in key_lower:
            return value

    return category


# =============================================================================
# Address helpers
# =============================================================================

_ZIP_CITY_RE = re.compile(r"^\d{5}\s+.+")


def split_address(address: str) -> tuple[str | None, str | None]:
    """
    Split "Musterstraße 12, 46395 Bocholt, Deutschland" into street and zip+city.

    The street is only returned when it contains a house number.
    """
    if not address:
        return None, None

    parts = [p.strip() for p in address.split(",")]
    street = parts[0] if parts and re.search(r"\d", parts[0]) else None

    zip_city = None
    for candidate in parts[1:3]:
        if _ZIP_CITY_RE.match(candidate):
            zip_city = " ".join(candidate.split())
            break

    return street, zip_city


def query_from_maps_link(value: str) -> str:
    """
    Turn a shared maps link into a search query.

    "https://www.google.com/maps/place/Dachdeckerei+M%C3%BCller/@51.8,6.6,17z"
    → "Dachdeckerei Müller". Plain text is returned stripped.
    """
    match = re.search(r"/maps/place/([^/@?]+)", value)
    if match:
        return unquote_plus(match.group(1)).strip()
    return value.strip()


# =============================================================================
# Places client
# =============================================================================

class DirectoryClient:
    """Looks up a business on the Google Places API."""

    def __init__(self, api_key: str | None = None, http: httpx.AsyncClient | None = None):
        if api_key is None:
            from pageblitz.config import settings
            api_key = settings.google_places_api_key
        self._api_key = api_key
        self._http = http

    async def lookup(self, query_or_link: str) -> BusinessFacts | None:
        """Return the best match, or None when nothing was found."""
        query = query_from_maps_link(query_or_link)
        if not query:
            return None

        try:
            if self._http is not None:
                return await self._lookup(self._http, query)
            async with httpx.AsyncClient(timeout=10.0) as http:
                return await self._lookup(http, query)
        except httpx.HTTPError as e:
            logger.error(f"Directory lookup failed for '{query}': {e}")
            raise UpstreamError("Unternehmenssuche nicht erreichbar") from e

    async def _lookup(self, http: httpx.AsyncClient, query: str) -> BusinessFacts | None:
        search = await http.get(
            f"{PLACES_BASE_URL}/textsearch/json",
            params={"query": query, "language": "de", "key": self._api_key},
        )
        search.raise_for_status()
        payload = search.json()

        results = payload.get("results") or []
        if payload.get("status") != "OK" or not results:
            logger.info(f"No directory match for '{query}' ({payload.get('status')})")
            return None

        place = results[0]
        details_resp = await http.get(
            f"{PLACES_BASE_URL}/details/json",
            params={"place_id": place["place_id"], "fields": DETAIL_FIELDS, "language": "de", "key": self._api_key},
        )
        details_resp.raise_for_status()
        details = details_resp.json().get("result") or {}

        types = details.get("types") or place.get("types") or []
        return BusinessFacts(
            name=details.get("name") or place.get("name", ""),
            address=details.get("formatted_address") or place.get("formatted_address", ""),
            phone=details.get("formatted_phone_number"),
            website=details.get("website"),
            category=types[0].replace("_", " ").capitalize() if types else None,
            rating=details.get("rating") or place.get("rating"),
            review_count=details.get("user_ratings_total") or place.get("user_ratings_total"),
            opening_hours=(details.get("opening_hours") or {}).get("weekday_text", []),
        )
