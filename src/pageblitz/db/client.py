"""
Pageblitz - Supabase Client.

The onboarding backend writes with the service-role key: answers arrive
from anonymous preview visitors, so row-level security cannot key on a user.
"""

from supabase import Client, create_client

from pageblitz.config import settings

_client: Client | None = None


def is_configured() -> bool:
    return bool(settings.supabase_url and settings.supabase_service_role_key)


def get_client() -> Client:
    """Shared service-role client (created on first use)."""
    global _client

    if _client is None:
        if not is_configured():
            raise RuntimeError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not set")
        _client = create_client(settings.supabase_url, settings.supabase_service_role_key)

    return _client
