"""Pageblitz - Database access."""

from pageblitz.db.client import get_client, is_configured

__all__ = ["get_client", "is_configured"]
