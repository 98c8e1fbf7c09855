"""
Onboarding persistence collaborators.

StepStore persists per-step answer patches and marks onboarding complete.
MediaStore uploads logos and photos and returns a stable public URL.
Both have Supabase implementations; tests inject fakes.
"""

import asyncio
import base64
import logging
import re
import uuid
from datetime import datetime
from typing import Any, Protocol

from .errors import UpstreamError

logger = logging.getLogger(__name__)

STEPS_TABLE = "onboarding_steps"
WEBSITES_TABLE = "generated_websites"

ALLOWED_IMAGE_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


class StepStore(Protocol):
    """Remote persistence for onboarding answers."""

    async def save_step(self, website_id: int, step_index: int, data: dict[str, Any]) -> None: ...

    async def complete(self, website_id: int) -> None: ...


class MediaStore(Protocol):
    """Remote storage for uploaded images."""

    async def upload(self, website_id: int, data: bytes, mime_type: str, kind: str = "logo") -> str: ...


class SupabaseStepStore:
    """
    StepStore backed by Supabase tables.

    Saves are upserts keyed on (website_id, step), so replaying the same
    save is harmless.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from pageblitz.db.client import get_client
            self._client = get_client()
        return self._client

    async def save_step(self, website_id: int, step_index: int, data: dict[str, Any]) -> None:
        row = {
            "website_id": website_id,
            "step": step_index,
            "data": data,
            "updated_at": datetime.utcnow().isoformat(),
        }
        await asyncio.to_thread(
            lambda: self.client.table(STEPS_TABLE)
            .upsert(row, on_conflict="website_id,step")
            .execute()
        )

    async def load_steps(self, website_id: int) -> dict[str, Any]:
        """Merge all saved step patches in step order (resume support)."""
        result = await asyncio.to_thread(
            lambda: self.client.table(STEPS_TABLE)
            .select("step,data")
            .eq("website_id", website_id)
            .order("step")
            .execute()
        )
        merged: dict[str, Any] = {}
        for row in result.data or []:
            merged.update(row.get("data") or {})
        return merged

    async def complete(self, website_id: int) -> None:
        try:
            await asyncio.to_thread(
                lambda: self.client.table(WEBSITES_TABLE)
                .update({
                    "onboarding_status": "completed",
                    "onboarding_completed_at": datetime.utcnow().isoformat(),
                })
                .eq("id", website_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to complete onboarding for website {website_id}: {e}")
            raise UpstreamError("Onboarding konnte nicht abgeschlossen werden") from e


def decode_upload(data: bytes | str) -> bytes:
    """Accept raw bytes or a (data-URL) base64 string."""
    if isinstance(data, bytes):
        return data
    return base64.b64decode(re.sub(r"^data:[^;]+;base64,", "", data))


class SupabaseMediaStore:
    """MediaStore backed by a Supabase storage bucket."""

    def __init__(self, client=None, bucket: str | None = None):
        self._client = client
        self._bucket = bucket

    @property
    def client(self):
        if self._client is None:
            from pageblitz.db.client import get_client
            self._client = get_client()
        return self._client

    @property
    def bucket(self) -> str:
        if self._bucket is None:
            from pageblitz.config import settings
            self._bucket = settings.supabase_media_bucket
        return self._bucket

    async def upload(self, website_id: int, data: bytes, mime_type: str, kind: str = "logo") -> str:
        extension = ALLOWED_IMAGE_TYPES.get(mime_type)
        if extension is None:
            raise UpstreamError(f"Dateityp nicht unterstützt: {mime_type}")
        if len(data) > MAX_UPLOAD_BYTES:
            raise UpstreamError("Datei ist zu groß (max. 5 MB)")

        path = f"onboarding/{website_id}/{kind}-{uuid.uuid4().hex[:8]}.{extension}"
        try:
            storage = self.client.storage.from_(self.bucket)
            await asyncio.to_thread(storage.upload, path, data, {"content-type": mime_type})
            return storage.get_public_url(path)
        except Exception as e:
            logger.error(f"Upload failed for website {website_id}: {e}")
            raise UpstreamError("Upload fehlgeschlagen") from e
