"""
Onboarding Autosave Bridge.

Best-effort sink for per-step answer patches. `save()` schedules the write on
the running event loop and returns at once; the chat never waits for it.
Failures are logged and dropped. The in-memory OnboardingState stays the
source of truth for the session.

Contract: at most once, no retries, no ordering between steps. Each save
carries its step index and only that step's fields, so late writes are safe.
"""

import asyncio
import logging
from typing import Any

from .persistence import StepStore

logger = logging.getLogger(__name__)


class AutosaveBridge:
    """Fire-and-forget writer in front of a StepStore."""

    def __init__(self, store: StepStore | None, website_id: int | None):
        self._store = store
        self._website_id = website_id
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def enabled(self) -> bool:
        return self._store is not None and self._website_id is not None and not self._closed

    def save(self, step_index: int, data: dict[str, Any]) -> None:
        """Schedule a save. Never raises, never blocks, returns nothing."""
        if not self.enabled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"Autosave for step {step_index} dropped: no running event loop")
            return

        task = loop.create_task(self._save(step_index, dict(data)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _save(self, step_index: int, data: dict[str, Any]) -> None:
        try:
            await self._store.save_step(self._website_id, step_index, data)
        except asyncio.CancelledError:
            logger.debug(f"Autosave for step {step_index} cancelled")
        except Exception as e:
            if self._closed:
                return
            logger.warning(f"[Onboarding] saveStep {step_index} failed (non-blocking): {e}")

    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight saves (shutdown / tests). Errors are already handled."""
        if not self._tasks:
            return
        await asyncio.wait(list(self._tasks), timeout=timeout)

    def close(self) -> None:
        """Stop accepting saves; in-flight ones finish silently."""
        self._closed = True
