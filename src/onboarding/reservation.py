"""
Reservation countdown.

A generated preview is "reserved" for the owner for a limited time. The
deadline is written once, the first time a session starts, and only read
afterwards, so reloading the chat never extends it.
"""

import json
import logging
from collections.abc import MutableMapping
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

DEFAULT_RESERVATION = timedelta(hours=24)


def reservation_key(token: str | int) -> str:
    return f"pageblitz_reservation_{token}"


def reservation_deadline(
    store: MutableMapping[str, str],
    key: str,
    now: datetime | None = None,
    duration: timedelta = DEFAULT_RESERVATION,
) -> datetime:
    """Read the stored deadline, or store now + duration if there is none."""
    stored = store.get(key)
    if stored:
        try:
            return datetime.fromisoformat(stored)
        except ValueError:
            logger.warning(f"Corrupt reservation deadline for {key}: {stored!r}, resetting")

    now = now or datetime.now(timezone.utc)
    deadline = now + duration
    store[key] = deadline.isoformat()
    return deadline


def remaining(deadline: datetime, now: datetime | None = None) -> timedelta:
    now = now or datetime.now(timezone.utc)
    return max(deadline - now, timedelta(0))


def format_countdown(delta: timedelta) -> str:
    """HH:MM:SS, clamped at zero."""
    total = max(int(delta.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class JsonFileStore(MutableMapping):
    """Tiny string→string store persisted as one JSON file."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._data: dict[str, str] = {}
        if self._path.exists():
            try:
                self._data = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not read {self._path}: {e}")

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._flush()

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)
