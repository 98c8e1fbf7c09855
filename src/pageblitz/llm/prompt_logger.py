"""
Pageblitz - Prompt Logger.

Keeps a markdown transcript of every copy-generation call (tagline, services,
website drafts) so wording problems can be traced back to the exact prompt.
One directory per run, one file per call.

Enabled with PAGEBLITZ_LOG_PROMPTS=true or `pageblitz chat --log-prompts`.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

LOG_ROOT = Path("prompt_logs")


@dataclass
class PromptRecord:
    """One LLM call as it will be written to disk."""
    purpose: str
    model: str
    system_prompt: str
    user_prompt: str
    response_model: str
    response: Any = None
    error: str | None = None
    duration_ms: int | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_markdown(self) -> str:
        header = [
            f"# {self.purpose}",
            "",
            "| | |",
            "|---|---|",
            f"| Zeit | {self.created_at.isoformat(timespec='seconds')} |",
            f"| Modell | {self.model} |",
            f"| Schema | {self.response_model} |",
        ]
        if self.duration_ms is not None:
            header.append(f"| Dauer | {self.duration_ms} ms |")

        parts = [
            "\n".join(header),
            "## System\n\n```\n" + self.system_prompt.strip() + "\n```",
            "## Anfrage\n\n```\n" + self.user_prompt.strip() + "\n```",
            "## Antwort\n\n" + self._result_block(),
        ]
        return "\n\n".join(parts) + "\n"

    def _result_block(self) -> str:
        if self.error:
            return f"**Fehler:** {self.error}"
        if self.response is None:
            return "_keine Antwort_"
        payload = self.response.model_dump() if hasattr(self.response, "model_dump") else self.response
        return "```json\n" + json.dumps(payload, indent=2, default=str, ensure_ascii=False) + "\n```"


class PromptLogger:
    """Writes PromptRecords into a per-run directory."""

    def __init__(self, root: Path = LOG_ROOT, enabled: bool | None = None):
        self.root = root
        self._enabled = enabled
        self._run_dir: Path | None = None
        self._count = 0

    @property
    def enabled(self) -> bool:
        if self._enabled is None:
            from pageblitz.config import settings
            self._enabled = settings.pageblitz_log_prompts
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @property
    def run_dir(self) -> Path:
        if self._run_dir is None:
            self._run_dir = self.root / datetime.now().strftime("%Y%m%d_%H%M%S")
            self._run_dir.mkdir(parents=True, exist_ok=True)
        return self._run_dir

    def write(self, record: PromptRecord) -> Path | None:
        if not self.enabled:
            return None
        self._count += 1
        path = self.run_dir / f"{self._count:02d}_{record.purpose}.md"
        path.write_text(record.to_markdown(), encoding="utf-8")
        return path

    def reset(self) -> None:
        self._run_dir = None
        self._count = 0


_logger = PromptLogger()


def enable_prompt_logging(enabled: bool = True) -> None:
    _logger.enabled = enabled


def get_session_log_dir() -> Path | None:
    """Directory of the current run, or None when logging is off or nothing was logged."""
    if not _logger.enabled or _logger._count == 0:
        return None
    return _logger.run_dir


def log_prompt(**kwargs: Any) -> Path | None:
    """Record one call. Keyword arguments are PromptRecord fields."""
    return _logger.write(PromptRecord(**kwargs))
