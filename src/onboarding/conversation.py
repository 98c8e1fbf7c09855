"""
Onboarding Conversation Log.

Append-only transcript of the chat. Insertion order is the only ordering;
timestamps are strictly increasing so the log sorts the same way even when
the clock stalls. User answers carry the step that produced them so they can
be amended later (the session replays the amendment into state).
"""

import time
import uuid
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Callable, Iterator

from .errors import AmendmentError
from .steps import ChatStep


class Role(str, Enum):
    ASSISTANT = "assistant"
    USER = "user"


@dataclass
class ConversationMessage:
    """One chat bubble."""
    id: str
    role: Role
    text: str
    timestamp: int               # Milliseconds since epoch
    step: ChatStep | None = None
    amended: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["role"] = self.role.value
        data["step"] = self.step.value if self.step else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationMessage":
        data = dict(data)
        data["role"] = Role(data["role"])
        if data.get("step"):
            data["step"] = ChatStep(data["step"])
        return cls(**data)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ConversationLog:
    """Ordered list of messages with id lookup."""

    def __init__(self, clock: Callable[[], int] = _now_ms):
        self._clock = clock
        self._messages: list[ConversationMessage] = []
        self._by_id: dict[str, ConversationMessage] = {}
        self._last_timestamp = 0

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ConversationMessage]:
        return iter(self._messages)

    @property
    def messages(self) -> list[ConversationMessage]:
        return list(self._messages)

    def append(self, role: Role, text: str, step: ChatStep | None = None) -> ConversationMessage:
        """Add a message at the end of the log."""
        timestamp = max(self._clock(), self._last_timestamp + 1)
        self._last_timestamp = timestamp

        message = ConversationMessage(
            id=uuid.uuid4().hex,
            role=role,
            text=text,
            timestamp=timestamp,
            step=step,
        )
        self._messages.append(message)
        self._by_id[message.id] = message
        return message

    def get(self, message_id: str) -> ConversationMessage | None:
        return self._by_id.get(message_id)

    def check_amendable(self, message_id: str) -> ConversationMessage:
        """Return the message if it may be amended, else raise AmendmentError."""
        message = self._by_id.get(message_id)
        if message is None:
            raise AmendmentError(f"Unknown message: {message_id}")
        if message.role != Role.USER:
            raise AmendmentError("Only user answers can be amended")
        if message.step is None:
            raise AmendmentError("Message is not tied to a step")
        return message

    def amend(self, message_id: str, new_text: str) -> ConversationMessage:
        """
        Replace the display text of a user answer.

        Only the transcript changes here; OnboardingSession.amend() re-derives
        the field values from the new text.
        """
        message = self.check_amendable(message_id)
        message.text = new_text
        message.amended = True
        return message

    def user_answers(self, step: ChatStep) -> list[ConversationMessage]:
        """All user answers recorded for a step, oldest first."""
        return [m for m in self._messages if m.role == Role.USER and m.step == step]

    def to_list(self) -> list[dict]:
        return [m.to_dict() for m in self._messages]

    @classmethod
    def from_list(cls, data: list[dict], clock: Callable[[], int] = _now_ms) -> "ConversationLog":
        log = cls(clock=clock)
        for item in data:
            message = ConversationMessage.from_dict(item)
            log._messages.append(message)
            log._by_id[message.id] = message
            log._last_timestamp = max(log._last_timestamp, message.timestamp)
        return log
