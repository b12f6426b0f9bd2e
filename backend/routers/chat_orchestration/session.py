"""
InsightSmith Chat Session - Conversation state

Dataclasses for a conversation session and its messages. Sessions are owned
by the SessionStore; everything handed out of the store is a snapshot.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ConversationMode(str, Enum):
    """Persona the assistant answers in."""

    GUIDE = "guide"
    SOCRATES = "socrates"
    HARD = "hard"

    def next(self) -> "ConversationMode":
        """Next mode in the fixed cycle guide -> socrates -> hard -> guide."""
        order = list(ConversationMode)
        return order[(order.index(self) + 1) % len(order)]

    @classmethod
    def parse(cls, value: Any) -> Optional["ConversationMode"]:
        """Mode for a raw value, None when it names no mode."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


DEFAULT_MODE = ConversationMode.GUIDE


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """One entry of a session transcript. Never mutated once created.

    Attributes:
        role: user or assistant
        content: Text; assistant content is the serialized AIResponse
        id: Generated message id
        timestamp: Creation time (UTC)
        mode: Mode the message was exchanged in, when known
        is_voice: Message originated from a voice recording
        transcription: Raw transcription for voice messages
    """

    role: Role
    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utcnow)
    mode: Optional[ConversationMode] = None
    is_voice: bool = False
    transcription: Optional[str] = None

    @classmethod
    def user(cls, content: str, **kwargs: Any) -> "Message":
        return cls(role=Role.USER, content=content, **kwargs)

    @classmethod
    def assistant(cls, content: str, **kwargs: Any) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": isoformat(self.timestamp),
        }
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.is_voice:
            data["isVoice"] = True
            data["transcription"] = self.transcription
        return data


@dataclass
class ChatSession:
    """Conversation state for one session id.

    Attributes:
        session_id: Unique identifier for this session
        messages: Transcript in insertion order (append-only except clear)
        current_mode: Persona used for the next reply
        created_at: Creation time (UTC)
        updated_at: Refreshed on every mutation
    """

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    messages: List[Message] = field(default_factory=list)
    current_mode: ConversationMode = DEFAULT_MODE
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def snapshot(self) -> "ChatSession":
        """Copy whose message list can be changed without touching this one."""
        return replace(self, messages=list(self.messages))

    def last_user_message(self) -> Optional[Message]:
        """Most recent user message, scanning from the end."""
        for message in reversed(self.messages):
            if message.role is Role.USER:
                return message
        return None

    def is_stale(self, cutoff: datetime) -> bool:
        return self.updated_at < cutoff

    def export(self) -> Dict[str, Any]:
        """Debug summary of the session (no message bodies except the last)."""
        last = self.messages[-1] if self.messages else None
        return {
            "sessionId": self.session_id,
            "messageCount": len(self.messages),
            "currentMode": self.current_mode.value,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "lastMessage": last.to_dict() if last else None,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize session to the API (camelCase) representation."""
        return {
            "sessionId": self.session_id,
            "messages": [message.to_dict() for message in self.messages],
            "currentMode": self.current_mode.value,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
