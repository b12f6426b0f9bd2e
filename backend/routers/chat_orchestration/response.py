"""
Structured assistant reply.

An AIResponse is produced by the ResponseComposer, returned to the caller and
stored (as JSON) in the session transcript.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .session import ConversationMode, isoformat, utcnow


@dataclass(frozen=True)
class NextAction:
    """Quick-reply option offered to the user."""

    id: str
    label: str
    description: str

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "NextAction":
        return cls(id=data["id"], label=data["label"], description=data["description"])

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "label": self.label, "description": self.description}


@dataclass
class ActiveListening:
    intent: str
    emotion: str
    constraints: List[str] = field(default_factory=list)
    summary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "intent": self.intent,
            "emotion": self.emotion,
            "constraints": list(self.constraints),
        }
        if self.summary:
            data["summary"] = self.summary
        return data


@dataclass
class KnowledgeSteps:
    """Baseline reasoning (A), optional search correction (B), synthesis (C)."""

    step_a: str
    step_c: str
    step_b: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"stepA": self.step_a}
        if self.step_b is not None:
            data["stepB"] = self.step_b
        data["stepC"] = self.step_c
        return data


@dataclass
class AIResponse:
    active_listening: ActiveListening
    knowledge_steps: KnowledgeSteps
    feedback_request: str
    next_actions: List[NextAction]
    mode: ConversationMode
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utcnow)
    suggestions: List[str] = field(default_factory=list)
    searched: bool = False

    @property
    def action_ids(self) -> List[str]:
        return [action.id for action in self.next_actions]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "activeListening": self.active_listening.to_dict(),
            "knowledgeSteps": self.knowledge_steps.to_dict(),
            "feedbackRequest": self.feedback_request,
            "nextActions": [action.to_dict() for action in self.next_actions],
            "mode": self.mode.value,
            "timestamp": isoformat(self.timestamp),
        }
        if self.suggestions:
            data["suggestions"] = list(self.suggestions)
        return data

    def to_json(self) -> str:
        """Serialized form stored as assistant message content."""
        return json.dumps(self.to_dict(), ensure_ascii=False)
