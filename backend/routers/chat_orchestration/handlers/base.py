"""
Base Handler - Abstract base class for quick-action handlers.

A quick action is a menu choice (e.g. "deep_dive") sent instead of free text.
Each handler knows how to:
1. Detect if it owns an action id (should_handle)
2. Apply the action's session effect, if any (mode change, clear)
3. Compose a reply from the action's canned utterance

Canned utterances are never appended to the transcript.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from lexicon_loader import Lexicon

from ..response import AIResponse
from ..session import ChatSession, ConversationMode, Message

if TYPE_CHECKING:
    from services.session_store import SessionStore

    from ..composer import ResponseComposer

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """
    Context passed to the action handler.

    Attributes:
        action_id: Quick-action id from the request
        session: Snapshot of the resolved session
        store: Session store (for actions with session effects)
        composer: Reply composer
        lexicon: Canned utterances
        mode: Mode the reply is composed in (handlers may change it)
    """

    action_id: str
    session: ChatSession
    store: "SessionStore"
    composer: "ResponseComposer"
    lexicon: Lexicon
    mode: Optional[ConversationMode] = None
    handler_name: str = ""
    effects: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.mode is None:
            self.mode = self.session.current_mode

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def history(self) -> Sequence[Message]:
        return self.session.messages


class ActionHandler(ABC):
    """
    Abstract base class for quick-action handlers.

    Handlers are checked in priority order (lowest first).
    First handler where should_handle() returns True wins.
    """

    # Lower = higher priority. Generic handler has priority 1000.
    priority: int = 100
    name: str = "base"
    action_ids: tuple = ()

    def should_handle(self, ctx: ActionContext) -> bool:
        return ctx.action_id in self.action_ids

    @abstractmethod
    async def handle(self, ctx: ActionContext) -> AIResponse:
        """Apply the action and return the composed reply."""

    async def compose_generic(self, ctx: ActionContext) -> AIResponse:
        """Reply for an action with no dedicated behavior."""
        utterance = ctx.lexicon.generic_utterance(ctx.action_id)
        return await ctx.composer.compose(utterance, ctx.mode, ctx.session_id, ctx.history)
