"""
InsightSmith Chat Orchestrator - single-pass request handling

Each request is handled in one pass:
1. Validate (message or selected action required)
2. Resolve the session, creating one for a missing/unknown id
3a. Quick action -> action handler (canned utterance, never stored)
3b. Free text -> effective mode, store user message, compose, store reply
4. Anything unexpected -> generic internal error (details only in the log)

No store lock is held while composing; a session swept in the meantime is
replaced by a fresh one and the result carries the new id.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from config import RuntimeConfig
from errors import (
    GENERIC_ERROR_MESSAGE,
    ErrorCode,
    ValidationError,
    log_error,
)
from lexicon_loader import Lexicon
from logging_config import log_message_in, log_mode

from .handlers import ActionClassifier, ActionContext
from .mode_detector import ModeDetector
from .response import AIResponse
from .session import DEFAULT_MODE, ChatSession, ConversationMode, Message

if TYPE_CHECKING:
    from services.session_store import SessionStore

    from .composer import ResponseComposer

logger = logging.getLogger(__name__)

MODE_ADOPTION_THRESHOLD = 0.8


@dataclass
class ChatRequest:
    message: Optional[str] = None
    session_id: Optional[str] = None
    force_mode: Optional[str] = None
    selected_action: Optional[str] = None
    is_voice: bool = False
    transcription: Optional[str] = None


@dataclass
class ChatResult:
    success: bool
    session_id: str
    data: Optional[AIResponse] = None
    error: Optional[str] = None
    status_code: int = 200

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data.to_dict()
        if self.error is not None:
            payload["error"] = self.error
        payload["sessionId"] = self.session_id
        return payload


class ChatOrchestrator:
    """Routes one chat request through mode detection, the store and the composer."""

    def __init__(
        self,
        store: "SessionStore",
        detector: ModeDetector,
        composer: "ResponseComposer",
        actions: ActionClassifier,
        lexicon: Lexicon,
        config: RuntimeConfig,
    ):
        self.store = store
        self.detector = detector
        self.composer = composer
        self.actions = actions
        self.lexicon = lexicon
        self.config = config

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle(self, request: ChatRequest) -> ChatResult:
        try:
            forced = self.validate(request)
        except ValidationError as e:
            logger.warning(f"Rejected chat request: {e.message}")
            return ChatResult(
                success=False,
                session_id=request.session_id or "",
                error=e.message,
                status_code=e.status_code,
            )

        session_id = request.session_id or ""
        action = (request.selected_action or "").strip()
        try:
            session = self.resolve_session(request.session_id)
            session_id = session.session_id
            log_message_in(
                logger,
                action or request.message or "",
                session=session_id[:8],
                action=bool(action),
                voice=request.is_voice or None,
            )

            if action:
                response = await self.handle_action(action, session)
            else:
                response, session_id = await self.handle_message(request, session, forced)

            return ChatResult(success=True, session_id=session_id, data=response)
        except Exception as e:
            log_error(logger, e, context="Chat")
            return ChatResult(
                success=False,
                session_id=session_id,
                error=GENERIC_ERROR_MESSAGE,
                status_code=500,
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def validate(self, request: ChatRequest) -> Optional[ConversationMode]:
        """Check the request; returns the forced mode, if any.

        Raises:
            ValidationError: missing input, oversize message, unknown mode
        """
        message = (request.message or "").strip()
        action = (request.selected_action or "").strip()
        if not message and not action:
            raise ValidationError("Message or selectedAction is required", parameter="message")

        if len(message) > self.config.max_message_length:
            raise ValidationError(
                "Message is too long",
                parameter="message",
                expected=f"<= {self.config.max_message_length} characters",
                received=str(len(message)),
                code=ErrorCode.VALIDATION_OUT_OF_RANGE,
            )

        if request.force_mode:
            forced = ConversationMode.parse(request.force_mode)
            if forced is None:
                raise ValidationError(
                    "Invalid forceMode",
                    parameter="forceMode",
                    expected=", ".join(m.value for m in ConversationMode),
                    received=str(request.force_mode),
                    code=ErrorCode.VALIDATION_INVALID_FORMAT,
                )
            return forced
        return None

    def resolve_session(self, session_id: Optional[str]) -> ChatSession:
        session = self.store.get(session_id)
        if session is None:
            if session_id:
                logger.info(f"Unknown session {session_id[:8]}, creating a new one")
            session = self.store.create(DEFAULT_MODE)
        return session

    def effective_mode(
        self, text: str, current: ConversationMode, forced: Optional[ConversationMode] = None
    ) -> Tuple[ConversationMode, str]:
        """Mode for a free-text message, plus the reason it was chosen.

        Priority: forced mode, help request (guide), detection above the
        threshold, otherwise the session's current mode. Detection without
        any trigger phrase reports guide at 1.0 and is adopted too.
        """
        if forced is not None:
            return forced, "forced"
        if self.detector.is_help_request(text):
            return ConversationMode.GUIDE, "help"
        detection = self.detector.detect_mode(text)
        if detection.confidence > MODE_ADOPTION_THRESHOLD:
            return detection.detected_mode, f"detected:{detection.trigger_phrase or 'default'}"
        return current, "kept"

    async def handle_action(self, action_id: str, session: ChatSession) -> AIResponse:
        ctx = ActionContext(
            action_id=action_id,
            session=session,
            store=self.store,
            composer=self.composer,
            lexicon=self.lexicon,
        )
        handler = self.actions.classify(ctx)
        return await handler.handle(ctx)

    async def handle_message(
        self, request: ChatRequest, session: ChatSession, forced: Optional[ConversationMode]
    ) -> Tuple[AIResponse, str]:
        text = request.message.strip()
        mode, reason = self.effective_mode(text, session.current_mode, forced)
        if mode != session.current_mode:
            self.store.update_mode(session.session_id, mode)
            log_mode(logger, session.current_mode.value, mode.value, reason)

        user_message = Message.user(
            text,
            mode=mode,
            is_voice=request.is_voice,
            transcription=request.transcription,
        )
        prior = session.messages
        session_id = session.session_id
        if self.store.append_message(session_id, user_message) is None:
            session_id = self._recreate(mode, user_message)
            prior = []

        response = await self.composer.compose(text, mode, session_id, prior)

        reply = Message.assistant(response.to_json(), mode=mode)
        if self.store.append_message(session_id, reply) is None:
            session_id = self._recreate(mode, user_message, reply)
        return response, session_id

    def _recreate(self, mode: ConversationMode, *messages: Message) -> str:
        """Replace a session that disappeared mid-request."""
        session = self.store.create(mode)
        logger.info(f"Session expired mid-request, continuing in {session.session_id[:8]}")
        for message in messages:
            self.store.append_message(session.session_id, message)
        return session.session_id
