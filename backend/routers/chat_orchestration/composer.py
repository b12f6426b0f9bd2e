"""
Response Composer - builds the structured AIResponse for a user utterance.

Pipeline:
    1. Active listening: intent / emotion / constraints from keywords
    2. Step A: mode template with the message interpolated
    3. Step B: only for recency questions, search + summarize
    4. Step C: step A + optional search correction + mode closing
    5. Feedback request and next-action menu per mode

When an LLM client is configured, steps A-C, the listening summary and
free-text suggestions come from a JSON-mode completion instead, with the
rule-based values as per-field defaults. The listening labels and the
action menu always come from the rules so quick-action ids stay stable.

compose() never raises: any failure yields the fallback response.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from config import RuntimeConfig
from errors import LLMError, handle_async_errors
from lexicon_loader import Lexicon
from logging_config import log_message_out
from routers.chat_prompts import build_llm_messages, cleanup_response_text, temperature_for
from services.json_repair import parse_json_object

from .listening import ActiveListeningAnalyzer
from .response import ActiveListening, AIResponse, KnowledgeSteps, NextAction
from .session import DEFAULT_MODE, ConversationMode, Message

if TYPE_CHECKING:
    from services.llm_client import LLMClient
    from services.web_search import WebSearchService

logger = logging.getLogger(__name__)


def _fallback_for_call(composer: "ResponseComposer", message: str = "", mode: Any = DEFAULT_MODE, *args, **kwargs):
    return composer.fallback(ConversationMode.parse(mode) or DEFAULT_MODE)


def _text(value: Any) -> Optional[str]:
    """Non-empty string form of an LLM field, None when absent."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        joined = "\n".join(str(v).strip() for v in value if str(v).strip())
        return joined or None
    if isinstance(value, dict):
        joined = "\n".join(f"{k}: {v}" for k, v in value.items())
        return joined or None
    return str(value)


class ResponseComposer:
    """Builds AIResponse values; rule-based with optional LLM backing."""

    def __init__(
        self,
        lexicon: Lexicon,
        config: RuntimeConfig,
        search: Optional["WebSearchService"] = None,
        llm: Optional["LLMClient"] = None,
    ):
        self.lexicon = lexicon
        self.config = config
        self.search = search
        self.llm = llm
        self.listening = ActiveListeningAnalyzer(lexicon)
        self._base_actions = [NextAction.from_dict(a) for a in lexicon.actions["base"]]
        self._mode_actions = {
            ConversationMode(mode): NextAction.from_dict(a) for mode, a in lexicon.actions["mode"].items()
        }

    @property
    def llm_active(self) -> bool:
        return self.llm is not None and self.config.llm_enabled

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def step_a(self, message: str, mode: ConversationMode) -> str:
        return self.lexicon.step_a[mode.value].replace("{message}", message)

    def step_c(self, step_a: str, mode: ConversationMode, step_b: Optional[str] = None) -> str:
        text = step_a
        if step_b:
            text += f"\n\n{self.lexicon.step_b_heading}\n{step_b}"
        return text + "\n\n" + self.lexicon.step_c_closing[mode.value]

    def next_actions(self, mode: ConversationMode) -> List[NextAction]:
        """Mode-specific action first, then the common menu."""
        actions = list(self._base_actions)
        if mode in self._mode_actions:
            actions.insert(0, self._mode_actions[mode])
        return actions

    def feedback_request(self, mode: ConversationMode) -> str:
        return self.lexicon.feedback[mode.value]

    async def _search_summary(self, message: str) -> Optional[str]:
        if self.search is None or not self.search.should_search(message):
            return None
        response = await asyncio.to_thread(self.search.search, message)
        return self.search.summarize(response)

    def fallback(self, mode: ConversationMode = DEFAULT_MODE) -> AIResponse:
        """Apologetic reply offering retry / ask-differently actions."""
        fb = self.lexicon.fallback
        return AIResponse(
            active_listening=ActiveListening(
                intent=fb["intent"],
                emotion=fb["emotion"],
                constraints=list(fb["constraints"]),
            ),
            knowledge_steps=KnowledgeSteps(step_a=fb["step_a"], step_c=fb["step_c"]),
            feedback_request=fb["feedback"],
            next_actions=[NextAction.from_dict(a) for a in fb["actions"]],
            mode=mode,
        )

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    @handle_async_errors("composer", fallback=_fallback_for_call)
    async def compose(
        self,
        message: str,
        mode: ConversationMode,
        session_id: str,
        history: Sequence[Message] = (),
    ) -> AIResponse:
        """Compose the reply to ``message`` under ``mode``.

        Args:
            message: User text (or canned quick-action utterance)
            mode: Persona to answer in
            session_id: Owning session, for logging
            history: Prior transcript, excluding ``message`` itself
        """
        mode = ConversationMode(mode)
        logger.debug(f"Composing {mode.value} reply for session {session_id[:8]} ({len(history)} prior)")

        listening = self.listening.analyze(message)
        step_b = await self._search_summary(message)

        if self.llm_active:
            listening, steps, suggestions = await self._compose_with_llm(message, mode, history, listening, step_b)
        else:
            step_a = self.step_a(message, mode)
            steps = KnowledgeSteps(step_a=step_a, step_b=step_b, step_c=self.step_c(step_a, mode, step_b))
            suggestions = []

        response = AIResponse(
            active_listening=listening,
            knowledge_steps=steps,
            feedback_request=self.feedback_request(mode),
            next_actions=self.next_actions(mode),
            mode=mode,
            suggestions=suggestions,
            searched=step_b is not None,
        )
        log_message_out(logger, mode.value, actions=len(response.next_actions), searched=response.searched)
        return response

    async def _compose_with_llm(
        self,
        message: str,
        mode: ConversationMode,
        history: Sequence[Message],
        listening: ActiveListening,
        step_b: Optional[str],
    ) -> tuple:
        messages = build_llm_messages(
            self.lexicon,
            mode,
            message,
            history,
            window=self.config.llm_history_window,
            search_summary=step_b,
        )
        options = {"temperature": temperature_for(mode), "max_tokens": self.config.max_output_tokens}

        started = time.monotonic()
        result = await asyncio.to_thread(
            self.llm.chat, self.config.model_chat, messages, options=options, format="json"
        )
        content = cleanup_response_text(result["message"]["content"])
        data: Optional[Dict[str, Any]] = parse_json_object(content)
        if data is None:
            raise LLMError(
                "LLM reply was not a JSON object",
                details=content[:200],
                model=self.config.model_chat,
                error_type="parse",
            )
        logger.debug(f"LLM reply parsed in {time.monotonic() - started:.1f}s ({len(data)} fields)")

        rule_step_a = self.step_a(message, mode)
        step_a = _text(data.get("stepA")) or rule_step_a
        steps = KnowledgeSteps(
            step_a=step_a,
            step_b=step_b if step_b is not None else _text(data.get("stepB")),
            step_c=_text(data.get("stepC")) or self.step_c(step_a, mode, step_b),
        )
        listening.summary = _text(data.get("activeListening"))

        raw_actions = data.get("nextActions")
        suggestions = [str(a).strip() for a in raw_actions if str(a).strip()] if isinstance(raw_actions, list) else []
        return listening, steps, suggestions
