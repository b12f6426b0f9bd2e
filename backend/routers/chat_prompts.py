"""
InsightSmith Chat Prompts - LLM prompt assembly for persona replies

Contains:
- temperature_for(): Sampling temperature per mode
- render_history(): Condensed transcript lines for the prompt
- build_consultant_prompt(): Persona + format + history + message user prompt
- build_llm_messages(): System + user message list for the chat completion
- cleanup_response_text(): Strip think tags and fences from model text
"""

import json
import re
from typing import Dict, List, Optional, Sequence

from lexicon_loader import Lexicon
from routers.chat_orchestration.session import ConversationMode, Message, Role

HARD_MODE_TEMPERATURE = 0.7
DEFAULT_TEMPERATURE = 0.8
HISTORY_ENTRY_CHARS = 400


def temperature_for(mode: ConversationMode) -> float:
    return HARD_MODE_TEMPERATURE if mode is ConversationMode.HARD else DEFAULT_TEMPERATURE


def cleanup_response_text(text: str) -> str:
    """Remove <think> blocks, orphaned think tags and code fences."""
    if not text:
        return text
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL)
    text = re.sub(r"</?think>", "", text)
    text = re.sub(r"^```\w*\s*|\s*```$", "", text.strip())
    return text.strip()


def _assistant_text(content: str) -> str:
    """Readable text for a stored assistant reply (serialized AIResponse)."""
    try:
        data = json.loads(content)
    except (TypeError, ValueError):
        return content
    if not isinstance(data, dict):
        return content
    steps = data.get("knowledgeSteps") or {}
    return steps.get("stepC") or steps.get("stepA") or content


def render_history(history: Sequence[Message], window: int) -> str:
    """Last ``window`` messages as "role: text" lines."""
    if window <= 0:
        return ""
    lines = []
    for message in list(history)[-window:]:
        text = message.content if message.role is Role.USER else _assistant_text(message.content)
        text = text.replace("\n", " ").strip()
        if len(text) > HISTORY_ENTRY_CHARS:
            text = text[:HISTORY_ENTRY_CHARS] + "..."
        lines.append(f"{message.role.value}: {text}")
    return "\n".join(lines)


def build_consultant_prompt(
    lexicon: Lexicon,
    mode: ConversationMode,
    message: str,
    history: Sequence[Message],
    window: int = 5,
    search_summary: Optional[str] = None,
) -> str:
    llm = lexicon.llm
    parts = [
        llm["personas"][mode.value],
        llm["response_format"],
        f"{llm['history_heading']}\n{render_history(history, window)}",
    ]
    if search_summary:
        parts.append(f"{llm['search_heading']}\n{search_summary}")
    parts.extend(
        [
            f"{llm['message_heading']}\n{message}",
            f"{llm['mode_heading']}{mode.value}",
            llm["closing_instruction"],
        ]
    )
    return "\n\n".join(parts)


def build_llm_messages(
    lexicon: Lexicon,
    mode: ConversationMode,
    message: str,
    history: Sequence[Message],
    window: int = 5,
    search_summary: Optional[str] = None,
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": lexicon.llm["system"]},
        {
            "role": "user",
            "content": build_consultant_prompt(lexicon, mode, message, history, window, search_summary),
        },
    ]
