"""
Lexicon Loader for InsightSmith.

Phrase tables, reply templates and canned utterances live in a JSON lexicon
(``lexicon/insightsmith.json`` by default, overridable with LEXICON_PATH) so
that mode detection and response composition stay free of text literals.

Usage:
    from lexicon_loader import load_lexicon

    lexicon = load_lexicon(config.lexicon_path)
    lexicon.mode_phrases["hard"]         # ["ハードモード", ...]
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import DEFAULT_LEXICON_PATH
from errors import ErrorCode, InsightSmithError

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = (
    "modes",
    "mode_phrases",
    "help_phrases",
    "mode_switch_phrases",
    "search_triggers",
    "listening",
    "step_a",
    "step_c_closing",
    "feedback",
    "actions",
    "action_utterances",
    "fallback",
)


@dataclass
class Lexicon:
    """Loaded lexicon. Dict order follows the JSON file and is significant."""

    modes: List[str]
    mode_phrases: Dict[str, List[str]]
    help_phrases: List[str]
    mode_switch_phrases: List[str]
    search_triggers: List[str]
    listening: Dict[str, Any]
    step_a: Dict[str, str]
    step_b_heading: str
    step_c_closing: Dict[str, str]
    feedback: Dict[str, str]
    actions: Dict[str, Any]
    action_utterances: Dict[str, str]
    fallback: Dict[str, Any]
    search: Dict[str, str] = field(default_factory=dict)
    llm: Dict[str, Any] = field(default_factory=dict)
    version: str = "0.0.0"
    source: Optional[Path] = None

    def utterance_for(self, action_id: str) -> Optional[str]:
        """Canned user utterance for a known quick action, None otherwise."""
        if action_id == "generic":
            return None
        return self.action_utterances.get(action_id)

    def generic_utterance(self, action_id: str) -> str:
        return self.action_utterances["generic"].format(action_id=action_id)


def _build(data: Dict[str, Any], source: Optional[Path]) -> Lexicon:
    missing = [key for key in _REQUIRED_KEYS if key not in data]
    if missing:
        raise InsightSmithError(
            "Lexicon is incomplete",
            details=f"Missing keys: {', '.join(missing)}",
            code=ErrorCode.INTERNAL_CONFIG_ERROR,
            source=str(source) if source else None,
        )

    modes = list(data["modes"])
    for section in ("mode_phrases", "step_a", "step_c_closing", "feedback"):
        absent = [mode for mode in modes if mode not in data[section]]
        if absent:
            raise InsightSmithError(
                "Lexicon is incomplete",
                details=f"Section '{section}' has no entry for: {', '.join(absent)}",
                code=ErrorCode.INTERNAL_CONFIG_ERROR,
            )

    return Lexicon(
        modes=modes,
        mode_phrases={mode: list(data["mode_phrases"][mode]) for mode in modes},
        help_phrases=list(data["help_phrases"]),
        mode_switch_phrases=list(data["mode_switch_phrases"]),
        search_triggers=list(data["search_triggers"]),
        listening=data["listening"],
        step_a=data["step_a"],
        step_b_heading=data.get("step_b_heading", ""),
        step_c_closing=data["step_c_closing"],
        feedback=data["feedback"],
        actions=data["actions"],
        action_utterances=data["action_utterances"],
        fallback=data["fallback"],
        search=data.get("search", {}),
        llm=data.get("llm", {}),
        version=data.get("version", "0.0.0"),
        source=source,
    )


def load_lexicon(path: Optional[str | Path] = None) -> Lexicon:
    """Read and validate a lexicon file (uncached)."""
    lexicon_path = Path(path) if path else DEFAULT_LEXICON_PATH

    if not lexicon_path.exists():
        raise InsightSmithError(
            "Lexicon file not found",
            details=str(lexicon_path),
            code=ErrorCode.INTERNAL_CONFIG_ERROR,
        )

    with open(lexicon_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    lexicon = _build(data, lexicon_path)
    phrase_count = sum(len(p) for p in lexicon.mode_phrases.values())
    logger.info(
        f"Lexicon loaded: v{lexicon.version} from {lexicon_path.name} "
        f"({len(lexicon.modes)} modes, {phrase_count} mode phrases)"
    )
    return lexicon


def lexicon_from_dict(data: Dict[str, Any]) -> Lexicon:
    """Build a lexicon from an in-memory mapping (tests, overrides)."""
    return _build(data, None)
