"""
Mode detection from free text.

Scores every trigger phrase found in the message and reports the best one.
The phrase tables come from the lexicon; table order breaks ties.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from lexicon_loader import Lexicon

from .session import DEFAULT_MODE, ConversationMode

BASE_CONFIDENCE = 0.8
LEADING_BONUS = 0.2
EARLY_BONUS = 0.1
EARLY_POSITION = 10
LONG_PHRASE_BONUS = 0.1
LONG_PHRASE_LENGTH = 5


@dataclass(frozen=True)
class ModeDetectionResult:
    detected_mode: ConversationMode
    confidence: float
    trigger_phrase: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "detectedMode": self.detected_mode.value,
            "confidence": self.confidence,
            "triggerPhrase": self.trigger_phrase,
        }


def phrase_confidence(phrase: str, lowered_text: str) -> float:
    """Confidence for a phrase known to occur in lowered_text."""
    confidence = BASE_CONFIDENCE
    index = lowered_text.find(phrase.lower())
    if index == 0:
        confidence += LEADING_BONUS
    elif index <= EARLY_POSITION:
        confidence += EARLY_BONUS
    if len(phrase) > LONG_PHRASE_LENGTH:
        confidence += LONG_PHRASE_BONUS
    return min(confidence, 1.0)


class ModeDetector:
    """Pure keyword-based mode detector.

    A message with no trigger phrase reports the default mode with
    confidence 1.0. Callers must not read high confidence as a strong match;
    check ``trigger_phrase`` for that.
    """

    def __init__(self, lexicon: Lexicon):
        self._phrases: Dict[ConversationMode, List[str]] = {
            ConversationMode(mode): phrases for mode, phrases in lexicon.mode_phrases.items()
        }
        self._help_phrases = [p.lower() for p in lexicon.help_phrases]
        self._switch_phrases = [p.lower() for p in lexicon.mode_switch_phrases]

    def detect_mode(self, text: str) -> ModeDetectionResult:
        lowered = text.lower()
        best_confidence = 0.0
        best_mode = DEFAULT_MODE
        best_phrase: Optional[str] = None

        for mode, phrases in self._phrases.items():
            for phrase in phrases:
                if phrase.lower() not in lowered:
                    continue
                confidence = phrase_confidence(phrase, lowered)
                # strictly greater: first phrase wins on ties
                if confidence > best_confidence:
                    best_confidence = confidence
                    best_mode = mode
                    best_phrase = phrase

        if best_phrase is None:
            return ModeDetectionResult(DEFAULT_MODE, 1.0, None)
        return ModeDetectionResult(best_mode, best_confidence, best_phrase)

    def is_help_request(self, text: str) -> bool:
        lowered = text.lower()
        return any(phrase in lowered for phrase in self._help_phrases)

    def is_mode_switch_request(self, text: str) -> bool:
        lowered = text.lower()
        return any(phrase in lowered for phrase in self._switch_phrases)
