"""
Active listening - keyword classifiers for intent, emotion and constraints.

Each rule is a keyword list plus a label. Intent and emotion report the
first matching rule (or the neutral default); constraints report every
matching rule in table order.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from lexicon_loader import Lexicon

from .response import ActiveListening


@dataclass(frozen=True)
class KeywordRule:
    keywords: Tuple[str, ...]
    label: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeywordRule":
        return cls(tuple(k.lower() for k in data["keywords"]), data["label"])

    def matches(self, lowered: str) -> bool:
        return any(keyword in lowered for keyword in self.keywords)


class FirstMatchClassifier:
    def __init__(self, rules: List[KeywordRule], default: str):
        self.rules = rules
        self.default = default

    def classify(self, text: str) -> str:
        lowered = text.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule.label
        return self.default


class ActiveListeningAnalyzer:
    """Builds the ActiveListening block of a reply from the user's text."""

    def __init__(self, lexicon: Lexicon):
        listening = lexicon.listening
        self.intent = FirstMatchClassifier(
            [KeywordRule.from_dict(r) for r in listening["intent"]["rules"]],
            listening["intent"]["default"],
        )
        self.emotion = FirstMatchClassifier(
            [KeywordRule.from_dict(r) for r in listening["emotion"]["rules"]],
            listening["emotion"]["default"],
        )
        self.constraint_rules = [KeywordRule.from_dict(r) for r in listening["constraints"]]

    def constraints(self, text: str) -> List[str]:
        lowered = text.lower()
        return [rule.label for rule in self.constraint_rules if rule.matches(lowered)]

    def analyze(self, text: str) -> ActiveListening:
        return ActiveListening(
            intent=self.intent.classify(text),
            emotion=self.emotion.classify(text),
            constraints=self.constraints(text),
        )
