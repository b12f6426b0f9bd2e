"""
InsightSmith Chat Orchestration - conversation components

Components:
- ChatSession / Message / ConversationMode: Conversation state (session.py)
- AIResponse: Structured reply (response.py)
- ModeDetector: Keyword mode detection (mode_detector.py)
- ActiveListeningAnalyzer: Intent / emotion / constraint classifiers (listening.py)
- ResponseComposer: Reply building, rule-based or LLM-backed (composer.py)
- ChatOrchestrator: Single-pass request handling (orchestrator.py)
- handlers/: Quick-action handlers and their classifier

Only the data types are re-exported here. Import the composer and
orchestrator from their modules; they depend on services that in turn
import the session types from this package.
"""

from .session import ChatSession, ConversationMode, Message, Role, DEFAULT_MODE
from .response import AIResponse, ActiveListening, KnowledgeSteps, NextAction

__all__ = [
    "ChatSession",
    "ConversationMode",
    "Message",
    "Role",
    "DEFAULT_MODE",
    "AIResponse",
    "ActiveListening",
    "KnowledgeSteps",
    "NextAction",
]
