"""
Action Handlers - Routing for quick actions selected from the reply menu.

Architecture:
    ActionClassifier iterates handlers by priority, finds first match.
    Handler applies any session effect, then composes the reply.

Handler Priority (lower = higher priority):
    10   - ModeChangeHandler: cycle mode and persist it
    20   - NewTopicHandler: clear the transcript
    30   - RetryHandler: recompose the last user message
    50   - CannedPromptHandler: deep_dive / practical_steps / more_questions / reality_check
    1000 - GenericActionHandler: everything else
"""

from .base import ActionHandler, ActionContext
from .classifier import ActionClassifier, create_action_classifier
from .default import GenericActionHandler
from .canned import CannedPromptHandler
from .retry import RetryHandler
from .session_actions import ModeChangeHandler, NewTopicHandler

__all__ = [
    "ActionHandler",
    "ActionContext",
    "ActionClassifier",
    "create_action_classifier",
    "GenericActionHandler",
    "CannedPromptHandler",
    "RetryHandler",
    "ModeChangeHandler",
    "NewTopicHandler",
]
