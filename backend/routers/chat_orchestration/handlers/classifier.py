"""
Action Classifier - Selects the handler for a quick-action id.

Iterates handlers by priority (lowest first), returns first match.
"""

import logging
from typing import List

from .base import ActionContext, ActionHandler

logger = logging.getLogger(__name__)


class ActionClassifier:
    """
    Routes quick-action ids to handlers.

    Usage:
        classifier = ActionClassifier()
        classifier.register(CannedPromptHandler())
        classifier.register(GenericActionHandler())

        handler = classifier.classify(ctx)
        response = await handler.handle(ctx)
    """

    def __init__(self):
        self._handlers: List[ActionHandler] = []
        self._sorted = False

    def register(self, handler: ActionHandler) -> None:
        """Register a handler."""
        self._handlers.append(handler)
        self._sorted = False
        logger.debug(f"Registered action handler: {handler.name} (priority {handler.priority})")

    def _ensure_sorted(self) -> None:
        if not self._sorted:
            self._handlers.sort(key=lambda h: h.priority)
            self._sorted = True

    def classify(self, ctx: ActionContext) -> ActionHandler:
        """
        Find the handler for ctx.action_id.

        Raises:
            LookupError: no handler matched (no generic handler registered)
        """
        self._ensure_sorted()

        for handler in self._handlers:
            if handler.should_handle(ctx):
                ctx.handler_name = handler.name
                logger.info(f"Action '{ctx.action_id}' handled by: {handler.name}")
                return handler

        raise LookupError(f"No handler registered for action '{ctx.action_id}'")

    def get_handlers(self) -> List[ActionHandler]:
        """Get all registered handlers (sorted by priority)."""
        self._ensure_sorted()
        return self._handlers.copy()


def create_action_classifier() -> ActionClassifier:
    """Classifier with every built-in quick action registered."""
    from .canned import CannedPromptHandler
    from .default import GenericActionHandler
    from .retry import RetryHandler
    from .session_actions import ModeChangeHandler, NewTopicHandler

    classifier = ActionClassifier()
    classifier.register(ModeChangeHandler())
    classifier.register(NewTopicHandler())
    classifier.register(RetryHandler())
    classifier.register(CannedPromptHandler())
    classifier.register(GenericActionHandler())

    logger.debug(f"ActionClassifier initialized with {len(classifier._handlers)} handlers")
    return classifier
