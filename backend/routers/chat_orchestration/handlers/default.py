"""
Generic Handler - Fallback for action ids without dedicated behavior.

This is the catch-all handler with lowest priority (1000). The reply is
composed from a generic "the user selected <id>" utterance.
"""

from ..response import AIResponse
from .base import ActionContext, ActionHandler


class GenericActionHandler(ActionHandler):
    """Always matches (lowest priority)."""

    priority = 1000
    name = "generic"

    def should_handle(self, ctx: ActionContext) -> bool:
        return True

    async def handle(self, ctx: ActionContext) -> AIResponse:
        return await self.compose_generic(ctx)
