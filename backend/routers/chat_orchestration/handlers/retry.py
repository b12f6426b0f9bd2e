"""
Retry Handler - recompose the reply to the most recent user message.

With no user message in the transcript the generic action reply is used.
"""

import logging

from ..response import AIResponse
from .base import ActionContext, ActionHandler

logger = logging.getLogger(__name__)


class RetryHandler(ActionHandler):
    priority = 30
    name = "retry"
    action_ids = ("retry",)

    async def handle(self, ctx: ActionContext) -> AIResponse:
        last = ctx.session.last_user_message()
        if last is None:
            logger.info(f"Retry on session {ctx.session_id[:8]} without user messages; using generic reply")
            return await self.compose_generic(ctx)

        messages = ctx.session.messages
        prior = messages[: messages.index(last)]
        return await ctx.composer.compose(last.content, ctx.mode, ctx.session_id, prior)
