"""
Canned Prompt Handler - actions that only ask for a differently angled reply.

deep_dive, practical_steps, more_questions and reality_check map to a fixed
utterance composed under the session's current mode. No session state changes.
"""

from ..response import AIResponse
from .base import ActionContext, ActionHandler


class CannedPromptHandler(ActionHandler):
    priority = 50
    name = "canned"
    action_ids = ("deep_dive", "practical_steps", "more_questions", "reality_check")

    async def handle(self, ctx: ActionContext) -> AIResponse:
        utterance = ctx.lexicon.utterance_for(ctx.action_id)
        if utterance is None:
            return await self.compose_generic(ctx)
        return await ctx.composer.compose(utterance, ctx.mode, ctx.session_id, ctx.history)
