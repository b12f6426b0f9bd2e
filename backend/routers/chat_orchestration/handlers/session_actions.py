"""
Session-mutating actions.

- mode_change: advance guide -> socrates -> hard -> guide and persist it
- new_topic: drop the transcript, keeping session id and mode
"""

import logging

from logging_config import log_mode

from ..response import AIResponse
from .base import ActionContext, ActionHandler

logger = logging.getLogger(__name__)


class ModeChangeHandler(ActionHandler):
    priority = 10
    name = "mode_change"
    action_ids = ("mode_change",)

    async def handle(self, ctx: ActionContext) -> AIResponse:
        old_mode = ctx.session.current_mode
        ctx.mode = old_mode.next()
        if ctx.store.update_mode(ctx.session_id, ctx.mode) is None:
            logger.warning(f"Session {ctx.session_id[:8]} vanished before mode change was stored")
        else:
            ctx.effects.append("mode_changed")
        log_mode(logger, old_mode.value, ctx.mode.value, "action")

        utterance = ctx.lexicon.utterance_for(ctx.action_id)
        return await ctx.composer.compose(utterance, ctx.mode, ctx.session_id, ctx.history)


class NewTopicHandler(ActionHandler):
    priority = 20
    name = "new_topic"
    action_ids = ("new_topic",)

    async def handle(self, ctx: ActionContext) -> AIResponse:
        if ctx.store.clear_messages(ctx.session_id):
            ctx.effects.append("cleared")

        utterance = ctx.lexicon.utterance_for(ctx.action_id)
        return await ctx.composer.compose(utterance, ctx.mode, ctx.session_id, [])
