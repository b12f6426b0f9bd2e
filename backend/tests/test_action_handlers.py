"""
Tests for quick-action handlers and their classifier.

Flow under test: ActionContext -> ActionClassifier.classify -> handler.handle
"""

import asyncio

import pytest

from routers.chat_orchestration.handlers import (
    ActionClassifier,
    ActionContext,
    CannedPromptHandler,
    GenericActionHandler,
    create_action_classifier,
)
from routers.chat_orchestration.session import ConversationMode, Message


class RecordingComposer:
    """Delegates to a real composer and records every compose call."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    async def compose(self, message, mode, session_id, history=()):
        self.calls.append({"message": message, "mode": mode, "session_id": session_id, "history": list(history)})
        return await self.inner.compose(message, mode, session_id, history)


@pytest.fixture
def recorder(composer):
    return RecordingComposer(composer)


@pytest.fixture
def classifier():
    return create_action_classifier()


def run_action(action_id, session_id, store, recorder, lexicon, classifier):
    ctx = ActionContext(
        action_id=action_id,
        session=store.get(session_id),
        store=store,
        composer=recorder,
        lexicon=lexicon,
    )
    handler = classifier.classify(ctx)
    response = asyncio.run(handler.handle(ctx))
    return ctx, response


def _seed(store, mode=ConversationMode.GUIDE):
    session = store.create(mode)
    store.append_message(session.session_id, Message.user("最初の相談"))
    store.append_message(session.session_id, Message.assistant("{}"))
    store.append_message(session.session_id, Message.user("二つ目の相談"))
    store.append_message(session.session_id, Message.assistant("{}"))
    return session.session_id


class TestClassifier:

    def test_priority_order(self, classifier):
        names = [h.name for h in classifier.get_handlers()]
        assert names == ["mode_change", "new_topic", "retry", "canned", "generic"]

    @pytest.mark.parametrize(
        "action_id, handler_name",
        [
            ("mode_change", "mode_change"),
            ("new_topic", "new_topic"),
            ("retry", "retry"),
            ("deep_dive", "canned"),
            ("reality_check", "canned"),
            ("new_question", "generic"),
            ("something_else", "generic"),
        ],
    )
    def test_routing(self, classifier, store, composer, lexicon, action_id, handler_name):
        ctx = ActionContext(
            action_id=action_id, session=store.create(), store=store, composer=composer, lexicon=lexicon
        )
        assert classifier.classify(ctx).name == handler_name
        assert ctx.handler_name == handler_name

    def test_registration_order_does_not_matter(self, store, composer, lexicon):
        classifier = ActionClassifier()
        classifier.register(GenericActionHandler())
        classifier.register(CannedPromptHandler())
        ctx = ActionContext(action_id="deep_dive", session=store.create(), store=store, composer=composer, lexicon=lexicon)
        assert classifier.classify(ctx).name == "canned"

    def test_no_handler(self, store, composer, lexicon):
        ctx = ActionContext(action_id="x", session=store.create(), store=store, composer=composer, lexicon=lexicon)
        with pytest.raises(LookupError):
            ActionClassifier().classify(ctx)

    def test_context_defaults_to_session_mode(self, store, composer, lexicon):
        ctx = ActionContext(
            action_id="x", session=store.create(ConversationMode.HARD), store=store, composer=composer, lexicon=lexicon
        )
        assert ctx.mode == ConversationMode.HARD


class TestCannedActions:

    @pytest.mark.parametrize("action_id", ["deep_dive", "practical_steps", "more_questions", "reality_check"])
    def test_canned_utterance_with_history(self, store, recorder, lexicon, classifier, action_id):
        session_id = _seed(store, ConversationMode.SOCRATES)
        _, response = run_action(action_id, session_id, store, recorder, lexicon, classifier)

        call = recorder.calls[0]
        assert call["message"] == lexicon.action_utterances[action_id]
        assert call["mode"] == ConversationMode.SOCRATES
        assert len(call["history"]) == 4
        assert response.mode == ConversationMode.SOCRATES
        # canned utterances are not stored
        assert len(store.get(session_id).messages) == 4

    def test_generic_utterance(self, store, recorder, lexicon, classifier):
        session_id = store.create().session_id
        run_action("custom_action", session_id, store, recorder, lexicon, classifier)
        assert recorder.calls[0]["message"] == "ユーザーが「custom_action」アクションを選択しました"


class TestSessionActions:

    @pytest.mark.parametrize(
        "start, expected",
        [
            (ConversationMode.GUIDE, ConversationMode.SOCRATES),
            (ConversationMode.SOCRATES, ConversationMode.HARD),
            (ConversationMode.HARD, ConversationMode.GUIDE),
        ],
    )
    def test_mode_change_cycles_and_persists(self, store, recorder, lexicon, classifier, start, expected):
        session_id = _seed(store, start)
        ctx, response = run_action("mode_change", session_id, store, recorder, lexicon, classifier)

        assert store.get(session_id).current_mode == expected
        assert response.mode == expected
        assert recorder.calls[0]["mode"] == expected
        assert recorder.calls[0]["message"] == lexicon.action_utterances["mode_change"]
        assert ctx.effects == ["mode_changed"]
        assert len(store.get(session_id).messages) == 4

    def test_new_topic_clears_transcript(self, store, recorder, lexicon, classifier):
        session_id = _seed(store, ConversationMode.HARD)
        ctx, response = run_action("new_topic", session_id, store, recorder, lexicon, classifier)

        session = store.get(session_id)
        assert session.messages == []
        assert session.current_mode == ConversationMode.HARD
        assert recorder.calls[0]["history"] == []
        assert recorder.calls[0]["message"] == lexicon.action_utterances["new_topic"]
        assert ctx.effects == ["cleared"]
        assert response.mode == ConversationMode.HARD


class TestRetry:

    def test_recomposes_last_user_message(self, store, recorder, lexicon, classifier):
        session_id = _seed(store)
        run_action("retry", session_id, store, recorder, lexicon, classifier)

        call = recorder.calls[0]
        assert call["message"] == "二つ目の相談"
        assert [m.content for m in call["history"]] == ["最初の相談", "{}"]
        assert len(store.get(session_id).messages) == 4

    def test_without_user_messages_uses_generic(self, store, recorder, lexicon, classifier):
        session_id = store.create().session_id
        run_action("retry", session_id, store, recorder, lexicon, classifier)
        assert recorder.calls[0]["message"] == "ユーザーが「retry」アクションを選択しました"
