"""
Tests for VoiceService and the LLMClient audio/chat wrappers.

The OpenAI SDK object is replaced with a MagicMock; no network access.
"""

import asyncio
import base64
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from errors import ErrorCode, ExternalServiceError, LLMError
from routers.chat_orchestration.response import AIResponse, ActiveListening, KnowledgeSteps
from routers.chat_orchestration.session import ConversationMode
from services.llm_client import LLMClient, _extract_thinking
from services.voice import VoiceService


def _api_error(message="boom"):
    request = httpx.Request("POST", "https://api.openai.test/v1/audio")
    return openai.APIConnectionError(message=message, request=request)


def _client():
    client = LLMClient(api_key="test-key")
    client._openai = MagicMock()
    return client


def _reply(step_b=None):
    return AIResponse(
        active_listening=ActiveListening(intent="意図", emotion="感情", summary="要約"),
        knowledge_steps=KnowledgeSteps(step_a="A", step_b=step_b, step_c="C"),
        feedback_request="どうですか？",
        next_actions=[],
        mode=ConversationMode.GUIDE,
    )


class TestLLMClient:

    def test_chat_json_mode_and_options(self):
        client = _client()
        choice = MagicMock()
        choice.message.content = '<think>plan</think>{"stepA": "a"}'
        client._openai.chat.completions.create.return_value = MagicMock(choices=[choice])

        result = client.chat("gpt-4o", [{"role": "user", "content": "hi"}], options={"temperature": 0.7, "num_predict": 100}, format="json")

        kwargs = client._openai.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 100
        assert result == {"message": {"role": "assistant", "content": '{"stepA": "a"}', "thinking": "plan"}}

    def test_chat_timeout(self):
        client = _client()
        client._openai.chat.completions.create.side_effect = openai.APITimeoutError(
            request=httpx.Request("POST", "https://api.openai.test")
        )
        with pytest.raises(LLMError) as exc:
            client.chat("gpt-4o", [])
        assert exc.value.code == ErrorCode.LLM_TIMEOUT

    def test_chat_api_error(self):
        client = _client()
        client._openai.chat.completions.create.side_effect = _api_error()
        with pytest.raises(LLMError) as exc:
            client.chat("gpt-4o", [])
        assert exc.value.code == ErrorCode.LLM_UNAVAILABLE

    def test_chat_no_choices(self):
        client = _client()
        client._openai.chat.completions.create.return_value = MagicMock(choices=[])
        with pytest.raises(LLMError) as exc:
            client.chat("gpt-4o", [])
        assert exc.value.code == ErrorCode.LLM_RESPONSE_INVALID

    def test_transcribe_names_buffer(self):
        client = _client()
        client._openai.audio.transcriptions.create.return_value = MagicMock(text="こんにちは")
        assert client.transcribe(b"\x00\x01", model="whisper-1", language="ja", filename="voice.webm") == "こんにちは"
        kwargs = client._openai.audio.transcriptions.create.call_args.kwargs
        assert kwargs["file"].name == "voice.webm"
        assert kwargs["language"] == "ja"

    def test_transcribe_failure(self):
        client = _client()
        client._openai.audio.transcriptions.create.side_effect = _api_error()
        with pytest.raises(ExternalServiceError) as exc:
            client.transcribe(b"x")
        assert exc.value.code == ErrorCode.EXTERNAL_VOICE_FAILED

    def test_speech(self):
        client = _client()
        client._openai.audio.speech.create.return_value = MagicMock(content=b"mp3")
        assert client.speech("テキスト", voice="nova", speed=1.25) == b"mp3"
        kwargs = client._openai.audio.speech.create.call_args.kwargs
        assert kwargs == {"model": "tts-1", "voice": "nova", "input": "テキスト", "speed": 1.25}

    def test_extract_thinking(self):
        assert _extract_thinking("<think>a</think>answer<think>b</think>") == ("answer", "a\nb")
        assert _extract_thinking("") == ("", "")


class TestVoiceService:

    def test_unavailable_without_client(self, config):
        voice = VoiceService(config, None)
        assert voice.available is False
        result = asyncio.run(voice.transcribe(b"audio"))
        assert result.ok is False
        assert asyncio.run(voice.synthesize("text")) == b""

    def test_transcribe(self, config):
        client = MagicMock()
        client.transcribe.return_value = "  新規事業の相談です \n"
        result = asyncio.run(VoiceService(config, client).transcribe(b"audio", filename="a.wav"))

        assert result.ok is True
        assert result.text == "新規事業の相談です"
        assert result.language == "ja"
        client.transcribe.assert_called_once_with(b"audio", model="whisper-1", language="ja", filename="a.wav")

    def test_transcribe_failure_degrades(self, config):
        client = MagicMock()
        client.transcribe.side_effect = ExternalServiceError("down", service="voice")
        result = asyncio.run(VoiceService(config, client).transcribe(b"audio", language="en"))
        assert result.ok is False
        assert result.text == ""
        assert result.language == "en"

    def test_empty_audio_is_not_sent(self, config):
        client = MagicMock()
        assert asyncio.run(VoiceService(config, client).transcribe(b"")).ok is False
        client.transcribe.assert_not_called()

    def test_synthesize(self, config):
        client = MagicMock()
        client.speech.return_value = b"mp3-bytes"
        audio = asyncio.run(VoiceService(config, client).synthesize("こんにちは", voice="nova"))
        assert audio == b"mp3-bytes"
        client.speech.assert_called_once_with("こんにちは", model="tts-1", voice="nova", speed=1.0)

    def test_synthesize_blank_and_failure(self, config):
        client = MagicMock()
        voice = VoiceService(config, client)
        assert asyncio.run(voice.synthesize("   ")) == b""
        client.speech.side_effect = ExternalServiceError("down", service="voice")
        assert asyncio.run(voice.synthesize("text")) == b""

    def test_synthesize_sections(self, config):
        client = MagicMock()
        client.speech.side_effect = lambda text, **kwargs: text.encode("utf-8")
        sections = asyncio.run(VoiceService(config, client).synthesize_sections(_reply()))

        assert set(sections) == {"activeListening", "stepA", "stepB", "stepC", "feedback"}
        assert base64.b64decode(sections["activeListening"]).decode("utf-8") == "要約"
        assert base64.b64decode(sections["stepA"]) == b"A"
        assert sections["stepB"] == ""
        assert base64.b64decode(sections["feedback"]).decode("utf-8") == "どうですか？"
