"""
Voice Service - speech-to-text and text-to-speech boundary.

Wraps the LLMClient audio endpoints (Whisper transcription, TTS speech).
Provider failures degrade to empty values instead of raising: an empty
Transcription (ok=False) or b"" audio.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

from config import RuntimeConfig
from errors import ExternalServiceError
from logging_config import log_tool

if TYPE_CHECKING:
    from routers.chat_orchestration.response import AIResponse
    from services.llm_client import LLMClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transcription:
    text: str
    language: str
    ok: bool = True


class VoiceService:
    """Speech boundary. Blocking SDK calls run in a worker thread."""

    def __init__(self, config: RuntimeConfig, client: Optional["LLMClient"]):
        self.config = config
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        language: Optional[str] = None,
    ) -> Transcription:
        language = language or self.config.voice_language
        if not audio or self.client is None:
            return Transcription(text="", language=language, ok=False)

        log_tool(logger, "transcribe", "start", bytes=len(audio))
        try:
            text = await asyncio.to_thread(
                self.client.transcribe,
                audio,
                model=self.config.stt_model,
                language=language,
                filename=filename,
            )
        except ExternalServiceError as e:
            logger.warning(f"Transcription failed: {e}")
            return Transcription(text="", language=language, ok=False)

        log_tool(logger, "transcribe", "end", chars=len(text))
        return Transcription(text=text.strip(), language=language)

    async def synthesize(self, text: str, language: Optional[str] = None, voice: Optional[str] = None) -> bytes:
        """Audio bytes for text, b"" on empty input or provider failure.

        OpenAI TTS infers the language from the text; ``language`` is only logged.
        """
        if not text or not text.strip() or self.client is None:
            return b""

        log_tool(logger, "speak", "start", chars=len(text), language=language or self.config.voice_language)
        try:
            audio = await asyncio.to_thread(
                self.client.speech,
                text,
                model=self.config.tts_model,
                voice=voice or self.config.tts_voice,
                speed=self.config.tts_speed,
            )
        except ExternalServiceError as e:
            logger.warning(f"Speech synthesis failed: {e}")
            return b""

        log_tool(logger, "speak", "end", bytes=len(audio))
        return audio

    async def synthesize_sections(self, response: "AIResponse") -> Dict[str, str]:
        """Base64 audio for each readable section of a composed reply."""
        steps = response.knowledge_steps
        listening = response.active_listening
        sections = {
            "activeListening": listening.summary or listening.intent,
            "stepA": steps.step_a,
            "stepB": steps.step_b or "",
            "stepC": steps.step_c,
            "feedback": response.feedback_request,
        }
        audio = await asyncio.gather(*(self.synthesize(text) for text in sections.values()))
        return {
            key: base64.b64encode(data).decode("ascii") if data else ""
            for key, data in zip(sections.keys(), audio)
        }
