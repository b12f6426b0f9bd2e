"""
InsightSmith Voice Router

Speech endpoints on top of VoiceService:
- POST /api/voice/transcribe  base64 audio -> text
- POST /api/voice/speak       text -> audio/mpeg
- POST /api/voice/chat        base64 audio -> transcription + chat reply (+ spoken sections)
"""

import base64
import binascii
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from dependencies import AppServices, get_services
from errors import ErrorCode, ExternalServiceError, ValidationError, success_response
from routers.chat_orchestration.orchestrator import ChatRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class TranscribeBody(BaseModel):
    audioData: str
    language: Optional[str] = None
    filename: Optional[str] = None


class SpeakBody(BaseModel):
    text: str
    language: Optional[str] = None
    voice: Optional[str] = None


class VoiceChatBody(BaseModel):
    audioData: str
    sessionId: Optional[str] = None
    forceMode: Optional[str] = None
    language: Optional[str] = None
    filename: Optional[str] = None
    synthesize: bool = True


def decode_audio(audio_data: str, max_bytes: int) -> bytes:
    """Decode base64 audio (plain or data: URL).

    Raises:
        ValidationError: empty, undecodable or oversize audio
    """
    if "," in audio_data and audio_data.startswith("data:"):
        audio_data = audio_data.split(",", 1)[1]
    try:
        audio = base64.b64decode(audio_data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(
            "audioData must be base64",
            parameter="audioData",
            code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )
    if not audio:
        raise ValidationError("audioData is empty", parameter="audioData")
    if len(audio) > max_bytes:
        raise ValidationError(
            "Audio is too large",
            parameter="audioData",
            expected=f"<= {max_bytes} bytes",
            received=str(len(audio)),
            code=ErrorCode.VALIDATION_OUT_OF_RANGE,
        )
    return audio


def _require_voice(services: AppServices) -> None:
    if not services.voice.available:
        raise ExternalServiceError("Voice service is not configured", service="voice")


@router.post("/voice/transcribe")
async def transcribe(body: TranscribeBody, services: AppServices = Depends(get_services)):
    audio = decode_audio(body.audioData, services.config.max_audio_bytes)
    _require_voice(services)

    result = await services.voice.transcribe(
        audio, filename=body.filename or "audio.webm", language=body.language
    )
    if not result.ok:
        raise ExternalServiceError("Transcription failed", service="voice")
    return success_response(transcription=result.text, language=result.language)


@router.post("/voice/speak")
async def speak(body: SpeakBody, services: AppServices = Depends(get_services)):
    """Synthesize text; responds with raw MP3 bytes."""
    if not body.text.strip():
        raise ValidationError("text is required", parameter="text")
    _require_voice(services)

    audio = await services.voice.synthesize(body.text, language=body.language, voice=body.voice)
    if not audio:
        raise ExternalServiceError("Speech synthesis failed", service="voice")
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/voice/chat")
async def voice_chat(body: VoiceChatBody, services: AppServices = Depends(get_services)):
    """Transcribe, run the chat turn on the text, optionally speak the reply.

    The reply payload matches /api/chat plus ``transcription`` and, when
    synthesis is requested, ``audioResponses`` (base64 per section).
    """
    audio = decode_audio(body.audioData, services.config.max_audio_bytes)
    _require_voice(services)

    heard = await services.voice.transcribe(
        audio, filename=body.filename or "audio.webm", language=body.language
    )
    if not heard.ok:
        raise ExternalServiceError("Transcription failed", service="voice")
    if not heard.text:
        raise ValidationError("No speech detected", parameter="audioData")

    result = await services.orchestrator.handle(
        ChatRequest(
            message=heard.text,
            session_id=body.sessionId,
            force_mode=body.forceMode,
            is_voice=True,
            transcription=heard.text,
        )
    )
    payload = result.to_dict()
    payload["transcription"] = heard.text
    if result.success and result.data is not None and body.synthesize:
        payload["audioResponses"] = await services.voice.synthesize_sections(result.data)
    return JSONResponse(status_code=result.status_code, content=payload)
