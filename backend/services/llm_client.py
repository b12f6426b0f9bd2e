"""
LLM Client - wraps the OpenAI SDK for chat completions, transcription and speech.

Response format for chat:
    {"message": {"role": "assistant", "content": "...", "thinking": "..."}}

Key translations:
- Options: temperature / top_p / max_tokens passed through, num_predict→max_tokens
- JSON mode: format="json" → response_format={"type": "json_object"}
- Thinking: <think>...</think> inline tags (OpenAI-compatible local servers)
  are split into a separate "thinking" field
- SDK exceptions → LLMError / ExternalServiceError
"""

import io
import logging
import re
import time
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from errors import ExternalServiceError, LLMError
from logging_config import log_llm

logger = logging.getLogger(__name__)


def _extract_thinking(content: str) -> tuple:
    """Extract <think>...</think> tags from content.

    Returns:
        (clean_content, thinking_text)
    """
    if not content:
        return "", ""

    think_pattern = re.compile(r"<think>(.*?)</think>", re.DOTALL)
    thinking = "\n".join(think_pattern.findall(content)).strip()
    clean = think_pattern.sub("", content).strip()
    return clean, thinking


class LLMClient:
    """Wraps the OpenAI SDK (api.openai.com or any compatible base URL)."""

    def __init__(self, api_key: str = "", base_url: str = "", timeout: float = 60.0):
        """
        Args:
            api_key: Provider API key ("not-needed" is sent for keyless local servers)
            base_url: Optional OpenAI-compatible server URL (e.g. "http://localhost:8081/v1")
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/") if base_url else ""
        self._timeout = timeout
        kwargs: Dict[str, Any] = {"api_key": api_key or "not-needed", "timeout": timeout}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        self._openai = OpenAI(**kwargs)

    @classmethod
    def from_config(cls, config) -> "LLMClient":
        return cls(api_key=config.openai_api_key, base_url=config.llm_base_url, timeout=config.llm_timeout_s)

    def chat(
        self,
        model: str,
        messages: List[Dict],
        options: Optional[Dict] = None,
        format: str = None,
    ) -> Dict[str, Any]:
        """Call the chat completions endpoint.

        Args:
            model: Model name
            messages: List of {"role", "content"} dicts
            options: Generation options (temperature, top_p, max_tokens/num_predict)
            format: Response format ("json" for JSON mode)

        Returns:
            Dict with "message" key

        Raises:
            LLMError: timeout or provider-side failure
        """
        options = options or {}
        kwargs: Dict[str, Any] = {"model": model, "messages": messages}

        if "temperature" in options:
            kwargs["temperature"] = options["temperature"]
        if "top_p" in options:
            kwargs["top_p"] = options["top_p"]
        if "num_predict" in options:
            kwargs["max_tokens"] = options["num_predict"]
        elif "max_tokens" in options:
            kwargs["max_tokens"] = options["max_tokens"]

        if format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        log_llm(logger, "start", model=model)
        started = time.monotonic()
        try:
            response = self._openai.chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            raise LLMError("LLM request timed out", details=str(e), model=model, error_type="timeout") from e
        except openai.APIError as e:
            raise LLMError("LLM request failed", details=str(e), model=model) from e
        log_llm(logger, "end", model=model, duration=time.monotonic() - started)

        if not response.choices:
            raise LLMError("LLM returned no choices", model=model, error_type="invalid")

        content, thinking = _extract_thinking(response.choices[0].message.content or "")
        result = {"message": {"role": "assistant", "content": content}}
        if thinking:
            result["message"]["thinking"] = thinking
        return result

    def transcribe(
        self,
        audio: bytes,
        model: str = "whisper-1",
        language: Optional[str] = None,
        filename: str = "audio.webm",
    ) -> str:
        """Speech-to-text. Returns the transcribed text.

        Raises:
            ExternalServiceError: provider failure
        """
        buffer = io.BytesIO(audio)
        buffer.name = filename  # SDK infers the container format from the name
        kwargs: Dict[str, Any] = {"model": model, "file": buffer}
        if language:
            kwargs["language"] = language
        try:
            result = self._openai.audio.transcriptions.create(**kwargs)
        except openai.APIError as e:
            raise ExternalServiceError("Transcription failed", details=str(e), service="voice") from e
        return getattr(result, "text", "") or ""

    def speech(
        self,
        text: str,
        model: str = "tts-1",
        voice: str = "alloy",
        speed: float = 1.0,
    ) -> bytes:
        """Text-to-speech. Returns encoded audio (mp3).

        Raises:
            ExternalServiceError: provider failure
        """
        try:
            response = self._openai.audio.speech.create(model=model, voice=voice, input=text, speed=speed)
        except openai.APIError as e:
            raise ExternalServiceError("Speech synthesis failed", details=str(e), service="voice") from e
        return response.content
