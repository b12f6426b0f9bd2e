"""
Runtime Configuration for InsightSmith.

Provides a RuntimeConfig dataclass whose values default from environment
variables and can be adjusted at runtime without restarting the service.

Usage:
    from config import runtime_config
    ttl = runtime_config.session_ttl_s
    runtime_config.update(searxng_max_results=3)
"""

import os
import logging
import re
from dataclasses import dataclass, field, fields as dataclass_fields
from pathlib import Path
from typing import Dict, Any
from threading import Lock

logger = logging.getLogger(__name__)

DEFAULT_LEXICON_PATH = Path(__file__).parent / "lexicon" / "insightsmith.json"


def _env_bool(key: str, default: str) -> bool:
    return os.environ.get(key, default).strip().lower() in ("1", "true", "yes", "on")


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


@dataclass
class RuntimeConfig:
    """
    Configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Application
    app_name: str = field(default_factory=lambda: os.environ.get("APP_NAME", "InsightSmith"))
    app_version: str = field(default_factory=lambda: os.environ.get("APP_VERSION", "1.0.0"))
    frontend_url: str = field(
        default_factory=lambda: os.environ.get("FRONTEND_URL", "http://localhost:3000").strip().rstrip("/")
    )
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper())

    # Sessions
    session_ttl_s: int = field(default_factory=lambda: int(os.environ.get("SESSION_TTL_SECONDS", "3600")))
    session_sweep_interval_s: int = field(
        default_factory=lambda: int(os.environ.get("SESSION_SWEEP_INTERVAL_SECONDS", "300"))
    )
    session_lock_stripes: int = field(default_factory=lambda: int(os.environ.get("SESSION_LOCK_STRIPES", "16")))
    max_message_length: int = field(default_factory=lambda: int(os.environ.get("MAX_MESSAGE_LENGTH", "4000")))

    # LLM (OpenAI-compatible)
    openai_api_key: str = field(default_factory=lambda: os.environ.get("OPENAI_API_KEY", "").strip(), repr=False)
    llm_base_url: str = field(default_factory=lambda: os.environ.get("LLM_BASE_URL", "").strip())
    llm_enabled: bool = field(
        default_factory=lambda: _env_bool("LLM_ENABLED", "true" if os.environ.get("OPENAI_API_KEY") else "false")
    )
    model_chat: str = field(default_factory=lambda: _first_env("LLM_CHAT_MODEL", "OPENAI_MODEL", default="gpt-4o"))
    llm_timeout_s: float = field(default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "60")))
    llm_history_window: int = field(default_factory=lambda: int(os.environ.get("LLM_HISTORY_WINDOW", "5")))
    max_output_tokens: int = field(default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "2000")))

    # Voice
    stt_model: str = field(default_factory=lambda: os.environ.get("STT_MODEL", "whisper-1"))
    tts_model: str = field(default_factory=lambda: os.environ.get("TTS_MODEL", "tts-1"))
    tts_voice: str = field(default_factory=lambda: os.environ.get("TTS_VOICE", "alloy"))
    tts_speed: float = field(default_factory=lambda: float(os.environ.get("TTS_SPEED", "1.0")))
    voice_language: str = field(default_factory=lambda: os.environ.get("VOICE_LANGUAGE", "ja"))
    max_audio_bytes: int = field(
        default_factory=lambda: int(os.environ.get("MAX_AUDIO_BYTES", str(25 * 1024 * 1024)))
    )

    # Web search (SearXNG)
    searxng_enabled: bool = field(default_factory=lambda: _env_bool("SEARXNG_ENABLED", "false"))
    searxng_url: str = field(
        default_factory=lambda: os.environ.get("SEARXNG_URL", "http://searxng:8080").strip().rstrip("/")
        or "http://searxng:8080"
    )
    searxng_language: str = field(default_factory=lambda: os.environ.get("SEARXNG_LANGUAGE", "ja").strip())
    searxng_timeout_s: float = field(default_factory=lambda: float(os.environ.get("SEARXNG_TIMEOUT_S", "10")))
    searxng_max_results: int = field(default_factory=lambda: int(os.environ.get("SEARXNG_MAX_RESULTS", "5")))

    # Data
    lexicon_path: str = field(default_factory=lambda: os.environ.get("LEXICON_PATH", str(DEFAULT_LEXICON_PATH)))

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(
        default_factory=lambda: {
            "session_ttl_s": (60, 7 * 24 * 3600),
            "session_sweep_interval_s": (1, 24 * 3600),
            "max_message_length": (1, 100_000),
            "llm_timeout_s": (1.0, 600.0),
            "llm_history_window": (0, 50),
            "max_output_tokens": (64, 32768),
            "tts_speed": (0.25, 4.0),
            "searxng_timeout_s": (1.0, 60.0),
            "searxng_max_results": (1, 25),
        },
        repr=False,
        compare=False,
    )

    # Fields that must never be changed through update()
    _IMMUTABLE: frozenset = field(
        default_factory=lambda: frozenset({"openai_api_key", "session_lock_stripes", "lexicon_path"}),
        repr=False,
        compare=False,
    )

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., searxng_max_results=3)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (rejected or unknown keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_") or key in self._IMMUTABLE or not hasattr(self, key):
                    ignored.append(key)
                    logger.warning(f"Config ignored key: {key}")
                    continue

                if key in {"searxng_url", "llm_base_url", "frontend_url"} and isinstance(value, str):
                    cleaned = value.strip()
                    if cleaned and not cleaned.startswith(("http://", "https://")):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid URL: {key}={value!r}")
                        continue
                    value = cleaned.rstrip("/")

                if key.startswith(("model_", "stt_", "tts_model")) and isinstance(value, str):
                    if not re.match(r"^[a-zA-Z0-9._:-]+$", value) or len(value) > 100:
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid model name: {key}={value!r}")
                        continue

                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    @property
    def llm_configured(self) -> bool:
        """LLM composition is used only when enabled and reachable with credentials."""
        return self.llm_enabled and bool(self.openai_api_key or self.llm_base_url)

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields and secrets)."""
        result = {}
        for field_info in dataclass_fields(self):
            if field_info.name.startswith("_") or field_info.name == "openai_api_key":
                continue
            result[field_info.name] = getattr(self, field_info.name)
        return result


# Process default, read once at import
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the default config instance."""
    return runtime_config
