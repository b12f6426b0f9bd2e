"""
Console logging for InsightSmith.

setup_logging() installs ColorFormatter on the root logger. The log_* helpers
print one tagged line per conversation event so a chat turn can be followed
in the console:

    >>> MESSAGE  新規事業の相談です [session=3f2a voice=False]
    ~~~ MODE     guide -> hard (detected:ハードモード)
    >>> TOOL     web_search query=...
    <<< RESPONSE mode=hard actions=4 searched=True
"""

import logging
import sys

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"

# Event tag colors
EVENT_COLORS = {
    "MESSAGE": "\033[96m",
    "RESPONSE": "\033[92m",
    "MODE": "\033[95m",
    "TOOL": "\033[93m",
    "LLM": "\033[94m",
    "SESSION": "\033[36m",
}

LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: RESET,
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m" + BOLD,
}

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


class ColorFormatter(logging.Formatter):
    """``HH:MM:SS [LEVL] module: message`` with the level colored."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, RESET)
        line = (
            f"{DIM}{self.formatTime(record, '%H:%M:%S')}{RESET} "
            f"[{color}{record.levelname[:4]}{RESET}] "
            f"{DIM}{record.name.rsplit('.', 1)[-1]}:{RESET} "
            f"{record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: int | str = logging.INFO) -> None:
    """Route everything to stdout through ColorFormatter; unknown level names fall back to INFO."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _ctx(context: dict) -> str:
    return " ".join(f"{k}={v}" for k, v in context.items() if v is not None)


def _event(logger: logging.Logger, arrow: str, tag: str, text: str) -> None:
    logger.info(f"{EVENT_COLORS[tag]}{arrow} {tag}{RESET} {text}".rstrip())


def _arrow(state: str) -> str:
    return ">>>" if state == "start" else "<<<"


def log_message_in(logger: logging.Logger, message: str, **context) -> None:
    """Inbound user text or action id, cut to 80 characters."""
    preview = message[:80] + "..." if len(message) > 80 else message
    _event(logger, ">>>", "MESSAGE", f"{preview} [{_ctx(context)}]")


def log_message_out(logger: logging.Logger, mode: str, actions: int = 0, searched: bool = False) -> None:
    _event(logger, "<<<", "RESPONSE", f"mode={mode} actions={actions} searched={searched}")


def log_mode(logger: logging.Logger, old: str, new: str, reason: str) -> None:
    """Persisted mode switch; reason is forced, help, detected:<phrase> or an action id."""
    _event(logger, "~~~", "MODE", f"{old} -> {new} ({reason})")


def log_session(logger: logging.Logger, event: str, session_id: str, **context) -> None:
    _event(logger, "###", "SESSION", f"{event} {session_id[:8]} {_ctx(context)}")


def log_tool(logger: logging.Logger, tool_name: str, state: str, **context) -> None:
    """Provider call boundary (web_search, transcribe, speak); state is 'start' or 'end'."""
    _event(logger, _arrow(state), "TOOL", f"{tool_name} {_ctx(context)}")


def log_llm(logger: logging.Logger, state: str, model: str = "", duration: float = 0) -> None:
    text = f"calling {model}" if state == "start" else f"{model} completed in {duration:.1f}s"
    _event(logger, _arrow(state), "LLM", text)
