"""
Boundary helpers: turn a failing coroutine into a fallback value, and log
errors in one format.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import InsightSmithError

F = TypeVar("F", bound=Callable[..., Any])


def _describe(error: Exception) -> str:
    if isinstance(error, InsightSmithError):
        return f"{error.code.value}: {error.message}"
    return str(error)


def handle_async_errors(
    component: str,
    fallback: Callable[..., Any],
    logger: Optional[logging.Logger] = None,
):
    """Wrap an async function so any exception returns ``fallback(*args, **kwargs)``.

    Used by the composer: a failed LLM or search call still produces a reply.
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"insightsmith.{component}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                label = "" if isinstance(e, InsightSmithError) else "Unexpected error: "
                log.error(f"[{component}] {label}{_describe(e)}", exc_info=True)
                return fallback(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log as ``[context] CODE: message`` (or the plain text for foreign exceptions)."""
    message = _describe(error)
    if context:
        message = f"[{context}] {message}"
    logger.error(message, exc_info=include_traceback)
