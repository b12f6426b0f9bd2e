"""
Exception types raised across InsightSmith.

Each class fixes three things the HTTP layer needs: an ErrorCode, whether the
caller can fix the problem (``recoverable``), and the HTTP ``status_code``.
Keyword arguments that are not part of the signature end up in ``context``
and are only ever logged.
"""

from typing import Any, Dict, Optional
from .codes import ErrorCode


def _context(extra: Dict[str, Any], **named: Any) -> Optional[Dict[str, Any]]:
    """Merge named context values (dropping empty ones) into ``extra``."""
    merged = dict(extra)
    merged.update({key: value for key, value in named.items() if value not in (None, "")})
    return merged or None


class InsightSmithError(Exception):
    """Root of the hierarchy.

    Subclasses override the class-level ``code``, ``recoverable`` and
    ``status_code``; ``code`` and ``recoverable`` may also be overridden per
    instance.
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False
    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.context = _context(context)
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        return f"{self.message} - {self.details}" if self.details else self.message

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ValidationError(InsightSmithError):
    """Rejected request input: missing message, bad mode, bad audio, bad session id."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True
    status_code = 400

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        **context: Any,
    ):
        super().__init__(message, details, code=code, **context)
        self.context = _context(self.context or {}, parameter=parameter, expected=expected, received=received)


class NotFoundError(InsightSmithError):
    """Unknown session (or other resource) on the REST session endpoints."""

    recoverable = True
    status_code = 404

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **context: Any,
    ):
        code = ErrorCode.NOT_FOUND_SESSION if resource_type == "session" else ErrorCode.NOT_FOUND_RESOURCE
        super().__init__(message, details, code=code, **context)
        self.context = _context(self.context or {}, resource_type=resource_type, resource_id=resource_id)


class LLMError(InsightSmithError):
    """Chat completion failed or returned something unusable."""

    recoverable = False
    status_code = 502

    _codes = {
        "timeout": ErrorCode.LLM_TIMEOUT,
        "parse": ErrorCode.LLM_PARSE_FAILED,
        "invalid": ErrorCode.LLM_RESPONSE_INVALID,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        model: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        code = self._codes.get(error_type or "", ErrorCode.LLM_UNAVAILABLE)
        super().__init__(message, details, code=code, **context)
        self.context = _context(self.context or {}, model=model)


class ExternalServiceError(InsightSmithError):
    """A provider (SearXNG search, OpenAI speech, LLM endpoint) failed.

    ``upstream_status`` is the provider's HTTP status when there was one; the
    response to our own caller is always 502.
    """

    recoverable = True
    status_code = 502

    _codes = {
        "searxng": ErrorCode.EXTERNAL_SEARCH_FAILED,
        "voice": ErrorCode.EXTERNAL_VOICE_FAILED,
        "llm": ErrorCode.EXTERNAL_LLM_FAILED,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        service: Optional[str] = None,
        upstream_status: Optional[int] = None,
        **context: Any,
    ):
        code = self._codes.get(service or "", ErrorCode.EXTERNAL_NETWORK_ERROR)
        super().__init__(message, details, code=code, **context)
        self.context = _context(self.context or {}, service=service, upstream_status=upstream_status)
