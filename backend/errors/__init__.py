"""
Errors for InsightSmith: codes, exception types, response builders and the
fallback decorator used at provider boundaries.

    from errors import ValidationError, error_response

    try:
        ...
    except ValidationError as e:
        return JSONResponse(status_code=e.status_code, content=error_response(e))
"""

from .codes import ErrorCode
from .exceptions import (
    InsightSmithError,
    ValidationError,
    NotFoundError,
    LLMError,
    ExternalServiceError,
)
from .response import (
    GENERIC_ERROR_MESSAGE,
    error_response,
    success_response,
)
from .handlers import (
    handle_async_errors,
    log_error,
)

__all__ = [
    "ErrorCode",
    "InsightSmithError",
    "ValidationError",
    "NotFoundError",
    "LLMError",
    "ExternalServiceError",
    "GENERIC_ERROR_MESSAGE",
    "error_response",
    "success_response",
    "handle_async_errors",
    "log_error",
]
