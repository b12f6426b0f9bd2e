"""
JSON payload builders. Every payload has a top-level ``success`` flag.

Only recoverable errors show their own message to the client; everything else
is reported as GENERIC_ERROR_MESSAGE and the real cause goes to the log.
"""

from typing import Any, Optional
from .codes import ErrorCode
from .exceptions import InsightSmithError

GENERIC_ERROR_MESSAGE = "Internal server error"

_UNEXPECTED_DETAIL = {
    "code": ErrorCode.INTERNAL_UNEXPECTED.value,
    "message": GENERIC_ERROR_MESSAGE,
    "details": None,
    "recoverable": False,
    "context": None,
}


def error_response(
    error: Exception,
    session_id: Optional[str] = None,
    include_details: bool = False,
) -> dict:
    """``{"success": False, "error": ..., "sessionId"?: ..., "detail"?: ...}``

    >>> error_response(ValidationError("Message or selectedAction is required"))
    {'success': False, 'error': 'Message or selectedAction is required'}
    """
    known = isinstance(error, InsightSmithError)
    visible = known and error.recoverable

    payload: dict = {"success": False, "error": error.message if visible else GENERIC_ERROR_MESSAGE}
    if include_details:
        payload["detail"] = error.to_dict() if known else dict(_UNEXPECTED_DETAIL)
    if session_id:
        payload["sessionId"] = session_id
    return payload


def success_response(data: Optional[dict] = None, **fields: Any) -> dict:
    return {"success": True, **(data or {}), **fields}