"""
InsightSmith Sessions Router

Explicit session management on top of the in-memory SessionStore:
create, inspect, list messages, clear, delete.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dependencies import AppServices, get_services
from errors import ErrorCode, NotFoundError, ValidationError, success_response
from routers.chat_orchestration.session import DEFAULT_MODE, ConversationMode

# Session ID validation pattern: alphanumeric, hyphens, underscores, max 64 chars
_SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateSessionBody(BaseModel):
    mode: Optional[str] = None


def _validate_session_id(session_id: str) -> str:
    if not _SESSION_ID_PATTERN.match(session_id):
        raise ValidationError(
            "Invalid session ID format",
            parameter="session_id",
            code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )
    return session_id


def _not_found(session_id: str) -> NotFoundError:
    return NotFoundError("Session not found", resource_type="session", resource_id=session_id)


@router.post("/sessions")
async def create_session(body: Optional[CreateSessionBody] = None, services: AppServices = Depends(get_services)):
    """Create a session, optionally in a given mode."""
    mode = DEFAULT_MODE
    if body and body.mode:
        mode = ConversationMode.parse(body.mode)
        if mode is None:
            raise ValidationError(
                "Invalid mode",
                parameter="mode",
                expected=", ".join(m.value for m in ConversationMode),
                received=body.mode,
                code=ErrorCode.VALIDATION_INVALID_FORMAT,
            )
    session = services.store.create(mode)
    return success_response(session=session.to_dict(), sessionId=session.session_id)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, services: AppServices = Depends(get_services)):
    """Session summary (message count, mode, timestamps, last message)."""
    exported = services.store.export(_validate_session_id(session_id))
    if exported is None:
        raise _not_found(session_id)
    return success_response(session=exported)


@router.get("/sessions/{session_id}/messages")
async def get_session_messages(session_id: str, services: AppServices = Depends(get_services)):
    session = services.store.get(_validate_session_id(session_id))
    if session is None:
        raise _not_found(session_id)
    return success_response(
        sessionId=session.session_id,
        currentMode=session.current_mode.value,
        messages=[m.to_dict() for m in session.messages],
    )


@router.post("/sessions/{session_id}/clear")
async def clear_session(session_id: str, services: AppServices = Depends(get_services)):
    if not services.store.clear_messages(_validate_session_id(session_id)):
        raise _not_found(session_id)
    return success_response(sessionId=session_id)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, services: AppServices = Depends(get_services)):
    if not services.store.delete(_validate_session_id(session_id)):
        raise _not_found(session_id)
    logger.info(f"Deleted session {session_id[:8]}")
    return success_response(sessionId=session_id)
