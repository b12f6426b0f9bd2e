"""
InsightSmith Chat Router

POST /api/chat - free-text message or quick action, returns the composed reply.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dependencies import AppServices, get_services
from routers.chat_orchestration.orchestrator import ChatRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatBody(BaseModel):
    message: Optional[str] = None
    sessionId: Optional[str] = None
    forceMode: Optional[str] = None
    selectedAction: Optional[str] = None


@router.post("/chat")
async def chat(body: ChatBody, services: AppServices = Depends(get_services)):
    """Handle one chat turn.

    Returns {success, data?, error?, sessionId}; 400 on invalid input,
    500 on unexpected failure.
    """
    result = await services.orchestrator.handle(
        ChatRequest(
            message=body.message,
            session_id=body.sessionId,
            force_mode=body.forceMode,
            selected_action=body.selectedAction,
        )
    )
    return JSONResponse(status_code=result.status_code, content=result.to_dict())
