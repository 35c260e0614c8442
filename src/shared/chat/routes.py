"""Chat route: visitor questions to the portfolio assistant."""

import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status

from src.shared.chat.schemas import ChatRequest, ChatResponse
from src.shared.chat.service import ChatResponder, ChatResponderError, get_chat_responder
from src.shared.security.dependencies import guard_submission, parse_submission
from src.shared.security.outcomes import RouteClass

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(...),
    responder: Optional[ChatResponder] = Depends(get_chat_responder),
):
    """
    Answer a visitor question.

    Rate limited (15 per 15 minutes by default) and gated by challenge
    verification before anything reaches the assistant.
    """
    cleaned = await guard_submission(request, response, RouteClass.CHAT, payload)
    chat_request = parse_submission(ChatRequest, cleaned)

    if responder is None:
        logging.error("Chat request received but no chat responder is configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "assistant_unavailable",
                "message": "The assistant is currently unavailable. Please try again later."
            }
        )

    try:
        reply = await responder.generate_reply(chat_request.message)
    except ChatResponderError as e:
        logging.error(f"Chat responder failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "assistant_error",
                "message": "The assistant could not answer right now. Please try again later."
            }
        )

    return ChatResponse(reply=reply)
