"""Chat API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lumen.database import get_db
from lumen.dependencies import CurrentProfile, get_current_profile
from lumen.rate_limit import limiter
from lumen.schemas.chat import ChatMessageRequest, ChatMessageResponse, ChatTranscriptResponse
from lumen.services.chat import get_chat_service
from lumen.services.completion import get_completion_client

router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])


@router.get("/messages", response_model=ChatTranscriptResponse)
def list_messages(
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> ChatTranscriptResponse:
    """Get the chat transcript, oldest first. An empty transcript starts with a greeting."""
    service = get_chat_service()
    service.ensure_greeting(db)
    messages = service.list_messages(db)
    return ChatTranscriptResponse(
        items=[ChatMessageResponse.model_validate(m) for m in messages],
        total=len(messages),
    )


@router.post("/messages", response_model=ChatMessageResponse)
@limiter.limit("30/minute")
def send_message(
    request: Request,
    body: ChatMessageRequest,
    profile: CurrentProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
) -> ChatMessageResponse:
    """Send a message and get the assistant's reply."""
    try:
        reply = get_chat_service().send_message(db, body.content, get_completion_client())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return ChatMessageResponse.model_validate(reply)
