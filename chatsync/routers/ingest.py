"""
Ingest Router - entry point for events pushed by the messaging-source client
"""
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from chatsync.routers.chat import ChatResponse, MessageResponse
from chatsync.routers.dependencies import get_writer
from chatsync.services import IdempotentWriter, RawChatEvent, RawMessageEvent


router = APIRouter()


# Pydantic Schemas
class IngestRequest(BaseModel):
    chat: RawChatEvent
    message: RawMessageEvent


class IngestResponse(BaseModel):
    created: bool
    media_status: str
    media_error: Optional[str]
    message: MessageResponse

    class Config:
        from_attributes = True


# Endpoints
@router.post("/ingest", response_model=IngestResponse)
def ingest_message(
    payload: IngestRequest,
    response: Response,
    writer: IdempotentWriter = Depends(get_writer),
):
    """
    Ingest one message event and its chat

    Returns 201 when the message was stored for the first time and 200 when
    it was a redelivery. Storage failures surface as 503 so the source can
    redeliver.
    """
    result = writer.ingest(payload.chat, payload.message)
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return IngestResponse.model_validate(result)


@router.post("/chats/sync", response_model=ChatResponse)
def sync_chat(payload: RawChatEvent, writer: IdempotentWriter = Depends(get_writer)):
    """Create or update chat metadata without a message"""
    return ChatResponse.model_validate(writer.ingest_chat(payload))
