"""
Chat Router - API endpoints for reading and deleting synced conversations
"""
from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from chatsync.routers.dependencies import get_query
from chatsync.services import ConversationQuery
from chatsync.services.records import MEDIA_MESSAGE_TYPES, ChatThread


router = APIRouter()


# Pydantic Schemas
class MediaResponse(BaseModel):
    url: str
    mime_type: str
    size_bytes: int

    class Config:
        from_attributes = True


class LocationResponse(BaseModel):
    latitude: float
    longitude: float
    name: Optional[str]

    class Config:
        from_attributes = True


class ContactResponse(BaseModel):
    name: Optional[str]
    number: Optional[str]

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message_id: str
    chat_id: str
    sender_id: str
    recipient_id: str
    sender_name: Optional[str]
    timestamp: datetime
    message_type: str
    body: str
    is_forwarded: bool
    is_reply: bool
    reply_to: Optional[str]
    media: Optional[MediaResponse]
    media_pending: bool
    location: Optional[LocationResponse]
    contact: Optional[ContactResponse]

    class Config:
        from_attributes = True


class ChatResponse(BaseModel):
    chat_id: str
    name: str
    is_group: bool
    participants: List[str]
    unread_count: int
    is_archived: bool
    is_pinned: bool
    description: str
    created_by: Optional[str]
    created_at: Optional[datetime]
    message_count: int
    media_count: int
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ChatDetailResponse(ChatResponse):
    messages: List[MessageResponse] = []


class MediaMessageResponse(BaseModel):
    chat_id: str
    chat_name: str
    message: MessageResponse

    class Config:
        from_attributes = True


def to_detail(thread: ChatThread) -> ChatDetailResponse:
    return ChatDetailResponse(
        **ChatResponse.model_validate(thread.chat).model_dump(),
        messages=[MessageResponse.model_validate(m) for m in thread.messages],
    )


# Endpoints
@router.get("/chats", response_model=List[ChatResponse])
async def list_chats(
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    query: ConversationQuery = Depends(get_query),
):
    """List all chats, most recently active first"""
    return [ChatResponse.model_validate(c) for c in query.list_chats(offset=skip, limit=limit)]


@router.get("/chats/groups", response_model=List[ChatResponse])
async def list_group_chats(query: ConversationQuery = Depends(get_query)):
    """List group chats"""
    return [ChatResponse.model_validate(c) for c in query.list_group_chats()]


@router.get("/chats/private", response_model=List[ChatResponse])
async def list_private_chats(query: ConversationQuery = Depends(get_query)):
    """List one-to-one chats"""
    return [ChatResponse.model_validate(c) for c in query.list_private_chats()]


@router.get("/recent", response_model=List[ChatResponse])
async def list_recent_chats(query: ConversationQuery = Depends(get_query)):
    """List chats updated within the recent window"""
    return [ChatResponse.model_validate(c) for c in query.list_recent_chats()]


@router.get("/chats/{chat_id}", response_model=ChatDetailResponse)
async def get_chat(
    chat_id: str,
    message_limit: Optional[int] = Query(None, ge=1),
    query: ConversationQuery = Depends(get_query),
):
    """Get a chat with its most recent messages"""
    thread = query.get_chat(chat_id, message_limit=message_limit)
    if thread is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return to_detail(thread)


@router.get("/chats/{chat_id}/messages", response_model=List[MessageResponse])
async def get_chat_messages(
    chat_id: str,
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    query: ConversationQuery = Depends(get_query),
):
    """Get messages from a chat, newest first"""
    messages = query.get_chat_messages(chat_id, limit=limit, offset=skip)
    if messages is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return [MessageResponse.model_validate(m) for m in messages]


@router.get("/search", response_model=List[ChatDetailResponse])
async def search_messages(
    query_text: Optional[str] = Query(None, alias="query"),
    query: ConversationQuery = Depends(get_query),
):
    """Search message bodies; each chat lists only its matching messages"""
    if not query_text or not query_text.strip():
        raise HTTPException(status_code=400, detail="Search query required")
    return [to_detail(thread) for thread in query.search(query_text)]


@router.get("/media", response_model=List[MediaMessageResponse])
async def list_media(
    media_type: Optional[str] = Query(None, alias="type"),
    limit: Optional[int] = Query(None, ge=1),
    query: ConversationQuery = Depends(get_query),
):
    """List messages with stored media, optionally of a single type"""
    if media_type and media_type not in MEDIA_MESSAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid media type")
    views = query.list_media(media_type=media_type or None, limit=limit)
    return [MediaMessageResponse.model_validate(v) for v in views]


@router.delete("/chats/{chat_id}")
async def delete_chat(chat_id: str, query: ConversationQuery = Depends(get_query)):
    """Delete a chat and all of its messages"""
    if not query.delete_chat(chat_id):
        raise HTTPException(status_code=404, detail="Chat not found")
    return {"success": True}
