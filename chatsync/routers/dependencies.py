"""
FastAPI dependencies wiring the services to the configured database
"""
from datetime import timedelta
from typing import Optional

from fastapi import Depends

from chatsync.config import get_settings
from chatsync.database import SessionLocal
from chatsync.services import (
    ConversationQuery,
    ConversationRepository,
    IdempotentWriter,
    MediaResolver,
)


def get_repository() -> ConversationRepository:
    return ConversationRepository(SessionLocal)


def get_query(repository: ConversationRepository = Depends(get_repository)) -> ConversationQuery:
    settings = get_settings()
    return ConversationQuery(
        repository,
        recent_window=timedelta(hours=settings.recent_window_hours),
        default_message_limit=settings.default_message_limit,
        media_list_limit=settings.media_list_limit,
    )


def get_media_resolver() -> Optional[MediaResolver]:
    """
    No media source is attached by default

    The process that owns the messaging-source client overrides this
    dependency with a resolver bound to that client.
    """
    return None


def get_writer(
    repository: ConversationRepository = Depends(get_repository),
    media_resolver: Optional[MediaResolver] = Depends(get_media_resolver),
) -> IdempotentWriter:
    return IdempotentWriter(repository, media_resolver=media_resolver)
