"""Services package initialization"""
from chatsync.services.blob_store import BlobStore, FilesystemBlobStore
from chatsync.services.events import RawChatEvent, RawMessageEvent
from chatsync.services.media import FetchedMedia, MediaResolver, MediaSource
from chatsync.services.normalizer import EventNormalizer
from chatsync.services.query import ConversationQuery
from chatsync.services.repository import ConversationRepository
from chatsync.services.writer import IdempotentWriter, IngestResult

__all__ = [
    "BlobStore",
    "FilesystemBlobStore",
    "RawChatEvent",
    "RawMessageEvent",
    "FetchedMedia",
    "MediaResolver",
    "MediaSource",
    "EventNormalizer",
    "ConversationQuery",
    "ConversationRepository",
    "IdempotentWriter",
    "IngestResult",
]
