"""
Domain exceptions for the ingestion pipeline
"""


class ChatSyncError(Exception):
    """Base exception for chatsync"""
    pass


class DuplicateKeyError(ChatSyncError):
    """Raised when a message with the same id is already stored"""

    def __init__(self, message_id: str):
        super().__init__(f"Message {message_id} already exists")
        self.message_id = message_id


class StorageUnavailableError(ChatSyncError):
    """Raised when the database rejects or cannot serve an operation"""
    pass


class MediaUnavailableError(ChatSyncError):
    """Raised when media bytes cannot be fetched or written"""
    pass


class BlobExistsError(MediaUnavailableError):
    """Raised when a blob name is already taken"""
    pass
