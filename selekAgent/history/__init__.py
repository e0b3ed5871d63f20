"""Conversation history storage."""

from .conversation_store import (
    EXPORT_FORMATS,
    Conversation,
    ConversationHistoryManager,
    ConversationNotFoundError,
    ConversationStats,
    Message,
    SearchResult,
)

__all__ = [
    "EXPORT_FORMATS",
    "Conversation",
    "ConversationHistoryManager",
    "ConversationNotFoundError",
    "ConversationStats",
    "Message",
    "SearchResult",
]
