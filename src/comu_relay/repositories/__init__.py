"""Data access layer over the durable store."""

from .conversation_repo import ConversationRepository
from .message_repo import MessageRepository, message_document, to_message

__all__ = ["ConversationRepository", "MessageRepository", "message_document", "to_message"]
