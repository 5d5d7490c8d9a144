"""Data access helpers for the durable message ledger."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from comu_relay.core.errors import PermissionDenied
from comu_relay.models import Conversation, StoredMessage
from comu_relay.schemas.message import Message

__all__ = ["MessageRepository", "message_document", "to_message"]

logger = logging.getLogger(__name__)


def message_document(message: Message) -> dict[str, Any]:
    """Return the full stored field map for ``message`` with optional fields normalized.

    Absent lists become empty lists and absent timestamps stay ``None``.
    """
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "recipient_id": message.recipient_id,
        "kind": message.kind.value,
        "content": message.content,
        "created_at": message.created_at,
        "committed": message.committed,
        "committed_at": message.committed_at,
        "edited": bool(message.edited),
        "edited_at": message.edited_at,
        "reply_to_id": message.reply_to_id,
        "reactions": [reaction.model_dump() for reaction in message.reactions or []],
        "read_by": list(message.read_by or []),
        "read_at": message.read_at,
        "pinned": bool(message.pinned),
    }


def to_message(row: Any) -> Message:
    """Convert a pending or stored message row into a :class:`Message`."""
    return Message.model_validate(row)


class MessageRepository:
    """Thin wrapper around database access for committed messages."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, message_id: str) -> StoredMessage | None:
        return self.session.get(StoredMessage, message_id)

    def list_by_sender(self, user_id: str) -> list[StoredMessage]:
        result = self.session.execute(
            select(StoredMessage).where(StoredMessage.sender_id == user_id)
        )
        return list(result.scalars())

    def list_by_recipient(self, user_id: str) -> list[StoredMessage]:
        result = self.session.execute(
            select(StoredMessage).where(StoredMessage.recipient_id == user_id)
        )
        return list(result.scalars())

    def list_unread_in_conversation(self, conversation_id: str, reader_id: str) -> list[StoredMessage]:
        """Return committed messages in a conversation sent to ``reader_id``."""
        result = self.session.execute(
            select(StoredMessage).where(
                StoredMessage.conversation_id == conversation_id,
                StoredMessage.committed.is_(True),
                StoredMessage.recipient_id == reader_id,
            )
        )
        return [row for row in result.scalars() if reader_id not in (row.read_by or [])]

    def create_if_absent(self, message: Message, *, principal_id: str) -> StoredMessage | None:
        """Insert ``message`` unless a record with the same id already exists.

        The store only accepts a record whose sender is the principal and whose
        conversation already lists that principal as a participant.

        Returns:
            The new row, or ``None`` when another writer created the id first.

        Raises:
            PermissionDenied: If the access rule rejects the record.
        """
        if message.sender_id != principal_id:
            raise PermissionDenied(
                f"Sender {message.sender_id} does not match principal {principal_id}"
            )
        conversation = self.session.get(Conversation, message.conversation_id)
        if conversation is None or principal_id not in (conversation.participants or []):
            raise PermissionDenied(
                f"Conversation {message.conversation_id} does not list {principal_id}"
            )

        row = StoredMessage(**message_document(message))
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError:
            self.session.rollback()
            logger.info("Message %s was created concurrently; treating as committed", message.id)
            return None
        return row

    def mark_committed(self, row: StoredMessage, committed_at: int) -> StoredMessage:
        row.committed = True
        row.committed_at = committed_at
        self.session.flush()
        return row

    def delete(self, row: StoredMessage) -> None:
        self.session.delete(row)
        self.session.flush()
