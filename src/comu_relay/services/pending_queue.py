"""Sender-keyed staging area for messages that are not committed yet."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from comu_relay.core.errors import PermissionDenied
from comu_relay.models import PendingMessage
from comu_relay.repositories.message_repo import message_document, to_message
from comu_relay.schemas.message import Message
from comu_relay.services.identity import AuthSession, require_session

logger = logging.getLogger(__name__)


class PendingQueue:
    """Durable per-sender queue.

    Records are keyed by sender rather than by conversation, so a user's whole
    queue can be listed or cleared in one step regardless of how many
    conversations it spans.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def enqueue(self, auth: AuthSession | None, message: Message) -> Message:
        """Stage ``message`` under the principal's id, whatever sender it carries.

        Raises:
            Unauthenticated: If no principal is bound.
            PermissionDenied: If the id is already queued by another sender.
        """
        auth = require_session(auth)
        if message.sender_id != auth.principal_id:
            logger.warning(
                "Pending message %s carried sender %s; stamping principal %s",
                message.id,
                message.sender_id,
                auth.principal_id,
            )
        staged = message.model_copy(
            update={"sender_id": auth.principal_id, "committed": False, "committed_at": None}
        )
        document = message_document(staged)
        row = self.session.get(PendingMessage, staged.id)
        if row is None:
            self.session.add(PendingMessage(**document))
        elif row.sender_id != auth.principal_id:
            raise PermissionDenied(f"Pending message {staged.id} belongs to another sender")
        else:
            for key, value in document.items():
                setattr(row, key, value)
        self.session.commit()
        return staged

    def _rows_for_sender(self, sender_id: str) -> list[PendingMessage]:
        result = self.session.execute(
            select(PendingMessage).where(PendingMessage.sender_id == sender_id)
        )
        return list(result.scalars())

    def list_by_sender(self, sender_id: str) -> list[Message]:
        """Return every pending message of ``sender_id``; callers sort as they need."""
        return [to_message(row) for row in self._rows_for_sender(sender_id)]

    def get(self, message_id: str) -> Message | None:
        row = self.session.get(PendingMessage, message_id)
        return to_message(row) if row is not None else None

    def update_content(self, message_id: str, content: str) -> Message | None:
        row = self.session.get(PendingMessage, message_id)
        if row is None:
            return None
        row.content = content
        self.session.commit()
        return to_message(row)

    def remove(self, message_id: str) -> None:
        """Drop one record; unknown ids are ignored."""
        self.remove_many([message_id])

    def remove_many(self, message_ids: Iterable[str]) -> int:
        removed = 0
        for message_id in dict.fromkeys(message_ids):
            row = self.session.get(PendingMessage, message_id)
            if row is not None:
                self.session.delete(row)
                removed += 1
        if removed:
            self.session.commit()
        return removed

    def clear_all(self, sender_id: str) -> int:
        """Remove every pending record of ``sender_id`` in a single commit."""
        rows = self._rows_for_sender(sender_id)
        for row in rows:
            self.session.delete(row)
        if rows:
            self.session.commit()
        return len(rows)
