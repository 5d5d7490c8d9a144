"""Merging committed and pending messages into one display sequence.

The durable store can only filter on a single field per query and its access
rules are scoped per field, so a conversation view is assembled from two
role-scoped lookups (messages the viewer sent, messages the viewer received)
that are unioned by id on this side. A backend with a conversation index
could collapse that into one query; the merge below stays the same.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from comu_relay.repositories.message_repo import MessageRepository, to_message
from comu_relay.schemas.message import Message
from comu_relay.services.pending_queue import PendingQueue


def union_by_id(*sources: Iterable[Message]) -> dict[str, Message]:
    """Combine message sources keyed by id; later sources overwrite earlier ones."""
    combined: dict[str, Message] = {}
    for source in sources:
        for message in source:
            combined[message.id] = message
    return combined


def merge_messages(
    committed: Iterable[Message],
    pending: Iterable[Message],
    conversation_id: str,
) -> list[Message]:
    """Return the deduplicated, time-ordered view of one conversation.

    Committed records are inserted first and pending records only fill ids that
    are still missing, so a committed message never reappears as pending even
    if a stale local copy lingers. Ties on ``created_at`` break by id.
    """
    merged: dict[str, Message] = {}
    for message in committed:
        if message.conversation_id == conversation_id:
            merged.setdefault(message.id, message)
    for message in pending:
        if message.conversation_id == conversation_id:
            merged.setdefault(message.id, message)
    return sorted(merged.values(), key=lambda m: m.sort_key)


class MessageStore:
    """Read side of the ledger: conversation views and direct lookups."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.messages = MessageRepository(session)
        self.pending = PendingQueue(session)

    def committed_for_viewer(self, viewer_id: str) -> list[Message]:
        """Union of the viewer's sent and received durable messages."""
        sent = (to_message(row) for row in self.messages.list_by_sender(viewer_id))
        received = (to_message(row) for row in self.messages.list_by_recipient(viewer_id))
        return list(union_by_id(sent, received).values())

    def conversation_view(self, conversation_id: str, viewer_id: str) -> list[Message]:
        committed = self.committed_for_viewer(viewer_id)
        pending = self.pending.list_by_sender(viewer_id)
        return merge_messages(committed, pending, conversation_id)

    def get(self, message_id: str) -> Message | None:
        """Direct lookup, which also reaches messages of deleted conversations."""
        row = self.messages.get(message_id)
        return to_message(row) if row is not None else None
