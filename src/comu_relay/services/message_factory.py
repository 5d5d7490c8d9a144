"""Construction of new, uncommitted messages."""

from __future__ import annotations

import uuid

from comu_relay.db.time import now_ms
from comu_relay.schemas.message import ContentKind, Message


def create_message(
    conversation_id: str,
    sender_id: str,
    recipient_id: str,
    kind: ContentKind | str,
    content: str,
    reply_to_id: str | None = None,
    *,
    created_at: int | None = None,
) -> Message:
    """Build a fresh message with a new identifier and ``committed=False``.

    No business rules are checked here; delivery validates the message later.
    """
    return Message(
        id=str(uuid.uuid4()),
        conversation_id=conversation_id,
        sender_id=sender_id,
        recipient_id=recipient_id,
        kind=ContentKind(kind),
        content=content,
        created_at=created_at if created_at is not None else now_ms(),
        committed=False,
        reply_to_id=reply_to_id,
    )
