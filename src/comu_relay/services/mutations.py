"""Edits, deletions, reactions, read receipts and pins.

Pending messages may be changed freely by their sender. Committed messages may
only be edited or deleted by their sender within the grace window that starts
at the commit timestamp; every refusal is raised to the caller.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from comu_relay.core.errors import EditWindowExpired, NotFound, PermissionDenied
from comu_relay.core.settings import settings
from comu_relay.db.time import now_ms
from comu_relay.models import StoredMessage
from comu_relay.repositories import ConversationRepository, MessageRepository, to_message
from comu_relay.schemas.message import Message
from comu_relay.services.conversations import get_conversation
from comu_relay.services.identity import AuthSession, require_session
from comu_relay.services.pending_queue import PendingQueue

logger = logging.getLogger(__name__)


def can_modify(message: Message | StoredMessage, now: int | None = None) -> bool:
    """Return True while ``message`` may still be edited or deleted."""
    if not message.committed or message.committed_at is None:
        return True
    current = now if now is not None else now_ms()
    return current - message.committed_at < settings.edit_grace_ms


def _ensure_modifiable(row: StoredMessage, principal_id: str, now: int) -> None:
    if row.sender_id != principal_id:
        raise PermissionDenied(f"Message {row.id} belongs to another sender")
    if not can_modify(row, now):
        raise EditWindowExpired(
            f"Message {row.id} was committed more than "
            f"{settings.edit_grace_seconds} seconds ago"
        )


def _committed_message(db: Session, auth: AuthSession, message_id: str) -> StoredMessage:
    row = MessageRepository(db).get(message_id)
    if row is None or not row.committed:
        raise NotFound(f"Message {message_id} not found")
    if auth.principal_id not in (row.sender_id, row.recipient_id):
        raise PermissionDenied(f"{auth.principal_id} cannot access message {message_id}")
    return row


def edit_message(
    db: Session,
    auth: AuthSession | None,
    message_id: str,
    content: str,
    *,
    now: int | None = None,
) -> Message:
    """Replace the content of a pending or recently committed message."""
    auth = require_session(auth)
    current = now if now is not None else now_ms()
    row = MessageRepository(db).get(message_id)

    if row is None or not row.committed:
        queue = PendingQueue(db)
        pending = queue.get(message_id)
        if pending is not None:
            if pending.sender_id != auth.principal_id:
                raise PermissionDenied(f"Message {message_id} belongs to another sender")
            updated = queue.update_content(message_id, content)
            logger.info("Edited pending message %s", message_id)
            return updated
        if row is None:
            raise NotFound(f"Message {message_id} not found")

    _ensure_modifiable(row, auth.principal_id, current)
    row.content = content
    row.edited = True
    row.edited_at = current
    db.commit()
    logger.info("Edited message %s", message_id)
    return to_message(row)


def delete_message(
    db: Session,
    auth: AuthSession | None,
    message_id: str,
    *,
    now: int | None = None,
) -> None:
    """Hard-delete a pending or recently committed message."""
    auth = require_session(auth)
    current = now if now is not None else now_ms()
    queue = PendingQueue(db)
    repo = MessageRepository(db)
    row = repo.get(message_id)

    if row is None:
        pending = queue.get(message_id)
        if pending is None:
            raise NotFound(f"Message {message_id} not found")
        if pending.sender_id != auth.principal_id:
            raise PermissionDenied(f"Message {message_id} belongs to another sender")
        queue.remove(message_id)
        logger.info("Deleted pending message %s", message_id)
        return

    _ensure_modifiable(row, auth.principal_id, current)
    conversation = ConversationRepository(db).get(row.conversation_id)
    if row.pinned and conversation is not None:
        conversation.pinned_message_ids = [
            pinned for pinned in conversation.pinned_message_ids or [] if pinned != message_id
        ]
    repo.delete(row)
    db.commit()
    # A stale pending copy would otherwise resurface once the durable record is gone.
    queue.remove(message_id)
    logger.info("Deleted message %s", message_id)


def react(db: Session, auth: AuthSession | None, message_id: str, emoji: str) -> Message:
    """Set the principal's reaction, replacing any earlier one."""
    auth = require_session(auth)
    row = _committed_message(db, auth, message_id)
    reactions = [r for r in row.reactions or [] if r.get("user_id") != auth.principal_id]
    reactions.append({"emoji": emoji, "user_id": auth.principal_id, "timestamp": now_ms()})
    row.reactions = reactions
    db.commit()
    return to_message(row)


def remove_reaction(db: Session, auth: AuthSession | None, message_id: str) -> Message:
    auth = require_session(auth)
    row = _committed_message(db, auth, message_id)
    remaining = [r for r in row.reactions or [] if r.get("user_id") != auth.principal_id]
    if len(remaining) != len(row.reactions or []):
        row.reactions = remaining
        db.commit()
    return to_message(row)


def mark_read(db: Session, auth: AuthSession | None, message_id: str) -> Message:
    """Record that the principal has read a message addressed to them."""
    auth = require_session(auth)
    row = _committed_message(db, auth, message_id)
    if row.sender_id != auth.principal_id and auth.principal_id not in (row.read_by or []):
        row.read_by = [*(row.read_by or []), auth.principal_id]
        row.read_at = now_ms()
        db.commit()
    return to_message(row)


def mark_conversation_read(db: Session, auth: AuthSession | None, conversation_id: str) -> int:
    """Mark every committed message sent to the principal as read in one commit."""
    auth = require_session(auth)
    get_conversation(db, auth, conversation_id)
    rows = MessageRepository(db).list_unread_in_conversation(conversation_id, auth.principal_id)
    read_at = now_ms()
    for row in rows:
        row.read_by = [*(row.read_by or []), auth.principal_id]
        row.read_at = read_at
    if rows:
        db.commit()
    return len(rows)


def set_pinned(db: Session, auth: AuthSession | None, message_id: str, pinned: bool) -> Message:
    """Pin or unpin a message; the message and its conversation change together."""
    auth = require_session(auth)
    row = _committed_message(db, auth, message_id)
    conversation = get_conversation(db, auth, row.conversation_id)

    pinned_ids = [pid for pid in conversation.pinned_message_ids or [] if pid != message_id]
    if pinned:
        pinned_ids.append(message_id)
    conversation.pinned_message_ids = pinned_ids
    row.pinned = pinned
    db.commit()
    return to_message(row)


def pin_message(db: Session, auth: AuthSession | None, message_id: str) -> Message:
    return set_pinned(db, auth, message_id, True)


def unpin_message(db: Session, auth: AuthSession | None, message_id: str) -> Message:
    return set_pinned(db, auth, message_id, False)
