"""Recipient-controlled word filter for outgoing text messages."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from comu_relay.core.errors import BlockedWordRejected, NotFound, PermissionDenied
from comu_relay.db.time import now_ms
from comu_relay.models import BlockedWordAttempt, User
from comu_relay.services.identity import AuthSession, require_session, resolve_user

logger = logging.getLogger(__name__)

RESOLUTIONS = ("blocked", "ignored")


def find_blocked_word(content: str, blocked_words: Iterable[str] | None) -> str | None:
    """Return the first blocked word contained in ``content``, ignoring case.

    Matching is by substring, so a blocked ``"cat"`` also stops ``"concatenate"``.
    """
    lowered = content.lower()
    for word in blocked_words or []:
        if word and word.lower() in lowered:
            return word
    return None


def screen_outgoing(
    db: Session,
    auth: AuthSession | None,
    conversation_id: str,
    recipient_id: str,
    content: str,
) -> None:
    """Reject ``content`` if the recipient has blocked a word it contains.

    A rejected send is recorded for the recipient before the error is raised.

    Raises:
        BlockedWordRejected: If a blocked word matched; nothing is enqueued.
    """
    auth = require_session(auth)
    recipient = db.get(User, recipient_id)
    if recipient is None:
        return
    word = find_blocked_word(content, recipient.blocked_words)
    if word is None:
        return

    attempt = BlockedWordAttempt(
        id=str(uuid.uuid4()),
        conversation_id=conversation_id,
        sender_id=auth.principal_id,
        recipient_id=recipient_id,
        blocked_word=word,
        message_content=content,
        timestamp=now_ms(),
        action=None,
    )
    db.add(attempt)
    db.commit()
    logger.warning(
        "Message from %s to %s stopped by blocked word", auth.principal_id, recipient_id
    )
    raise BlockedWordRejected(word, attempt.id)


def list_attempts(db: Session, auth: AuthSession | None) -> list[BlockedWordAttempt]:
    """Unresolved attempts addressed to the principal, newest first."""
    auth = require_session(auth)
    result = db.execute(
        select(BlockedWordAttempt)
        .where(
            BlockedWordAttempt.recipient_id == auth.principal_id,
            BlockedWordAttempt.action.is_(None),
        )
        .order_by(BlockedWordAttempt.timestamp.desc())
    )
    return list(result.scalars())


def resolve_attempt(
    db: Session,
    auth: AuthSession | None,
    attempt_id: str,
    action: str,
) -> BlockedWordAttempt:
    auth = require_session(auth)
    if action not in RESOLUTIONS:
        raise ValueError(f"Unknown resolution {action!r}")
    attempt = db.get(BlockedWordAttempt, attempt_id)
    if attempt is None:
        raise NotFound(f"Blocked attempt {attempt_id} not found")
    if attempt.recipient_id != auth.principal_id:
        raise PermissionDenied("Only the recipient can resolve a blocked attempt")
    attempt.action = action
    db.commit()
    return attempt


def update_blocked_words(db: Session, auth: AuthSession | None, words: list[str]) -> list[str]:
    """Replace the principal's blocked-word list and return the stored value."""
    user = resolve_user(db, auth)
    user.blocked_words = list(words)
    db.commit()
    logger.info("User %s now blocks %d words", user.id, len(user.blocked_words))
    return user.blocked_words
