"""Service-level helpers for pairwise conversations."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from comu_relay.core.errors import NotFound, PermissionDenied
from comu_relay.core.settings import settings
from comu_relay.db.time import now_ms
from comu_relay.models import Conversation, User
from comu_relay.repositories import ConversationRepository
from comu_relay.services.identity import AuthSession, find_user_by_code, require_session

logger = logging.getLogger(__name__)


def derive_conversation_id(user_a: str, user_b: str) -> str:
    """Return the identifier shared by the unordered pair ``{user_a, user_b}``."""
    first, second = sorted((user_a, user_b))
    return f"{first}_{second}"


def peer_of(conversation: Conversation, user_id: str) -> str:
    """Return the participant of ``conversation`` that is not ``user_id``."""
    for participant in conversation.participants or []:
        if participant != user_id:
            return participant
    raise NotFound(f"Conversation {conversation.id} has no other participant")


def get_conversation(db: Session, auth: AuthSession | None, conversation_id: str) -> Conversation:
    """Load a conversation the principal participates in."""
    auth = require_session(auth)
    conversation = ConversationRepository(db).get(conversation_id)
    if conversation is None:
        raise NotFound(f"Conversation {conversation_id} not found")
    if auth.principal_id not in (conversation.participants or []):
        raise PermissionDenied(f"{auth.principal_id} is not a participant of {conversation_id}")
    return conversation


def find_or_create(db: Session, auth: AuthSession | None, peer_id: str) -> Conversation:
    """Return the conversation between the principal and ``peer_id``, creating it lazily."""
    auth = require_session(auth)
    if peer_id == auth.principal_id:
        raise PermissionDenied("Cannot start a conversation with yourself")
    if db.get(User, peer_id) is None:
        raise NotFound(f"User {peer_id} not found")

    repo = ConversationRepository(db)
    conversation_id = derive_conversation_id(auth.principal_id, peer_id)
    conversation = repo.get(conversation_id)
    if conversation is None:
        conversation = repo.upsert(
            conversation_id,
            [auth.principal_id, peer_id],
            last_activity=now_ms(),
        )
        db.commit()
        logger.info("Created conversation %s", conversation_id)
    return conversation


def start_with_code(db: Session, auth: AuthSession | None, code: str) -> Conversation:
    """Find or create a conversation with the user owning invite ``code``."""
    require_session(auth)
    peer = find_user_by_code(db, code)
    if peer is None:
        raise NotFound(f"No user with code {code}")
    return find_or_create(db, auth, peer.id)


def list_for_user(db: Session, user_id: str) -> list[Conversation]:
    return ConversationRepository(db).list_for_user(user_id)


def delete_conversation(db: Session, auth: AuthSession | None, conversation_id: str) -> None:
    """Remove the conversation record; committed messages stay as orphaned history."""
    conversation = get_conversation(db, auth, conversation_id)
    ConversationRepository(db).delete(conversation)
    db.commit()
    logger.info("Conversation %s deleted by %s", conversation_id, auth.principal_id)


def set_typing(
    db: Session,
    auth: AuthSession | None,
    conversation_id: str,
    is_typing: bool,
    *,
    now: int | None = None,
) -> None:
    conversation = get_conversation(db, auth, conversation_id)
    typing = dict(conversation.typing or {})
    if is_typing:
        typing[auth.principal_id] = now if now is not None else now_ms()
    elif auth.principal_id in typing:
        del typing[auth.principal_id]
    else:
        return
    conversation.typing = typing
    db.commit()


def typing_users(
    db: Session,
    conversation_id: str,
    *,
    exclude: str | None = None,
    now: int | None = None,
) -> list[str]:
    """Return participants whose typing indicator has not expired."""
    conversation = ConversationRepository(db).get(conversation_id)
    if conversation is None:
        return []
    current = now if now is not None else now_ms()
    cutoff = current - settings.typing_ttl_ms
    return sorted(
        user_id
        for user_id, seen_at in (conversation.typing or {}).items()
        if seen_at > cutoff and user_id != exclude
    )
