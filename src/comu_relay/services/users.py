"""Profile edits and user-to-user blocking."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from comu_relay.core.errors import NotFound, PermissionDenied, SenderBlocked
from comu_relay.db.time import now_ms
from comu_relay.models import BlockedUser, User
from comu_relay.services.identity import AuthSession, require_session, resolve_user

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("nickname", "bio", "profile_picture")


def update_profile(db: Session, auth: AuthSession | None, changes: dict[str, Any]) -> User:
    """Apply ``changes`` to the principal's public profile fields.

    Keys outside :data:`PROFILE_FIELDS` are ignored.
    """
    user = resolve_user(db, auth)
    for field_name in PROFILE_FIELDS:
        if field_name in changes:
            setattr(user, field_name, changes[field_name])
    db.commit()
    return user


def block_user(db: Session, auth: AuthSession | None, user_id: str) -> BlockedUser:
    """Stop accepting messages from ``user_id``; blocking twice keeps the first block.

    Raises:
        NotFound: If ``user_id`` has no account.
        PermissionDenied: If the principal tries to block themselves.
    """
    auth = require_session(auth)
    if user_id == auth.principal_id:
        raise PermissionDenied("Users cannot block themselves")
    if db.get(User, user_id) is None:
        raise NotFound(f"User {user_id} not found")

    existing = db.get(BlockedUser, (auth.principal_id, user_id))
    if existing is not None:
        return existing
    block = BlockedUser(user_id=auth.principal_id, blocked_user_id=user_id, blocked_at=now_ms())
    db.add(block)
    db.commit()
    logger.info("User %s blocked %s", auth.principal_id, user_id)
    return block


def unblock_user(db: Session, auth: AuthSession | None, user_id: str) -> None:
    auth = require_session(auth)
    block = db.get(BlockedUser, (auth.principal_id, user_id))
    if block is None:
        return
    db.delete(block)
    db.commit()
    logger.info("User %s unblocked %s", auth.principal_id, user_id)


def list_blocked(db: Session, auth: AuthSession | None) -> list[BlockedUser]:
    """Blocks placed by the principal, most recent first."""
    auth = require_session(auth)
    result = db.execute(
        select(BlockedUser)
        .where(BlockedUser.user_id == auth.principal_id)
        .order_by(BlockedUser.blocked_at.desc())
    )
    return list(result.scalars())


def is_blocked(db: Session, user_id: str, other_id: str) -> bool:
    """Return True when ``user_id`` has blocked ``other_id``."""
    return db.get(BlockedUser, (user_id, other_id)) is not None


def ensure_not_blocked(db: Session, sender_id: str, recipient_id: str) -> None:
    """Raise :class:`SenderBlocked` when ``recipient_id`` has blocked ``sender_id``."""
    if is_blocked(db, recipient_id, sender_id):
        raise SenderBlocked(f"{recipient_id} does not accept messages from {sender_id}")
