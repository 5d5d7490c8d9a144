# src/comu_relay/models/conversation.py
"""SQLAlchemy model for pairwise conversations."""

from typing import Any

from sqlalchemy import JSON, BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from comu_relay.db.session import Base


class Conversation(Base):
    """Relationship between exactly two users.

    The identifier is derived from the sorted participant ids, so a pair of
    users can only ever share one conversation and it can be looked up without
    a query.
    """

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    participants: Mapped[list[str]] = mapped_column(JSON, nullable=False)

    # Denormalized snapshot of the latest committed message for list rendering.
    last_message: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    last_activity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    pinned_message_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # user id -> last time (ms) the user reported typing; stale entries are ignored.
    typing: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)
