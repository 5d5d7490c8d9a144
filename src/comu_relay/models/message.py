# src/comu_relay/models/message.py
"""Models describing direct messages between two users.

A message lives in one of two collections. ``pending_messages`` is the
sender-keyed staging area for messages that have not been committed yet;
``messages`` is the durable ledger visible to both participants. Both share
the same document shape so a record can move between them unchanged.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from comu_relay.db.session import Base


class MessageColumns:
    """Columns shared by pending and committed message documents."""

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    conversation_id: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    sender_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # One of text, image, video, audio, gif. Media kinds carry a URL in ``content``.
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default="text")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Client clock, milliseconds since the epoch; never corrected by the server.
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    committed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    committed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    reply_to_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    reactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    read_by: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    read_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class StoredMessage(MessageColumns, Base):
    """Durable message record shared by sender and recipient."""

    __tablename__ = "messages"


class PendingMessage(MessageColumns, Base):
    """Message staged by its sender and not yet committed."""

    __tablename__ = "pending_messages"
