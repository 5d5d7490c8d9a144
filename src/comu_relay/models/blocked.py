# src/comu_relay/models/blocked.py
"""Blocked-word attempts and user-to-user blocks."""

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from comu_relay.db.session import Base


class BlockedWordAttempt(Base):
    """A send attempt rejected because it contained a blocked word."""

    __tablename__ = "blocked_attempts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    conversation_id: Mapped[str] = mapped_column(String(160), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(64), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    blocked_word: Mapped[str] = mapped_column(Text, nullable=False)
    message_content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # None until the recipient resolves it as 'blocked' or 'ignored'.
    action: Mapped[str | None] = mapped_column(String(16), nullable=True)


class BlockedUser(Base):
    """One user's block on another; the blocked user's messages are refused."""

    __tablename__ = "blocked_users"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    blocked_user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    blocked_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
