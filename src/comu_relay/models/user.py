# src/comu_relay/models/user.py
"""SQLAlchemy models for user accounts."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from comu_relay.db.session import Base


class User(Base):
    """Account record; ``id`` is the principal id stamped on outgoing messages."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    nickname: Mapped[str] = mapped_column(Text, nullable=False)
    # Short shareable code used to start a conversation with this user.
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)
    password_hash: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    blocked_words: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Incremented on sign-out; tokens carrying an older version are rejected.
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
