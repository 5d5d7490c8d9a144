"""Conversation-related Pydantic schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConversationOut(BaseModel):
    """Conversation information returned by the API."""

    id: str
    participants: list[str]
    last_message: dict[str, Any] | None = None
    last_activity: int = 0
    pinned_message_ids: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ConversationStart(BaseModel):
    """Request to find or create a conversation with another user."""

    peer_id: str | None = Field(None, description="User id of the other participant")
    peer_code: str | None = Field(None, description="Invite code of the other participant")

    @model_validator(mode="after")
    def _one_target(self) -> "ConversationStart":
        if (self.peer_id is None) == (self.peer_code is None):
            raise ValueError("Provide exactly one of peer_id or peer_code")
        return self


class TypingUpdate(BaseModel):
    """Typing indicator toggle."""

    typing: bool
