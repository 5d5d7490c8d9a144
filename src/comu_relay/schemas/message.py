"""Message-related Pydantic schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    """Kind of payload carried by a message."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    GIF = "gif"


class Reaction(BaseModel):
    """A single reactor's emoji on a message."""

    emoji: str
    user_id: str
    timestamp: int

    model_config = ConfigDict(from_attributes=True)


class Message(BaseModel):
    """Immutable message value exchanged between the service layers."""

    id: str
    conversation_id: str
    sender_id: str
    recipient_id: str
    kind: ContentKind = ContentKind.TEXT
    content: str
    created_at: int = Field(..., description="Client timestamp in ms since the epoch")
    committed: bool = False
    committed_at: int | None = None
    edited: bool = False
    edited_at: int | None = None
    reply_to_id: str | None = None
    reactions: list[Reaction] = Field(default_factory=list)
    read_by: list[str] = Field(default_factory=list)
    read_at: int | None = None
    pinned: bool = False

    model_config = ConfigDict(from_attributes=True, frozen=True, use_enum_values=False)

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.created_at, self.id)


class MessageCreate(BaseModel):
    """Schema for composing a message in a conversation."""

    kind: ContentKind = Field(ContentKind.TEXT, description="Payload kind")
    content: str = Field(..., min_length=1, description="Text body or media URL")
    reply_to_id: str | None = Field(None, description="Identifier of the message being answered")


class MessageEdit(BaseModel):
    """Schema for replacing a message's content."""

    content: str = Field(..., min_length=1)


class ReactionCreate(BaseModel):
    """Schema for reacting to a message."""

    emoji: str = Field(..., min_length=1, max_length=32)


class DeliveryFailure(BaseModel):
    """Why a single pending message was not committed."""

    message_id: str
    error: str = Field(..., description="Error code, e.g. not_found or permission_denied")
    detail: str


class DeliveryReport(BaseModel):
    """Outcome of draining a sender's pending queue."""

    success_count: int = 0
    failure_count: int = 0
    errors: list[DeliveryFailure] = Field(default_factory=list)
    already_committed: list[str] = Field(
        default_factory=list,
        description="Identifiers found committed already; neither success nor failure",
    )
    delivered: list[str] = Field(default_factory=list)
