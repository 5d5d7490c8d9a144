"""Pydantic schemas for request/response validation."""

from .conversation import ConversationOut, ConversationStart, TypingUpdate
from .media import MediaUpload, MediaUploaded
from .message import (
    ContentKind,
    DeliveryFailure,
    DeliveryReport,
    Message,
    MessageCreate,
    MessageEdit,
    Reaction,
    ReactionCreate,
)
from .user import (
    BlockedAttemptOut,
    BlockedAttemptResolve,
    BlockedUserOut,
    BlockedWordsUpdate,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    SelfOut,
    TokenResponse,
    UserOut,
)

__all__ = [
    "BlockedAttemptOut",
    "BlockedAttemptResolve",
    "BlockedUserOut",
    "BlockedWordsUpdate",
    "ContentKind",
    "ConversationOut",
    "ConversationStart",
    "DeliveryFailure",
    "DeliveryReport",
    "LoginRequest",
    "MediaUpload",
    "MediaUploaded",
    "Message",
    "MessageCreate",
    "MessageEdit",
    "ProfileUpdate",
    "Reaction",
    "ReactionCreate",
    "RegisterRequest",
    "SelfOut",
    "TokenResponse",
    "TypingUpdate",
    "UserOut",
]
