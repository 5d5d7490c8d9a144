"""User-related Pydantic schemas."""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RegisterRequest(BaseModel):
    """Schema for creating an account."""

    email: str = Field(..., description="Login email address")
    password: str = Field(..., min_length=6, description="At least six characters")
    nickname: str = Field(..., min_length=1, max_length=64)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email address")
        return value


class LoginRequest(BaseModel):
    """Schema for signing in."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserOut(BaseModel):
    """Public profile of a user."""

    id: str
    nickname: str
    code: str
    created_at: int
    bio: str | None = None
    profile_picture: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SelfOut(UserOut):
    """Profile of the signed-in user, including private fields."""

    email: str
    blocked_words: list[str] = Field(default_factory=list)


class ProfileUpdate(BaseModel):
    """Partial update of the public profile; omitted fields are left alone."""

    nickname: str | None = Field(default=None, min_length=1, max_length=64)
    bio: str | None = Field(default=None, max_length=500)
    profile_picture: str | None = None

    @field_validator("nickname")
    @classmethod
    def nickname_not_null(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError("nickname cannot be cleared")
        return value


class TokenResponse(BaseModel):
    """Access token issued after registration or sign-in."""

    access_token: str
    token_type: str = "bearer"
    user: SelfOut


class BlockedWordsUpdate(BaseModel):
    """Replacement list of blocked words."""

    blocked_words: list[str] = Field(default_factory=list)

    @field_validator("blocked_words")
    @classmethod
    def strip_words(cls, value: list[str]) -> list[str]:
        words = [word.strip() for word in value]
        return [word for word in dict.fromkeys(words) if word]


class BlockedAttemptOut(BaseModel):
    """Blocked-word attempt shown to the recipient."""

    id: str
    conversation_id: str
    sender_id: str
    recipient_id: str
    blocked_word: str
    message_content: str
    timestamp: int
    action: str | None = None

    model_config = ConfigDict(from_attributes=True)


class BlockedUserOut(BaseModel):
    """A user the caller has blocked."""

    user_id: str = Field(validation_alias="blocked_user_id")
    blocked_at: int

    model_config = ConfigDict(from_attributes=True)


class BlockedAttemptResolve(BaseModel):
    """Recipient's decision on a blocked-word attempt."""

    action: Literal["blocked", "ignored"]
