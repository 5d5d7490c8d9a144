"""Data access helpers for working with conversations."""
from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from comu_relay.models import Conversation
from comu_relay.schemas.message import Message

__all__ = ["ConversationRepository"]


class ConversationRepository:
    """Thin wrapper around database access for conversation entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, conversation_id: str) -> Conversation | None:
        return self.session.get(Conversation, conversation_id)

    def upsert(
        self,
        conversation_id: str,
        participants: list[str],
        *,
        last_activity: int | None = None,
    ) -> Conversation:
        """Create the conversation or merge ``participants`` into the existing record."""
        conversation = self.get(conversation_id)
        if conversation is None:
            conversation = Conversation(
                id=conversation_id,
                participants=list(participants),
                last_activity=last_activity or 0,
                pinned_message_ids=[],
                typing={},
            )
            self.session.add(conversation)
        else:
            merged = list(conversation.participants or [])
            for participant in participants:
                if participant not in merged:
                    merged.append(participant)
            if merged != conversation.participants:
                conversation.participants = merged
        self.session.flush()
        return conversation

    def list_for_user(self, user_id: str) -> list[Conversation]:
        """Return every conversation ``user_id`` participates in, newest activity first."""
        # Ids are "<a>_<b>", which narrows the scan before the exact participant check.
        result = self.session.execute(
            select(Conversation).where(
                or_(
                    Conversation.id.startswith(f"{user_id}_", autoescape=True),
                    Conversation.id.endswith(f"_{user_id}", autoescape=True),
                )
            )
        )
        conversations = [c for c in result.scalars() if user_id in (c.participants or [])]
        conversations.sort(key=lambda c: c.last_activity or 0, reverse=True)
        return conversations

    def update_snapshot(self, conversation: Conversation, message: Message, activity_at: int) -> None:
        conversation.last_message = {
            "id": message.id,
            "content": message.content,
            "created_at": message.created_at,
            "kind": message.kind.value,
        }
        conversation.last_activity = activity_at
        self.session.flush()

    def delete(self, conversation: Conversation) -> None:
        self.session.delete(conversation)
        self.session.flush()
