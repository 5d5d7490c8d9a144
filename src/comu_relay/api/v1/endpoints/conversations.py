"""Conversation endpoints: listing, composing, read receipts and typing."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response, status

from comu_relay.schemas.conversation import ConversationOut, ConversationStart, TypingUpdate
from comu_relay.schemas.message import ContentKind, Message, MessageCreate
from comu_relay.services import conversations as conversation_service
from comu_relay.services.blocked_words import screen_outgoing
from comu_relay.services.message_factory import create_message
from comu_relay.services.mutations import mark_conversation_read
from comu_relay.services.pending_queue import PendingQueue
from comu_relay.services.reconcile import MessageStore
from comu_relay.services.users import ensure_not_blocked

from ..dependencies import AuthDep, SessionDep

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("", response_model=ConversationOut)
async def start_conversation(
    payload: ConversationStart,
    auth: AuthDep,
    db: SessionDep,
) -> ConversationOut:
    """Find or create the conversation with another user."""
    if payload.peer_code is not None:
        conversation = conversation_service.start_with_code(db, auth, payload.peer_code)
    else:
        conversation = conversation_service.find_or_create(db, auth, payload.peer_id)
    return ConversationOut.model_validate(conversation)


@router.get("", response_model=list[ConversationOut])
async def list_conversations(auth: AuthDep, db: SessionDep) -> list[ConversationOut]:
    conversations = conversation_service.list_for_user(db, auth.principal_id)
    return [ConversationOut.model_validate(c) for c in conversations]


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(conversation_id: str, auth: AuthDep, db: SessionDep) -> Response:
    conversation_service.delete_conversation(db, auth, conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/messages", response_model=list[Message])
async def get_conversation_messages(
    conversation_id: str,
    auth: AuthDep,
    db: SessionDep,
) -> list[Message]:
    """Committed and pending messages of the conversation in display order."""
    conversation_service.get_conversation(db, auth, conversation_id)
    return MessageStore(db).conversation_view(conversation_id, auth.principal_id)


@router.post(
    "/{conversation_id}/messages",
    response_model=Message,
    status_code=status.HTTP_202_ACCEPTED,
)
async def compose_message(
    conversation_id: str,
    payload: MessageCreate,
    auth: AuthDep,
    db: SessionDep,
) -> Message:
    """Stage a new message; it is committed by the next delivery run."""
    conversation = conversation_service.get_conversation(db, auth, conversation_id)
    recipient_id = conversation_service.peer_of(conversation, auth.principal_id)
    ensure_not_blocked(db, auth.principal_id, recipient_id)
    if payload.kind is ContentKind.TEXT:
        screen_outgoing(db, auth, conversation_id, recipient_id, payload.content)

    message = create_message(
        conversation_id,
        auth.principal_id,
        recipient_id,
        payload.kind,
        payload.content,
        payload.reply_to_id,
    )
    return PendingQueue(db).enqueue(auth, message)


@router.post("/{conversation_id}/read")
async def read_conversation(conversation_id: str, auth: AuthDep, db: SessionDep) -> dict[str, int]:
    return {"marked": mark_conversation_read(db, auth, conversation_id)}


@router.put("/{conversation_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
async def update_typing(
    conversation_id: str,
    payload: TypingUpdate,
    auth: AuthDep,
    db: SessionDep,
) -> Response:
    conversation_service.set_typing(db, auth, conversation_id, payload.typing)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/typing")
async def read_typing(conversation_id: str, auth: AuthDep, db: SessionDep) -> dict[str, Any]:
    """Participants other than the caller who are typing right now."""
    conversation_service.get_conversation(db, auth, conversation_id)
    users = conversation_service.typing_users(db, conversation_id, exclude=auth.principal_id)
    return {"conversation_id": conversation_id, "typing": users}
