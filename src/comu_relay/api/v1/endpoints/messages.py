# src/comu_relay/api/v1/endpoints/messages.py
"""Direct message endpoints: pending queue, delivery and mutations."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from comu_relay.schemas.message import DeliveryReport, Message, MessageEdit, ReactionCreate
from comu_relay.services import mutations
from comu_relay.services.delivery import DeliveryPump
from comu_relay.services.pending_queue import PendingQueue

from ..dependencies import AuthDep, SessionDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/pending", response_model=list[Message])
async def list_pending(auth: AuthDep, db: SessionDep) -> list[Message]:
    """Messages the caller has staged but not yet delivered."""
    pending = PendingQueue(db).list_by_sender(auth.principal_id)
    return sorted(pending, key=lambda m: m.sort_key)


@router.post("/deliver", response_model=DeliveryReport)
async def deliver_pending(auth: AuthDep, db: SessionDep) -> DeliveryReport:
    """Commit the caller's pending messages and report per-message failures."""
    return DeliveryPump(db).drain(auth)


@router.patch("/{message_id}", response_model=Message)
async def edit_message(
    message_id: str,
    payload: MessageEdit,
    auth: AuthDep,
    db: SessionDep,
) -> Message:
    return mutations.edit_message(db, auth, message_id, payload.content)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(message_id: str, auth: AuthDep, db: SessionDep) -> Response:
    mutations.delete_message(db, auth, message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{message_id}/reaction", response_model=Message)
async def put_reaction(
    message_id: str,
    payload: ReactionCreate,
    auth: AuthDep,
    db: SessionDep,
) -> Message:
    return mutations.react(db, auth, message_id, payload.emoji)


@router.delete("/{message_id}/reaction", response_model=Message)
async def delete_reaction(message_id: str, auth: AuthDep, db: SessionDep) -> Message:
    return mutations.remove_reaction(db, auth, message_id)


@router.put("/{message_id}/read", response_model=Message)
async def mark_message_read(message_id: str, auth: AuthDep, db: SessionDep) -> Message:
    """Mark a received message as read."""
    return mutations.mark_read(db, auth, message_id)


@router.put("/{message_id}/pin", response_model=Message)
async def pin_message(message_id: str, auth: AuthDep, db: SessionDep) -> Message:
    return mutations.pin_message(db, auth, message_id)


@router.delete("/{message_id}/pin", response_model=Message)
async def unpin_message(message_id: str, auth: AuthDep, db: SessionDep) -> Message:
    return mutations.unpin_message(db, auth, message_id)
