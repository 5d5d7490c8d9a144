"""Endpoints for reviewing messages stopped by blocked words."""

from __future__ import annotations

from fastapi import APIRouter

from comu_relay.schemas.user import BlockedAttemptOut, BlockedAttemptResolve
from comu_relay.services.blocked_words import list_attempts, resolve_attempt

from ..dependencies import AuthDep, SessionDep

router = APIRouter(prefix="/blocked-attempts", tags=["blocked words"])


@router.get("", response_model=list[BlockedAttemptOut])
async def get_blocked_attempts(auth: AuthDep, db: SessionDep) -> list[BlockedAttemptOut]:
    """Unresolved attempts addressed to the caller, newest first."""
    return [BlockedAttemptOut.model_validate(a) for a in list_attempts(db, auth)]


@router.put("/{attempt_id}", response_model=BlockedAttemptOut)
async def resolve_blocked_attempt(
    attempt_id: str,
    payload: BlockedAttemptResolve,
    auth: AuthDep,
    db: SessionDep,
) -> BlockedAttemptOut:
    attempt = resolve_attempt(db, auth, attempt_id, payload.action)
    return BlockedAttemptOut.model_validate(attempt)
