"""User profile, blocked-word and user-blocking endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from comu_relay.core.errors import NotFound
from comu_relay.schemas.user import (
    BlockedUserOut,
    BlockedWordsUpdate,
    ProfileUpdate,
    SelfOut,
    UserOut,
)
from comu_relay.services import users as user_service
from comu_relay.services.blocked_words import update_blocked_words
from comu_relay.services.identity import find_user_by_code

from ..dependencies import AuthDep, CurrentUserDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=SelfOut)
async def read_me(current_user: CurrentUserDep) -> SelfOut:
    return SelfOut.model_validate(current_user)


@router.patch("/me", response_model=SelfOut)
async def update_me(payload: ProfileUpdate, auth: AuthDep, db: SessionDep) -> SelfOut:
    """Update nickname, bio or profile picture URL."""
    user = user_service.update_profile(db, auth, payload.model_dump(exclude_unset=True))
    return SelfOut.model_validate(user)


@router.get("/by-code/{code}", response_model=UserOut)
async def read_user_by_code(code: str, _auth: AuthDep, db: SessionDep) -> UserOut:
    """Look up the public profile behind an invite code."""
    user = find_user_by_code(db, code)
    if user is None:
        raise NotFound(f"No user with code {code}")
    return UserOut.model_validate(user)


@router.put("/me/blocked-words", response_model=SelfOut)
async def replace_blocked_words(
    payload: BlockedWordsUpdate,
    auth: AuthDep,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> SelfOut:
    update_blocked_words(db, auth, payload.blocked_words)
    return SelfOut.model_validate(current_user)


@router.get("/me/blocked", response_model=list[BlockedUserOut])
async def read_blocked_users(auth: AuthDep, db: SessionDep) -> list[BlockedUserOut]:
    return [BlockedUserOut.model_validate(b) for b in user_service.list_blocked(db, auth)]


@router.get("/{user_id}/block")
async def read_block(user_id: str, auth: AuthDep, db: SessionDep) -> dict[str, bool]:
    """Whether the caller has blocked ``user_id``."""
    return {"blocked": user_service.is_blocked(db, auth.principal_id, user_id)}


@router.put("/{user_id}/block", response_model=BlockedUserOut)
async def block(user_id: str, auth: AuthDep, db: SessionDep) -> BlockedUserOut:
    return BlockedUserOut.model_validate(user_service.block_user(db, auth, user_id))


@router.delete("/{user_id}/block", status_code=status.HTTP_204_NO_CONTENT)
async def unblock(user_id: str, auth: AuthDep, db: SessionDep) -> Response:
    user_service.unblock_user(db, auth, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
