# src/comu_relay/api/v1/endpoints/auth.py
"""Authentication endpoints for the Comu Relay API."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from comu_relay.models import User
from comu_relay.schemas.user import LoginRequest, RegisterRequest, SelfOut, TokenResponse
from comu_relay.services.identity import IdentityProvider

from ..dependencies import AuthDep, SessionDep

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: SessionDep) -> TokenResponse:
    """Create an account and sign it in."""
    provider = IdentityProvider(db)
    provider.create_account(payload.email, payload.password, payload.nickname)
    auth, token = provider.sign_in(payload.email, payload.password)
    user = db.get(User, auth.principal_id)
    return TokenResponse(access_token=token, user=SelfOut.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: SessionDep) -> TokenResponse:
    auth, token = IdentityProvider(db).sign_in(payload.email, payload.password)
    user = db.get(User, auth.principal_id)
    return TokenResponse(access_token=token, user=SelfOut.model_validate(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(auth: AuthDep, db: SessionDep) -> Response:
    """Revoke every token issued to the caller so far."""
    IdentityProvider(db).sign_out(auth)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
