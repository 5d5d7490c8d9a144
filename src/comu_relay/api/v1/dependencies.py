"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from comu_relay.db.session import get_db
from comu_relay.models import User
from comu_relay.services.identity import AuthSession, IdentityProvider

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_auth_session(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> AuthSession:
    """Resolve the bearer token into the principal acting on this request.

    Raises:
        HTTPException: If the token is invalid, expired or revoked
    """
    auth = IdentityProvider(db).resolve(credentials.credentials)
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth


# Type alias for the per-request principal
AuthDep = Annotated[AuthSession, Depends(get_auth_session)]


def get_current_user(auth: AuthDep, db: SessionDep) -> User:
    user = db.get(User, auth.principal_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
