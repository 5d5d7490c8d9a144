"""Identity provider and principal resolution.

Operations that need to know who is acting receive an explicit
:class:`AuthSession`. It is resolved once per request from the bearer token
and never cached beyond that request, so a stale principal id can't leak
into a later write.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import nacl.pwhash
from jose import JWTError, jwt
from nacl.exceptions import InvalidkeyError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from comu_relay.core.errors import AccountExists, NotFound, Unauthenticated
from comu_relay.core.settings import settings
from comu_relay.db.time import now_ms
from comu_relay.models import User

logger = logging.getLogger(__name__)

_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

SIGNED_IN = "signed_in"
SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class AuthSession:
    """The principal an operation is performed as."""

    principal_id: str


StateCallback = Callable[[str, AuthSession], None]


class IdentityEvents:
    """Fan-out of sign-in/sign-out notifications."""

    def __init__(self) -> None:
        self._listeners: list[StateCallback] = []

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def emit(self, event_name: str, auth: AuthSession) -> None:
        for listener in list(self._listeners):
            listener(event_name, auth)


identity_events = IdentityEvents()


def hash_password(password: str) -> bytes:
    """Return an argon2id hash of ``password``."""
    return nacl.pwhash.argon2id.str(
        password.encode("utf-8"),
        opslimit=settings.pwhash_opslimit,
        memlimit=settings.pwhash_memlimit,
    )


def verify_password(password_hash: bytes, password: str) -> bool:
    try:
        return nacl.pwhash.verify(password_hash, password.encode("utf-8"))
    except InvalidkeyError:
        return False


def generate_user_code(length: int | None = None) -> str:
    """Return a random invite code such as ``"K3Q9ZP1A"``."""
    size = length or settings.user_code_length
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(size))


def create_access_token(
    user_id: str,
    token_version: int = 0,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for ``user_id``."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {"sub": user_id, "ver": token_version, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def require_session(auth: AuthSession | None) -> AuthSession:
    """Return ``auth`` or raise :class:`Unauthenticated` when no principal is bound."""
    if auth is None or not auth.principal_id:
        raise Unauthenticated("No signed-in principal")
    return auth


def resolve_user(db: Session, auth: AuthSession | None) -> User:
    """Map the principal of ``auth`` to its stable user record."""
    auth = require_session(auth)
    user = db.get(User, auth.principal_id)
    if user is None:
        raise NotFound(f"User {auth.principal_id} not found")
    return user


def find_user_by_code(db: Session, code: str) -> User | None:
    result = db.execute(select(User).where(User.code == code.strip().upper()))
    return result.scalars().first()


class IdentityProvider:
    """Account creation, sign-in/out and token resolution backed by the users table."""

    def __init__(self, db: Session, events: IdentityEvents | None = None) -> None:
        self.db = db
        self.events = events or identity_events

    def _unique_code(self) -> str:
        code = generate_user_code()
        while find_user_by_code(self.db, code) is not None:
            code = generate_user_code()
        return code

    def create_account(self, email: str, password: str, nickname: str) -> User:
        """Create a user and return it; the caller signs in separately."""
        email = email.strip().lower()
        existing = self.db.execute(select(User).where(User.email == email)).scalars().first()
        if existing is not None:
            raise AccountExists("This email address is already in use")

        user = User(
            id=str(uuid.uuid4()),
            email=email,
            nickname=nickname.strip(),
            code=self._unique_code(),
            password_hash=hash_password(password),
            created_at=now_ms(),
            blocked_words=[],
            token_version=0,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as err:
            self.db.rollback()
            raise AccountExists("This email address is already in use") from err
        self.db.refresh(user)
        logger.info("Created account %s", user.id)
        return user

    def sign_in(self, email: str, password: str) -> tuple[AuthSession, str]:
        """Verify credentials and return the new session with its bearer token."""
        email = email.strip().lower()
        user = self.db.execute(select(User).where(User.email == email)).scalars().first()
        if user is None or not verify_password(user.password_hash, password):
            raise Unauthenticated("Invalid email or password")

        auth = AuthSession(principal_id=user.id)
        token = create_access_token(user.id, user.token_version)
        self.events.emit(SIGNED_IN, auth)
        return auth, token

    def sign_out(self, auth: AuthSession | None) -> None:
        """Revoke every token issued to the principal so far."""
        user = resolve_user(self.db, auth)
        user.token_version += 1
        self.db.commit()
        self.events.emit(SIGNED_OUT, AuthSession(principal_id=user.id))

    def resolve(self, token: str | None) -> AuthSession | None:
        """Return the session a bearer token stands for, or ``None`` if it is not live."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        except JWTError:
            return None

        subject = payload.get("sub")
        if not subject:
            return None
        user = self.db.get(User, subject)
        if user is None or payload.get("ver", 0) != user.token_version:
            return None
        return AuthSession(principal_id=user.id)

    def on_state_change(self, callback: StateCallback) -> Callable[[], None]:
        return self.events.subscribe(callback)
