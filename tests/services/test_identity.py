"""Tests for the identity provider and principal resolution."""

import string
from datetime import timedelta

import pytest

from comu_relay.core.errors import AccountExists, NotFound, Unauthenticated
from comu_relay.services.identity import (
    SIGNED_IN,
    SIGNED_OUT,
    AuthSession,
    IdentityEvents,
    IdentityProvider,
    create_access_token,
    generate_user_code,
    hash_password,
    require_session,
    resolve_user,
    verify_password,
)


def test_password_hash_roundtrip() -> None:
    hashed = hash_password("correct horse")

    assert verify_password(hashed, "correct horse")
    assert not verify_password(hashed, "wrong horse")


def test_generate_user_code_shape() -> None:
    code = generate_user_code()

    assert len(code) == 8
    assert set(code) <= set(string.ascii_uppercase + string.digits)
    assert len(generate_user_code(4)) == 4


def test_create_account_and_sign_in(db_session) -> None:
    provider = IdentityProvider(db_session, events=IdentityEvents())
    user = provider.create_account(" Dana@Example.com ", "secret123", "Dana")

    auth, token = provider.sign_in("dana@example.com", "secret123")

    assert user.email == "dana@example.com"
    assert user.code
    assert auth == AuthSession(principal_id=user.id)
    assert provider.resolve(token) == auth


def test_duplicate_email_is_rejected(db_session) -> None:
    provider = IdentityProvider(db_session, events=IdentityEvents())
    provider.create_account("eve@example.com", "secret123", "Eve")

    with pytest.raises(AccountExists):
        provider.create_account("EVE@example.com", "other-pass", "Eve 2")


def test_sign_in_with_bad_credentials(db_session, alice) -> None:
    provider = IdentityProvider(db_session, events=IdentityEvents())

    with pytest.raises(Unauthenticated):
        provider.sign_in(alice.email, "not-the-password")
    with pytest.raises(Unauthenticated):
        provider.sign_in("nobody@example.com", "secret123")


def test_sign_out_revokes_existing_tokens(db_session, alice, alice_auth) -> None:
    events = IdentityEvents()
    seen: list[tuple[str, str]] = []
    provider = IdentityProvider(db_session, events=events)
    unsubscribe = provider.on_state_change(lambda name, auth: seen.append((name, auth.principal_id)))

    _, token = provider.sign_in(alice.email, "secret123")
    provider.sign_out(alice_auth)
    unsubscribe()
    provider.sign_in(alice.email, "secret123")

    assert provider.resolve(token) is None
    assert seen == [(SIGNED_IN, alice.id), (SIGNED_OUT, alice.id)]


def test_resolve_rejects_garbage_and_expired_tokens(db_session, alice) -> None:
    provider = IdentityProvider(db_session, events=IdentityEvents())
    expired = create_access_token(alice.id, expires_delta=timedelta(seconds=-5))

    assert provider.resolve(None) is None
    assert provider.resolve("not-a-jwt") is None
    assert provider.resolve(expired) is None
    assert provider.resolve(create_access_token("ghost")) is None


def test_require_session_and_resolve_user(db_session, alice, alice_auth) -> None:
    assert require_session(alice_auth) is alice_auth
    assert resolve_user(db_session, alice_auth).id == alice.id

    with pytest.raises(Unauthenticated):
        require_session(None)
    with pytest.raises(Unauthenticated):
        require_session(AuthSession(principal_id=""))
    with pytest.raises(NotFound):
        resolve_user(db_session, AuthSession(principal_id="ghost"))
