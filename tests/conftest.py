# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
# Cheapest argon2id parameters libsodium accepts.
os.environ.setdefault("PWHASH_OPSLIMIT", "1")
os.environ.setdefault("PWHASH_MEMLIMIT", "8192")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from comu_relay.api.v1.endpoints import live as live_endpoints
from comu_relay.api.v1.endpoints import media as media_endpoints
from comu_relay.db.feed import feed_hub
from comu_relay.db.session import Base
from comu_relay.db.session import get_db as app_get_session
from comu_relay.db.time import now_ms
from comu_relay.main import app as fastapi_app
from comu_relay.models import Conversation, StoredMessage, User
from comu_relay.schemas.message import Message
from comu_relay.services.change_feed import LiveChangeFeed
from comu_relay.services.conversations import derive_conversation_id
from comu_relay.services.identity import AuthSession, create_access_token, hash_password
from comu_relay.services.media import LocalObjectStore
from comu_relay.services.message_factory import create_message

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "secret123"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker]:
    """Session factory wired into the change feed, like the application's own."""
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    feed_hub.attach(factory)
    try:
        yield factory
    finally:
        feed_hub.detach(factory)
        feed_hub.clear()
        # Ensure each test sees a clean database; services commit for real.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def live_feed(session_factory: sessionmaker) -> LiveChangeFeed:
    return LiveChangeFeed(feed_hub, session_factory)


@pytest.fixture()
def media_store(tmp_path: Any) -> LocalObjectStore:
    return LocalObjectStore(root=tmp_path / "media", base_url="https://cdn.test/media/")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    request: pytest.FixtureRequest,
) -> Iterator[None]:
    # Only tests that touch the database pay for the session fixtures.
    if "db_session" not in request.fixturenames:
        yield
        return
    db_session: Session = request.getfixturevalue("db_session")
    live_feed: LiveChangeFeed = request.getfixturevalue("live_feed")
    media_store: LocalObjectStore = request.getfixturevalue("media_store")

    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        app_get_session: _get_session_override,
        live_endpoints.get_live_feed: lambda: live_feed,
        media_endpoints.get_object_store: lambda: media_store,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_user(db_session: Session, nickname: str, **overrides: Any) -> User:
    number = next(_USER_COUNTER)
    user = User(
        id=overrides.pop("id", f"user-{nickname.lower()}-{number}"),
        email=overrides.pop("email", f"{nickname.lower()}{number}@example.com"),
        nickname=nickname,
        code=overrides.pop("code", f"CODE{number:04d}"),
        password_hash=hash_password(TEST_PASSWORD),
        created_at=now_ms(),
        blocked_words=overrides.pop("blocked_words", []),
        token_version=0,
        **overrides,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def alice(db_session: Session) -> User:
    """Primary test user."""
    return make_user(db_session, "Alice")


@pytest.fixture()
def bob(db_session: Session) -> User:
    """Second participant of the primary conversation."""
    return make_user(db_session, "Bob")


@pytest.fixture()
def carol(db_session: Session) -> User:
    """A user outside the primary conversation."""
    return make_user(db_session, "Carol")


@pytest.fixture()
def alice_auth(alice: User) -> AuthSession:
    return AuthSession(principal_id=alice.id)


@pytest.fixture()
def bob_auth(bob: User) -> AuthSession:
    return AuthSession(principal_id=bob.id)


@pytest.fixture()
def conversation(db_session: Session, alice: User, bob: User) -> Conversation:
    """Conversation between Alice and Bob with no messages yet."""
    conversation = Conversation(
        id=derive_conversation_id(alice.id, bob.id),
        participants=[alice.id, bob.id],
        last_activity=0,
        pinned_message_ids=[],
        typing={},
    )
    db_session.add(conversation)
    db_session.commit()
    db_session.refresh(conversation)
    return conversation


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    """Return authorization headers for Alice."""
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    """Return authorization headers for Bob."""
    return auth_headers(bob)


@pytest.fixture()
def carol_headers(carol: User) -> dict[str, str]:
    return auth_headers(carol)


def draft(
    conversation: Conversation,
    sender: User,
    recipient: User,
    content: str = "hello",
    *,
    created_at: int | None = None,
) -> Message:
    return create_message(
        conversation.id,
        sender.id,
        recipient.id,
        "text",
        content,
        created_at=created_at,
    )


def store_committed(
    db_session: Session,
    message: Message,
    *,
    committed_at: int | None = None,
) -> StoredMessage:
    """Write ``message`` straight into the durable ledger as committed."""
    from comu_relay.repositories import message_document

    document = message_document(message)
    document.update(committed=True, committed_at=committed_at if committed_at is not None else now_ms())
    row = StoredMessage(**document)
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row
