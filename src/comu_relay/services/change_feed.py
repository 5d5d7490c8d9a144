"""Live conversation and conversation-list feeds.

A conversation feed listens to two message streams (messages the viewer sent,
messages the viewer received) plus the viewer's pending queue. Each stream
keeps its own last-write-per-id map, and every delta recomputes the merged
view from scratch, so an ordering glitch can't outlive the next push.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from comu_relay.db.feed import ChangeFeedHub, Subscription, feed_hub
from comu_relay.models import Conversation, PendingMessage, StoredMessage
from comu_relay.repositories import ConversationRepository, MessageRepository, to_message
from comu_relay.schemas.conversation import ConversationOut
from comu_relay.schemas.message import Message
from comu_relay.services.pending_queue import PendingQueue
from comu_relay.services.reconcile import merge_messages, union_by_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

MessagesCallback = Callable[[list[Message]], None]
ConversationsCallback = Callable[[list[ConversationOut]], None]


class FeedHandle:
    """Owns the hub subscriptions behind one feed; closing releases all of them."""

    def __init__(self, hub: ChangeFeedHub, subscriptions: list[Subscription]) -> None:
        self._hub = hub
        self._subscriptions = subscriptions
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        for subscription in self._subscriptions:
            self._hub.unsubscribe(subscription)
        self._subscriptions = []
        self.closed = True

    def __enter__(self) -> FeedHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@dataclass
class _ConversationState:
    sent: dict[str, Message] = field(default_factory=dict)
    received: dict[str, Message] = field(default_factory=dict)
    pending: list[Message] = field(default_factory=list)


class LiveChangeFeed:
    """Subscribes callers to recomputed conversation views and conversation lists."""

    def __init__(
        self,
        hub: ChangeFeedHub | None = None,
        session_factory: Callable[[], Session] | None = None,
    ) -> None:
        if session_factory is None:
            from comu_relay.db.session import SessionLocal

            session_factory = SessionLocal
        self.hub = hub or feed_hub
        self.session_factory = session_factory

    def _read(self, query: Callable[[Session], T]) -> T:
        with self.session_factory() as session:
            return query(session)

    def _sent_by(self, viewer_id: str) -> list[Message]:
        return self._read(
            lambda s: [to_message(r) for r in MessageRepository(s).list_by_sender(viewer_id)]
        )

    def _received_by(self, viewer_id: str) -> list[Message]:
        return self._read(
            lambda s: [to_message(r) for r in MessageRepository(s).list_by_recipient(viewer_id)]
        )

    def _pending_of(self, viewer_id: str) -> list[Message]:
        return self._read(lambda s: PendingQueue(s).list_by_sender(viewer_id))

    def subscribe_conversation(
        self,
        conversation_id: str,
        viewer_id: str,
        callback: MessagesCallback,
    ) -> FeedHandle:
        """Push the merged view of ``conversation_id`` now and after every change."""
        state = _ConversationState()

        def push() -> None:
            committed = union_by_id(state.sent.values(), state.received.values())
            callback(merge_messages(committed.values(), state.pending, conversation_id))

        def on_sent(messages: list[Message]) -> None:
            state.sent = {m.id: m for m in messages}
            state.pending = self._pending_of(viewer_id)
            push()

        def on_received(messages: list[Message]) -> None:
            state.received = {m.id: m for m in messages}
            state.pending = self._pending_of(viewer_id)
            push()

        def on_pending(messages: list[Message]) -> None:
            state.pending = messages
            push()

        def in_conversation(doc: dict[str, Any]) -> bool:
            return doc.get("conversation_id") == conversation_id

        subscriptions = [
            self.hub.subscribe(
                StoredMessage.__tablename__,
                lambda doc: doc.get("sender_id") == viewer_id and in_conversation(doc),
                lambda: self._sent_by(viewer_id),
                on_sent,
            ),
            self.hub.subscribe(
                StoredMessage.__tablename__,
                lambda doc: doc.get("recipient_id") == viewer_id and in_conversation(doc),
                lambda: self._received_by(viewer_id),
                on_received,
            ),
            self.hub.subscribe(
                PendingMessage.__tablename__,
                lambda doc: doc.get("sender_id") == viewer_id and in_conversation(doc),
                lambda: self._pending_of(viewer_id),
                on_pending,
            ),
        ]
        handle = FeedHandle(self.hub, subscriptions)

        try:
            state.sent = {m.id: m for m in self._sent_by(viewer_id)}
            state.received = {m.id: m for m in self._received_by(viewer_id)}
            state.pending = self._pending_of(viewer_id)
            push()
        except Exception:
            handle.close()
            raise
        logger.debug("Viewer %s subscribed to conversation %s", viewer_id, conversation_id)
        return handle

    def subscribe_conversation_list(
        self,
        user_id: str,
        callback: ConversationsCallback,
    ) -> FeedHandle:
        """Push ``user_id``'s conversations, most recent activity first, on every change."""

        def load() -> list[ConversationOut]:
            return self._read(
                lambda s: [
                    ConversationOut.model_validate(c)
                    for c in ConversationRepository(s).list_for_user(user_id)
                ]
            )

        subscription = self.hub.subscribe(
            Conversation.__tablename__,
            lambda doc: user_id in (doc.get("participants") or []),
            load,
            callback,
        )
        handle = FeedHandle(self.hub, [subscription])
        try:
            callback(load())
        except Exception:
            handle.close()
            raise
        return handle
