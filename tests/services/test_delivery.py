"""Tests for the delivery pump."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from comu_relay.core.errors import Unauthenticated
from comu_relay.models import Conversation, StoredMessage
from comu_relay.repositories import message_document
from comu_relay.services.conversations import derive_conversation_id
from comu_relay.services.delivery import DeliveryPump
from comu_relay.services.identity import AuthSession
from comu_relay.services.pending_queue import PendingQueue
from comu_relay.services.reconcile import MessageStore
from comu_relay.services.users import block_user, unblock_user
from tests.conftest import draft, store_committed


def _stored_count(db_session, message_id: str) -> int:
    return db_session.scalar(
        select(func.count()).select_from(StoredMessage).where(StoredMessage.id == message_id)
    )


def test_send_while_offline_then_deliver(db_session, alice, bob, alice_auth, conversation) -> None:
    """A queued message shows as pending, then as committed once the pump runs."""
    message = draft(conversation, alice, bob, "hi")
    PendingQueue(db_session).enqueue(alice_auth, message)

    before = MessageStore(db_session).conversation_view(conversation.id, alice.id)
    assert [(m.id, m.committed) for m in before] == [(message.id, False)]

    report = DeliveryPump(db_session).drain(alice_auth)

    assert (report.success_count, report.failure_count) == (1, 0)
    assert report.delivered == [message.id]
    after = MessageStore(db_session).conversation_view(conversation.id, alice.id)
    assert [(m.id, m.committed) for m in after] == [(message.id, True)]
    assert after[0].committed_at is not None
    assert PendingQueue(db_session).list_by_sender(alice.id) == []


def test_retry_never_commits_twice(db_session, alice, bob, alice_auth, conversation) -> None:
    """Re-running on the same pending set reports the id as already committed."""
    message = draft(conversation, alice, bob)
    queue = PendingQueue(db_session)
    queue.enqueue(alice_auth, message)
    DeliveryPump(db_session).drain(alice_auth)

    queue.enqueue(alice_auth, message)
    report = DeliveryPump(db_session).drain(alice_auth)

    assert (report.success_count, report.failure_count) == (0, 0)
    assert report.already_committed == [message.id]
    assert _stored_count(db_session, message.id) == 1
    assert queue.list_by_sender(alice.id) == []


def test_partial_failure_keeps_failed_message_pending(
    db_session, alice, bob, carol, alice_auth, conversation
) -> None:
    """A message whose conversation vanished is reported and stays queued."""
    other = Conversation(
        id=derive_conversation_id(alice.id, carol.id),
        participants=[alice.id, carol.id],
        last_activity=0,
        pinned_message_ids=[],
        typing={},
    )
    db_session.add(other)
    db_session.commit()

    queue = PendingQueue(db_session)
    first = queue.enqueue(alice_auth, draft(conversation, alice, bob, "M1", created_at=1))
    second = queue.enqueue(alice_auth, draft(other, alice, carol, "M2", created_at=2))
    db_session.delete(other)
    db_session.commit()

    report = DeliveryPump(db_session).drain(alice_auth)

    assert (report.success_count, report.failure_count) == (1, 1)
    assert report.errors[0].message_id == second.id
    assert report.errors[0].error == "not_found"
    assert [m.id for m in queue.list_by_sender(alice.id)] == [second.id]
    assert _stored_count(db_session, first.id) == 1


def test_non_participant_is_reported_as_permission_denied(
    db_session, alice, bob, carol, conversation
) -> None:
    auth = AuthSession(principal_id=carol.id)
    message = PendingQueue(db_session).enqueue(auth, draft(conversation, carol, bob))

    report = DeliveryPump(db_session).drain(auth)

    assert report.failure_count == 1
    assert report.errors[0].error == "permission_denied"
    assert [m.id for m in PendingQueue(db_session).list_by_sender(carol.id)] == [message.id]
    assert _stored_count(db_session, message.id) == 0


def test_store_failure_is_transient_and_retried_later(
    db_session, alice, bob, alice_auth, conversation, mocker
) -> None:
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob))
    pump = DeliveryPump(db_session)
    mocker.patch.object(
        pump.messages,
        "create_if_absent",
        side_effect=OperationalError("INSERT INTO messages", {}, Exception("disk I/O error")),
    )

    report = pump.drain(alice_auth)

    assert report.failure_count == 1
    assert report.errors[0].error == "transient_store_failure"
    assert PendingQueue(db_session).get(message.id) is not None

    retry = DeliveryPump(db_session).drain(alice_auth)
    assert retry.delivered == [message.id]


def test_uncommitted_durable_copy_is_promoted(db_session, alice, bob, alice_auth, conversation) -> None:
    """A durable row left uncommitted by an interrupted run is committed in place."""
    message = draft(conversation, alice, bob)
    db_session.add(StoredMessage(**message_document(message)))
    db_session.commit()
    PendingQueue(db_session).enqueue(alice_auth, message)

    report = DeliveryPump(db_session).drain(alice_auth)

    assert report.delivered == [message.id]
    row = db_session.get(StoredMessage, message.id)
    assert row.committed is True
    assert row.committed_at is not None


def test_drain_updates_conversation_snapshot(db_session, alice, bob, alice_auth, conversation) -> None:
    queue = PendingQueue(db_session)
    queue.enqueue(alice_auth, draft(conversation, alice, bob, "older", created_at=1))
    latest = queue.enqueue(alice_auth, draft(conversation, alice, bob, "newer", created_at=2))

    DeliveryPump(db_session).drain(alice_auth)

    db_session.refresh(conversation)
    assert conversation.last_message["id"] == latest.id
    assert conversation.last_message["content"] == "newer"
    assert conversation.last_activity > 0


def test_drain_without_session_commits_nothing(db_session, alice, bob, alice_auth, conversation) -> None:
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob))

    with pytest.raises(Unauthenticated):
        DeliveryPump(db_session).drain(None)

    assert _stored_count(db_session, message.id) == 0


def test_drain_with_empty_queue(db_session, alice_auth) -> None:
    report = DeliveryPump(db_session).drain(alice_auth)

    assert report.success_count == report.failure_count == 0
    assert report.errors == []


def test_concurrent_commit_is_reported_as_already_committed(
    db_session, session_factory, alice, bob, alice_auth, conversation, mocker
) -> None:
    """Losing the insert race to another drain is not a failure."""
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob))
    with session_factory() as other:
        store_committed(other, message)
    pump = DeliveryPump(db_session)
    # The lookup ran before the other writer's insert landed.
    mocker.patch.object(pump.messages, "get", return_value=None)

    report = pump.drain(alice_auth)

    assert report.already_committed == [message.id]
    assert (report.success_count, report.failure_count) == (0, 0)
    assert report.errors == []
    assert _stored_count(db_session, message.id) == 1
    assert PendingQueue(db_session).get(message.id) is None


def test_diverging_sender_is_corrected(db_session, alice, bob, conversation, caplog) -> None:
    message = draft(conversation, bob, alice, "stale sender")

    outcome = DeliveryPump(db_session)._deliver_one(message, alice.id)

    assert outcome.value == "delivered"
    row = db_session.get(StoredMessage, message.id)
    assert row.sender_id == alice.id
    assert row.committed is True
    assert "correcting" in caplog.text


def test_message_to_blocking_recipient_stays_pending(
    db_session, alice, bob, alice_auth, bob_auth, conversation
) -> None:
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob))
    block_user(db_session, bob_auth, alice.id)

    report = DeliveryPump(db_session).drain(alice_auth)

    assert report.failure_count == 1
    assert report.errors[0].error == "sender_blocked"
    assert _stored_count(db_session, message.id) == 0
    assert PendingQueue(db_session).get(message.id) is not None

    unblock_user(db_session, bob_auth, alice.id)
    assert DeliveryPump(db_session).drain(alice_auth).delivered == [message.id]
