"""Tests for edits, deletions, reactions, read receipts and pins."""

import pytest

from comu_relay.core.errors import EditWindowExpired, NotFound, PermissionDenied
from comu_relay.models import StoredMessage
from comu_relay.services import mutations
from comu_relay.services.delivery import DeliveryPump
from comu_relay.services.identity import AuthSession
from comu_relay.services.pending_queue import PendingQueue
from tests.conftest import draft, store_committed

COMMITTED_AT = 1_700_000_000_000


@pytest.fixture()
def committed(db_session, alice, bob, conversation) -> StoredMessage:
    """A message from Alice to Bob committed at ``COMMITTED_AT``."""
    return store_committed(db_session, draft(conversation, alice, bob, "original"), committed_at=COMMITTED_AT)


def test_edit_inside_grace_window(db_session, alice_auth, committed) -> None:
    edited = mutations.edit_message(
        db_session, alice_auth, committed.id, "changed", now=COMMITTED_AT + 179_000
    )

    assert edited.content == "changed"
    assert edited.edited is True
    assert edited.edited_at == COMMITTED_AT + 179_000


def test_edit_after_grace_window_is_rejected(db_session, alice_auth, committed) -> None:
    with pytest.raises(EditWindowExpired):
        mutations.edit_message(db_session, alice_auth, committed.id, "late", now=COMMITTED_AT + 181_000)

    db_session.refresh(committed)
    assert committed.content == "original"


def test_delete_grace_window_boundaries(db_session, alice_auth, committed) -> None:
    with pytest.raises(EditWindowExpired):
        mutations.delete_message(db_session, alice_auth, committed.id, now=COMMITTED_AT + 181_000)

    mutations.delete_message(db_session, alice_auth, committed.id, now=COMMITTED_AT + 179_000)
    assert db_session.get(StoredMessage, committed.id) is None


def test_expired_window_is_a_permission_error(db_session, alice_auth, committed) -> None:
    with pytest.raises(PermissionDenied):
        mutations.edit_message(db_session, alice_auth, committed.id, "x", now=COMMITTED_AT + 600_000)


def test_only_sender_may_edit_or_delete(db_session, bob_auth, committed) -> None:
    with pytest.raises(PermissionDenied):
        mutations.edit_message(db_session, bob_auth, committed.id, "hijack", now=COMMITTED_AT)
    with pytest.raises(PermissionDenied):
        mutations.delete_message(db_session, bob_auth, committed.id, now=COMMITTED_AT)


def test_edit_pending_then_after_commit(db_session, alice, bob, alice_auth, conversation) -> None:
    """Pending edits always succeed; once committed the grace window applies."""
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob, "draft"))

    edited = mutations.edit_message(db_session, alice_auth, message.id, "ready", now=10**15)
    assert edited.content == "ready"
    assert edited.committed is False

    DeliveryPump(db_session).drain(alice_auth)
    row = db_session.get(StoredMessage, message.id)
    assert row.content == "ready"

    with pytest.raises(EditWindowExpired):
        mutations.edit_message(db_session, alice_auth, message.id, "too late", now=row.committed_at + 181_000)


def test_pending_edit_by_other_user_is_denied(db_session, alice, bob, alice_auth, bob_auth, conversation) -> None:
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob))

    with pytest.raises(PermissionDenied):
        mutations.edit_message(db_session, bob_auth, message.id, "nope")


def test_edit_unknown_message(db_session, alice_auth) -> None:
    with pytest.raises(NotFound):
        mutations.edit_message(db_session, alice_auth, "missing", "x")
    with pytest.raises(NotFound):
        mutations.delete_message(db_session, alice_auth, "missing")


def test_delete_pending_only_message(db_session, alice, bob, alice_auth, conversation) -> None:
    queue = PendingQueue(db_session)
    message = queue.enqueue(alice_auth, draft(conversation, alice, bob))

    mutations.delete_message(db_session, alice_auth, message.id)

    assert queue.get(message.id) is None


def test_delete_committed_drops_stale_pending_copy(db_session, alice, bob, alice_auth, conversation) -> None:
    message = draft(conversation, alice, bob)
    store_committed(db_session, message, committed_at=COMMITTED_AT)
    PendingQueue(db_session).enqueue(alice_auth, message)

    mutations.delete_message(db_session, alice_auth, message.id, now=COMMITTED_AT + 1_000)

    assert db_session.get(StoredMessage, message.id) is None
    assert PendingQueue(db_session).get(message.id) is None


def test_delete_pinned_message_unpins_it(db_session, alice_auth, committed, conversation) -> None:
    mutations.pin_message(db_session, alice_auth, committed.id)

    mutations.delete_message(db_session, alice_auth, committed.id, now=COMMITTED_AT + 1_000)

    db_session.refresh(conversation)
    assert conversation.pinned_message_ids == []


def test_react_replaces_previous_reaction(db_session, bob, bob_auth, committed) -> None:
    mutations.react(db_session, bob_auth, committed.id, "👍")
    message = mutations.react(db_session, bob_auth, committed.id, "❤️")

    assert [(r.user_id, r.emoji) for r in message.reactions] == [(bob.id, "❤️")]

    cleared = mutations.remove_reaction(db_session, bob_auth, committed.id)
    assert cleared.reactions == []


def test_reactions_from_both_participants(db_session, alice, bob, alice_auth, bob_auth, committed) -> None:
    mutations.react(db_session, alice_auth, committed.id, "😂")
    message = mutations.react(db_session, bob_auth, committed.id, "👍")

    assert {r.user_id for r in message.reactions} == {alice.id, bob.id}


def test_outsider_cannot_react(db_session, carol, committed) -> None:
    with pytest.raises(PermissionDenied):
        mutations.react(db_session, AuthSession(principal_id=carol.id), committed.id, "👍")


def test_pending_message_cannot_be_reacted_to(db_session, alice, bob, alice_auth, bob_auth, conversation) -> None:
    message = PendingQueue(db_session).enqueue(alice_auth, draft(conversation, alice, bob))

    with pytest.raises(NotFound):
        mutations.react(db_session, bob_auth, message.id, "👍")


def test_mark_read_by_recipient_only(db_session, bob, alice_auth, bob_auth, committed) -> None:
    unchanged = mutations.mark_read(db_session, alice_auth, committed.id)
    assert unchanged.read_by == []

    read = mutations.mark_read(db_session, bob_auth, committed.id)
    again = mutations.mark_read(db_session, bob_auth, committed.id)

    assert read.read_by == [bob.id]
    assert read.read_at is not None
    assert again.read_by == [bob.id]


def test_mark_conversation_read(db_session, alice, bob, bob_auth, conversation) -> None:
    for content in ("one", "two"):
        store_committed(db_session, draft(conversation, alice, bob, content))
    store_committed(db_session, draft(conversation, bob, alice, "mine"))

    assert mutations.mark_conversation_read(db_session, bob_auth, conversation.id) == 2
    assert mutations.mark_conversation_read(db_session, bob_auth, conversation.id) == 0


def test_pin_and_unpin_update_message_and_conversation(db_session, bob_auth, committed, conversation) -> None:
    pinned = mutations.pin_message(db_session, bob_auth, committed.id)
    db_session.refresh(conversation)

    assert pinned.pinned is True
    assert conversation.pinned_message_ids == [committed.id]

    mutations.pin_message(db_session, bob_auth, committed.id)
    db_session.refresh(conversation)
    assert conversation.pinned_message_ids == [committed.id]

    unpinned = mutations.unpin_message(db_session, bob_auth, committed.id)
    db_session.refresh(conversation)
    assert unpinned.pinned is False
    assert conversation.pinned_message_ids == []


@pytest.mark.parametrize(
    ("offset", "allowed"),
    [(0, True), (179_000, True), (179_999, True), (180_000, False), (181_000, False)],
)
def test_can_modify_window(committed, offset: int, allowed: bool) -> None:
    assert mutations.can_modify(committed, COMMITTED_AT + offset) is allowed
