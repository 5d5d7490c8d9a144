"""Draining the pending queue into the durable ledger.

The pump commits each pending message of the principal at most once. A
message that cannot be committed is reported with its error and left in the
queue, so a later drain can retry it. Only messages that were delivered, or
that turned out to be delivered already, are removed from the queue.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from comu_relay.core.errors import (
    NotFound,
    PermissionDenied,
    RelayError,
    TransientStoreFailure,
)
from comu_relay.db.time import now_ms
from comu_relay.repositories import ConversationRepository, MessageRepository, to_message
from comu_relay.schemas.message import DeliveryFailure, DeliveryReport, Message
from comu_relay.services.identity import AuthSession, require_session
from comu_relay.services.pending_queue import PendingQueue
from comu_relay.services.users import ensure_not_blocked

logger = logging.getLogger(__name__)


class Outcome(Enum):
    DELIVERED = "delivered"
    ALREADY_COMMITTED = "already_committed"


class DeliveryPump:
    """Moves a principal's pending messages into the durable store."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.queue = PendingQueue(session)
        self.messages = MessageRepository(session)
        self.conversations = ConversationRepository(session)

    def drain(self, auth: AuthSession | None) -> DeliveryReport:
        """Commit every pending message of the principal.

        Args:
            auth: Live session of the principal; it is read once for the batch.

        Returns:
            Tally of delivered, failed and already-committed messages.

        Raises:
            Unauthenticated: If no principal is bound; nothing is committed.
        """
        auth = require_session(auth)
        principal_id = auth.principal_id

        pending = sorted(self.queue.list_by_sender(principal_id), key=lambda m: m.sort_key)
        report = DeliveryReport()

        for message in pending:
            try:
                outcome = self._deliver_one(message, principal_id)
            except RelayError as exc:
                self.session.rollback()
                self._record_failure(report, message, exc)
                continue
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error("Store failure while committing %s", message.id, exc_info=True)
                self._record_failure(report, message, TransientStoreFailure(str(exc)))
                continue

            if outcome is Outcome.DELIVERED:
                report.success_count += 1
                report.delivered.append(message.id)
            else:
                report.already_committed.append(message.id)

        settled = report.delivered + report.already_committed
        if settled:
            self.queue.remove_many(settled)

        logger.info(
            "Drained queue of %s: %d delivered, %d failed, %d already committed",
            principal_id,
            report.success_count,
            report.failure_count,
            len(report.already_committed),
        )
        return report

    def _record_failure(self, report: DeliveryReport, message: Message, exc: RelayError) -> None:
        logger.warning("Pending message %s not delivered: %s", message.id, exc)
        report.failure_count += 1
        report.errors.append(
            DeliveryFailure(message_id=message.id, error=exc.code, detail=str(exc))
        )

    def _deliver_one(self, message: Message, principal_id: str) -> Outcome:
        conversation = self.conversations.get(message.conversation_id)
        if conversation is None:
            raise NotFound(f"Conversation {message.conversation_id} not found")
        participants = list(conversation.participants or [])
        if principal_id not in participants:
            raise PermissionDenied(
                f"{principal_id} is not a participant of {message.conversation_id}"
            )

        if message.sender_id != principal_id:
            logger.warning(
                "Message %s has sender %s but principal is %s; correcting",
                message.id,
                message.sender_id,
                principal_id,
            )
            message = message.model_copy(update={"sender_id": principal_id})

        ensure_not_blocked(self.session, principal_id, message.recipient_id)

        # The store validates the conversation before it accepts the message.
        self.conversations.upsert(conversation.id, participants)
        self.session.commit()

        committed_at = now_ms()
        existing = self.messages.get(message.id)
        if existing is not None:
            if existing.committed:
                logger.info("Message %s already committed; skipping", message.id)
                return Outcome.ALREADY_COMMITTED
            if existing.sender_id != principal_id:
                raise PermissionDenied(f"Message {message.id} belongs to another sender")
            self.messages.mark_committed(existing, committed_at)
            committed = to_message(existing)
        else:
            candidate = message.model_copy(
                update={"committed": True, "committed_at": committed_at}
            )
            if self.messages.create_if_absent(candidate, principal_id=principal_id) is None:
                return Outcome.ALREADY_COMMITTED
            committed = candidate

        self.conversations.update_snapshot(conversation, committed, committed_at)
        self.session.commit()
        return Outcome.DELIVERED
