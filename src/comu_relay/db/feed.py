"""Server-push change notifications for the durable store.

Every ORM session attached to a :class:`ChangeFeedHub` reports the rows it
inserted, updated or deleted. Once the surrounding transaction commits, each
subscription whose predicate matches one of those rows re-runs its loader and
receives the full current match set, the same contract a document database's
snapshot listener offers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import event
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

Document = dict[str, Any]
Predicate = Callable[[Document], bool]

_INFO_KEY = "comu_feed_changes"


@dataclass(frozen=True)
class Change:
    """A single row-level change captured from a flush."""

    collection: str
    kind: str
    document: Document


@dataclass(eq=False)
class Subscription:
    """Query-shaped listener registered on one collection."""

    collection: str
    predicate: Predicate
    loader: Callable[[], Any]
    callback: Callable[[Any], None]
    active: bool = True

    def matches(self, change: Change) -> bool:
        return self.active and self.predicate(change.document)

    def deliver(self) -> None:
        if self.active:
            self.callback(self.loader())


def _snapshot(obj: Any) -> Document:
    mapper = sa_inspect(obj).mapper
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


class ChangeFeedHub:
    """Registers subscriptions and pushes fresh match sets after each commit."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(
        self,
        collection: str,
        predicate: Predicate,
        loader: Callable[[], Any],
        callback: Callable[[Any], None],
    ) -> Subscription:
        subscription = Subscription(
            collection=collection,
            predicate=predicate,
            loader=loader,
            callback=callback,
        )
        self._subscriptions.setdefault(collection, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        subs = self._subscriptions.get(subscription.collection)
        if not subs:
            return
        try:
            subs.remove(subscription)
        except ValueError:
            return
        if not subs:
            self._subscriptions.pop(subscription.collection, None)

    def subscription_count(self, collection: str | None = None) -> int:
        if collection is not None:
            return len(self._subscriptions.get(collection, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def clear(self) -> None:
        for subs in self._subscriptions.values():
            for subscription in subs:
                subscription.active = False
        self._subscriptions.clear()

    def publish(self, changes: Iterable[Change]) -> None:
        """Deliver the current match set to every subscription touched by ``changes``."""
        touched: list[Subscription] = []
        for change in changes:
            for subscription in list(self._subscriptions.get(change.collection, [])):
                if subscription not in touched and subscription.matches(change):
                    touched.append(subscription)

        for subscription in touched:
            try:
                subscription.deliver()
            except Exception:
                logger.exception(
                    "Change feed subscriber on %s failed", subscription.collection
                )

    # Session wiring -----------------------------------------------------

    def attach(self, target: Any) -> None:
        """Start capturing changes from ``target`` (a Session, sessionmaker or Session class)."""
        event.listen(target, "before_flush", self._collect)
        event.listen(target, "after_commit", self._dispatch)
        event.listen(target, "after_rollback", self._discard)

    def detach(self, target: Any) -> None:
        event.remove(target, "before_flush", self._collect)
        event.remove(target, "after_commit", self._dispatch)
        event.remove(target, "after_rollback", self._discard)

    def _collect(self, session: Session, flush_context: Any, instances: Any) -> None:
        captured: list[Change] = session.info.setdefault(_INFO_KEY, [])
        for kind, objects in (
            ("insert", session.new),
            ("update", session.dirty),
            ("delete", session.deleted),
        ):
            for obj in objects:
                collection = getattr(obj, "__tablename__", None)
                if collection is None:
                    continue
                captured.append(Change(collection, kind, _snapshot(obj)))

    def _dispatch(self, session: Session) -> None:
        changes = session.info.pop(_INFO_KEY, None)
        if changes:
            self.publish(changes)

    def _discard(self, session: Session) -> None:
        session.info.pop(_INFO_KEY, None)


feed_hub = ChangeFeedHub()
