# src/comu_relay/services/__init__.py
"""Business logic services for the Comu Relay application."""

from .change_feed import FeedHandle, LiveChangeFeed
from .delivery import DeliveryPump
from .identity import AuthSession, IdentityProvider
from .media import LocalObjectStore, ObjectStore
from .pending_queue import PendingQueue
from .reconcile import MessageStore

__all__ = [
    "AuthSession",
    "DeliveryPump",
    "FeedHandle",
    "IdentityProvider",
    "LiveChangeFeed",
    "LocalObjectStore",
    "MessageStore",
    "ObjectStore",
    "PendingQueue",
]
