"""Domain errors raised by the messaging services.

The HTTP layer maps each class to a status code in ``comu_relay.main``.
"""

from __future__ import annotations


class RelayError(RuntimeError):
    """Base exception for messaging failures."""

    code = "relay_error"


class Unauthenticated(RelayError):
    """Raised when no live principal is bound to the operation."""

    code = "unauthenticated"


class NotFound(RelayError):
    """Raised when a referenced conversation, message or user does not exist."""

    code = "not_found"


class PermissionDenied(RelayError):
    """Raised when the principal may not perform the operation."""

    code = "permission_denied"


class EditWindowExpired(PermissionDenied):
    """Raised when a committed message is edited or deleted after the grace window."""

    code = "edit_window_expired"


class SenderBlocked(PermissionDenied):
    """Raised when the recipient has blocked the sender of a message."""

    code = "sender_blocked"


class AccountExists(RelayError):
    """Raised when registering an email address that is already in use."""

    code = "account_exists"


class TransientStoreFailure(RelayError):
    """Raised when the durable store fails during a write."""

    code = "transient_store_failure"


class BlockedWordRejected(RelayError):
    """Raised when outgoing text contains a word the recipient has blocked."""

    code = "blocked_word"

    def __init__(self, blocked_word: str, attempt_id: str) -> None:
        super().__init__(f"Message contains the blocked word {blocked_word!r}")
        self.blocked_word = blocked_word
        self.attempt_id = attempt_id


class InvalidMedia(RelayError):
    """Raised when an uploaded media payload is rejected."""

    code = "invalid_media"
