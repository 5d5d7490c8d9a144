"""Object storage for message media.

Media is uploaded before the message that references it is composed; the
message then carries the returned URL as its content.
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

from comu_relay.core.errors import InvalidMedia
from comu_relay.core.settings import settings
from comu_relay.schemas.media import MediaUploaded
from comu_relay.schemas.message import ContentKind
from comu_relay.services.identity import AuthSession, require_session

logger = logging.getLogger(__name__)

ALLOWED_TYPES: dict[ContentKind, frozenset[str]] = {
    ContentKind.IMAGE: frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
    ContentKind.VIDEO: frozenset({"video/mp4", "video/webm", "video/ogg"}),
    ContentKind.AUDIO: frozenset({"audio/mpeg", "audio/wav", "audio/ogg", "audio/webm"}),
    ContentKind.GIF: frozenset({"image/gif"}),
}


class ObjectStore(ABC):
    """Blob storage addressed by slash-separated keys."""

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return a URL it can be fetched from."""

    @abstractmethod
    def fetch(self, key: str) -> bytes | None:
        """Return the blob stored under ``key``, or ``None`` if there is none."""


class LocalObjectStore(ObjectStore):
    """Writes blobs below a directory on the local filesystem."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None) -> None:
        self.root = Path(root if root is not None else settings.media_root)
        self.base_url = base_url if base_url is not None else settings.media_base_url

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        target = self.root.joinpath(*PurePosixPath(key).parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored %d bytes of %s at %s", len(data), content_type, target)
        return self.base_url.rstrip("/") + "/" + key

    def fetch(self, key: str) -> bytes | None:
        parts = PurePosixPath(key).parts
        if not parts or any(part in (".", "..", "/") for part in parts):
            return None
        target = self.root.joinpath(*parts)
        if not target.is_file():
            return None
        return target.read_bytes()


def media_key(user_id: str, message_id: str, filename: str) -> str:
    """Return ``messages/{user}/{message}/{filename}`` with path separators stripped."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    if not name or name in (".", ".."):
        raise InvalidMedia(f"Invalid filename {filename!r}")
    for part in (user_id, message_id):
        if not part or "/" in part or part in (".", ".."):
            raise InvalidMedia("Invalid media key component")
    return f"messages/{user_id}/{message_id}/{name}"


def validate_content_type(kind: ContentKind, content_type: str) -> None:
    allowed = ALLOWED_TYPES.get(kind)
    if allowed is None:
        raise InvalidMedia(f"{kind.value} messages do not carry media")
    if content_type.lower() not in allowed:
        raise InvalidMedia(f"{content_type} is not accepted for {kind.value} messages")


def decode_payload(data: str) -> bytes:
    """Decode base64 ``data``, accepting a ``data:<mime>;base64,`` prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidMedia("Media payload must be valid base64") from exc


def upload_media(
    store: ObjectStore,
    auth: AuthSession | None,
    message_id: str,
    kind: ContentKind,
    filename: str,
    content_type: str,
    data: bytes,
) -> MediaUploaded:
    """Validate and store a media payload for one of the principal's messages."""
    auth = require_session(auth)
    validate_content_type(kind, content_type)
    if not data:
        raise InvalidMedia("Media payload is empty")
    if len(data) > settings.media_max_bytes:
        raise InvalidMedia(
            f"Media payload of {len(data)} bytes exceeds {settings.media_max_bytes}"
        )
    key = media_key(auth.principal_id, message_id, filename)
    url = store.upload(key, data, content_type)
    logger.info("Uploaded %s media for message %s", kind.value, message_id)
    return MediaUploaded(key=key, url=url, size=len(data))
