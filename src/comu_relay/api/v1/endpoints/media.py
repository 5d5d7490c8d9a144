"""Media upload and retrieval endpoints."""

from __future__ import annotations

import mimetypes
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from comu_relay.core.errors import NotFound
from comu_relay.schemas.media import MediaUpload, MediaUploaded
from comu_relay.services.media import LocalObjectStore, ObjectStore, decode_payload, upload_media

from ..dependencies import AuthDep

router = APIRouter(prefix="/media", tags=["media"])


def get_object_store() -> ObjectStore:
    return LocalObjectStore()


ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]


@router.post("", response_model=MediaUploaded, status_code=status.HTTP_201_CREATED)
async def upload(payload: MediaUpload, auth: AuthDep, store: ObjectStoreDep) -> MediaUploaded:
    """Store a base64 payload and return the URL to send as message content."""
    return upload_media(
        store,
        auth,
        payload.message_id,
        payload.kind,
        payload.filename,
        payload.content_type,
        decode_payload(payload.data),
    )


@router.get("/{key:path}")
async def download(key: str, store: ObjectStoreDep) -> Response:
    """Serve a stored blob; the URLs returned by uploads point here.

    Media URLs are embedded in message content and fetched without a bearer
    token, so this route is public.
    """
    data = store.fetch(key)
    if data is None:
        raise NotFound(f"No media stored under {key}")
    media_type, _ = mimetypes.guess_type(key)
    return Response(content=data, media_type=media_type or "application/octet-stream")
